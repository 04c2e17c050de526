"""WMac: WiFi MAC filter controller for SSH-managed routers."""

__version__ = "1.0.0"
