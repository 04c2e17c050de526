"""Rich display helpers for the WMac CLI."""

from wmac.display.tables import build_device_table, format_elapsed  # noqa: F401
