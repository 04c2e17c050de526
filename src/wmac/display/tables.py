"""Rich table builders for the WMac CLI.

Builds a Rich :class:`Table` of known devices.  Can be used standalone
to check table rendering::

    python -m wmac.display.tables          # render a demo table
"""

from __future__ import annotations

from datetime import datetime, timedelta

from rich.markup import escape
from rich.table import Table

from wmac.wmac_common import Device, DeviceType, utc_now


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _plural(count: int, unit: str) -> str:
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def format_elapsed(enabled_at: datetime | None, now: datetime | None = None) -> str:
    """Describe how long ago a device was enabled, e.g. ``"3 minutes ago"``.

    Returns an empty string when there is no timestamp.
    """
    if enabled_at is None:
        return ""
    now = now or utc_now()
    elapsed = max(0, int((now - enabled_at).total_seconds()))
    if elapsed < 60:
        return _plural(elapsed, "second")
    if elapsed < 3600:
        return _plural(elapsed // 60, "minute")
    if elapsed < 86400:
        return _plural(elapsed // 3600, "hour")
    return _plural(elapsed // 86400, "day")


def _mac_markup(mac: str) -> str:
    """Upper-case *mac* with the first and last octet in bold."""
    parts = mac.upper().split(":")
    if len(parts) != 6:
        return escape(mac.upper())
    middle = ":".join(parts[1:-1])
    return f"[bold]{escape(parts[0])}[/bold]:{escape(middle)}:[bold]{escape(parts[-1])}[/bold]"


# ---------------------------------------------------------------------------
# Device table
# ---------------------------------------------------------------------------

def build_device_table(
    devices: list[Device],
    *,
    title: str = "WMac — WiFi MAC Filter",
    caption_override: str | None = None,
    now: datetime | None = None,
) -> Table:
    """Build a Rich Table listing *devices*.

    Args:
        devices: Devices in registry order.
        title: Table title.
        caption_override: Optional caption to use instead of the count.
        now: Reference time for the "Since" column (for testing).
    """
    enabled = sum(1 for d in devices if d.is_enabled)
    caption = (
        caption_override
        if caption_override is not None
        else f"{len(devices)} devices, {enabled} enabled"
    )
    table = Table(
        title=title,
        title_style="bold cyan",
        caption=caption,
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("#", style="grey50", width=3, justify="right")
    table.add_column("Status", width=8)
    table.add_column("Type", width=10)
    table.add_column("Label", style="white", min_width=15, max_width=30)
    table.add_column("MAC", width=17)
    table.add_column("Since", style="grey50")

    for i, device in enumerate(devices, 1):
        status = "[green]enabled[/green]" if device.is_enabled else "[red]disabled[/red]"
        label = escape(device.user_label) if device.user_label else "[dim]<unnamed>[/dim]"
        since = format_elapsed(device.enabled_at, now) if device.is_enabled else ""
        table.add_row(
            str(i),
            status,
            device.device_type.value,
            label,
            _mac_markup(device.mac_address),
            since,
        )

    return table


# ---------------------------------------------------------------------------
# Standalone CLI (demo)
# ---------------------------------------------------------------------------

def main() -> None:
    """Render a demo table with sample data for visual testing."""
    from rich.console import Console

    now = utc_now()
    sample_devices = [
        Device("2a:77:3c:e8:bc:2e", "Living Room TV", True, DeviceType.TV, now - timedelta(minutes=5)),
        Device("aa:bb:cc:dd:ee:01", "Work laptop", True, DeviceType.NOTEBOOK, now - timedelta(days=2)),
        Device("aa:bb:cc:dd:ee:02", "", False, DeviceType.PHONE),
    ]
    console = Console()
    table = build_device_table(sample_devices, now=now)
    console.print(table)


if __name__ == "__main__":
    main()
