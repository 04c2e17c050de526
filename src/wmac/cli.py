"""WMac command-line interface.

Controls the WiFi MAC filter of an SSH-managed router and keeps a local
list of known devices with labels and categories.

Usage:
    wmac configure --host 192.168.1.1 --user root --password-prompt
    wmac test                              # check credentials
    wmac list                              # fetch filter list from router
    wmac show                              # local list only, no SSH
    wmac add aa:bb:cc:dd:ee:ff --label "Living Room TV" --type tv
    wmac disable aa:bb:cc:dd:ee:ff
    wmac enable aa:bb:cc:dd:ee:ff
    wmac label aa:bb:cc:dd:ee:ff "Kitchen tablet" --type tablet
    wmac remove aa:bb:cc:dd:ee:ff
    wmac gateway                           # print detected default gateway
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys

from rich.console import Console
from rich.markup import escape

from wmac import __version__, config
from wmac.display.tables import build_device_table
from wmac.errors import WmacError
from wmac.gateway import detect_gateway
from wmac.registry import DeviceRegistry, JsonFileStore
from wmac.settings import FILTER_INDEXES, load_profile, save_profile
from wmac.ssh.session import RemoteSession
from wmac.sync import FilterSyncService
from wmac.wmac_common import DeviceType, is_valid_ipv4

_LOGGER = logging.getLogger("wmac")

_TYPE_CHOICES = [t.name.lower() for t in DeviceType]
_BANNER = "[bold cyan]WMac[/bold cyan]"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="wmac",
        description="WiFi MAC address filter controller",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config-dir",
        metavar="DIR",
        help=f"directory for settings and device list (default: {config.CONFIG_DIR})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging to stderr",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        help="also append debug logging to FILE (with --debug)",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    sub.add_parser("list", help="fetch the filter list from the router and show it")
    sub.add_parser("show", help="show the local device list without contacting the router")
    sub.add_parser("test", help="test the SSH connection with the saved settings")
    sub.add_parser("gateway", help="print the detected default gateway")

    add = sub.add_parser("add", help="admit a new device and label it")
    add.add_argument("mac", help="MAC address, e.g. aa:bb:cc:dd:ee:ff")
    add.add_argument("-l", "--label", required=True, help="device name")
    add.add_argument("-t", "--type", choices=_TYPE_CHOICES, default="other", help="device category")

    for name, text in (
        ("enable", "admit a known device on the router"),
        ("disable", "revoke a device on the router but keep it locally"),
        ("remove", "revoke (if enabled) and forget a device"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument("mac", help="MAC address")

    label = sub.add_parser("label", help="change the local label and category of a device")
    label.add_argument("mac", help="MAC address")
    label.add_argument("label", help="new device name")
    label.add_argument("-t", "--type", choices=_TYPE_CHOICES, help="device category")

    configure = sub.add_parser("configure", help="update connection settings")
    configure.add_argument("--host", help="router IPv4 address")
    configure.add_argument("--user", help="SSH user")
    configure.add_argument(
        "--password-prompt",
        action="store_true",
        help="prompt for the SSH password",
    )
    configure.add_argument("--index", choices=FILTER_INDEXES, help="SSID filter to manage")

    return parser.parse_args(argv)


def _setup_logging(args: argparse.Namespace) -> None:
    if not args.debug:
        return
    log_format = "%(name)s: %(levelname)s: %(message)s"
    logging.basicConfig(
        level=logging.DEBUG,
        format=log_format,
        stream=sys.stderr,
    )
    if args.log_file:
        try:
            file_handler = logging.FileHandler(args.log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(log_format))
            logging.getLogger().addHandler(file_handler)
        except OSError as exc:
            _LOGGER.warning("cannot open log file %s: %s", args.log_file, exc)


def _configure(args: argparse.Namespace, settings_path, console: Console) -> int:
    profile = load_profile(settings_path)
    if args.host is not None:
        if not is_valid_ipv4(args.host):
            console.print(f"[red]Invalid IP address format: {escape(args.host)}[/red]")
            return 1
        profile.host = args.host
    if args.user is not None:
        profile.user = args.user
    if args.password_prompt:
        profile.password = getpass.getpass("SSH password: ")
    if args.index is not None:
        profile.filter_index = args.index

    if not save_profile(settings_path, profile):
        console.print(f"[red]Could not write {escape(str(settings_path))}[/red]")
        return 1
    console.print(
        f"{_BANNER} — host={escape(profile.host)} user={escape(profile.user)} "
        f"password={'set' if profile.password else 'not set'} filter={profile.filter_index}"
    )
    return 0


async def _dispatch(
    args: argparse.Namespace,
    service: FilterSyncService,
    settings_path,
    console: Console,
) -> int:
    registry = service.registry

    if args.command == "show":
        console.print(build_device_table(registry.devices))
        return 0

    if args.command == "label":
        device_type = DeviceType.parse(args.type) if args.type else None
        device = service.rename_device(args.mac, args.label, device_type)
        console.print(
            f"{_BANNER} — [green]renamed {device.mac_address} to {escape(device.display_name)}[/green]"
        )
        return 0

    profile = load_profile(settings_path)

    if args.command == "test":
        result = await service.test_connection(profile)
        colour = "green" if result.ok else "red"
        console.print(f"{_BANNER} — [{colour}]{escape(result.message)}[/{colour}]")
        return 0 if result.ok else 1

    if not profile.is_complete:
        console.print(
            f"{_BANNER} — [yellow]connection settings incomplete, "
            "run 'wmac configure' first[/yellow]"
        )
        return 1

    if args.command == "list":
        devices = await service.list_devices(profile)
        console.print(build_device_table(devices))
        return 0

    if args.command == "add":
        device = await service.add_device(
            profile, args.mac, args.label, DeviceType.parse(args.type)
        )
        if device is None:
            console.print(f"{_BANNER} — [yellow]device admitted but not listed by the router[/yellow]")
        else:
            console.print(f"{_BANNER} — [green]added {escape(device.display_name)}[/green]")
        return 0

    if args.command == "enable":
        message = await service.admit(profile, args.mac)
    elif args.command == "disable":
        message = await service.revoke(profile, args.mac)
    else:
        message = await service.delete_device(profile, args.mac)

    console.print(f"{_BANNER} — [green]{escape(message)}[/green]")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run one WMac command and exit with its status."""
    args = _parse_args(argv)
    _setup_logging(args)
    console = Console()

    config_dir = config.get_config_dir(args.config_dir)
    settings_path = config.get_settings_path(config_dir)
    _LOGGER.debug("config dir: %s", config_dir)

    if args.command == "gateway":
        gateway = detect_gateway()
        if gateway is None:
            console.print("[yellow]No default gateway detected.[/yellow]")
            sys.exit(1)
        console.print(gateway)
        sys.exit(0)

    if args.command == "configure":
        sys.exit(_configure(args, settings_path, console))

    registry = DeviceRegistry(JsonFileStore(config.get_devices_path(config_dir)))
    registry.load()
    service = FilterSyncService(RemoteSession(), registry)

    try:
        status = asyncio.run(_dispatch(args, service, settings_path, console))
    except WmacError as exc:
        console.print(f"{_BANNER} — [red]{escape(str(exc))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print(f"\n{_BANNER} — interrupted.")
        sys.exit(130)
    sys.exit(status)


if __name__ == "__main__":
    main()
