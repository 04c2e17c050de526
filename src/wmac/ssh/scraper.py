"""Terminal transcript scraping for router command output.

The expect transcript contains the ``spawn ssh`` announcement, the
password prompt, the shell's echo of the typed command and the router
prompts around the real output.  :func:`clean_output` strips that noise;
:func:`parse_device_list` turns the output of ``display wifi filter``
into :class:`~wmac.wmac_common.Device` records.

Neither function raises on unexpected input.  Anything that cannot be
interpreted is dropped and the best available result is returned.
"""

from __future__ import annotations

import logging

from wmac.wmac_common import Device, is_valid_mac, normalize_mac

logger = logging.getLogger(__name__)

# Line endings that mark a shell or router prompt
_PROMPT_SUFFIXES = ("WAP>", "#", "$")

# Substrings that mark expect/ssh noise rather than command output
_NOISE_MARKERS = ("spawn ssh", "password:", "ERROR:")

# Markers of non-data rows in the ``display wifi filter`` table
_HEADER_MARKER = "SSID Index"
_SEPARATOR_MARKER = "---"
_SUCCESS_BANNER = "success!"


# ---------------------------------------------------------------------------
# Transcript cleaning
# ---------------------------------------------------------------------------

def _is_noise(line: str) -> bool:
    trimmed = line.strip()
    if not trimmed:
        return True
    if trimmed.endswith(_PROMPT_SUFFIXES):
        return True
    return any(marker in line for marker in _NOISE_MARKERS)


def clean_output(raw: str, command: str) -> str:
    """Recover the output of *command* from a raw expect transcript.

    Everything up to and including the first line that contains the
    command echo is discarded.  Blank lines, prompt lines and ssh/expect
    noise are removed from what remains.

    If the echo line cannot be found (for example because the terminal
    wrapped a long command) nothing is discarded up front and only the
    per-line filters apply.

    Args:
        raw: Captured stdout of the automation script.
        command: The command that was sent to the router.

    Returns:
        The cleaned output with surrounding whitespace trimmed.
    """
    lines = raw.splitlines()

    echo_index = next(
        (i for i, line in enumerate(lines) if command in line),
        None,
    )
    if echo_index is not None:
        lines = lines[echo_index + 1:]
    else:
        logger.debug("command echo not found in transcript (%d lines)", len(lines))

    kept = [line for line in lines if not _is_noise(line)]
    return "\n".join(kept).strip()


# ---------------------------------------------------------------------------
# ``display wifi filter`` parsing
# ---------------------------------------------------------------------------

def _is_table_chrome(line: str) -> bool:
    return (
        not line
        or _HEADER_MARKER in line
        or _SEPARATOR_MARKER in line
        or _SUCCESS_BANNER in line
    )


def parse_device_list(output: str) -> list[Device]:
    """Parse ``display wifi filter`` output into fresh Device records.

    Expected row format::

        SSID-1      2a:77:3c:e8:bc:2e  Whitelist

    The second whitespace-separated column is taken as the MAC address.
    Returned devices carry default metadata; they are merged with local
    state by :meth:`wmac.registry.DeviceRegistry.merge_fetched`.  Row
    order is preserved and duplicates are kept.
    """
    devices: list[Device] = []

    for line in output.splitlines():
        trimmed = line.strip()
        if _is_table_chrome(trimmed):
            continue

        fields = trimmed.split()
        if len(fields) < 2:
            logger.debug("skipped filter row with %d field(s): %r", len(fields), trimmed)
            continue

        mac = normalize_mac(fields[1])
        if not is_valid_mac(mac):
            logger.debug("filter row without a valid MAC address: %r", trimmed)
        devices.append(Device(mac_address=mac))

    logger.debug("parsed %d device(s) from filter listing", len(devices))
    return devices
