"""Reports on the hardware parameters a PCM device supports."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from tinypcm.optparse import ArgType, LongOption, OptionParser
from tinypcm.pcm import UINT_MAX, PcmParams, PcmParam

import re

# Names of the hardware format mask bits, by bit position. Positions 25 to 30
# carry no format.
FORMAT_NAMES: Tuple[Optional[str], ...] = (
    "S8",
    "U8",
    "S16_LE",
    "S16_BE",
    "U16_LE",
    "U16_BE",
    "S24_LE",
    "S24_BE",
    "U24_LE",
    "U24_BE",
    "S32_LE",
    "S32_BE",
    "U32_LE",
    "U32_BE",
    "FLOAT_LE",
    "FLOAT_BE",
    "FLOAT64_LE",
    "FLOAT64_BE",
    "IEC958_SUBFRAME_LE",
    "IEC958_SUBFRAME_BE",
    "MU_LAW",
    "A_LAW",
    "IMA_ADPCM",
    "MPEG",
    "GSM",
    None,
    None,
    None,
    None,
    None,
    None,
    "SPECIAL",
    "S24_3LE",
    "S24_3BE",
    "U24_3LE",
    "U24_3BE",
    "S20_3LE",
    "S20_3BE",
    "U20_3LE",
    "U20_3BE",
    "S18_3LE",
    "S18_3BE",
    "U18_3LE",
    "U18_3BE",
)

LONG_OPTIONS = (
    LongOption("help", "h", ArgType.NONE),
    LongOption("card", "D", ArgType.REQUIRED),
    LongOption("device", "d", ArgType.REQUIRED),
)

# Only the first two words of the format mask are reported.
_FORMAT_BITS_SHOWN = 64
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atou(text: Optional[str]) -> int:
    match = _LEADING_INT.match(text or "")
    return int(match.group(1)) & UINT_MAX if match else 0


def _hex(value: int) -> str:
    """Alternate-form hex padded to eight characters; zero has no prefix."""
    return "00000000" if value == 0 else f"{value:#08x}"


def format_name(bit_index: int) -> Optional[str]:
    """Return the name of the format at this mask position, or None if unknown."""
    if 0 <= bit_index < len(FORMAT_NAMES):
        return FORMAT_NAMES[bit_index]
    return None


def parse_pcminfo_args(argv: Sequence[str]) -> Tuple[int, int, bool]:
    """Return the card, the device and whether help was asked for.

    Unknown options raise :class:`~tinypcm.optparse.OptionError`.
    """
    card = 0
    device = 0
    parser = OptionParser(argv)
    while (opt := parser.parse_long(LONG_OPTIONS)) is not None:
        if opt == "D":
            card = _atou(parser.optarg)
        elif opt == "d":
            device = _atou(parser.optarg)
        elif opt == "h":
            return card, device, True
    return card, device, False


def describe_params(params: PcmParams) -> str:
    """Render the masks and ranges of one stream direction."""
    lines = []
    access = params.get_mask(PcmParam.ACCESS)
    if access is not None:
        lines.append(f"      Access:\t{_hex(access.bits[0])}")

    formats = params.get_mask(PcmParam.FORMAT)
    if formats is not None:
        lines.append(f"   Format[0]:\t{_hex(formats.bits[0])}")
        lines.append(f"   Format[1]:\t{_hex(formats.bits[1])}")
        names = [
            name
            for bit in formats.set_bits()
            if bit < _FORMAT_BITS_SHOWN and (name := format_name(bit)) is not None
        ]
        if names:
            lines.append(" Format Name:\t" + ", ".join(names))

    subformat = params.get_mask(PcmParam.SUBFORMAT)
    if subformat is not None:
        lines.append(f"   Subformat:\t{_hex(subformat.bits[0])}")

    def span(param: PcmParam) -> Tuple[int, int]:
        return params.get_min(param), params.get_max(param)

    low, high = span(PcmParam.RATE)
    lines.append(f"        Rate:\tmin={low}Hz\tmax={high}Hz")
    low, high = span(PcmParam.CHANNELS)
    lines.append(f"    Channels:\tmin={low}\t\tmax={high}")
    low, high = span(PcmParam.SAMPLE_BITS)
    lines.append(f" Sample bits:\tmin={low}\t\tmax={high}")
    low, high = span(PcmParam.PERIOD_SIZE)
    lines.append(f" Period size:\tmin={low}\t\tmax={high}")
    low, high = span(PcmParam.PERIODS)
    lines.append(f"Period count:\tmin={low}\t\tmax={high}")
    return "\n".join(lines) + "\n"


def describe_device(
    card: int,
    device: int,
    params_out: Optional[PcmParams],
    params_in: Optional[PcmParams],
) -> str:
    """Render the report for both directions; None marks a missing stream."""
    parts = [f"Info for card {card}, device {device}:\n"]
    for label, params in (("out", params_out), ("in", params_in)):
        parts.append(f"\nPCM {label}:\n")
        if params is None:
            parts.append("Device does not exist.\n")
        else:
            parts.append(describe_params(params))
    return "".join(parts)