"""Command-line inspection and adjustment of mixer controls."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TextIO, Tuple, Union

from tinypcm.mixer import Mixer, MixerControl, MixerCtlType, MixerError
from tinypcm.optparse import ArgType, LongOption, OptionError, OptionParser
from tinypcm.version import VERSION_STRING

COMMANDS = ("get", "set", "controls", "contents")

LONG_OPTIONS = (
    LongOption("card", "D", ArgType.REQUIRED),
    LongOption("version", "v", ArgType.NONE),
    LongOption("help", "h", ArgType.NONE),
)

_C_LONG = re.compile(
    r"[ \t\n\v\f\r]*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)\Z"
)
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class MixerCommandError(Exception):
    """Raised when a mixer command cannot be carried out."""


@dataclass(frozen=True)
class ParsedInt:
    """The leading integer of a string and what follows it."""

    valid: bool
    value: int
    length: int
    remaining_length: int
    remaining: str


@dataclass(frozen=True)
class ControlValue:
    """A value to set: absolute or relative, raw or a percentage."""

    value: int
    is_percent: bool = False
    is_relative: bool = False

    @property
    def label(self) -> str:
        return (
            f"{self.value}{'r' if self.is_relative else ''}"
            f"{'%' if self.is_percent else ''}"
        )


def _int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def _parse_c_long(text: str) -> Optional[int]:
    """Parse a whole string as a C integer literal, or return None."""
    match = _C_LONG.match(text)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        number = int(digits[2:], 16)
    elif digits.startswith("0"):
        number = int(digits, 8)
    else:
        number = int(digits)
    return -number if sign == "-" else number


def _atoi(text: Optional[str]) -> int:
    match = _LEADING_INT.match(text or "")
    return _int32(int(match.group(1))) if match else 0


def usage_text() -> str:
    """Return the help message."""
    return (
        "usage: tinymix [options] <command>\n"
        "options:\n"
        "\t-h, --help               : prints this help message and exits\n"
        "\t-v, --version            : prints this version of tinymix and exits\n"
        "\t-D, --card NUMBER        : specifies the card number of the mixer\n"
        "\n"
        "commands:\n"
        "\tget NAME|ID              : prints the values of a control\n"
        "\tset NAME|ID VALUE(S) ... : sets the value of a control\n"
        "\t\tVALUE(S): integers, percents, and relative values\n"
        "\t\t\tIntegers: 0, 100, -100 ...\n"
        "\t\t\tPercents: 0%, 100% ...\n"
        "\t\t\tRelative values: 1+, 1-, 1%+, 2%+ ...\n"
        "\tcontrols                 : lists controls of the mixer\n"
        "\tcontents                 : lists controls of the mixer and their contents\n"
    )


def version_text() -> str:
    """Return the version line."""
    return f"tinymix version 2.0 (tinypcm version {VERSION_STRING})\n"


def is_number(text: Optional[str]) -> bool:
    """Return whether the whole string is a decimal, octal or hex integer."""
    return bool(text) and _parse_c_long(text) is not None


def parse_int(text: str) -> ParsedInt:
    """Parse an optional minus sign and the decimal digits after it.

    ``length`` counts digits only, and ``remaining`` starts that many
    characters into the string.
    """
    negative = text.startswith("-")
    body = text[1:] if negative else text
    digits = re.match(r"[0-9]*", body).group(0)
    value = int(digits) if digits else 0
    if negative:
        value = -value
    length = len(digits)
    return ParsedInt(
        valid=length > 0,
        value=_int32(value),
        length=length,
        remaining_length=len(text) - length,
        remaining=text[length:],
    )


def to_control_value(text: str) -> ControlValue:
    """Interpret a value such as ``5``, ``50%``, ``1+`` or ``2%-``."""
    parsed = parse_int(text)
    rest = parsed.remaining
    is_percent = rest.startswith("%")
    if is_percent:
        rest = rest[1:]
    value = parsed.value
    is_relative = rest.startswith(("+", "-"))
    if rest.startswith("-"):
        value = _int32(-value)
    return ControlValue(value, is_percent, is_relative)


def find_command_position(args: Sequence[str]) -> Optional[int]:
    """Return the position of the first command word, or None."""
    return next((pos for pos, arg in enumerate(args) if arg in COMMANDS), None)


def parse_options(argv: Sequence[str]) -> Tuple[int, Optional[str]]:
    """Return the card number and ``"help"``, ``"version"`` or None.

    Unknown or malformed options are ignored; parsing stops at the first
    request for help or the version.
    """
    card = 0
    parser = OptionParser(argv)
    while True:
        try:
            opt = parser.parse_long(LONG_OPTIONS)
        except OptionError:
            continue
        if opt is None:
            return card, None
        if opt == "D":
            card = _atoi(parser.optarg)
        elif opt == "h":
            return card, "help"
        elif opt == "v":
            return card, "version"


def get_control(mixer: Mixer, name_or_id: str) -> MixerControl:
    """Find a control by numeric id or by name."""
    if is_number(name_or_id):
        ctl = mixer.get_ctl(_atoi(name_or_id))
    else:
        ctl = mixer.get_ctl_by_name(name_or_id)
    if ctl is None:
        raise MixerCommandError("Invalid mixer control")
    return ctl


def _format_enum(ctl: MixerControl) -> str:
    current = ctl.get_value(0)
    return "".join(
        f"{'> ' if current == item else ''}{name}, "
        for item, name in enumerate(ctl.enum_names)
    )


def format_control_values(ctl: MixerControl) -> str:
    """Render the values of a control; integer controls add their range."""
    if ctl.type is MixerCtlType.BYTE:
        parts = [f"{byte:02x}" for byte in ctl.get_array()]
    else:
        parts = []
        for value in ctl.values:
            if ctl.type is MixerCtlType.INT:
                parts.append(str(value))
            elif ctl.type is MixerCtlType.BOOL:
                parts.append("On" if value else "Off")
            elif ctl.type is MixerCtlType.ENUM:
                parts.append(_format_enum(ctl))
            else:
                parts.append("unknown")
    text = ", ".join(parts)
    if ctl.type is MixerCtlType.INT:
        text += f" (range {ctl.range_min}->{ctl.range_max})"
    return text


def list_controls(mixer: Mixer, print_all: bool) -> str:
    """Render a table of the mixer's controls, with values if asked."""
    header = f"ctl\ttype\tnum\t{'name':<40}\tdevice"
    if print_all:
        header += "\tvalue"
    lines = [f"Number of controls: {mixer.num_ctls}", header]
    for index, ctl in enumerate(mixer):
        line = f"{index}\t{ctl.type_string}\t{ctl.num_values}\t{ctl.name:<40}\t{ctl.device}"
        if print_all:
            line += format_control_values(ctl)
        lines.append(line)
    return "\n".join(lines) + "\n"


def _set_byte_ctl(ctl: MixerControl, values: Sequence[str]) -> None:
    data = []
    for text in values:
        number = 0 if text == "" else _parse_c_long(text)
        if number is None:
            raise MixerCommandError(f"{text} not an integer")
        if not 0 <= number <= 0xFF:
            raise MixerCommandError(f"{text} should be between [0, 0xff]")
        data.append(number)
    try:
        ctl.set_array(data)
    except MixerError:
        raise MixerCommandError("Failed to set binary control") from None


def _set_control_value(ctl: MixerControl, index: int, value: ControlValue) -> None:
    target = value.value
    if value.is_relative:
        previous = ctl.get_percent(index) if value.is_percent else ctl.get_value(index)
        if previous < 0:
            raise MixerError(f"cannot adjust negative value {previous}")
        target += previous
    if value.is_percent:
        ctl.set_percent(index, target)
    else:
        ctl.set_value(index, target)


def _set_control_values(ctl: MixerControl, values: Sequence[str]) -> None:
    if len(values) == 1:
        value = to_control_value(values[0])
        try:
            _set_control_value(ctl, 0, value)
        except MixerError:
            raise MixerCommandError(f"Error: invalid value ({value.label})") from None
        return

    if len(values) > ctl.num_values:
        raise MixerCommandError(
            f"Error: {len(values)} values given, but control only takes {ctl.num_values}"
        )
    for index, text in enumerate(values):
        value = to_control_value(text)
        try:
            _set_control_value(ctl, index, value)
        except MixerError:
            raise MixerCommandError(
                f"Error: invalid value ({value.label}) for index {index}"
            ) from None


def set_values(mixer: Mixer, control: str, values: Sequence[str]) -> None:
    """Set a control from command-line value strings."""
    values = list(values)
    if not values:
        raise MixerCommandError("no value(s) specified")
    ctl = get_control(mixer, control)

    if ctl.type is MixerCtlType.BYTE:
        _set_byte_ctl(ctl, values)
        return

    if values[0][:1].isdigit() and values[0][:1] in "0123456789":
        _set_control_values(ctl, values)
        return
    if ctl.type is not MixerCtlType.ENUM:
        raise MixerCommandError("Error: only enum types can be set with strings")
    if len(values) != 1:
        raise MixerCommandError("Enclose strings in quotes and try again")
    try:
        ctl.set_enum_by_string(values[0])
    except MixerError:
        raise MixerCommandError("Error: invalid enum value") from None


MixerSource = Union[Mixer, Callable[[int], Optional[Mixer]]]


def run(
    mixer: MixerSource, argv: Sequence[str], out: Optional[TextIO] = None
) -> int:
    """Carry out a command line; return the exit status.

    ``mixer`` is either a mixer or a function that opens the mixer of a card
    number and returns None when it cannot.
    """
    out = sys.stdout if out is None else out
    args = list(argv)
    card, action = parse_options(args)
    if action == "help":
        out.write(usage_text())
        return 0
    if action == "version":
        out.write(version_text())
        return 0

    opened = not isinstance(mixer, Mixer)
    target = mixer(card) if opened else mixer
    if target is None:
        print("Failed to open mixer", file=sys.stderr)
        return 1

    try:
        return _run_command(target, args, out)
    finally:
        if opened:
            target.close()


def _run_command(mixer: Mixer, args: List[str], out: TextIO) -> int:
    position = find_command_position(args)
    if position is None:
        out.write(usage_text())
        return 1

    command = args[position]
    operands = args[position + 1 :]
    if command in ("get", "set") and not operands:
        print("no control specified", file=sys.stderr)
        return 1

    if command == "get":
        try:
            out.write(format_control_values(get_control(mixer, operands[0])))
        except MixerCommandError as exc:
            print(exc, file=sys.stderr)
        out.write("\n")
    elif command == "set":
        if len(operands) < 2:
            print("no value(s) specified", file=sys.stderr)
            return 1
        try:
            set_values(mixer, operands[0], operands[1:])
        except MixerCommandError as exc:
            print(exc, file=sys.stderr)
            return 1
    else:
        out.write(list_controls(mixer, command == "contents"))
    return 0