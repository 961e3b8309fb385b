"""Reentrant getopt-style option parsing with GNU-style long options."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TypeVar

MSG_INVALID = "invalid option"
MSG_MISSING = "option requires an argument"
MSG_TOOMANY = "option takes no arguments"

# Error messages are limited to this many bytes, terminator included.
_ERRMSG_SIZE = 64
_SEPARATOR = " -- '"

_T = TypeVar("_T")


class ArgType(enum.IntEnum):
    """Whether an option takes an argument."""

    NONE = 0
    REQUIRED = 1
    OPTIONAL = 2


@dataclass(frozen=True)
class LongOption:
    """A long option with an optional single-character alias."""

    longname: Optional[str]
    shortname: Optional[str] = None
    argtype: ArgType = ArgType.NONE


class OptionError(ValueError):
    """Raised for an unknown option or a misused argument."""

    def __init__(self, message: str, data: str) -> None:
        room = max(_ERRMSG_SIZE - 2 - len(message) - len(_SEPARATOR), 0)
        self.message = message
        self.data = data
        self.errmsg = f"{message}{_SEPARATOR}{data[:room]}'"
        super().__init__(self.errmsg)


def _is_shortopt(arg: str) -> bool:
    return len(arg) >= 2 and arg[0] == "-" and arg[1] != "-"


def _is_longopt(arg: str) -> bool:
    return len(arg) >= 3 and arg.startswith("--")


def _argtype(optstring: str, char: str) -> Optional[ArgType]:
    if char == ":":
        return None
    pos = optstring.find(char)
    if pos < 0:
        return None
    if optstring[pos + 1 : pos + 2] != ":":
        return ArgType.NONE
    if optstring[pos + 2 : pos + 3] == ":":
        return ArgType.OPTIONAL
    return ArgType.REQUIRED


def _optstring_from_long(longopts: Sequence[LongOption]) -> str:
    return "".join(
        opt.shortname + ":" * int(opt.argtype) for opt in longopts if opt.shortname
    )


def _long_matches(longname: Optional[str], option: str) -> bool:
    if longname is None:
        return False
    return option.split("=", 1)[0] == longname


def _long_argument(option: str) -> Optional[str]:
    _, sep, value = option.partition("=")
    return value if sep else None


class OptionParser:
    """Walks an argument vector, yielding options one at a time.

    ``argv[0]`` is the program name and is never parsed. When ``permute`` is
    true, non-option arguments are moved behind the options as parsing goes,
    so that :meth:`arg` can collect them afterwards.
    """

    def __init__(self, argv: Sequence[str], permute: bool = True) -> None:
        self.argv: List[str] = list(argv)
        self.permute = permute
        self.optind = 1
        self.optopt: Optional[str] = None
        self.optarg: Optional[str] = None
        self.longindex: Optional[int] = None
        self._subopt = 0

    def _at(self, index: int) -> Optional[str]:
        return self.argv[index] if index < len(self.argv) else None

    def _skip_nonoption(self, step: Callable[[], _T]) -> _T:
        index = self.optind
        self.optind += 1
        try:
            return step()
        finally:
            nonoption = self.argv.pop(index)
            self.argv.insert(self.optind - 1, nonoption)
            self.optind -= 1

    def parse(self, optstring: str) -> Optional[str]:
        """Return the next short option character, or None when done."""
        self.optopt = None
        self.optarg = None
        option = self._at(self.optind)
        if option is None:
            return None
        if option == "--":
            self.optind += 1
            return None
        if not _is_shortopt(option):
            if self.permute:
                return self._skip_nonoption(lambda: self.parse(optstring))
            return None

        rest = option[self._subopt + 1 :]
        char = rest[0]
        self.optopt = char
        argtype = _argtype(optstring, char)
        following = self._at(self.optind + 1)

        if argtype is None:
            self._subopt = 0
            self.optind += 1
            raise OptionError(MSG_INVALID, char)
        if argtype is ArgType.NONE:
            if len(rest) > 1:
                self._subopt += 1
            else:
                self._subopt = 0
                self.optind += 1
            return char
        self._subopt = 0
        self.optind += 1
        if argtype is ArgType.REQUIRED:
            if len(rest) > 1:
                self.optarg = rest[1:]
            elif following is not None:
                self.optarg = following
                self.optind += 1
            else:
                raise OptionError(MSG_MISSING, char)
            return char
        self.optarg = rest[1:] or None
        return char

    def _parse_short_of_long(self, longopts: Sequence[LongOption]) -> Optional[str]:
        self.longindex = None
        try:
            result = self.parse(_optstring_from_long(longopts))
        finally:
            if self.optopt is not None:
                for position, opt in enumerate(longopts):
                    if opt.shortname == self.optopt:
                        self.longindex = position
        if result is None:
            self.longindex = None
        return result

    def parse_long(self, longopts: Sequence[LongOption]) -> Optional[str]:
        """Return the next option, short or long, or None when done.

        A long option yields its short alias, or its long name when it has
        none. The position of the matched entry is left in ``longindex``.
        """
        option = self._at(self.optind)
        if option is None:
            return None
        if option == "--":
            self.optind += 1
            return None
        if _is_shortopt(option):
            return self._parse_short_of_long(longopts)
        if not _is_longopt(option):
            if self.permute:
                return self._skip_nonoption(lambda: self.parse_long(longopts))
            return None

        self.optopt = None
        self.optarg = None
        body = option[2:]
        self.optind += 1
        for position, opt in enumerate(longopts):
            if not _long_matches(opt.longname, body):
                continue
            self.longindex = position
            self.optopt = opt.shortname
            value = _long_argument(body)
            if opt.argtype is ArgType.NONE and value is not None:
                raise OptionError(MSG_TOOMANY, opt.longname or "")
            if value is not None:
                self.optarg = value
            elif opt.argtype is ArgType.REQUIRED:
                self.optarg = self._at(self.optind)
                if self.optarg is None:
                    raise OptionError(MSG_MISSING, opt.longname or "")
                self.optind += 1
            return opt.shortname or opt.longname
        raise OptionError(MSG_INVALID, body)

    def arg(self) -> Optional[str]:
        """Step over and return the next argument, or None when there is none."""
        option = self._at(self.optind)
        self._subopt = 0
        if option is not None:
            self.optind += 1
        return option