"""Playing raw or WAVE audio through an output PCM."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field, replace
from typing import BinaryIO, Callable, List, Optional, Sequence, Tuple

from tinypcm.optparse import ArgType, LongOption, OptionError, OptionParser
from tinypcm.pcm import (
    UINT_MAX,
    Pcm,
    PcmConfig,
    PcmError,
    PcmFlag,
    PcmFormat,
    PcmParam,
    PcmParams,
)
from tinypcm.wav import WavError, read_wav_header

LONG_OPTIONS = (
    LongOption("card", "D", ArgType.REQUIRED),
    LongOption("device", "d", ArgType.REQUIRED),
    LongOption("period-size", "p", ArgType.REQUIRED),
    LongOption("period-count", "n", ArgType.REQUIRED),
    LongOption("file-type", "i", ArgType.REQUIRED),
    LongOption("channels", "c", ArgType.REQUIRED),
    LongOption("rate", "r", ArgType.REQUIRED),
    LongOption("bits", "b", ArgType.REQUIRED),
    LongOption("float", "f", ArgType.NONE),
    LongOption("mmap", "M", ArgType.NONE),
    LongOption("help", "h", ArgType.NONE),
)

USAGE = (
    "usage: {prog} file.wav [options]\n"
    "options:\n"
    "-D | --card   <card number>    The card to receive the audio\n"
    "-d | --device <device number>  The device to receive the audio\n"
    "-p | --period-size <size>      The size of the PCM's period\n"
    "-n | --period-count <count>    The number of PCM periods\n"
    "-i | --file-type <file-type>   The type of file to read (raw or wav)\n"
    "-c | --channels <count>        The amount of channels per frame\n"
    "-r | --rate <rate>             The amount of frames per second\n"
    "-b | --bits <bit-count>        The number of bits in one sample\n"
    "-f | --float                   The frames are in floating-point PCM\n"
    "-M | --mmap                    Use memory mapped IO to play audio"
)

# Option -> (attribute, whether it lives in the config, description).
_NUMERIC_OPTIONS = {
    "D": ("card", False, "card number"),
    "d": ("device", False, "device number"),
    "p": ("period_size", True, "period size"),
    "n": ("period_count", True, "period count"),
    "c": ("channels", True, "channel count"),
    "r": ("rate", True, "rate"),
    "b": ("bits", False, "bits per one sample"),
}

_UNSIGNED = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class PlaybackError(Exception):
    """Raised when a command line or an input stream cannot be played."""


def _default_config() -> PcmConfig:
    period_size, period_count = 1024, 2
    return PcmConfig(
        channels=2,
        rate=48000,
        period_size=period_size,
        period_count=period_count,
        format=PcmFormat.S16_LE,
        start_threshold=period_size,
        stop_threshold=period_size * period_count,
        silence_threshold=period_size * period_count,
        silence_size=0,
    )


@dataclass
class PlayCommand:
    """What to play and how to configure the output PCM."""

    filename: Optional[str] = None
    filetype: Optional[str] = None
    card: int = 0
    device: int = 0
    flags: PcmFlag = PcmFlag.OUT
    config: PcmConfig = field(default_factory=_default_config)
    bits: int = 16
    is_float: bool = False

    @property
    def is_wave(self) -> bool:
        return self.filetype == "wav"

    @property
    def from_stdin(self) -> bool:
        return self.filename == "-"


def _scan_unsigned(text: Optional[str]) -> Optional[int]:
    match = _UNSIGNED.match(text or "")
    return int(match.group(1)) & UINT_MAX if match else None


def signed_bits_to_format(bits: int) -> PcmFormat:
    """Return the signed little-endian format for a sample width."""
    formats = {
        8: PcmFormat.S8,
        16: PcmFormat.S16_LE,
        24: PcmFormat.S24_3LE,
        32: PcmFormat.S32_LE,
    }
    try:
        return formats[bits]
    except KeyError:
        raise PlaybackError(f"bit count '{bits}' not supported") from None


def parse_play_args(argv: Sequence[str]) -> Optional[PlayCommand]:
    """Parse a command line; return None when help was asked for."""
    args = list(argv)
    prog = args[0] if args else "tinyplay"
    if len(args) < 2:
        raise PlaybackError(USAGE.format(prog=prog))

    command = PlayCommand()
    parser = OptionParser(args)
    while True:
        try:
            opt = parser.parse_long(LONG_OPTIONS)
        except OptionError as exc:
            raise PlaybackError(exc.errmsg) from None
        if opt is None:
            break
        if opt == "h":
            return None
        if opt == "i":
            command.filetype = parser.optarg
        elif opt == "f":
            command.is_float = True
        elif opt == "M":
            command.flags |= PcmFlag.MMAP
        else:
            attr, in_config, description = _NUMERIC_OPTIONS[opt]
            value = _scan_unsigned(parser.optarg)
            if value is None:
                raise PlaybackError(f"failed parsing {description} '{args[1]}'")
            if in_config:
                command.config = replace(command.config, **{attr: value})
            else:
                setattr(command, attr, value)

    command.filename = parser.arg()
    if command.filename is not None and command.filetype is None:
        _, dot, extension = command.filename.rpartition(".")
        if dot:
            command.filetype = extension

    buffer_frames = command.config.period_size * command.config.period_count
    command.config = replace(
        command.config,
        silence_threshold=buffer_frames,
        stop_threshold=buffer_frames,
        start_threshold=command.config.period_size,
    )
    return command


def resolve_stream_config(
    command: PlayCommand, stream: BinaryIO
) -> Tuple[PcmConfig, Optional[int]]:
    """Work out the PCM config for a stream and how many bytes to play.

    A WAVE stream supplies its own channels, rate and sample format and is
    left at its first sample; its data size is returned. For raw streams the
    size is None and the stream is played to its end.
    """
    if command.filename is None:
        raise PlaybackError("filename not specified")
    config = command.config
    bits = command.bits
    is_float = command.is_float
    data_size: Optional[int] = None

    if command.is_wave:
        try:
            fmt, data_size = read_wav_header(stream)
        except WavError as exc:
            raise PlaybackError(f"error: '{command.filename}' {exc}") from None
        config = replace(config, channels=fmt.num_channels, rate=fmt.sample_rate)
        bits = fmt.bits_per_sample
        is_float = fmt.is_float

    sample_format = PcmFormat.FLOAT_LE if is_float else signed_bits_to_format(bits)
    return replace(config, format=sample_format), data_size


def check_param(
    params: PcmParams, param: PcmParam, value: int, name: str, unit: str
) -> List[str]:
    """Return the ways in which value falls outside what the device supports."""
    problems = []
    low = params.get_min(param)
    if value < low:
        problems.append(f"{name} is {value}{unit}, device only supports >= {low}{unit}")
    high = params.get_max(param)
    if value > high:
        problems.append(f"{name} is {value}{unit}, device only supports <= {high}{unit}")
    return problems


def sample_is_playable(params: Optional[PcmParams], command: PlayCommand) -> bool:
    """Return whether the device can play the command's configuration.

    Every reason it cannot is reported on standard error.
    """
    if params is None:
        print(f"unable to open PCM {command.card},{command.device}", file=sys.stderr)
        return False
    config = command.config
    problems = [
        *check_param(params, PcmParam.RATE, config.rate, "sample rate", "hz"),
        *check_param(params, PcmParam.CHANNELS, config.channels, "sample", " channels"),
        *check_param(params, PcmParam.SAMPLE_BITS, command.bits, "bits", " bits"),
        *check_param(
            params, PcmParam.PERIOD_SIZE, config.period_size, "period size", " frames"
        ),
        *check_param(params, PcmParam.PERIODS, config.period_count, "period count", ""),
    ]
    for problem in problems:
        print(problem, file=sys.stderr)
    return not problems


def play_sample(
    pcm: Pcm,
    stream: BinaryIO,
    data_size: Optional[int] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Tuple[int, Optional[int]]:
    """Copy a period at a time from the stream into the PCM.

    Playing ends when ``data_size`` bytes are consumed, the stream ends,
    ``should_stop`` returns true, or the PCM fails. Returns the bytes played
    and the bytes left unplayed (None when no size was given).
    """
    buffer_size = pcm.frames_to_bytes(pcm.config.period_size)
    remaining = data_size
    played = 0
    while True:
        read_size = buffer_size if remaining is None else min(remaining, buffer_size)
        data = stream.read(read_size) if read_size > 0 else b""
        if data:
            whole = pcm.frames_to_bytes(pcm.bytes_to_frames(len(data)))
            try:
                written = pcm.writei(data[:whole])
            except PcmError as exc:
                print(f"error playing sample. {exc}", file=sys.stderr)
                break
            if remaining is not None:
                remaining -= len(data)
            played += pcm.frames_to_bytes(written)
        stop = should_stop is not None and should_stop()
        if stop or not data or (remaining is not None and remaining <= 0):
            break
    pcm.wait(-1)
    return played, remaining