"""Capturing from an input PCM into raw or WAVE output."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Sequence

from tinypcm.optparse import OptionParser
from tinypcm.pcm import UINT_MAX, Pcm, PcmConfig, PcmError, PcmFlag, PcmFormat
from tinypcm.wav import build_wav_header

USAGE = (
    "Usage: {prog} {{file.wav | --}} [-D card] [-d device] [-M] [-c channels] "
    "[-r rate] [-b bits] [-p period_size] [-n n_periods] [-t time_in_seconds]\n\n"
    "Use -- for filename to send raw PCM to stdout"
)

_OPTSTRING = "D:d:c:r:b:p:n:t:M"
_NUMERIC_OPTIONS = {
    "D": "card",
    "d": "device",
    "c": "channels",
    "r": "rate",
    "b": "bits",
    "p": "period_size",
    "n": "period_count",
    "t": "capture_time",
}
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: Optional[str]) -> int:
    match = _LEADING_INT.match(text or "")
    return int(match.group(1)) & UINT_MAX if match else 0


def bits_to_format(bits: int) -> PcmFormat:
    """Return the little-endian signed format used to capture this sample width."""
    formats = {32: PcmFormat.S32_LE, 24: PcmFormat.S24_LE, 16: PcmFormat.S16_LE}
    try:
        return formats[bits]
    except KeyError:
        raise ValueError(f"{bits} bits is not supported.") from None


@dataclass
class CaptureOptions:
    """What to capture and where to put it."""

    filename: str
    card: int = 0
    device: int = 0
    channels: int = 2
    rate: int = 48000
    bits: int = 16
    period_size: int = 1024
    period_count: int = 4
    capture_time: int = UINT_MAX
    use_mmap: bool = False

    @property
    def to_stdout(self) -> bool:
        """Raw samples go to standard output, with no header."""
        return self.filename == "--"

    @property
    def format(self) -> PcmFormat:
        return bits_to_format(self.bits)

    @property
    def flags(self) -> PcmFlag:
        return PcmFlag.IN | PcmFlag.MMAP if self.use_mmap else PcmFlag.IN

    @property
    def config(self) -> PcmConfig:
        return PcmConfig(
            channels=self.channels,
            rate=self.rate,
            period_size=self.period_size,
            period_count=self.period_count,
            format=self.format,
        )


def parse_capture_args(argv: Sequence[str]) -> CaptureOptions:
    """Parse a command line whose first argument is the output file or ``--``."""
    args = list(argv)
    if len(args) < 2:
        raise ValueError(USAGE.format(prog=args[0] if args else "tinycap"))
    options = CaptureOptions(filename=args[1])
    parser = OptionParser(args[1:])
    while (opt := parser.parse(_OPTSTRING)) is not None:
        if opt == "M":
            options.use_mmap = True
        else:
            setattr(options, _NUMERIC_OPTIONS[opt], _atoi(parser.optarg))
    return options


def capture_frames(
    pcm: Pcm,
    out: BinaryIO,
    rate: int,
    capture_time: int = UINT_MAX,
    should_stop: Optional[Callable[[], bool]] = None,
) -> int:
    """Copy frames from the PCM to ``out``; return the number of frames captured.

    Capturing ends once ``capture_time`` seconds of frames have been read, when
    ``should_stop`` returns true, when the PCM yields nothing, or on an error.
    """
    total = 0
    capturing = True
    while capturing and not (should_stop is not None and should_stop()):
        try:
            data = pcm.readi(pcm.buffer_size)
        except PcmError as exc:
            print(f"Error capturing samples - {exc}", file=sys.stderr)
            break
        frames = pcm.bytes_to_frames(len(data))
        if frames == 0:
            break
        total += frames
        if total // rate >= capture_time:
            capturing = False
        try:
            out.write(data)
        except OSError as exc:
            print(f"Error writing samples - {exc}", file=sys.stderr)
            break
    return total


def finish_wav_capture(out: BinaryIO, options: CaptureOptions, frames: int) -> bytes:
    """Write the WAVE header at the start of ``out`` now that the size is known.

    The caller leaves room for the header before writing samples. Nothing is
    written for raw output to standard output; the header written is returned.
    """
    if options.to_stdout:
        return b""
    bits = options.format.bits
    block_align = options.channels * (bits // 8)
    header = build_wav_header(options.channels, options.rate, bits, frames * block_align)
    out.seek(0)
    out.write(header)
    return header