"""RIFF/WAVE headers and per-channel signal power of WAVE files."""

from __future__ import annotations

import io
import math
import signal
import struct
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Optional, Sequence, Tuple

ID_RIFF = b"RIFF"
ID_WAVE = b"WAVE"
ID_FMT = b"fmt "
ID_DATA = b"data"

FORMAT_PCM = 0x0001
FORMAT_IEEE_FLOAT = 0x0003

_RIFF = struct.Struct("<4sI4s")
_CHUNK = struct.Struct("<4sI")
_FMT = struct.Struct("<HHIIHH")

WAV_HEADER_SIZE = _RIFF.size + _CHUNK.size + _FMT.size + _CHUNK.size

# Frames read at a time while measuring power.
ANALYSIS_FRAMES = 1024

_UINT32 = 0xFFFFFFFF


class WavError(ValueError):
    """Raised when a stream does not hold a usable RIFF/WAVE file."""


@dataclass(frozen=True)
class WavFormat:
    """The contents of a WAVE format chunk."""

    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int

    @property
    def is_float(self) -> bool:
        return self.audio_format == FORMAT_IEEE_FLOAT

    def to_bytes(self) -> bytes:
        return _FMT.pack(
            self.audio_format,
            self.num_channels,
            self.sample_rate,
            self.byte_rate,
            self.block_align,
            self.bits_per_sample,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "WavFormat":
        return cls(*_FMT.unpack(data))


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    parts = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def _skip(stream: BinaryIO, count: int) -> None:
    if count <= 0:
        return
    try:
        if stream.seekable():
            stream.seek(count, io.SEEK_CUR)
            return
    except (AttributeError, OSError):
        pass
    while count > 0:
        chunk = stream.read(min(count, 65536))
        if not chunk:
            break
        count -= len(chunk)


def read_wav_header(stream: BinaryIO) -> Tuple[WavFormat, int]:
    """Read up to the start of the data chunk.

    Returns the format and the size in bytes of the data chunk; the stream is
    left at the first byte of sample data.
    """
    raw = _read_exact(stream, _RIFF.size)
    if len(raw) != _RIFF.size:
        raise WavError("does not contain a riff/wave header")
    riff_id, _riff_size, wave_id = _RIFF.unpack(raw)
    if riff_id != ID_RIFF or wave_id != ID_WAVE:
        raise WavError("is not a riff/wave file")

    fmt: Optional[WavFormat] = None
    while True:
        raw = _read_exact(stream, _CHUNK.size)
        if len(raw) != _CHUNK.size:
            raise WavError("does not contain a data chunk")
        chunk_id, chunk_size = _CHUNK.unpack(raw)
        if chunk_id == ID_FMT:
            raw = _read_exact(stream, _FMT.size)
            if len(raw) != _FMT.size:
                raise WavError("has incomplete format chunk")
            fmt = WavFormat.from_bytes(raw)
            _skip(stream, chunk_size - _FMT.size)
        elif chunk_id == ID_DATA:
            break
        else:
            _skip(stream, chunk_size)

    if fmt is None:
        raise WavError("has no format chunk before its data chunk")
    return fmt, chunk_size


def build_wav_header(channels: int, rate: int, bits: int, data_size: int) -> bytes:
    """Return a canonical 44-byte PCM WAVE header."""
    sample_bytes = bits // 8
    fmt = WavFormat(
        audio_format=FORMAT_PCM,
        num_channels=channels,
        sample_rate=rate,
        byte_rate=(sample_bytes * channels * rate) & _UINT32,
        block_align=channels * sample_bytes,
        bits_per_sample=bits,
    )
    data_size &= _UINT32
    riff_size = (data_size + WAV_HEADER_SIZE - 8) & _UINT32
    return (
        _RIFF.pack(ID_RIFF, riff_size, ID_WAVE)
        + _CHUNK.pack(ID_FMT, _FMT.size)
        + fmt.to_bytes()
        + _CHUNK.pack(ID_DATA, data_size)
    )


def _average_power(power: float, samples: int) -> float:
    if samples == 0:
        return math.inf if power > 0 else math.nan
    if power == 0:
        return -math.inf
    return 10 * math.log10(power / samples)


def channel_power(
    stream: BinaryIO,
    channels: int,
    bits: int,
    data_size: int,
    should_stop: Optional[Callable[[], bool]] = None,
) -> List[float]:
    """Return the average power of each channel in dB relative to full scale.

    Samples are read until the stream ends or ``should_stop`` returns true.
    A silent channel gives minus infinity.
    """
    sample_bytes = {16: 2, 32: 4}.get(bits)
    if sample_bytes is None:
        raise WavError(f"{bits} bits per sample is not supported")
    if channels <= 0:
        raise WavError(f"invalid channel count {channels}")

    sample = struct.Struct("<h" if sample_bytes == 2 else "<i")
    normalization = 2.0 ** (bits - 1)
    power = [0.0] * channels
    read_size = channels * sample_bytes * ANALYSIS_FRAMES
    index = 0

    while True:
        data = stream.read(read_size)
        if data:
            usable = len(data) - len(data) % sample_bytes
            for (value,) in sample.iter_unpack(data[:usable]):
                level = value / normalization
                power[index % channels] += level * level
                index += 1
        if not data or (should_stop is not None and should_stop()):
            break

    samples_per_channel = data_size // (channels * sample_bytes)
    return [_average_power(p, samples_per_channel) for p in power]


def format_wav_info(filename: str, fmt: WavFormat, powers: Sequence[float]) -> str:
    """Render a file's format and channel powers as a report."""
    lines = [
        f"Input File       : {filename} ",
        f"Channels         : {fmt.num_channels} ",
        f"Sample Rate      : {fmt.sample_rate} ",
        f"Bits per sample  : {fmt.bits_per_sample} ",
        "",
    ]
    for channel, value in enumerate(powers):
        if math.isinf(value):
            lines.append(f"Channel [{channel:2d}] Average Power : NO signal or ZERO signal")
        else:
            lines.append(f"Channel [{channel:2d}] Average Power : {value:.2f} dB")
    return "\n".join(lines) + "\n"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the format and channel powers of a WAVE file."""
    args = list(sys.argv if argv is None else argv)
    prog = args[0] if args else "tinywavinfo"
    if len(args) < 2:
        print(f"Usage: {prog} file.wav ", file=sys.stderr)
        return 1

    filename = args[1]
    try:
        stream = open(filename, "rb")
    except OSError:
        print(f"Unable to open file '{filename}'", file=sys.stderr)
        return 1

    stop_requested: List[bool] = []

    def _on_interrupt(signum, _frame) -> None:
        signal.signal(signum, signal.SIG_IGN)
        stop_requested.append(True)

    with stream:
        try:
            fmt, data_size = read_wav_header(stream)
        except WavError as exc:
            print(f"Error: '{filename}' {exc}", file=sys.stderr)
            return 1

        try:
            previous = signal.signal(signal.SIGINT, _on_interrupt)
        except ValueError:
            previous = None
        try:
            powers = channel_power(
                stream,
                fmt.num_channels,
                fmt.bits_per_sample,
                data_size,
                lambda: bool(stop_requested),
            )
        except WavError as exc:
            print(f"Error: '{filename}' {exc}", file=sys.stderr)
            return 1
        finally:
            if previous is not None:
                signal.signal(signal.SIGINT, previous)

    print(format_wav_info(filename, fmt, powers), end="")
    return 0