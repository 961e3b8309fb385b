"""PCM streams: sample formats, configurations and hardware parameter sets."""

from __future__ import annotations

import enum
import io
from dataclasses import dataclass, field, replace
from typing import BinaryIO, ClassVar, Dict, Iterable, Iterator, Mapping, Optional, Tuple

UINT_MAX = 0xFFFFFFFF
ULONG_MAX = 0xFFFFFFFFFFFFFFFF
SIZE_MAX = 0xFFFFFFFFFFFFFFFF
SSIZE_MAX = 0x7FFFFFFFFFFFFFFF
SSIZE_MIN = -SSIZE_MAX - 1


class PcmError(Exception):
    """Raised when a PCM is opened, configured or used incorrectly."""


@dataclass(frozen=True)
class Interval:
    """A closed range of values."""

    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"interval minimum {self.min} above maximum {self.max}")

    def contains(self, value: int) -> bool:
        """Return whether value lies within the range, ends included."""
        return self.min <= value <= self.max


SIGNED_INTERVAL = Interval(SSIZE_MIN, SSIZE_MAX)
UNSIGNED_INTERVAL = Interval(0, SIZE_MAX)

CHANNELS_MAX = 32
CHANNELS_MIN = 1
FRAMES_MAX = ULONG_MAX // (CHANNELS_MAX * 4)
FRAMES_MIN = 0

CHANNELS_LIMIT = Interval(CHANNELS_MIN, CHANNELS_MAX)
FRAMES_LIMIT = Interval(FRAMES_MIN, FRAMES_MAX)


class PcmFlag(enum.IntFlag):
    """Flags that select how a PCM is opened."""

    OUT = 0x00000000
    IN = 0x10000000
    MMAP = 0x00000001
    NOIRQ = 0x00000002
    NORESTART = 0x00000004
    MONOTONIC = 0x00000008
    NONBLOCK = 0x00000010


class PcmState(enum.IntEnum):
    """The run state of a PCM."""

    OPEN = 0x00
    SETUP = 0x01
    PREPARED = 0x02
    RUNNING = 0x03
    XRUN = 0x04
    DRAINING = 0x05
    SUSPENDED = 0x07
    DISCONNECTED = 0x08


class PcmFormat(enum.IntEnum):
    """Audio sample format: signedness, width in memory and byte order."""

    INVALID = -1
    S16_LE = 0
    S32_LE = 1
    S8 = 2
    S24_LE = 3
    S24_3LE = 4
    S16_BE = 5
    S24_BE = 6
    S24_3BE = 7
    S32_BE = 8
    FLOAT_LE = 9
    FLOAT_BE = 10
    MAX = 11

    @property
    def bits(self) -> int:
        """Bits one sample occupies in memory; 0 for a non-format."""
        return _FORMAT_BITS.get(self, 0)

    @property
    def alsa_index(self) -> Optional[int]:
        """Bit index of this format in a hardware format mask."""
        return _ALSA_INDEX.get(self)

    @property
    def is_valid(self) -> bool:
        return self not in (PcmFormat.INVALID, PcmFormat.MAX)


_FORMAT_BITS: Dict[PcmFormat, int] = {
    PcmFormat.S8: 8,
    PcmFormat.S16_LE: 16,
    PcmFormat.S16_BE: 16,
    PcmFormat.S24_3LE: 24,
    PcmFormat.S24_3BE: 24,
    PcmFormat.S24_LE: 32,
    PcmFormat.S24_BE: 32,
    PcmFormat.S32_LE: 32,
    PcmFormat.S32_BE: 32,
    PcmFormat.FLOAT_LE: 32,
    PcmFormat.FLOAT_BE: 32,
}

_ALSA_INDEX: Dict[PcmFormat, int] = {
    PcmFormat.S8: 0,
    PcmFormat.S16_LE: 2,
    PcmFormat.S16_BE: 3,
    PcmFormat.S24_LE: 6,
    PcmFormat.S24_BE: 7,
    PcmFormat.S32_LE: 10,
    PcmFormat.S32_BE: 11,
    PcmFormat.FLOAT_LE: 14,
    PcmFormat.FLOAT_BE: 15,
    PcmFormat.S24_3LE: 32,
    PcmFormat.S24_3BE: 33,
}


class PcmParam(enum.IntEnum):
    """A hardware parameter of a PCM: either a mask or an interval."""

    ACCESS = 0
    FORMAT = 1
    SUBFORMAT = 2
    SAMPLE_BITS = 3
    FRAME_BITS = 4
    CHANNELS = 5
    RATE = 6
    PERIOD_TIME = 7
    PERIOD_SIZE = 8
    PERIOD_BYTES = 9
    PERIODS = 10
    BUFFER_TIME = 11
    BUFFER_SIZE = 12
    BUFFER_BYTES = 13
    TICK_TIME = 14

    def is_mask(self) -> bool:
        """Return whether this parameter is a bit mask rather than an interval."""
        return self in (PcmParam.ACCESS, PcmParam.FORMAT, PcmParam.SUBFORMAT)


@dataclass(frozen=True)
class PcmMask:
    """A 256-bit mask held as eight 32-bit words, lowest bits first."""

    bits: Tuple[int, ...] = (0,) * 8

    WORDS: ClassVar[int] = 8
    WORD_BITS: ClassVar[int] = 32

    def __post_init__(self) -> None:
        words = tuple(int(w) for w in self.bits)
        if len(words) > self.WORDS:
            raise ValueError(f"a mask holds at most {self.WORDS} words")
        if any(not 0 <= w <= UINT_MAX for w in words):
            raise ValueError("mask words must fit in 32 bits")
        object.__setattr__(self, "bits", words + (0,) * (self.WORDS - len(words)))

    @classmethod
    def from_indices(cls, indices: Iterable[int]) -> "PcmMask":
        """Build a mask with the given bit positions set."""
        words = [0] * cls.WORDS
        for bit in indices:
            if not 0 <= bit < cls.WORDS * cls.WORD_BITS:
                raise ValueError(f"bit {bit} is outside the mask")
            words[bit // cls.WORD_BITS] |= 1 << (bit % cls.WORD_BITS)
        return cls(tuple(words))

    def is_set(self, bit: int) -> bool:
        """Return whether the bit at this position is set."""
        if not 0 <= bit < self.WORDS * self.WORD_BITS:
            return False
        word, offset = divmod(bit, self.WORD_BITS)
        return bool(self.bits[word] >> offset & 1)

    def set_bits(self) -> Iterator[int]:
        """Yield the positions of the set bits in ascending order."""
        for word_index, word in enumerate(self.bits):
            for offset in range(self.WORD_BITS):
                if word >> offset & 1:
                    yield word_index * self.WORD_BITS + offset


@dataclass(frozen=True)
class PcmConfig:
    """Hardware and software parameters of a PCM.

    A threshold left at 0 is replaced by its default when the PCM is opened.
    """

    channels: int = 2
    rate: int = 48000
    period_size: int = 1024
    period_count: int = 4
    format: PcmFormat = PcmFormat.S16_LE
    start_threshold: int = 0
    stop_threshold: int = 0
    silence_threshold: int = 0
    silence_size: int = 0
    avail_min: int = 0

    @property
    def buffer_size(self) -> int:
        """Frames in the whole ring buffer."""
        return self.period_size * self.period_count

    @property
    def frame_bytes(self) -> int:
        return self.channels * (PcmFormat(self.format).bits // 8)

    def with_default_thresholds(self) -> "PcmConfig":
        """Return a copy whose unset start and stop thresholds are the buffer size."""
        return replace(
            self,
            start_threshold=self.start_threshold or self.buffer_size,
            stop_threshold=self.stop_threshold or self.buffer_size,
        )


def _validate(config: PcmConfig) -> None:
    if not CHANNELS_LIMIT.contains(config.channels):
        raise PcmError(
            f"{config.channels} channels outside {CHANNELS_LIMIT.min}..{CHANNELS_LIMIT.max}"
        )
    try:
        fmt = PcmFormat(config.format)
    except ValueError:
        raise PcmError(f"unknown format {config.format}") from None
    if not fmt.is_valid:
        raise PcmError(f"invalid format {fmt.name}")
    if config.rate <= 0:
        raise PcmError(f"invalid rate {config.rate}")
    if config.period_size <= 0 or config.period_count <= 0:
        raise PcmError("period size and period count must be positive")
    if not FRAMES_LIMIT.contains(config.buffer_size):
        raise PcmError(f"buffer of {config.buffer_size} frames is too large")


@dataclass
class PcmParams:
    """The ranges and masks of hardware parameters a PCM device supports.

    An interval parameter that is not given is unconstrained.
    """

    masks: Mapping[PcmParam, PcmMask] = field(default_factory=dict)
    intervals: Mapping[PcmParam, Interval] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for param in self.masks:
            if not PcmParam(param).is_mask():
                raise PcmError(f"{PcmParam(param).name} is not a mask parameter")
        for param in self.intervals:
            if PcmParam(param).is_mask():
                raise PcmError(f"{PcmParam(param).name} is not an interval parameter")

    def get_mask(self, param: PcmParam) -> Optional[PcmMask]:
        """Return the mask of a mask parameter, or None if there is none."""
        if not PcmParam(param).is_mask():
            return None
        return self.masks.get(param)

    def _interval(self, param: PcmParam) -> Interval:
        if PcmParam(param).is_mask():
            raise PcmError(f"{PcmParam(param).name} is not an interval parameter")
        return self.intervals.get(param, Interval(0, UINT_MAX))

    def get_min(self, param: PcmParam) -> int:
        return self._interval(param).min

    def get_max(self, param: PcmParam) -> int:
        return self._interval(param).max

    def format_test(self, fmt: PcmFormat) -> bool:
        """Return whether the device supports this sample format."""
        mask = self.masks.get(PcmParam.FORMAT)
        index = PcmFormat(fmt).alsa_index
        return mask is not None and index is not None and mask.is_set(index)


class Pcm:
    """A PCM stream whose samples travel through a binary stream.

    Output PCMs write interleaved frames to the stream; input PCMs read them
    from it.
    """

    def __init__(
        self,
        config: PcmConfig,
        flags: PcmFlag = PcmFlag.OUT,
        stream: Optional[BinaryIO] = None,
        *,
        card: int = 0,
        device: int = 0,
        subdevice: int = 0,
    ) -> None:
        self.card = card
        self.device = device
        self.subdevice = subdevice
        self.flags = PcmFlag(flags)
        self.stream: BinaryIO = stream if stream is not None else io.BytesIO()
        self.error = ""
        self.frames_transferred = 0
        self._since_prepare = 0
        self._closed = False
        self.state = PcmState.OPEN
        self._config = self._apply(config)
        self.state = PcmState.PREPARED

    def __enter__(self) -> "Pcm":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _fail(self, message: str) -> PcmError:
        self.error = message
        return PcmError(message)

    def _apply(self, config: PcmConfig) -> PcmConfig:
        try:
            _validate(config)
        except PcmError as exc:
            raise self._fail(f"cannot set config: {exc}") from None
        return config.with_default_thresholds()

    def _require_open(self) -> None:
        if self._closed:
            raise self._fail("PCM is closed")

    @property
    def is_input(self) -> bool:
        return bool(self.flags & PcmFlag.IN)

    @property
    def config(self) -> PcmConfig:
        return self._config

    @property
    def channels(self) -> int:
        return self._config.channels

    @property
    def rate(self) -> int:
        return self._config.rate

    @property
    def format(self) -> PcmFormat:
        return PcmFormat(self._config.format)

    @property
    def buffer_size(self) -> int:
        return self._config.buffer_size

    def is_ready(self) -> bool:
        return not self._closed

    def set_config(self, config: PcmConfig) -> None:
        """Reconfigure a PCM that is not running."""
        self._require_open()
        if self.state is PcmState.RUNNING:
            raise self._fail("cannot reconfigure a running PCM")
        self._config = self._apply(config)
        self.state = PcmState.PREPARED
        self._since_prepare = 0

    def frames_to_bytes(self, frames: int) -> int:
        return frames * self._config.frame_bytes

    def bytes_to_frames(self, size: int) -> int:
        return size // self._config.frame_bytes

    def prepare(self) -> None:
        self._require_open()
        self.state = PcmState.PREPARED
        self._since_prepare = 0

    def start(self) -> None:
        self._require_open()
        if self.state is not PcmState.PREPARED:
            raise self._fail(f"cannot start a PCM in state {self.state.name}")
        self.state = PcmState.RUNNING

    def stop(self) -> None:
        self._require_open()
        self.state = PcmState.SETUP

    def drain(self) -> None:
        """Let written frames finish, then stop."""
        self._require_open()
        if not self.is_input:
            self.stream.flush()
        self.state = PcmState.SETUP

    def wait(self, timeout: int = -1) -> bool:
        """Return whether the PCM is ready for transfer."""
        self._require_open()
        return self.state is not PcmState.DISCONNECTED

    def writei(self, data: bytes) -> int:
        """Write interleaved frames; return the number of frames written."""
        self._require_open()
        if self.is_input:
            raise self._fail("cannot write to an input PCM")
        frame_bytes = self._config.frame_bytes
        if len(data) % frame_bytes:
            raise self._fail(f"{len(data)} bytes is not a whole number of frames")
        if self.state is PcmState.SETUP:
            self.prepare()
        self.stream.write(bytes(data))
        frames = len(data) // frame_bytes
        self.frames_transferred += frames
        self._since_prepare += frames
        if (
            self.state is PcmState.PREPARED
            and self._since_prepare >= self._config.start_threshold
        ):
            self.state = PcmState.RUNNING
        return frames

    def readi(self, frame_count: int) -> bytes:
        """Read up to frame_count interleaved frames; only whole frames are returned."""
        self._require_open()
        if not self.is_input:
            raise self._fail("cannot read from an output PCM")
        if frame_count < 0:
            raise self._fail(f"invalid frame count {frame_count}")
        if self.state in (PcmState.SETUP, PcmState.PREPARED):
            self.state = PcmState.RUNNING
        data = self.stream.read(self.frames_to_bytes(frame_count)) or b""
        frames = self.bytes_to_frames(len(data))
        self.frames_transferred += frames
        return bytes(data[: self.frames_to_bytes(frames)])

    def close(self) -> None:
        """Stop the PCM; the underlying stream is left to its owner."""
        if not self._closed:
            self._closed = True
            self.state = PcmState.DISCONNECTED