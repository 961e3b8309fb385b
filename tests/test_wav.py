import io
import math
import struct

import pytest

from tinypcm.wav import (
    ANALYSIS_FRAMES,
    WAV_HEADER_SIZE,
    WavError,
    WavFormat,
    build_wav_header,
    channel_power,
    format_wav_info,
    main,
    read_wav_header,
)


def _s16(*values):
    return struct.pack(f"<{len(values)}h", *values)


def test_header_layout_fixed_by_format():
    header = build_wav_header(2, 48000, 16, 400)
    assert len(header) == WAV_HEADER_SIZE
    assert header[0:4] == b"RIFF"
    assert header[8:16] == b"WAVEfmt "
    assert header[36:40] == b"data"
    riff_size = struct.unpack("<I", header[4:8])[0]
    assert riff_size == 400 + len(header) - 8
    assert struct.unpack("<I", header[40:44])[0] == 400


def test_header_round_trip():
    data = bytes(400)
    fmt, size = read_wav_header(io.BytesIO(build_wav_header(2, 48000, 16, 400) + data))
    assert fmt.num_channels == 2
    assert fmt.sample_rate == 48000
    assert fmt.bits_per_sample == 16
    assert fmt.block_align == fmt.num_channels * fmt.bits_per_sample // 8
    assert fmt.byte_rate == fmt.sample_rate * fmt.block_align
    assert not fmt.is_float
    assert size == 400


def test_reader_leaves_stream_at_data():
    stream = io.BytesIO(build_wav_header(1, 8000, 16, 4) + b"\x01\x02\x03\x04")
    read_wav_header(stream)
    assert stream.read() == b"\x01\x02\x03\x04"


def test_unknown_chunk_and_extended_fmt_are_skipped():
    fmt = WavFormat(3, 1, 44100, 176400, 4, 32)
    body = (
        b"WAVE"
        + b"LIST" + struct.pack("<I", 6) + b"abcdef"
        + b"fmt " + struct.pack("<I", 18) + fmt.to_bytes() + b"\0\0"
        + b"data" + struct.pack("<I", 8) + bytes(8)
    )
    stream = io.BytesIO(b"RIFF" + struct.pack("<I", len(body)) + body)
    parsed, size = read_wav_header(stream)
    assert parsed == fmt
    assert parsed.is_float
    assert size == 8
    assert stream.read() == bytes(8)


def test_not_riff_raises():
    with pytest.raises(WavError, match="not a riff/wave file"):
        read_wav_header(io.BytesIO(b"RIFX" + bytes(40)))


def test_short_header_raises():
    with pytest.raises(WavError, match="riff/wave header"):
        read_wav_header(io.BytesIO(b"RIFF"))


def test_missing_data_chunk_raises():
    header = build_wav_header(1, 8000, 16, 0)[:36]
    with pytest.raises(WavError, match="data chunk"):
        read_wav_header(io.BytesIO(header))


def test_incomplete_fmt_chunk_raises():
    stream = io.BytesIO(b"RIFF" + struct.pack("<I", 20) + b"WAVEfmt " + struct.pack("<I", 16) + b"\0\0")
    with pytest.raises(WavError, match="incomplete format chunk"):
        read_wav_header(stream)


def test_full_scale_and_silent_channels():
    frames = 100
    data = _s16(*([-32768, 0] * frames))
    powers = channel_power(io.BytesIO(data), 2, 16, len(data))
    assert powers[0] == pytest.approx(0.0)
    assert powers[1] == -math.inf


def test_32_bit_samples():
    frames = 10
    data = struct.pack(f"<{frames}i", *([-(2**31)] * frames))
    powers = channel_power(io.BytesIO(data), 1, 32, len(data))
    assert powers == [pytest.approx(0.0)]


def test_louder_signal_has_more_power():
    quiet = _s16(*([1000] * 64))
    loud = _s16(*([20000] * 64))
    (quiet_power,) = channel_power(io.BytesIO(quiet), 1, 16, len(quiet))
    (loud_power,) = channel_power(io.BytesIO(loud), 1, 16, len(loud))
    assert loud_power > quiet_power


def test_unsupported_bits_raise():
    with pytest.raises(WavError):
        channel_power(io.BytesIO(bytes(12)), 1, 24, 12)


def test_should_stop_ends_after_first_read():
    silence = _s16(*([0] * ANALYSIS_FRAMES))
    loud = _s16(*([12000] * ANALYSIS_FRAMES))
    data = silence + loud
    stopped = channel_power(io.BytesIO(data), 1, 16, len(data), lambda: True)
    full = channel_power(io.BytesIO(data), 1, 16, len(data), lambda: False)
    assert stopped == [-math.inf]
    assert math.isfinite(full[0])


def test_format_wav_info_report():
    fmt = WavFormat(1, 2, 48000, 192000, 4, 16)
    text = format_wav_info("song.wav", fmt, [0.0, -math.inf])
    lines = text.splitlines()
    assert lines[0] == "Input File       : song.wav "
    assert lines[1] == "Channels         : 2 "
    assert lines[2] == "Sample Rate      : 48000 "
    assert lines[3] == "Bits per sample  : 16 "
    assert lines[4] == ""
    assert lines[5] == "Channel [ 0] Average Power : 0.00 dB"
    assert lines[6] == "Channel [ 1] Average Power : NO signal or ZERO signal"


def test_main_reports_file(tmp_path, capsys):
    data = _s16(*([-32768] * 32))
    path = tmp_path / "tone.wav"
    path.write_bytes(build_wav_header(1, 8000, 16, len(data)) + data)
    assert main(["tinywavinfo", str(path)]) == 0
    out = capsys.readouterr().out
    assert f"Input File       : {path} " in out
    assert "Channel [ 0] Average Power : 0.00 dB" in out


def test_main_without_file_fails(capsys):
    assert main(["tinywavinfo"]) == 1
    assert "Usage: tinywavinfo file.wav" in capsys.readouterr().err


def test_main_rejects_non_wave(tmp_path, capsys):
    path = tmp_path / "bad.wav"
    path.write_bytes(b"not a wave file at all")
    assert main(["tinywavinfo", str(path)]) == 1
    assert "is not a riff/wave file" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    assert main(["tinywavinfo", str(tmp_path / "absent.wav")]) == 1
    assert "Unable to open file" in capsys.readouterr().err