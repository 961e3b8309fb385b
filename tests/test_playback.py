import io
import struct

import pytest

from tinypcm.pcm import Interval, Pcm, PcmConfig, PcmFlag, PcmFormat, PcmParam, PcmParams
from tinypcm.playback import (
    PlayCommand,
    PlaybackError,
    check_param,
    parse_play_args,
    play_sample,
    resolve_stream_config,
    sample_is_playable,
    signed_bits_to_format,
)
from tinypcm.wav import FORMAT_IEEE_FLOAT, WavFormat, build_wav_header


@pytest.mark.parametrize(
    "bits, fmt",
    [
        (8, PcmFormat.S8),
        (16, PcmFormat.S16_LE),
        (24, PcmFormat.S24_3LE),
        (32, PcmFormat.S32_LE),
    ],
)
def test_signed_bits_to_format(bits, fmt):
    assert signed_bits_to_format(bits) is fmt


def test_signed_bits_to_format_unsupported():
    with pytest.raises(PlaybackError, match="bit count '12' not supported"):
        signed_bits_to_format(12)


def test_parse_requires_argument():
    with pytest.raises(PlaybackError, match="usage"):
        parse_play_args(["tinyplay"])


def test_parse_help_returns_none():
    assert parse_play_args(["tinyplay", "-h"]) is None


def test_parse_options_and_filetype():
    cmd = parse_play_args(
        ["tinyplay", "song.wav", "-D", "1", "--channels=1", "-r", "44100", "-M"]
    )
    assert cmd.filename == "song.wav"
    assert cmd.filetype == "wav"
    assert cmd.card == 1
    assert cmd.config.channels == 1
    assert cmd.config.rate == 44100
    assert cmd.flags & PcmFlag.MMAP


def test_parse_explicit_filetype_wins():
    cmd = parse_play_args(["tinyplay", "-i", "raw", "song.wav", "-f", "-b", "32"])
    assert cmd.filetype == "raw"
    assert cmd.is_float is True
    assert cmd.bits == 32


def test_parse_thresholds_follow_periods():
    cmd = parse_play_args(["tinyplay", "x.raw", "-p", "256", "-n", "3"])
    cfg = cmd.config
    assert cfg.start_threshold == cfg.period_size == 256
    assert cfg.stop_threshold == cfg.period_size * cfg.period_count
    assert cfg.silence_threshold == cfg.stop_threshold


def test_parse_bad_number():
    with pytest.raises(PlaybackError, match="failed parsing card number"):
        parse_play_args(["tinyplay", "x.raw", "-D", "abc"])


def test_parse_unknown_option():
    with pytest.raises(PlaybackError, match="invalid option"):
        parse_play_args(["tinyplay", "x.raw", "--bogus"])


def test_resolve_wave_stream():
    samples = b"\x01\x00\x02\x00"
    stream = io.BytesIO(build_wav_header(1, 22050, 16, len(samples)) + samples)
    cmd = PlayCommand(filename="a.wav", filetype="wav")
    config, size = resolve_stream_config(cmd, stream)
    assert (config.channels, config.rate, config.format) == (1, 22050, PcmFormat.S16_LE)
    assert size == len(samples)
    assert stream.read() == samples


def test_resolve_float_wave_stream():
    fmt = WavFormat(FORMAT_IEEE_FLOAT, 2, 48000, 384000, 8, 32)
    header = (
        b"RIFF" + struct.pack("<I", 36) + b"WAVE"
        + b"fmt " + struct.pack("<I", 16) + fmt.to_bytes()
        + b"data" + struct.pack("<I", 0)
    )
    cmd = PlayCommand(filename="a.wav", filetype="wav")
    config, size = resolve_stream_config(cmd, io.BytesIO(header))
    assert config.format is PcmFormat.FLOAT_LE
    assert size == 0


def test_resolve_bad_wave_stream():
    cmd = PlayCommand(filename="a.wav", filetype="wav")
    with pytest.raises(PlaybackError, match="'a.wav'"):
        resolve_stream_config(cmd, io.BytesIO(b"not a wave file at all"))


def test_resolve_raw_stream():
    cmd = PlayCommand(filename="a.raw", filetype="raw", bits=32)
    config, size = resolve_stream_config(cmd, io.BytesIO(b""))
    assert config.format is PcmFormat.S32_LE
    assert size is None


def test_resolve_requires_filename():
    with pytest.raises(PlaybackError, match="filename not specified"):
        resolve_stream_config(PlayCommand(), io.BytesIO(b""))


def test_check_param_within_bounds():
    params = PcmParams(intervals={PcmParam.RATE: Interval(8000, 48000)})
    assert check_param(params, PcmParam.RATE, 44100, "sample rate", "hz") == []


def test_check_param_out_of_bounds():
    params = PcmParams(intervals={PcmParam.RATE: Interval(8000, 48000)})
    assert check_param(params, PcmParam.RATE, 96000, "sample rate", "hz") == [
        "sample rate is 96000hz, device only supports <= 48000hz"
    ]
    assert check_param(params, PcmParam.RATE, 4000, "sample rate", "hz") == [
        "sample rate is 4000hz, device only supports >= 8000hz"
    ]


def test_sample_is_playable(capsys):
    params = PcmParams(intervals={PcmParam.CHANNELS: Interval(1, 1)})
    assert sample_is_playable(params, PlayCommand()) is False
    assert "device only supports <= 1 channels" in capsys.readouterr().err
    assert sample_is_playable(PcmParams(), PlayCommand()) is True


def test_sample_is_playable_without_params():
    assert sample_is_playable(None, PlayCommand()) is False


def _pcm(out=None, flags=PcmFlag.OUT):
    config = PcmConfig(channels=1, rate=8000, period_size=4, period_count=2)
    return Pcm(config, flags, out if out is not None else io.BytesIO())


def test_play_all_data():
    out = io.BytesIO()
    data = bytes(range(20))
    assert play_sample(_pcm(out), io.BytesIO(data), len(data)) == (len(data), 0)
    assert out.getvalue() == data


def test_play_limited_by_size():
    out = io.BytesIO()
    data = bytes(range(20))
    assert play_sample(_pcm(out), io.BytesIO(data), 10) == (10, 0)
    assert out.getvalue() == data[:10]


def test_play_until_end_drops_partial_frame():
    out = io.BytesIO()
    data = bytes(range(21))
    played, remaining = play_sample(_pcm(out), io.BytesIO(data))
    assert remaining is None
    assert played == len(out.getvalue()) == 20
    assert out.getvalue() == data[:20]


def test_play_stops_on_request():
    out = io.BytesIO()
    pcm = _pcm(out)
    data = bytes(range(20))
    played, remaining = play_sample(pcm, io.BytesIO(data), len(data), lambda: True)
    assert played == pcm.frames_to_bytes(pcm.config.period_size)
    assert remaining == len(data) - played


def test_play_error_stops(capsys):
    pcm = _pcm(io.BytesIO(), PcmFlag.IN)
    assert play_sample(pcm, io.BytesIO(bytes(8)), 8) == (0, 8)
    assert "error playing sample" in capsys.readouterr().err