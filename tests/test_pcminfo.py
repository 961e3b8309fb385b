import pytest

from tinypcm.optparse import OptionError
from tinypcm.pcm import Interval, PcmMask, PcmParam, PcmParams
from tinypcm.pcminfo import (
    FORMAT_NAMES,
    describe_device,
    describe_params,
    format_name,
    parse_pcminfo_args,
)


@pytest.mark.parametrize(
    "index, name",
    [(0, "S8"), (2, "S16_LE"), (24, "GSM"), (31, "SPECIAL"), (32, "S24_3LE"), (43, "U18_3BE")],
)
def test_format_name_known(index, name):
    assert format_name(index) == name


@pytest.mark.parametrize("index", [25, 30, 44, 100, -1])
def test_format_name_unknown(index):
    assert format_name(index) is None


def test_format_table_ends_at_last_name():
    last = len(FORMAT_NAMES) - 1
    assert last == 43
    assert format_name(last) == "U18_3BE"
    assert format_name(last + 1) is None


def test_parse_defaults():
    assert parse_pcminfo_args(["tinypcminfo"]) == (0, 0, False)


def test_parse_card_and_device():
    assert parse_pcminfo_args(["tinypcminfo", "-D", "1", "--device=3"]) == (1, 3, False)


def test_parse_help():
    assert parse_pcminfo_args(["tinypcminfo", "-h"])[2] is True


def test_parse_unknown_option():
    with pytest.raises(OptionError):
        parse_pcminfo_args(["tinypcminfo", "-x"])


def _params():
    return PcmParams(
        masks={
            PcmParam.ACCESS: PcmMask((0,)),
            PcmParam.FORMAT: PcmMask.from_indices([2, 32]),
        },
        intervals={
            PcmParam.RATE: Interval(8000, 48000),
            PcmParam.CHANNELS: Interval(1, 2),
        },
    )


def test_describe_params_format_names():
    text = describe_params(_params())
    assert " Format Name:\tS16_LE, S24_3LE\n" in text


def test_describe_params_zero_mask_has_no_prefix():
    text = describe_params(_params())
    assert "      Access:\t00000000\n" in text


def test_describe_params_ranges():
    text = describe_params(_params())
    assert "        Rate:\tmin=8000Hz\tmax=48000Hz\n" in text
    assert "    Channels:\tmin=1\t\tmax=2\n" in text


def test_describe_params_without_subformat():
    assert "Subformat" not in describe_params(_params())


def test_describe_params_no_names_when_mask_empty():
    params = PcmParams(masks={PcmParam.FORMAT: PcmMask()})
    assert "Format Name" not in describe_params(params)


def test_describe_params_ignores_names_beyond_two_words():
    params = PcmParams(masks={PcmParam.FORMAT: PcmMask.from_indices([70])})
    assert "Format Name" not in describe_params(params)


def test_describe_device_missing_streams():
    text = describe_device(2, 5, None, None)
    assert text.startswith("Info for card 2, device 5:\n")
    assert text.count("Device does not exist.") == 2
    assert text.index("PCM out:") < text.index("PCM in:")


def test_describe_device_includes_params():
    text = describe_device(0, 0, _params(), None)
    assert describe_params(_params()) in text
    assert text.count("Device does not exist.") == 1