import pytest

from tinypcm.version import VERSION, VERSION_STRING, version_number, version_string


def test_default_version_string():
    assert VERSION_STRING == "2.0.0"
    assert version_string() == VERSION_STRING


def test_default_number_matches_string():
    assert VERSION == version_number(2, 0, 0)


@pytest.mark.parametrize("parts", [(1, 2, 3), (2, 0, 0), (0, 255, 7)])
def test_components_recoverable(parts):
    major, minor, patch = parts
    number = version_number(major, minor, patch)
    assert number >> 16 == major
    assert (number >> 8) & 0xFF == minor
    assert number & 0xFF == patch


def test_ordering_follows_components():
    assert version_number(1, 2, 3) < version_number(1, 2, 4)
    assert version_number(1, 9, 9) < version_number(2, 0, 0)


def test_string_round_trip():
    text = version_string(3, 14, 1)
    assert tuple(int(p) for p in text.split(".")) == (3, 14, 1)