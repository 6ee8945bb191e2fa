import pytest

from colors import PALETTE, hex_without_marker, is_valid_color_string, normalize_color_string


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("#00FFFF", "#00ffff"),
        ("00ffff", "#00ffff"),
        ("#0f0", "#00ff00"),
        ("red", "#ff0000"),
        ("Sky Blue", "#87ceeb"),
        ("(0, 1, 0.5)", "#ff0000"),
    ],
)
def test_normalize(raw, expected):
    assert normalize_color_string(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "#12345", "#gggggg", "definitely-not", None, 42])
def test_invalid(raw):
    assert normalize_color_string(raw) is None
    assert not is_valid_color_string(raw)


def test_palette_is_valid():
    assert all(normalize_color_string(c) == c for c in PALETTE)


def test_hex_without_marker():
    assert hex_without_marker("#ABCDEF") == "abcdef"
