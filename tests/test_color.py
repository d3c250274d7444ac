"""Tests for color parsing and random face colors."""

import numpy as np
import pytest

from scanline3d.utils.color import BLACK, RGB, WHITE, parse_color, random_color, scale_to_depth


class TestParseColor:
    @pytest.mark.parametrize("value,expected", [
        ("#ff8000", RGB(255, 128, 0)),
        ("00ff7f", RGB(0, 255, 127)),
        ("1, 2, 3", RGB(1, 2, 3)),
        ([4, 5, 6], RGB(4, 5, 6)),
        ((7, 8, 9), RGB(7, 8, 9)),
        (WHITE, WHITE),
    ])
    def test_valid(self, value, expected) -> None:
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", [
        "#fff", "#gggggg", "1,2", "1,2,x", [0, 0, 256], [-1, 0, 0], [1.5, 0, 0], [True, 0, 0],
    ])
    def test_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_color(value)

    def test_to_hex(self) -> None:
        assert RGB(253, 255, 186).to_hex() == "#fdffba"
        assert parse_color(RGB(1, 2, 3).to_hex()) == RGB(1, 2, 3)


class TestRandomColor:
    def test_seeded_is_reproducible(self) -> None:
        a = [random_color(np.random.default_rng(5)) for _ in range(3)]
        b = [random_color(np.random.default_rng(5)) for _ in range(3)]
        assert a == b

    def test_channels_in_range(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(200):
            c = random_color(rng, max_color=7)
            assert all(0 <= ch <= 7 for ch in c)
            assert all(isinstance(ch, int) for ch in c)


def test_scale_to_depth() -> None:
    assert scale_to_depth(WHITE, 255) is WHITE
    assert scale_to_depth(WHITE, 15) == RGB(15, 15, 15)
    assert scale_to_depth(BLACK, 15) == BLACK
