"""Color values for the raster pipeline.

Provides:
    - RGB: immutable 8-bit-per-channel color triple
    - parse_color(): accept "#rrggbb", "r,g,b" strings or 3-sequences
    - random_color(): per-face debug colors from a numpy Generator
    - scale_to_depth(): clamp/rescale a color into a sink's max_color range

Used by:
    - Canvas polygon renderer: fresh random fill per triangle
    - RasterImage: foreground/background storage, PPM max value
    - Config validation: colors written as hex strings in YAML

Invariants:
    - Channels are ints in [0, 255] unless a sink declares a smaller max_color
"""

from typing import NamedTuple, Optional, Sequence, Union

import numpy as np


class RGB(NamedTuple):
    """8-bit RGB triple."""
    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


BLACK = RGB(0, 0, 0)
WHITE = RGB(255, 255, 255)


def parse_color(value: Union[str, Sequence[int], RGB]) -> RGB:
    """Parse a color from config or CLI input.

    Parameters
    ----------
    value : Union[str, Sequence[int], RGB]
        "#rrggbb", "rrggbb", "r,g,b" or a sequence of three ints

    Returns
    -------
    RGB
        Parsed color

    Raises
    ------
    ValueError
        If the value is malformed or a channel is outside [0, 255]
    """
    if isinstance(value, RGB):
        return value

    if isinstance(value, str):
        text = value.strip()
        if ',' in text:
            try:
                channels = [int(c) for c in text.split(',')]
            except ValueError as e:
                raise ValueError(f"Bad color '{value}': {e}") from e
        else:
            text = text.lstrip('#')
            if len(text) != 6:
                raise ValueError(f"Hex color must have 6 digits, got '{value}'")
            try:
                channels = [int(text[i:i + 2], 16) for i in (0, 2, 4)]
            except ValueError as e:
                raise ValueError(f"Bad hex color '{value}': {e}") from e
    else:
        channels = list(value)

    if len(channels) != 3:
        raise ValueError(f"Color needs 3 channels, got {len(channels)}: {value!r}")
    for c in channels:
        if isinstance(c, bool) or not isinstance(c, (int, np.integer)) or not 0 <= c <= 255:
            raise ValueError(f"Color channel out of range [0, 255]: {c!r}")
    return RGB(*(int(c) for c in channels))


def random_color(rng: Optional[np.random.Generator] = None, max_color: int = 255) -> RGB:
    """Draw a uniformly random color.

    Parameters
    ----------
    rng : np.random.Generator, optional
        Source of randomness; a fresh unseeded generator when None
    max_color : int
        Inclusive channel maximum, default 255

    Returns
    -------
    RGB
        Random color with channels in [0, max_color]
    """
    rng = rng if rng is not None else np.random.default_rng()
    r, g, b = rng.integers(0, max_color + 1, size=3)
    return RGB(int(r), int(g), int(b))


def scale_to_depth(color: RGB, max_color: int) -> RGB:
    """Rescale an 8-bit color to a sink with a different channel maximum."""
    if max_color == 255:
        return color
    return RGB(*(int(round(c * max_color / 255.0)) for c in color))
