"""A fixed palette of distinct colours and a heat-map colour scale."""

from __future__ import annotations

__all__ = ["ColorFactory", "heat_map_color"]

Color = tuple[float, float, float]

_UNIQUE_COLORS: tuple[tuple[int, int, int], ...] = (
    (255, 255, 255),
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 0, 255),
    (0, 255, 255),
    (255, 255, 0),
    (0, 0, 0),
    (112, 219, 147),
    (92, 51, 23),
    (159, 95, 159),
    (181, 166, 66),
    (217, 217, 25),
    (166, 42, 42),
    (140, 120, 83),
    (166, 125, 61),
    (95, 159, 159),
    (217, 135, 25),
    (184, 115, 51),
    (255, 127, 0),
    (66, 66, 111),
    (92, 64, 51),
    (47, 79, 47),
    (74, 118, 110),
    (79, 79, 47),
    (153, 50, 205),
    (135, 31, 120),
    (107, 35, 142),
    (47, 79, 79),
    (151, 105, 79),
    (112, 147, 219),
    (133, 94, 66),
    (84, 84, 84),
    (133, 99, 99),
    (209, 146, 117),
    (142, 35, 35),
    (245, 204, 176),
    (35, 142, 35),
    (205, 127, 50),
    (219, 219, 112),
    (192, 192, 192),
    (82, 127, 118),
    (147, 219, 112),
    (33, 94, 33),
    (78, 47, 47),
    (159, 159, 95),
    (192, 217, 217),
    (168, 168, 168),
    (143, 143, 189),
    (233, 194, 166),
    (50, 205, 50),
    (228, 120, 51),
    (142, 35, 107),
    (50, 205, 153),
    (50, 50, 205),
    (107, 142, 35),
    (234, 234, 174),
    (147, 112, 219),
    (66, 111, 66),
    (127, 0, 255),
    (127, 255, 0),
    (112, 219, 219),
    (219, 112, 147),
    (166, 128, 100),
    (47, 47, 79),
    (35, 35, 142),
    (77, 77, 255),
    (255, 110, 199),
    (0, 0, 156),
    (235, 199, 158),
    (207, 181, 59),
    (255, 127, 0),
    (255, 36, 0),
    (219, 112, 219),
    (143, 188, 143),
    (188, 143, 143),
    (234, 173, 234),
    (217, 217, 243),
    (89, 89, 171),
    (111, 66, 66),
    (140, 23, 23),
    (35, 142, 104),
    (107, 66, 38),
    (142, 107, 35),
    (230, 232, 250),
    (50, 153, 204),
    (0, 127, 255),
    (255, 28, 174),
    (0, 255, 127),
    (35, 107, 142),
    (56, 176, 222),
    (219, 147, 112),
    (216, 191, 216),
    (173, 234, 234),
    (92, 64, 51),
    (205, 205, 205),
    (79, 47, 79),
    (204, 50, 153),
    (216, 216, 191),
    (153, 204, 50),
)


class ColorFactory:
    """Hands out colours from a fixed palette of one hundred entries."""

    def __init__(self) -> None:
        self._colors = _UNIQUE_COLORS

    def __len__(self) -> int:
        return len(self._colors)

    def unique_colors(self, n: int) -> list[tuple[int, int, int]]:
        """The first ``n`` colours of the palette."""
        if not 0 <= n <= len(self._colors):
            raise ValueError(f"n must lie in [0, {len(self._colors)}], got {n}")
        return list(self._colors[:n])


def heat_map_color(min_value: float, max_value: float, value: float) -> Color:
    """Blue-to-red heat-map colour of a value, as (blue, green, red) in 0..255.

    Values outside ``[min_value, max_value]`` are clamped to the range.
    """
    if not max_value > min_value:
        raise ValueError(
            f"max_value must exceed min_value, got [{min_value}, {max_value}]"
        )
    v = min(max(float(value), min_value), max_value)
    r = g = b = 1.0
    dv = max_value - min_value

    if v < min_value + 0.25 * dv:
        r = 0.0
        g = 4.0 * (v - min_value) / dv
    elif v < min_value + 0.5 * dv:
        r = 0.0
        b = 1.0 + 4.0 * (min_value + 0.25 * dv - v) / dv
    elif v < min_value + 0.75 * dv:
        r = 4.0 * (v - min_value - 0.5 * dv) / dv
        b = 0.0
    else:
        g = 1.0 + 4.0 * (min_value + 0.75 * dv - v) / dv
        b = 0.0

    return (b * 255.0, g * 255.0, r * 255.0)