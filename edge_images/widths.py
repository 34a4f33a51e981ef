"""Responsive width planning for srcset variants."""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

DEFAULT_MULTIPLIERS: Tuple[float, ...] = (0.25, 0.5, 1, 1.5, 2, 2.5)
DEFAULT_MIN_WIDTH = 300
DEFAULT_MAX_WIDTH = 2400
DEFAULT_MAX_GAP = 200


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero (never banker's rounding)."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class WidthPolicy:
    multipliers: Tuple[float, ...] = DEFAULT_MULTIPLIERS
    min_width: int = DEFAULT_MIN_WIDTH
    max_width: int = DEFAULT_MAX_WIDTH
    max_gap: int = DEFAULT_MAX_GAP

    def __post_init__(self) -> None:
        if self.min_width < 1 or self.max_width < self.min_width:
            raise ValueError(f"invalid width band [{self.min_width}, {self.max_width}]")
        if self.max_gap < 1:
            raise ValueError(f"max_gap must be positive, got {self.max_gap}")
        if any(m <= 0 for m in self.multipliers):
            raise ValueError(f"multipliers must be positive, got {self.multipliers}")

    def plan(self, original_width: int) -> List[int]:
        return plan_widths(
            original_width,
            min_width=self.min_width,
            max_width=self.max_width,
            multipliers=self.multipliers,
            max_gap=self.max_gap,
        )


def fill_gaps(widths: Sequence[int], max_gap: int = DEFAULT_MAX_GAP,
              min_width: int = 1, max_width: int = 10 ** 9) -> List[int]:
    """
    Insert evenly spaced widths wherever two neighbours are more than max_gap apart.
    Intermediates outside [min_width, max_width] are not inserted, so when a
    width lies outside the band (an original wider than max_width) the gap
    next to it can stay larger than max_gap.
    """
    if len(widths) < 2:
        return list(widths)

    filled: List[int] = []
    for a, b in zip(widths, widths[1:]):
        filled.append(a)
        gap = b - a
        if gap <= max_gap:
            continue
        steps = math.ceil(gap / max_gap)
        step_size = gap / steps
        for j in range(1, steps):
            w = round_half_up(a + j * step_size)
            if min_width <= w <= max_width and w not in filled:
                filled.append(w)
    filled.append(widths[-1])
    return sorted(set(filled))


def plan_widths(
    original_width: int,
    min_width: int = DEFAULT_MIN_WIDTH,
    max_width: int = DEFAULT_MAX_WIDTH,
    multipliers: Sequence[float] = DEFAULT_MULTIPLIERS,
    max_gap: int = DEFAULT_MAX_GAP,
) -> List[int]:
    """
    Widths to offer for an image `original_width` pixels wide, ascending.

    Seeds min_width for images at least twice as wide, adds each in-band
    multiple of the original, always keeps the original itself, then fills
    gaps wider than max_gap.
    """
    original_width = int(original_width)
    if original_width < 1:
        raise ValueError(f"original width must be positive, got {original_width}")

    widths: List[int] = []
    if original_width >= 2 * min_width:
        widths.append(min_width)

    for multiplier in multipliers:
        w = round_half_up(original_width * multiplier)
        if min_width <= w <= max_width and w not in widths:
            widths.append(w)

    if original_width not in widths:
        widths.append(original_width)

    widths = sorted(set(widths))
    return fill_gaps(widths, max_gap, min_width=min_width, max_width=max_width)
