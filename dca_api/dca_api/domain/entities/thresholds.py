"""Threshold table entity shared by every step-function score."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ThresholdTable:
    """Ordered (upper_bound, value) pairs with a documented terminal value.

    Lookup returns the value of the first band whose upper bound is >= x
    (upper bounds are inclusive). When x is above every bound the table's
    ``above`` value is returned, which is not necessarily the value of the
    last band (RSI falls through to 0, the multiplier table stays capped).
    """

    name: str
    bands: tuple[tuple[float, float], ...]
    above: float

    def __post_init__(self) -> None:
        uppers = [upper for upper, _ in self.bands]
        if uppers != sorted(uppers):
            raise ValueError(f"{self.name} bands must be sorted by upper bound")

    def lookup(self, x: float) -> float:
        for upper, value in self.bands:
            if x <= upper:
                return value
        return self.above
