"""
Position intervals and the filter that keeps variants at these positions
from being substituted into the consensus.
"""
import re
import bisect
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .utils import ConfigurationError

_INTERVAL_PATTERN = re.compile(r"([0-9]+)(?:-([0-9]+))?")


@dataclass(frozen=True)
class PositionInterval:
    """Closed interval [start, end] of 1-based reference positions"""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ConfigurationError(f"Invalid position interval {self.start}-{self.end}")

    def __contains__(self, position: int) -> bool:
        return self.start <= position <= self.end

    @staticmethod
    def parse(spec: str) -> "PositionInterval":
        """
        >>> PositionInterval.parse("5")
        PositionInterval(start=5, end=5)
        >>> PositionInterval.parse("3-7")
        PositionInterval(start=3, end=7)
        """
        match = _INTERVAL_PATTERN.fullmatch(spec.strip())
        if match is None:
            raise ConfigurationError(
                f"Specified region is not valid: {spec!r} (use POSITION or START-END)"
            )
        start = int(match.group(1))
        end = start if match.group(2) is None else int(match.group(2))
        if start > end:
            raise ConfigurationError(
                f"Start position has to be smaller than or equal to end position: {spec!r}"
            )
        return PositionInterval(start, end)


class ExclusionFilter:
    """
    Set of positions at which the reference allele must be kept.

    Intervals may overlap, membership is tested against their union.
    """

    def __init__(self, specs: Iterable[str] = ()):
        self.intervals: Tuple[PositionInterval, ...] = tuple(
            PositionInterval.parse(spec) for spec in specs
        )
        self._starts: List[int] = []
        self._ends: List[int] = []
        for interval in sorted(self.intervals, key=lambda i: i.start):
            if self._ends and interval.start <= self._ends[-1] + 1:
                self._ends[-1] = max(self._ends[-1], interval.end)
            else:
                self._starts.append(interval.start)
                self._ends.append(interval.end)

    def __repr__(self):
        return "ExclusionFilter({!r})".format(
            [f"{i.start}-{i.end}" for i in self.intervals]
        )

    def __bool__(self):
        return bool(self.intervals)

    def contains(self, position: int) -> bool:
        i = bisect.bisect_right(self._starts, position) - 1
        return i >= 0 and position <= self._ends[i]

    __contains__ = contains
