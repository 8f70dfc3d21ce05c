"""
Variant filters. A variant that fails a filter is not substituted into the
consensus; its reference allele is used instead.
"""
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from .regions import PositionInterval
from .utils import ConfigurationError
from .vcf import VariantRecord


class VariantFilter(ABC):
    @abstractmethod
    def test(self, variant: VariantRecord) -> bool:
        """Return whether the variant passes"""

    def __call__(self, variant: VariantRecord) -> bool:
        return self.test(variant)


class QualityFilter(VariantFilter):
    """Keep variants whose QUAL lies in [minimum, maximum]. Missing QUAL fails."""

    def __init__(self, minimum: Optional[float] = None, maximum: Optional[float] = None):
        self.minimum = minimum
        self.maximum = maximum

    def test(self, variant: VariantRecord) -> bool:
        return _in_range(variant.quality, self.minimum, self.maximum)


class DepthFilter(VariantFilter):
    """Keep variants whose INFO/DP lies in [minimum, maximum]. Missing DP fails."""

    def __init__(self, minimum: Optional[int] = None, maximum: Optional[int] = None):
        self.minimum = minimum
        self.maximum = maximum

    def test(self, variant: VariantRecord) -> bool:
        return _in_range(variant.depth, self.minimum, self.maximum)


class IndelFilter(VariantFilter):
    """
    Remove indels, or with keep_only_indels=True remove everything that is
    not an indel.
    """

    def __init__(self, keep_only_indels: bool = False):
        self.keep_only_indels = keep_only_indels

    def test(self, variant: VariantRecord) -> bool:
        return variant.is_indel() == self.keep_only_indels


class PassFilter(VariantFilter):
    """Keep variants whose FILTER column is PASS or missing"""

    def test(self, variant: VariantRecord) -> bool:
        return all(name == "PASS" for name in variant.filters)


class AlleleFrequencyFilter(VariantFilter):
    """
    Keep variants with at least one INFO/AF value in [minimum, maximum].
    Missing AF fails.
    """

    def __init__(self, minimum: Optional[float] = None, maximum: Optional[float] = None):
        self.minimum = minimum
        self.maximum = maximum

    def test(self, variant: VariantRecord) -> bool:
        return any(
            _in_range(af, self.minimum, self.maximum) for af in variant.allele_frequencies
        )


class AlleleCountFilter(VariantFilter):
    """
    Keep variants with at least one INFO/AC value in [minimum, maximum].
    Missing AC fails.
    """

    def __init__(self, minimum: Optional[int] = None, maximum: Optional[int] = None):
        self.minimum = minimum
        self.maximum = maximum

    def test(self, variant: VariantRecord) -> bool:
        return any(_in_range(ac, self.minimum, self.maximum) for ac in variant.allele_counts)


class FilterNameFilter(VariantFilter):
    """
    Keep variants whose FILTER column contains one of the given names.
    Names are compared case-insensitively and a missing FILTER counts as PASS.
    """

    def __init__(self, names: Iterable[str]):
        self.names = frozenset(name.lower() for name in names)

    def test(self, variant: VariantRecord) -> bool:
        filters = [name.lower() for name in variant.filters] or ["pass"]
        return any(name in self.names for name in filters)


class PositionFilter(VariantFilter):
    """
    Keep variants that lie within one of the intervals. With overlap=True,
    it is enough for the reference allele to overlap an interval.
    """

    def __init__(self, intervals: Iterable[PositionInterval], overlap: bool = False):
        self.intervals = tuple(intervals)
        self.overlap = overlap

    def test(self, variant: VariantRecord) -> bool:
        if self.overlap:
            return any(
                variant.end >= i.start and variant.position <= i.end for i in self.intervals
            )
        return any(variant.position in i and variant.end in i for i in self.intervals)


class InverseFilter(VariantFilter):
    """Keep exactly the variants that the wrapped filter rejects"""

    def __init__(self, variant_filter: VariantFilter):
        self.filter = variant_filter

    def test(self, variant: VariantRecord) -> bool:
        return not self.filter.test(variant)


def _in_range(value, minimum, maximum) -> bool:
    if value is None:
        return False
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    return True


def parse_intervals(specs: Iterable[str]) -> List[PositionInterval]:
    return [PositionInterval.parse(spec) for spec in specs]


def build_filters(
    min_quality: Optional[float] = None,
    max_quality: Optional[float] = None,
    min_depth: Optional[int] = None,
    max_depth: Optional[int] = None,
    min_af: Optional[float] = None,
    max_af: Optional[float] = None,
    min_ac: Optional[int] = None,
    max_ac: Optional[int] = None,
    remove_indels: bool = False,
    keep_only_indels: bool = False,
    remove_filtered_all: bool = False,
    keep_filtered: Sequence[str] = (),
    remove_filtered: Sequence[str] = (),
    positions: Sequence[str] = (),
    positions_overlap: Sequence[str] = (),
    exclude_positions_overlap: Sequence[str] = (),
) -> List[VariantFilter]:
    """
    Return the filters for the given settings. Raise ConfigurationError if
    a position interval is malformed or the FILTER column options contradict
    each other.
    """
    if sum(map(bool, (keep_filtered, remove_filtered, remove_filtered_all))) > 1:
        raise ConfigurationError(
            "--keep-filtered, --remove-filtered and --remove-filtered-all are mutually exclusive"
        )
    filters: List[VariantFilter] = []
    if min_quality is not None or max_quality is not None:
        filters.append(QualityFilter(min_quality, max_quality))
    if min_depth is not None or max_depth is not None:
        filters.append(DepthFilter(min_depth, max_depth))
    if min_af is not None or max_af is not None:
        filters.append(AlleleFrequencyFilter(min_af, max_af))
    if min_ac is not None or max_ac is not None:
        filters.append(AlleleCountFilter(min_ac, max_ac))
    if remove_indels or keep_only_indels:
        filters.append(IndelFilter(keep_only_indels=keep_only_indels))
    if remove_filtered_all:
        filters.append(PassFilter())
    if keep_filtered:
        filters.append(FilterNameFilter(keep_filtered))
    if remove_filtered:
        filters.append(InverseFilter(FilterNameFilter(remove_filtered)))
    if positions:
        filters.append(PositionFilter(parse_intervals(positions)))
    if positions_overlap:
        filters.append(PositionFilter(parse_intervals(positions_overlap), overlap=True))
    if exclude_positions_overlap:
        filters.append(
            InverseFilter(PositionFilter(parse_intervals(exclude_positions_overlap), overlap=True))
        )
    return filters
