"""
Functions for reading VCFs.
"""
import os
import logging
from dataclasses import dataclass
from os import PathLike
from typing import Iterator, Optional, Tuple, Union

from pysam import VariantFile

from .utils import warn_once

logger = logging.getLogger(__name__)


class VcfError(Exception):
    pass


class VcfNotSortedError(VcfError):
    pass


@dataclass(frozen=True)
class VariantRecord:
    """
    A single VCF record as seen by the consensus generator.

    position is the 1-based POS column of the VCF, alleles are uppercase
    bytes.
    """

    position: int
    reference: bytes
    alternatives: Tuple[bytes, ...] = ()
    allele_frequency: Optional[float] = None
    chromosome: str = ""
    quality: Optional[float] = None
    depth: Optional[int] = None
    filters: Tuple[str, ...] = ()
    allele_frequencies: Tuple[float, ...] = ()
    allele_counts: Tuple[int, ...] = ()

    @property
    def end(self) -> int:
        """Last reference position covered by this record (inclusive)"""
        return self.position + len(self.reference) - 1

    def is_indel(self) -> bool:
        return any(len(alt) != len(self.reference) for alt in self.alternatives)


def is_symbolic(allele: str) -> bool:
    return allele.startswith("<") or allele in ("*", ".") or "[" in allele or "]" in allele


def _first(value):
    if isinstance(value, (tuple, list)):
        return value[0] if value else None
    return value


def parse_allele_frequency(value) -> Optional[float]:
    """
    Return the allele frequency from an INFO AF value or None if it cannot
    be interpreted. Multi-valued fields (Number=A) contribute their first
    value.

    VCF Float fields are single precision, so the value is rounded to undo
    the conversion (0.94 would otherwise be read as 0.9399999976).

    >>> parse_allele_frequency((0.5,))
    0.5
    >>> parse_allele_frequency("x") is None
    True
    """
    value = _first(value)
    if value is None:
        return None
    try:
        return round(float(value), 6)
    except (TypeError, ValueError):
        return None


def parse_depth(value) -> Optional[int]:
    value = _first(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _all(value) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (tuple, list)):
        return tuple(v for v in value if v is not None)
    return (value,)


def parse_allele_frequencies(value) -> Tuple[float, ...]:
    """
    Return all values of an INFO AF field, one per alternative allele.
    Unparsable values are dropped.

    >>> parse_allele_frequencies((0.25, 0.5))
    (0.25, 0.5)
    """
    frequencies = (parse_allele_frequency(v) for v in _all(value))
    return tuple(f for f in frequencies if f is not None)


def parse_allele_counts(value) -> Tuple[int, ...]:
    counts = (parse_depth(v) for v in _all(value))
    return tuple(c for c in counts if c is not None)


class VcfReader:
    """
    Read the records of a single chromosome from a VCF file.

    Records must be sorted by position within the chromosome.
    """

    def __init__(self, path: Union[str, PathLike]):
        self._path = path
        self._vcf_reader = VariantFile(os.fspath(path))
        self.samples = list(self._vcf_reader.header.samples)
        self.contigs = self._vcf_reader.header.contigs
        self.chromosome: Optional[str] = None
        logger.debug("Found %d sample(s) in the VCF file.", len(self.samples))

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self._vcf_reader.close()

    @property
    def path(self) -> str:
        return os.fspath(self._path)

    def contig_length(self, chromosome: str) -> Optional[int]:
        """Return the length given in the ##contig header or None"""
        if chromosome in self.contigs:
            return self.contigs[chromosome].length
        return None

    def variants(self, chromosome: Optional[str] = None) -> Iterator[VariantRecord]:
        """
        Yield the records of one chromosome in file order. If chromosome is
        None, the chromosome of the first record is used. The chosen
        chromosome is available as the chromosome attribute.

        The underlying file is read sequentially, so no index is needed.
        """
        self.chromosome = chromosome
        prev_position = None
        for record in self._vcf_reader:
            if chromosome is None:
                chromosome = self.chromosome = record.chrom
                logger.info("No chromosome given, using %r", chromosome)
            if record.chrom != chromosome:
                continue
            if prev_position is not None and prev_position > record.pos:
                raise VcfNotSortedError(
                    f"VCF file {self.path!r} is not sorted: position {record.pos} on "
                    f"{chromosome!r} comes after {prev_position}"
                )
            prev_position = record.pos
            yield self._convert(record)

    @staticmethod
    def _convert(record) -> VariantRecord:
        alternatives = []
        for alt in record.alts or ():
            if is_symbolic(alt):
                warn_once(
                    logger, "Ignoring symbolic allele %r at %s:%d.", alt, record.chrom, record.pos
                )
                continue
            alternatives.append(alt.upper().encode("ascii"))
        return VariantRecord(
            position=record.pos,
            reference=record.ref.upper().encode("ascii"),
            alternatives=tuple(alternatives),
            allele_frequency=parse_allele_frequency(record.info.get("AF")),
            chromosome=record.chrom,
            quality=record.qual,
            depth=parse_depth(record.info.get("DP")),
            filters=tuple(record.filter.keys()),
            allele_frequencies=parse_allele_frequencies(record.info.get("AF")),
            allele_counts=parse_allele_counts(record.info.get("AC")),
        )
