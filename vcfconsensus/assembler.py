"""
Assemble the consensus sequence from variants and, optionally, a reference
backbone.
"""
import re
import logging
from dataclasses import dataclass
from functools import reduce
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .encoders import Encoder
from .filters import VariantFilter
from .iupac import combine, is_ambiguous
from .regions import ExclusionFilter
from .utils import warn_once
from .vcf import VariantRecord

logger = logging.getLogger(__name__)

_INDEL_PATTERN = re.compile(rb"([\[(])([^\])]*)[\])]")


@dataclass
class ConsensusStatistics:
    total_nucleotides: int = 0
    backbone_nucleotides: int = 0
    reference_nucleotides: int = 0
    encoded_nucleotides: int = 0
    ambiguous_nucleotides: int = 0
    encoded_variants: int = 0
    excluded_variants: int = 0
    filtered_variants: int = 0
    merged_variants: int = 0
    skipped_variants: int = 0
    insertions: int = 0
    insertion_size: int = 0
    deletions: int = 0
    deletion_size: int = 0

    def add_variant(self, contribution: bytes) -> None:
        self.encoded_variants += 1
        for match in _INDEL_PATTERN.finditer(contribution):
            size = len(match.group(2))
            if match.group(1) == b"(":
                self.insertions += 1
                self.insertion_size += size
            else:
                self.deletions += 1
                self.deletion_size += size

    def add_nucleotides(self, contribution: bytes) -> None:
        self.encoded_nucleotides += len(contribution)
        self.ambiguous_nucleotides += sum(1 for symbol in contribution if is_ambiguous(symbol))

    def format(self) -> str:
        lines = [
            "Consensus generation statistics:",
            f"Total written nucleotides: {self.total_nucleotides}",
            f"    From the reference FASTA: {self.backbone_nucleotides}",
            f"    References kept from VCF: {self.reference_nucleotides}",
            f"    Encoded from VCF: {self.encoded_nucleotides}",
            f"    Ambiguity symbols: {self.ambiguous_nucleotides}",
            f"Variants encoded: {self.encoded_variants}",
            f"    excluded by position: {self.excluded_variants}",
            f"    failing filters: {self.filtered_variants}",
            f"    merged with overlapping variants: {self.merged_variants}",
            f"    skipped (outside region): {self.skipped_variants}",
            f"Insertions: {self.insertions}",
            f"Deletions: {self.deletions}",
        ]
        if self.insertions:
            lines.append(f"Average insertion length: {self.insertion_size / self.insertions:.2f}")
        if self.deletions:
            lines.append(f"Average deletion length: {self.deletion_size / self.deletions:.2f}")
        return "\n".join(lines)


class SequenceAssembler:
    """
    Drive a single pass over the variants and concatenate what each of them
    contributes.

    Without a backbone, only the variants contribute. With a backbone, the
    backbone is copied and variants replace the stretch covered by their
    reference allele, so the whole window is covered.

    Records whose reference alleles overlap (a SNP inside a deletion, or a
    multi-allelic site split over several lines) are merged into a single
    contribution with merge_overlapping().

    start and end are 1-based and inclusive. end defaults to the backbone
    length (or no limit without backbone).
    """

    def __init__(
        self,
        variants: Iterable[VariantRecord],
        encoder: Encoder,
        exclusion: Optional[ExclusionFilter] = None,
        filters: Sequence[VariantFilter] = (),
        backbone: Optional[bytes] = None,
        start: int = 1,
        end: Optional[int] = None,
    ):
        if start < 1 or (end is not None and end < start):
            raise ValueError(f"Invalid window {start}-{end}")
        self._variants = variants
        self._encoder = encoder
        self._exclusion = exclusion if exclusion is not None else ExclusionFilter()
        self._filters = tuple(filters)
        self._backbone = backbone
        self.start = start
        self.end = end
        if backbone is not None:
            self.end = len(backbone) if end is None else min(end, len(backbone))
        self.statistics = ConsensusStatistics()

    def assemble(self) -> bytes:
        return b"".join(self.contributions())

    def contributions(self) -> Iterator[bytes]:
        """Yield consensus pieces in output order"""
        self.statistics = ConsensusStatistics()
        if self._backbone is None:
            pieces = self._variant_contributions()
        else:
            pieces = self._backbone_contributions()
        for piece in pieces:
            self.statistics.total_nucleotides += len(piece)
            yield piece

    def _windowed_variants(self) -> Iterator[VariantRecord]:
        for variant in self._variants:
            if self.end is not None and variant.position > self.end:
                break
            if variant.position < self.start:
                self.statistics.skipped_variants += 1
                continue
            yield variant

    def _clusters(self) -> Iterator[List[VariantRecord]]:
        """Group records whose reference alleles overlap"""
        cluster: List[VariantRecord] = []
        cluster_end = 0
        for variant in self._windowed_variants():
            if cluster and variant.position > cluster_end:
                yield cluster
                cluster = []
            if not cluster:
                cluster_end = variant.end
            cluster.append(variant)
            cluster_end = max(cluster_end, variant.end)
        if cluster:
            yield cluster

    def _variant_contributions(self) -> Iterator[bytes]:
        for cluster in self._clusters():
            yield self._encode_cluster(cluster)

    def _backbone_contributions(self) -> Iterator[bytes]:
        cursor = self.start
        for cluster in self._clusters():
            yield self._copy_backbone(cursor, cluster[0].position)
            for variant in cluster:
                self._check_reference(variant)
            yield self._encode_cluster(cluster)
            cursor = max(variant.end for variant in cluster) + 1
        yield self._copy_backbone(cursor, self.end + 1)

    def _copy_backbone(self, start: int, stop: int) -> bytes:
        """Backbone positions start (inclusive) to stop (exclusive)"""
        if stop <= start:
            return b""
        block = self._encoder.encode_reference(self._backbone[start - 1 : stop - 1])
        self.statistics.backbone_nucleotides += len(block)
        return block

    def _check_reference(self, variant: VariantRecord) -> None:
        expected = self._backbone[variant.position - 1 : variant.end]
        if expected != variant.reference[: len(expected)]:
            warn_once(
                logger,
                "Reference allele %s of variant at %s:%d does not match the reference FASTA (%s).",
                variant.reference.decode(),
                variant.chromosome,
                variant.position,
                expected.decode(),
            )

    def _encode_cluster(self, cluster: List[VariantRecord]) -> bytes:
        encoded = [self._encode(variant) for variant in cluster]
        if len(cluster) == 1:
            contribution, substituted = encoded[0]
        else:
            warn_once(
                logger,
                "Merging %d overlapping variants at %s:%d.",
                len(cluster),
                cluster[0].chromosome,
                cluster[0].position,
            )
            self.statistics.merged_variants += len(cluster)
            contribution = merge_overlapping(
                [(v.position, len(v.reference), c) for v, (c, _) in zip(cluster, encoded)]
            )
            substituted = any(s for _, s in encoded)
        if substituted:
            self.statistics.add_nucleotides(contribution)
        else:
            self.statistics.reference_nucleotides += len(contribution)
        return contribution

    def _encode(self, variant: VariantRecord) -> Tuple[bytes, bool]:
        """Return the contribution of a single record and whether it was substituted"""
        if self._exclusion.contains(variant.position):
            self.statistics.excluded_variants += 1
            return self._encoder.encode_reference(variant.reference), False
        if not all(f.test(variant) for f in self._filters):
            self.statistics.filtered_variants += 1
            return self._encoder.encode_reference(variant.reference), False
        contribution = self._encoder.encode_variant(variant)
        self.statistics.add_variant(contribution)
        return contribution, True


def merge_overlapping(pieces: Sequence[Tuple[int, int, bytes]]) -> bytes:
    """
    Merge the contributions of records whose reference alleles overlap.
    pieces are (position, reference length, contribution) tuples.

    Symbols that land on the same position are combined. A position deleted
    by one record but kept by another keeps the symbol, the remaining deleted
    positions share one bracket. Of several insertions after the same
    position, the longest one is written.

    >>> merge_overlapping([(1, 1, b"M"), (1, 1, b"R")])
    b'V'
    >>> merge_overlapping([(2, 3, b"C[GT]"), (3, 1, b"R")])
    b'CR[T]'
    """
    first = min(position for position, _, _ in pieces)
    last = max(position + length - 1 for position, length, _ in pieces)
    size = last - first + 1
    symbols: List[List[int]] = [[] for _ in range(size)]
    deleted: List[List[int]] = [[] for _ in range(size)]
    insertions: List[List[Tuple[bool, bytes]]] = [[] for _ in range(size)]
    for position, length, contribution in pieces:
        match = _INDEL_PATTERN.search(contribution)
        core = contribution if match is None else contribution[: match.start()]
        offset = position - first
        for i, symbol in enumerate(core[:length], start=offset):
            symbols[i].append(symbol)
        if len(core) > length:
            insertions[offset + length - 1].append((False, core[length:]))
        if match is None:
            continue
        if match.group(1) == b"(":
            insertions[offset + len(core) - 1].append((True, match.group(2)))
        else:
            for i, symbol in enumerate(match.group(2), start=offset + len(core)):
                deleted[i].append(symbol)

    merged = bytearray()
    in_deletion = False
    for i in range(size):
        if symbols[i]:
            if in_deletion:
                merged += b"]"
                in_deletion = False
            merged.append(reduce(combine, symbols[i]))
        elif deleted[i]:
            if not in_deletion:
                merged += b"["
                in_deletion = True
            merged.append(reduce(combine, deleted[i]))
        if insertions[i]:
            if in_deletion:
                merged += b"]"
                in_deletion = False
            merged += _longest_insertion(insertions[i])
    if in_deletion:
        merged += b"]"
    return bytes(merged)


def _longest_insertion(insertions: List[Tuple[bool, bytes]]) -> bytes:
    length = max(len(payload) for _, payload in insertions)
    longest = [payload for _, payload in insertions if len(payload) == length]
    payload = bytes(reduce(combine, symbols) for symbols in zip(*longest))
    if any(bracketed for bracketed, _ in insertions):
        return b"(" + payload + b")"
    return payload
