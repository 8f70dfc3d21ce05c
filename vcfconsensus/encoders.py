"""
Encoders turn a variant into the bytes it contributes to the consensus.

IupacEncoder does the actual work. InversionEncoder and AlleleFrequencyEncoder
wrap another encoder and change what it returns. Use build_encoder() to
assemble the chain from command-line settings.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .iupac import BRACKETS, combine, complement_sequence
from .utils import ConfigurationError, warn_once
from .vcf import VariantRecord

logger = logging.getLogger(__name__)


class Encoder(ABC):
    @abstractmethod
    def encode(self, reference: bytes, alternative: bytes) -> bytes:
        """Encode a single reference/alternative allele pair"""

    @abstractmethod
    def encode_variant(self, variant: VariantRecord) -> bytes:
        """Encode a variant with all of its alternative alleles"""

    @abstractmethod
    def encode_alternatives(self, variant: VariantRecord) -> bytes:
        """Return what the variant contributes if only its alternatives are used"""

    @abstractmethod
    def encode_reference(self, block: bytes) -> bytes:
        """Return what a stretch of reference contributes"""


class IupacEncoder(Encoder):
    """
    Encode reference and alternative as if the call was heterozygous.

    Positions covered by both alleles get the IUPAC symbol for the union of
    both bases. Surplus reference bases (a deletion) are appended in square
    brackets, surplus alternative bases (an insertion) in parentheses.

    >>> IupacEncoder().encode(b"ACA", b"CT")
    b'MY[A]'
    >>> IupacEncoder().encode(b"AC", b"CTA")
    b'MY(A)'
    """

    def encode(self, reference: bytes, alternative: bytes) -> bytes:
        k = min(len(reference), len(alternative))
        encoded = bytearray(combine(r, a) for r, a in zip(reference, alternative))
        if len(reference) > k:
            encoded += b"[" + reference[k:] + b"]"
        elif len(alternative) > k:
            encoded += b"(" + alternative[k:] + b")"
        return bytes(encoded)

    def encode_variant(self, variant: VariantRecord) -> bytes:
        if not variant.alternatives:
            return self.encode_reference(variant.reference)
        encodings = [self.encode(variant.reference, alt) for alt in variant.alternatives]
        return self._merge(encodings, variant)

    def encode_alternatives(self, variant: VariantRecord) -> bytes:
        if not variant.alternatives:
            return self.encode_reference(variant.reference)
        return self._merge([self.encode(alt, alt) for alt in variant.alternatives], variant)

    def encode_reference(self, block: bytes) -> bytes:
        return bytes(block)

    @staticmethod
    def _merge(encodings: List[bytes], variant: VariantRecord) -> bytes:
        """
        Merge the encodings of several alternative alleles symbol by symbol.
        This is only possible for substitutions of equal length; otherwise
        the first alternative wins.
        """
        first = encodings[0]
        if len(encodings) == 1:
            return first
        if any(len(e) != len(first) or any(b in BRACKETS for b in e) for e in encodings):
            warn_once(
                logger,
                "Cannot merge alternative alleles of different length at %s:%d, "
                "using the first one.",
                variant.chromosome,
                variant.position,
            )
            return first
        merged = bytearray(first)
        for encoding in encodings[1:]:
            for i, symbol in enumerate(encoding):
                merged[i] = combine(merged[i], symbol)
        return bytes(merged)


class EncoderDecorator(Encoder):
    """Base class for encoders that wrap another encoder"""

    def __init__(self, encoder: Encoder):
        self._encoder = encoder

    @property
    def encoder(self) -> Encoder:
        return self._encoder

    def encode(self, reference: bytes, alternative: bytes) -> bytes:
        return self._encoder.encode(reference, alternative)

    def encode_variant(self, variant: VariantRecord) -> bytes:
        return self._encoder.encode_variant(variant)

    def encode_alternatives(self, variant: VariantRecord) -> bytes:
        return self._encoder.encode_alternatives(variant)

    def encode_reference(self, block: bytes) -> bytes:
        return self._encoder.encode_reference(block)


class InversionEncoder(EncoderDecorator):
    """
    Complement everything the wrapped encoder produces, including the
    contents of indel brackets.
    """

    def encode(self, reference: bytes, alternative: bytes) -> bytes:
        return complement_sequence(super().encode(reference, alternative))

    def encode_variant(self, variant: VariantRecord) -> bytes:
        return complement_sequence(super().encode_variant(variant))

    def encode_alternatives(self, variant: VariantRecord) -> bytes:
        return complement_sequence(super().encode_alternatives(variant))

    def encode_reference(self, block: bytes) -> bytes:
        return complement_sequence(super().encode_reference(block))


def parse_frequency_bounds(spec: str) -> Tuple[float, float]:
    """
    Parse allele frequency bounds given as LOWER-UPPER.

    >>> parse_frequency_bounds("0.1-0.9")
    (0.1, 0.9)
    """
    lower_spec, sep, upper_spec = spec.strip().partition("-")
    try:
        if not sep:
            raise ValueError(spec)
        lower, upper = float(lower_spec), float(upper_spec)
    except ValueError:
        raise ConfigurationError(
            f"Allele frequency bounds must be given as LOWER-UPPER, got {spec!r}"
        ) from None
    check_frequency_bounds(lower, upper)
    return lower, upper


def check_frequency_bounds(lower: float, upper: float) -> None:
    for bound in (lower, upper):
        if not 0 <= bound <= 1:
            raise ConfigurationError(f"Allele frequency bound {bound} is not between 0 and 1")
    if lower > upper:
        raise ConfigurationError(
            f"Allele frequency encoder's lower bound {lower} is bigger than upper bound {upper}"
        )


class AlleleFrequencyEncoder(EncoderDecorator):
    """
    Use the allele frequency (INFO field AF) to decide how a variant is
    encoded:

    - below the lower bound (or without AF) the reference is kept,
    - above the upper bound the alternative is used,
    - otherwise, bounds included, the wrapped encoder decides.
    """

    def __init__(self, encoder: Encoder, lower_bound: float, upper_bound: float):
        check_frequency_bounds(lower_bound, upper_bound)
        super().__init__(encoder)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound

    def __repr__(self):
        return f"AlleleFrequencyEncoder({self._encoder!r}, {self.lower_bound}, {self.upper_bound})"

    def encode_variant(self, variant: VariantRecord) -> bytes:
        af = variant.allele_frequency
        if af is None or af < self.lower_bound:
            return self._encoder.encode_reference(variant.reference)
        if af > self.upper_bound:
            return self._encoder.encode_alternatives(variant)
        return self._encoder.encode_variant(variant)


def build_encoder(
    invert: bool = False, frequency_bounds: Optional[Tuple[float, float]] = None
) -> Encoder:
    """
    Return the encoder chain: allele frequency gating (optional), then
    inversion (optional), then IUPAC encoding.
    """
    encoder: Encoder = IupacEncoder()
    if invert:
        encoder = InversionEncoder(encoder)
    if frequency_bounds is not None:
        encoder = AlleleFrequencyEncoder(encoder, *frequency_bounds)
    return encoder
