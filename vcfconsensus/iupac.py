"""
IUPAC nucleotide codes as sets of bases

Every symbol is a 4-bit mask over the bases A, C, G and T (A=0001, C=0010,
G=0100, T=1000). Combining two symbols is the union of their masks and the
complement swaps A with T and C with G, which amounts to reversing the bit
order of the mask.

All functions work on byte values (ints), as obtained by indexing or
iterating over a bytes object.
"""
from typing import Dict, List

BASES = b"ACGT"
AMBIGUITY_SYMBOLS = b"RYSWKMBDHVN"
IUPAC_SYMBOLS = BASES + AMBIGUITY_SYMBOLS
BRACKETS = b"[]()"

N = ord("N")
_ANY = 0b1111

SYMBOL_TO_MASK: Dict[int, int] = {
    ord("A"): 0b0001,
    ord("C"): 0b0010,
    ord("G"): 0b0100,
    ord("T"): 0b1000,
    ord("M"): 0b0011,
    ord("R"): 0b0101,
    ord("W"): 0b1001,
    ord("S"): 0b0110,
    ord("Y"): 0b1010,
    ord("K"): 0b1100,
    ord("V"): 0b0111,
    ord("H"): 0b1011,
    ord("D"): 0b1101,
    ord("B"): 0b1110,
    ord("N"): _ANY,
}

# Index 0 (the empty set) cannot be produced from valid input
MASK_TO_SYMBOL: List[int] = [N] * 16
for _symbol, _mask in SYMBOL_TO_MASK.items():
    MASK_TO_SYMBOL[_mask] = _symbol

_REVERSED_MASK = [int(f"{mask:04b}"[::-1], 2) for mask in range(16)]


def mask_of(symbol: int) -> int:
    """Return the base set of a symbol. Unknown symbols stand for any base."""
    return SYMBOL_TO_MASK.get(symbol, _ANY)


def combine(x: int, y: int) -> int:
    """
    Return the IUPAC symbol that stands for all bases of x and y.

    >>> chr(combine(ord("A"), ord("G")))
    'R'
    """
    return MASK_TO_SYMBOL[mask_of(x) | mask_of(y)]


def complement(x: int) -> int:
    """
    Return the symbol for the complementary base set.

    >>> chr(complement(ord("K")))
    'M'
    """
    return MASK_TO_SYMBOL[_REVERSED_MASK[mask_of(x)]]


def _complement_table() -> bytes:
    table = bytearray(complement(i) for i in range(256))
    for bracket in BRACKETS:
        table[bracket] = bracket
    return bytes(table)


_COMPLEMENT_TABLE = _complement_table()
_MIRROR_TABLE = bytes.maketrans(b"[]()", b"][)(")


def complement_sequence(sequence: bytes) -> bytes:
    """
    Complement every symbol of a consensus sequence. Bracket delimiters stay
    where they are, their contents are complemented.

    >>> complement_sequence(b"MY[A]")
    b'KR[T]'
    """
    return bytes(sequence).translate(_COMPLEMENT_TABLE)


def reverse_sequence(sequence: bytes) -> bytes:
    """
    Reverse a consensus sequence. Bracket pairs are mirrored so that the
    annotations remain readable from left to right.

    >>> reverse_sequence(b"AC(GT)")
    b'(TG)CA'
    """
    return bytes(sequence)[::-1].translate(_MIRROR_TABLE)


def is_ambiguous(symbol: int) -> bool:
    return symbol in AMBIGUITY_SYMBOLS
