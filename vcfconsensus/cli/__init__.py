import logging

from vcfconsensus.utils import IndexedFasta, FastaNotIndexedError
from vcfconsensus.vcf import VcfReader

logger = logging.getLogger(__name__)


class CommandLineError(Exception):
    """An anticipated command-line error occurred. This ends up as a user-visible error message"""


def open_vcf_reader(path) -> VcfReader:
    try:
        return VcfReader(path)
    except (OSError, ValueError) as e:
        raise CommandLineError(f"Error while loading variant file {path}: {e}")


def open_reference(path):
    try:
        indexed_fasta = IndexedFasta(path)
    except OSError as e:
        raise CommandLineError(f"Error while opening FASTA reference file: {e}")
    except FastaNotIndexedError as e:
        raise CommandLineError(
            f"An index file (.fai) for the reference FASTA '{e.args[0]}' "
            "could not be found. Please create one with "
            "'samtools faidx'."
        )
    return indexed_fasta


def load_backbone(fasta, chromosome: str) -> bytes:
    try:
        sequence = str(fasta[chromosome])
    except KeyError:
        raise CommandLineError(
            f"Chromosome {chromosome!r} not found in the reference FASTA {fasta.filename!r}"
        )
    logger.info("Loaded chromosome %r (%d bp) from the reference", chromosome, len(sequence))
    return sequence.encode("ascii")
