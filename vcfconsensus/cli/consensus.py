"""
Generate a consensus sequence from a VCF file

Variants of one chromosome are substituted into the reference sequence
(if given with --reference) or concatenated. Heterozygous calls are written
as IUPAC ambiguity codes. Deletions are written in square brackets and
insertions in parentheses, for example MY[A] or MY(A).

The output starts with a header line of the form >CHROMOSOME|START-END|
followed by the sequence.
"""
import sys
import logging
from contextlib import ExitStack
from typing import Optional, Sequence, Tuple

from xopen import xopen

from vcfconsensus.assembler import SequenceAssembler
from vcfconsensus.cli import CommandLineError, open_vcf_reader, open_reference, load_backbone
from vcfconsensus.encoders import build_encoder, parse_frequency_bounds
from vcfconsensus.filters import build_filters
from vcfconsensus.iupac import reverse_sequence
from vcfconsensus.regions import ExclusionFilter, PositionInterval
from vcfconsensus.utils import ConfigurationError, plural_s
from vcfconsensus.vcf import VcfError

logger = logging.getLogger(__name__)


# fmt: off
def add_arguments(parser):
    arg = parser.add_argument
    arg("-o", "--output", default=None,
        help="Output file. If it ends in .gz, the output is compressed. "
        "If omitted, use standard output.")
    arg("-f", "--reference", metavar="FASTA",
        help="Reference FASTA used as backbone. Must be accompanied by a .fai index "
        "(create with samtools faidx)")
    arg("--chromosome", metavar="NAME", default=None,
        help="Chromosome to generate the consensus for (default: first record "
        "of the reference, or of the VCF if no reference is given)")
    arg("--region", metavar="START-END", default=None,
        help="Only write the positions START to END (1-based, inclusive). "
        "A single POSITION is also accepted, and START- means up to the end.")
    arg("--af-encoder", dest="frequency_bounds", metavar="LOWER-UPPER", default=None,
        help="Use the allele frequency (INFO/AF) of a variant: below LOWER the reference "
        "is written, above UPPER the alternative, in between (inclusive) an IUPAC code.")
    arg("--exclude-positions", dest="exclude_positions", metavar="REGION", default=None,
        action="append",
        help="Keep the reference for variants starting at these positions. Give positions "
        "as POSITION or START-END. Can be used multiple times.")
    arg("--complement", action="store_true", default=False,
        help="Write the complement of the consensus")
    arg("--reverse", action="store_true", default=False,
        help="Write the consensus in reverse order. Together with --complement, "
        "this gives the reverse complement.")
    arg("--no-header", dest="header", action="store_false", default=True,
        help="Do not write the >CHROMOSOME|START-END| header line")

    filters = parser.add_argument_group("Filters",
        "Variants failing a filter are not substituted; the reference is kept instead.")
    filters.add_argument("--min-quality", type=float, default=None,
        help="Include only variants whose QUAL is at least this value")
    filters.add_argument("--max-quality", type=float, default=None,
        help="Include only variants whose QUAL is at most this value")
    filters.add_argument("--min-depth", type=int, default=None,
        help="Include only variants whose INFO/DP is at least this value")
    filters.add_argument("--max-depth", type=int, default=None,
        help="Include only variants whose INFO/DP is at most this value")
    filters.add_argument("--min-af", type=float, default=None,
        help="Include only variants with an INFO/AF value of at least this value")
    filters.add_argument("--max-af", type=float, default=None,
        help="Include only variants with an INFO/AF value of at most this value")
    filters.add_argument("--min-ac", type=int, default=None,
        help="Include only variants with an INFO/AC value of at least this value")
    filters.add_argument("--max-ac", type=int, default=None,
        help="Include only variants with an INFO/AC value of at most this value")
    filters.add_argument("--remove-indels", action="store_true", default=False,
        help="Ignore insertions and deletions")
    filters.add_argument("--keep-only-indels", action="store_true", default=False,
        help="Ignore everything except insertions and deletions")
    filters.add_argument("--remove-filtered-all", action="store_true", default=False,
        help="Ignore variants whose FILTER column is not PASS")
    filters.add_argument("--keep-filtered", metavar="NAME", default=None, action="append",
        help="Include only variants with this name in the FILTER column. "
        "Can be used multiple times.")
    filters.add_argument("--remove-filtered", metavar="NAME", default=None, action="append",
        help="Ignore variants with this name in the FILTER column. Can be used multiple times.")
    filters.add_argument("--positions", metavar="REGION", default=None, action="append",
        help="Include only variants that lie within this region (POSITION or START-END). "
        "Can be used multiple times.")
    filters.add_argument("--positions-overlap", metavar="REGION", default=None,
        action="append",
        help="Include only variants that overlap this region. Can be used multiple times.")
    filters.add_argument("--exclude-positions-overlap", metavar="REGION", default=None,
        action="append",
        help="Ignore variants that overlap this region. Can be used multiple times.")

    arg("variant_file", metavar="VCF", help="VCF file with variant calls (can be gzip-compressed)")
# fmt: on


def validate(args, parser):
    if args.remove_indels and args.keep_only_indels:
        parser.error("Options --remove-indels and --keep-only-indels cannot be used together")
    filter_options = (args.keep_filtered, args.remove_filtered, args.remove_filtered_all)
    if sum(map(bool, filter_options)) > 1:
        parser.error(
            "Options --keep-filtered, --remove-filtered and --remove-filtered-all "
            "cannot be used together"
        )
    for name in ("quality", "depth", "af", "ac"):
        minimum, maximum = getattr(args, "min_" + name), getattr(args, "max_" + name)
        if minimum is not None and maximum is not None and minimum > maximum:
            parser.error(f"--min-{name} must not be larger than --max-{name}")


def format_header(chromosome: Optional[str], start: int, end: Optional[int]) -> str:
    """
    >>> format_header("chr1", 1, 100)
    '>chr1|1-100|'
    >>> format_header(None, 1, None)
    '> |1-?|'
    """
    name = chromosome if chromosome else " "
    return ">{}|{}-{}|".format(name, start, "?" if end is None else end)


def write_consensus(output, header: Optional[str], sequence: bytes) -> None:
    if header is not None:
        output.write(header.encode("utf-8") + b"\n")
    output.write(sequence + b"\n")


def parse_window(region: Optional[str]) -> Tuple[int, Optional[int]]:
    """
    Parse the output window. START- reaches up to the end of the chromosome.

    >>> parse_window("5-")
    (5, None)
    >>> parse_window("5-9")
    (5, 9)
    """
    if region is None:
        return 1, None
    start_spec, sep, end_spec = region.strip().partition("-")
    if sep and not end_spec:
        start, end = PositionInterval.parse(start_spec).start, None
    else:
        interval = PositionInterval.parse(region)
        start, end = interval.start, interval.end
    if start < 1:
        raise ConfigurationError(f"Positions are 1-based, region {region!r} starts at 0")
    return start, end


def run_consensus(
    variant_file,
    output=None,
    reference: Optional[str] = None,
    chromosome: Optional[str] = None,
    region: Optional[str] = None,
    frequency_bounds: Optional[str] = None,
    exclude_positions: Optional[Sequence[str]] = None,
    complement: bool = False,
    reverse: bool = False,
    header: bool = True,
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
    keep_filtered: Optional[Sequence[str]] = None,
    remove_filtered: Optional[Sequence[str]] = None,
    positions: Optional[Sequence[str]] = None,
    positions_overlap: Optional[Sequence[str]] = None,
    exclude_positions_overlap: Optional[Sequence[str]] = None,
):
    """
    Generate the consensus for one chromosome of variant_file and write it to
    output (a path, or None for standard output).
    """
    try:
        start, end = parse_window(region)
        bounds = parse_frequency_bounds(frequency_bounds) if frequency_bounds else None
        exclusion = ExclusionFilter(exclude_positions or ())
        encoder = build_encoder(invert=complement, frequency_bounds=bounds)
        filters = build_filters(
            min_quality=min_quality,
            max_quality=max_quality,
            min_depth=min_depth,
            max_depth=max_depth,
            min_af=min_af,
            max_af=max_af,
            min_ac=min_ac,
            max_ac=max_ac,
            remove_indels=remove_indels,
            keep_only_indels=keep_only_indels,
            remove_filtered_all=remove_filtered_all,
            keep_filtered=keep_filtered or (),
            remove_filtered=remove_filtered or (),
            positions=positions or (),
            positions_overlap=positions_overlap or (),
            exclude_positions_overlap=exclude_positions_overlap or (),
        )
    except ConfigurationError as e:
        raise CommandLineError(e)
    if exclusion:
        logger.info(
            "Keeping the reference in %d excluded region%s",
            len(exclusion.intervals),
            plural_s(len(exclusion.intervals)),
        )

    with ExitStack() as stack:
        vcf_reader = stack.enter_context(open_vcf_reader(variant_file))
        backbone = None
        if reference is not None:
            fasta = stack.enter_context(open_reference(reference))
            if chromosome is None:
                chromosome = next(iter(fasta.keys()))
            backbone = load_backbone(fasta, chromosome)

        assembler = SequenceAssembler(
            vcf_reader.variants(chromosome),
            encoder,
            exclusion=exclusion,
            filters=filters,
            backbone=backbone,
            start=start,
            end=end,
        )
        try:
            sequence = assembler.assemble()
        except (VcfError, OSError, ValueError) as e:
            raise CommandLineError(f"Error while reading {variant_file}: {e}")
        if reverse:
            sequence = reverse_sequence(sequence)

        if output is None:
            out = sys.stdout.buffer
        else:
            out = stack.enter_context(xopen(output, "wb"))
        header_line = None
        if header:
            chromosome = vcf_reader.chromosome
            header_end = assembler.end
            if header_end is None and chromosome is not None:
                header_end = vcf_reader.contig_length(chromosome)
            header_line = format_header(chromosome, start, header_end)
        write_consensus(out, header_line, sequence)
        out.flush()

    for line in assembler.statistics.format().splitlines():
        logger.info(line)
    return sequence


def main(args):
    run_consensus(**vars(args))
