import pytest
from pytest import raises
from xopen import xopen

from vcfconsensus.cli import CommandLineError
from vcfconsensus.cli.consensus import format_header, parse_window, run_consensus
from vcfconsensus.utils import ConfigurationError

CALLS = "tests/data/calls.vcf"
TWO_CHROMOSOMES = "tests/data/two-chromosomes.vcf"
REFERENCE = "tests/data/reference.fasta"


def consensus_lines(tmp_path, variant_file=CALLS, **kwargs):
    out = tmp_path / "consensus.fa"
    run_consensus(variant_file, output=str(out), **kwargs)
    return out.read_text(encoding="ascii").splitlines()


def test_default_encoding(tmp_path):
    assert consensus_lines(tmp_path) == [">ref|1-5|", "RRS"]


@pytest.mark.parametrize(
    "bounds,expected",
    [
        ("0-0.93", "AGC"),
        ("0-0.94", "RRS"),
        ("0-0.95", "RRS"),
        ("0.93-1", "RRS"),
        ("0.94-1", "RRS"),
        ("0.95-1", "GAG"),
        ("0.95-0.95", "GAG"),
        ("0.93-0.93", "AGC"),
        ("0.94-0.94", "RRS"),
    ],
)
def test_allele_frequency_encoder(tmp_path, bounds, expected):
    assert consensus_lines(tmp_path, frequency_bounds=bounds)[1] == expected


@pytest.mark.parametrize(
    "bounds,expected",
    [("0-0.95", "RRSTT"), ("0.95-1", "GAGTT"), ("0-0.93", "AGCTT")],
)
def test_allele_frequency_encoder_with_reference(tmp_path, bounds, expected):
    lines = consensus_lines(tmp_path, reference=REFERENCE, frequency_bounds=bounds)
    assert lines == [">ref|1-5|", expected]


@pytest.mark.parametrize(
    "positions,expected",
    [
        (["0"], "RRS"),
        (["0-1"], "GRS"),
        (["0-2"], "GAS"),
        (["0-3"], "GAG"),
        (["1-1"], "GRS"),
        (["2-2"], "RAS"),
        (["3-3"], "RRG"),
        (["4-4"], "RRS"),
        (["1-2"], "GAS"),
        (["2-3"], "RAG"),
        (["3-4"], "RRG"),
        (["4-5"], "RRS"),
        (["0-1", "1-2"], "GAS"),
        (["1-2", "3"], "GAG"),
        (["0-1", "3-4"], "GRG"),
    ],
)
def test_exclude_positions(tmp_path, positions, expected):
    assert consensus_lines(tmp_path, exclude_positions=positions)[1] == expected


@pytest.mark.parametrize("positions", [["1-0"], ["-1-0"], ["1-2", "x"]])
def test_invalid_exclude_positions(tmp_path, positions):
    with raises(CommandLineError):
        consensus_lines(tmp_path, exclude_positions=positions)


def test_invalid_frequency_bounds(tmp_path):
    with raises(CommandLineError) as info:
        consensus_lines(tmp_path, frequency_bounds="0.94-0")
    assert "bigger than upper bound" in str(info.value)


def test_reference_backbone_with_exclusion(tmp_path):
    lines = consensus_lines(tmp_path, reference=REFERENCE, exclude_positions=["2"])
    assert lines == [">ref|1-5|", "RASTT"]


def test_filters_keep_reference(tmp_path):
    assert consensus_lines(tmp_path, reference=REFERENCE, min_depth=30)[1] == "GAGTT"
    assert consensus_lines(tmp_path, reference=REFERENCE, max_quality=50)[1] == "RRSTT"


def test_complement(tmp_path):
    assert consensus_lines(tmp_path, complement=True)[1] == "YYS"
    assert consensus_lines(tmp_path, reference=REFERENCE, complement=True)[1] == "YYSAA"


def test_reverse(tmp_path):
    assert consensus_lines(tmp_path, reverse=True)[1] == "SRR"
    lines = consensus_lines(tmp_path, reference=REFERENCE, reverse=True, complement=True)
    assert lines[1] == "AASYY"


def test_region(tmp_path):
    assert consensus_lines(tmp_path, region="2-3") == [">ref|2-3|", "RS"]
    assert consensus_lines(tmp_path, reference=REFERENCE, region="3-10") == [">ref|3-5|", "STT"]


def test_open_ended_region(tmp_path):
    assert consensus_lines(tmp_path, region="3-") == [">ref|3-5|", "S"]
    assert consensus_lines(tmp_path, reference=REFERENCE, region="4-") == [">ref|4-5|", "TT"]


def test_invalid_region(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, region="0-3")
    with raises(CommandLineError):
        consensus_lines(tmp_path, region="3-2")


def test_no_header(tmp_path):
    assert consensus_lines(tmp_path, header=False) == ["RRS"]


def test_default_chromosome(tmp_path):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES) == [">chrA|1-10|", "YTV"]


def test_select_chromosome(tmp_path):
    lines = consensus_lines(tmp_path, TWO_CHROMOSOMES, chromosome="chrB")
    assert lines == [">chrB|1-8|", "G[TT]A(TG)"]


def test_indel_filters(tmp_path):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, chromosome="chrB", remove_indels=True)[
        1
    ] == "GTTA"
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, keep_only_indels=True)[1] == "CTA"


def test_pass_filter(tmp_path):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, remove_filtered_all=True)[1] == "YTA"


def test_allele_frequency_filter(tmp_path):
    assert consensus_lines(tmp_path, min_af=0.95)[1] == "GAG"
    assert consensus_lines(tmp_path, min_af=0.9)[1] == "RRS"
    assert consensus_lines(tmp_path, max_af=0.9)[1] == "GAG"


def test_allele_count_filter(tmp_path):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, min_ac=2, max_ac=2)[1] == "CTA"


@pytest.mark.parametrize("names", [["LowQual"], ["lowqual"]])
def test_keep_filtered(tmp_path, names):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, keep_filtered=names)[1] == "CTV"


def test_remove_filtered(tmp_path):
    assert consensus_lines(tmp_path, TWO_CHROMOSOMES, remove_filtered=["LowQual"])[1] == "YTA"


def test_filter_column_options_are_exclusive(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, TWO_CHROMOSOMES, keep_filtered=["PASS"], remove_filtered_all=True)


def test_positions_filter(tmp_path):
    assert consensus_lines(tmp_path, positions=["1-2"])[1] == "RRG"


@pytest.mark.parametrize(
    "option,expected",
    [
        ("positions", "GTTA(TG)"),
        ("positions_overlap", "G[TT]A(TG)"),
    ],
)
def test_positions_filter_on_deletion(tmp_path, option, expected):
    lines = consensus_lines(tmp_path, TWO_CHROMOSOMES, chromosome="chrB", **{option: ["4-8"]})
    assert lines[1] == expected


def test_exclude_positions_overlap(tmp_path):
    lines = consensus_lines(
        tmp_path, TWO_CHROMOSOMES, chromosome="chrB", exclude_positions_overlap=["5"]
    )
    assert lines[1] == "GTTA(TG)"
    lines = consensus_lines(tmp_path, TWO_CHROMOSOMES, chromosome="chrB", exclude_positions=["5"])
    assert lines[1] == "G[TT]A(TG)"


def test_invalid_positions(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, positions=["x"])


def test_missing_quality_fails_quality_filter(tmp_path):
    lines = consensus_lines(tmp_path, TWO_CHROMOSOMES, chromosome="chrB", min_quality=35)
    assert lines[1] == "GTTA(TG)"


def test_compressed_output(tmp_path):
    out = tmp_path / "consensus.fa.gz"
    run_consensus(CALLS, output=str(out))
    with xopen(out) as f:
        assert f.read() == ">ref|1-5|\nRRS\n"


def test_standard_output(capsysbinary):
    sequence = run_consensus(CALLS)
    assert sequence == b"RRS"
    assert capsysbinary.readouterr().out == b">ref|1-5|\nRRS\n"


def test_reference_not_indexed(tmp_path):
    with raises(CommandLineError) as info:
        consensus_lines(tmp_path, reference="tests/data/not-indexed.fasta")
    assert "samtools faidx" in str(info.value)


def test_unknown_chromosome_in_reference(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, reference=REFERENCE, chromosome="chrX")


def test_unsorted_vcf(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, "tests/data/unsorted.vcf")


def test_missing_vcf(tmp_path):
    with raises(CommandLineError):
        consensus_lines(tmp_path, "tests/data/does-not-exist.vcf")


def test_format_header():
    assert format_header("chr1", 1, 100) == ">chr1|1-100|"
    assert format_header(None, 5, None) == "> |5-?|"


def test_parse_window():
    assert parse_window(None) == (1, None)
    assert parse_window("4") == (4, 4)
    assert parse_window("4-9") == (4, 9)
    assert parse_window("5-") == (5, None)
    with raises(ConfigurationError):
        parse_window("0")
