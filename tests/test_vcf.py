from pytest import raises

from vcfconsensus.vcf import (
    VariantRecord,
    VcfNotSortedError,
    VcfReader,
    is_symbolic,
    parse_allele_counts,
    parse_allele_frequencies,
    parse_allele_frequency,
    parse_depth,
)


def test_read_calls():
    with VcfReader("tests/data/calls.vcf") as reader:
        variants = list(reader.variants("ref"))
        assert reader.chromosome == "ref"
        assert reader.samples == []
    assert [v.position for v in variants] == [1, 2, 3]
    first = variants[0]
    assert first.chromosome == "ref"
    assert first.reference == b"G"
    assert first.alternatives == (b"A",)
    assert first.allele_frequency == 0.94
    assert first.depth == 20
    assert first.quality == 50.0
    assert first.filters == ("PASS",)
    assert first.end == 1


def test_first_chromosome_is_default():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        assert reader.chromosome is None
        variants = list(reader.variants())
        assert reader.chromosome == "chrA"
    assert [v.position for v in variants] == [2, 4, 6]
    assert all(v.chromosome == "chrA" for v in variants)
    assert variants[0].allele_counts == (1,)
    assert variants[0].allele_frequencies == (0.5,)


def test_symbolic_allele_is_dropped():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        variants = list(reader.variants("chrA"))
    assert variants[1].reference == b"T"
    assert variants[1].alternatives == ()


def test_multiallelic_record():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        variant = list(reader.variants("chrA"))[2]
    assert variant.alternatives == (b"C", b"G")
    assert variant.filters == ("LowQual",)
    assert variant.allele_frequency is None
    assert variant.depth is None
    assert variant.allele_counts == (3, 1)
    assert variant.allele_frequencies == ()


def test_select_chromosome():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        variants = list(reader.variants("chrB"))
    assert [v.position for v in variants] == [3, 7]
    deletion, insertion = variants
    assert deletion.reference == b"GTT"
    assert deletion.end == 5
    assert deletion.quality is None
    assert deletion.filters == ()
    assert deletion.allele_frequency == 0.25
    assert deletion.is_indel()
    assert insertion.alternatives == (b"ATG",)
    assert insertion.depth == 5


def test_unknown_chromosome():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        assert list(reader.variants("chrX")) == []


def test_contig_length():
    with VcfReader("tests/data/two-chromosomes.vcf") as reader:
        assert reader.contig_length("chrA") == 10
        assert reader.contig_length("chrB") == 8
        assert reader.contig_length("chrX") is None


def test_unsorted_file():
    with VcfReader("tests/data/unsorted.vcf") as reader:
        with raises(VcfNotSortedError):
            list(reader.variants())


def test_is_indel():
    assert not VariantRecord(1, b"A", (b"C",)).is_indel()
    assert not VariantRecord(1, b"A").is_indel()
    assert VariantRecord(1, b"A", (b"C", b"CA")).is_indel()


def test_is_symbolic():
    assert is_symbolic("<DEL>")
    assert is_symbolic("*")
    assert is_symbolic("G]17:198982]")
    assert not is_symbolic("ACGT")


def test_parse_allele_frequency():
    assert parse_allele_frequency(0.9399999976158142) == 0.94
    assert parse_allele_frequency((0.25, 0.5)) == 0.25
    assert parse_allele_frequency(None) is None
    assert parse_allele_frequency(()) is None
    assert parse_allele_frequency("abc") is None


def test_parse_depth():
    assert parse_depth(12) == 12
    assert parse_depth((7,)) == 7
    assert parse_depth(None) is None


def test_parse_allele_frequencies():
    assert parse_allele_frequencies((0.9399999976158142, None, 0.5)) == (0.94, 0.5)
    assert parse_allele_frequencies(0.25) == (0.25,)
    assert parse_allele_frequencies(None) == ()


def test_parse_allele_counts():
    assert parse_allele_counts((3, 1)) == (3, 1)
    assert parse_allele_counts(2) == (2,)
    assert parse_allele_counts(None) == ()
