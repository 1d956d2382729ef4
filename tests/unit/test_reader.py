"""Tests for header reading, the variant scanner and the VCF file handle."""

from unittest.mock import patch

import pytest

from vcf_codec.bcftools import BcftoolsHeaderSource, BcftoolsLineSource
from vcf_codec.config import CodecConfig
from vcf_codec.errors import SchemaError, ToolError, UnsupportedOperation
from vcf_codec.reader import VCF, VariantScanner, read_header
from vcf_codec.sources import MemoryHeaderSource, MemoryLineSource, PlainTextSource


class FailingLineSource:
    """Yields some lines and then fails like a crashed subprocess."""

    def __init__(self, lines):
        self._lines = lines
        self.closed = False

    def __iter__(self):
        yield from self._lines
        raise ToolError("bcftools view failed")

    def close(self):
        self.closed = True


class TestReadHeader:
    """Tests for read_header."""

    def test_from_memory(self, trio_header):
        """Header lines from any HeaderSource should parse."""
        header = read_header(MemoryHeaderSource(trio_header.to_vcf_lines()))
        assert header.samples == trio_header.samples


class TestVariantScanner:
    """Tests for VariantScanner."""

    def test_scan_loop(self, trio_header, trio_record_lines):
        """scan()/variant() should yield every record in order."""
        scanner = VariantScanner(trio_header, MemoryLineSource(trio_record_lines))
        positions = []
        while scanner.scan():
            positions.append(scanner.variant().pos)
        assert positions == [1000, 2000, 43094464]
        assert scanner.err is None
        assert scanner.records_read == 3

    def test_iteration(self, trio_header, trio_record_lines):
        """Iterating the scanner should follow the same contract."""
        scanner = VariantScanner(trio_header, MemoryLineSource(trio_record_lines))
        assert [v.chrom for v in scanner] == ["chr1", "chr2", "chr17"]
        scanner.check()

    def test_variants_carry_header(self, trio_header, trio_record_lines):
        """Decoded variants should keep the header for lookups."""
        scanner = VariantScanner(trio_header, MemoryLineSource(trio_record_lines))
        variants = list(scanner)
        assert variants[2].consequences()[0]["SYMBOL"] == "BRCA1"

    def test_skips_blank_and_comment_lines(self, trio_header, trio_record_lines):
        """Blank and '#' lines should be ignored."""
        lines = ["", "#comment", trio_record_lines[0], ""]
        assert len(list(VariantScanner(trio_header, MemoryLineSource(lines)))) == 1

    def test_parse_error_stops_scan(self, trio_header, trio_record_lines):
        """A malformed line should stop the scan and be reported through err."""
        source = MemoryLineSource([trio_record_lines[0], "chr1\tbad", trio_record_lines[1]])
        scanner = VariantScanner(trio_header, source)
        assert scanner.scan()
        assert not scanner.scan()
        assert isinstance(scanner.err, SchemaError)
        assert source.closed
        assert not scanner.scan()
        with pytest.raises(SchemaError):
            scanner.check()

    def test_source_error_stops_scan(self, trio_header, trio_record_lines):
        """A failing source should surface through err."""
        source = FailingLineSource(trio_record_lines[:1])
        scanner = VariantScanner(trio_header, source)
        assert len(list(scanner)) == 1
        assert isinstance(scanner.err, ToolError)
        assert source.closed

    def test_early_close_is_not_an_error(self, trio_header, trio_record_lines):
        """Closing before the end should stop cleanly."""
        source = MemoryLineSource(trio_record_lines)
        with VariantScanner(trio_header, source) as scanner:
            assert scanner.scan()
        assert source.closed
        assert scanner.err is None
        assert not scanner.scan()

    def test_variant_before_scan(self, trio_header):
        """variant() without a successful scan() is a programming error."""
        scanner = VariantScanner(trio_header, MemoryLineSource([]))
        with pytest.raises(RuntimeError):
            scanner.variant()


class TestPlainTextSource:
    """Tests for PlainTextSource."""

    def test_header_and_records(self, trio_vcf, trio_header):
        """Header lines end at #CHROM and records follow."""
        source = PlainTextSource(trio_vcf)
        assert source.read_header_lines() == trio_header.to_vcf_lines()
        lines = list(source)
        assert len(lines) == 3
        assert all(not line.endswith("\n") for line in lines)

    def test_rejects_compressed(self, tmp_path):
        """Compressed and binary files need bcftools."""
        for name in ("a.vcf.gz", "a.bcf"):
            with pytest.raises(UnsupportedOperation):
                PlainTextSource(tmp_path / name)

    def test_close_during_iteration(self, trio_vcf):
        """Closing the generator should release the file."""
        source = PlainTextSource(trio_vcf)
        lines = iter(source)
        next(lines)
        lines.close()
        assert source._handle is None


class TestVCF:
    """Tests for VCF.open and its record sources."""

    def test_missing_file(self, tmp_path):
        """Opening a missing file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            VCF.open(tmp_path / "missing.vcf")

    @patch("vcf_codec.reader.find_bcftools", side_effect=ToolError("unable to find bcftools binary"))
    def test_plain_text_fallback(self, mock_find, trio_vcf):
        """Without bcftools a plain .vcf should still be readable."""
        vcf = VCF.open(trio_vcf)
        assert vcf.plain_text
        assert vcf.header.samples == ["proband", "father", "mother"]
        with vcf.scanner() as scanner:
            assert [v.pos for v in scanner] == [1000, 2000, 43094464]

    @patch("vcf_codec.reader.find_bcftools", side_effect=ToolError("unable to find bcftools binary"))
    def test_plain_text_regions_unsupported(self, mock_find, trio_vcf):
        """Region queries need an index and therefore bcftools."""
        vcf = VCF.open(trio_vcf)
        with pytest.raises(UnsupportedOperation):
            vcf.records("chr1:1-2000")

    @patch("vcf_codec.reader.find_bcftools", side_effect=ToolError("unable to find bcftools binary"))
    def test_compressed_needs_bcftools(self, mock_find, tmp_path):
        """A compressed file without bcftools should raise ToolError."""
        path = tmp_path / "x.vcf.gz"
        path.write_bytes(b"")
        with pytest.raises(ToolError):
            VCF.open(path)

    @patch("vcf_codec.reader.find_bcftools", return_value="/usr/bin/bcftools")
    def test_uses_bcftools_when_available(self, mock_find, trio_vcf, trio_header):
        """With bcftools present the header comes from bcftools view -h."""
        with patch.object(
            BcftoolsHeaderSource, "read_header_lines", return_value=trio_header.to_vcf_lines()
        ):
            vcf = VCF.open(trio_vcf, CodecConfig(bcftools_path="/usr/bin/bcftools"))
        assert not vcf.plain_text
        source = vcf.records("chr1")
        assert isinstance(source, BcftoolsLineSource)
        assert source.regions == "chr1"
