"""Pytest configuration and fixtures for vcf-codec tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fixtures.vcf_generator import (  # noqa: E402
    TRIO_SAMPLES,
    VCFGenerator,
    make_sites_only_vcf_file,
    make_trio_variants,
    make_trio_vcf_file,
)

from vcf_codec.header import Header, parse_header  # noqa: E402


@pytest.fixture
def trio_header() -> Header:
    """Parsed header of the synthetic trio VCF."""
    return parse_header(VCFGenerator.header_lines(TRIO_SAMPLES))


@pytest.fixture
def trio_record_lines() -> list[str]:
    """Raw data lines of the synthetic trio VCF."""
    return VCFGenerator.record_lines(make_trio_variants(), TRIO_SAMPLES)


@pytest.fixture
def trio_vcf(tmp_path) -> Path:
    """Plain-text trio VCF on disk."""
    return make_trio_vcf_file(tmp_path)


@pytest.fixture
def sites_vcf(tmp_path) -> Path:
    """Plain-text sites-only VCF on disk."""
    return make_sites_only_vcf_file(tmp_path)
