"""Header-validated emission of VCF records."""

import logging
from pathlib import Path

from .bcftools import BcftoolsSink
from .config import CodecConfig
from .errors import ConsistencyError
from .header import Header
from .sources import LineSink
from .variant import Variant

logger = logging.getLogger(__name__)


def validate_variant(header: Header, variant: Variant) -> None:
    """Check that ``variant`` only uses what ``header`` declares.

    Checks run in order and the first failure is raised:

    1. CHROM is a declared contig (only when the header declares contigs).
    2. Every FILTER is declared.
    3. Every INFO key is declared.
    4. Every FORMAT tag is declared.
    5. Genotypes are only present with a FORMAT column, and each one has
       exactly the FORMAT tags.
    6. The genotype sample names equal the header samples, in order.

    Raises:
        ConsistencyError: Describing the first mismatch.
    """
    contigs = header.contigs()
    # contig lines are optional, so only check when some are declared
    if contigs and not any(c.id == variant.chrom for c in contigs):
        raise ConsistencyError(f"header missing contig {variant.chrom}")

    for f in variant.filter:
        if not header.has_id("FILTER", f):
            raise ConsistencyError(f"filter {f} not found in header")

    for key in variant.info:
        if not header.has_id("INFO", key):
            raise ConsistencyError(f"info {key} not found in header")

    for tag in variant.format:
        if not header.has_id("FORMAT", tag):
            raise ConsistencyError(f"format {tag} not found in header")

    if variant.genotypes and not variant.format:
        raise ConsistencyError("genotypes present but FORMAT is empty")
    for genotype in variant.genotypes:
        missing = [tag for tag in variant.format if tag not in genotype.values]
        if missing:
            raise ConsistencyError(
                f"genotype {genotype.name} is missing format {', '.join(missing)}"
            )
        extra = [key for key in genotype.values if key not in variant.format]
        if extra:
            raise ConsistencyError(
                f"genotype {genotype.name} has tags not in FORMAT: {', '.join(extra)}"
            )

    names = [g.name for g in variant.genotypes]
    if names != header.samples:
        raise ConsistencyError(
            f"the genotype samples {names} do not match the samples in the header {header.samples}"
        )


class VCFWriter:
    """Writes a header and then validated records to a LineSink.

    A rejected record raises ConsistencyError and leaves the writer usable;
    records written before it are not rolled back.
    """

    def __init__(self, sink: LineSink, bare_flags: bool = True):
        self._sink = sink
        self._bare_flags = bare_flags
        self.header: Header | None = None
        self.written = 0
        self.rejected = 0

    def write_header(self, header: Header) -> None:
        self.header = header
        for line in header.to_vcf_lines():
            self._sink.write_line(line)

    def write_variant(self, variant: Variant) -> None:
        """Validate ``variant`` against the header and emit it.

        Raises:
            ConsistencyError: If no header has been written or the variant
                does not match it.
        """
        if self.header is None:
            raise ConsistencyError("writer has no header, unable to add variants")
        try:
            validate_variant(self.header, variant)
        except ConsistencyError as e:
            self.rejected += 1
            logger.warning("Rejected %s:%s: %s", variant.chrom, variant.pos, e)
            raise
        self._sink.write_line(variant.to_vcf_line(self._bare_flags, self.header))
        self.written += 1

    def close(self) -> None:
        logger.debug("Closing writer: %d written, %d rejected", self.written, self.rejected)
        self._sink.close()

    def __enter__(self) -> "VCFWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_writer(path: Path | str, config: CodecConfig | None = None) -> VCFWriter:
    """Open a writer that commits to ``path`` through bcftools."""
    config = config or CodecConfig()
    sink = BcftoolsSink(path, bcftools=config.bcftools_path)
    return VCFWriter(sink, bare_flags=config.emit_flag_info_bare)
