"""Pull-based reading of VCF records."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from .bcftools import BcftoolsHeaderSource, BcftoolsLineSource, find_bcftools
from .config import CodecConfig
from .errors import ToolError, UnsupportedOperation, VCFError
from .header import Header, parse_header
from .sources import HeaderSource, LineSource, PlainTextSource
from .variant import Variant, parse_variant_line

logger = logging.getLogger(__name__)


def read_header(source: HeaderSource) -> Header:
    """Parse the header supplied by ``source``."""
    return parse_header(source.read_header_lines())


class VariantScanner:
    """Decodes one Variant per ``scan()`` from a LineSource.

    Usage mirrors a scanner: call ``scan()`` until it returns False, read
    the current record with ``variant()``, then check ``err``. A malformed
    line or a failing source stops the scan and is reported through
    ``err`` rather than raised. Iterating the scanner follows the same
    contract.
    """

    def __init__(self, header: Header, source: LineSource):
        self.header = header
        self._source = source
        self._lines: Iterator[str] | None = None
        self._variant: Variant | None = None
        self._err: Exception | None = None
        self._done = False
        self.records_read = 0

    @property
    def err(self) -> Exception | None:
        return self._err

    def scan(self) -> bool:
        """Advance to the next record; False at end of stream or on error."""
        if self._done:
            return False
        if self._lines is None:
            logger.debug("Starting scan with %d samples", len(self.header.samples))
            self._lines = iter(self._source)

        while True:
            try:
                line = next(self._lines)
            except StopIteration:
                self._finish()
                return False
            except (VCFError, OSError) as e:
                self._fail(e)
                return False

            if not line or line.startswith("#"):
                continue
            try:
                self._variant = parse_variant_line(line, self.header.samples, self.header)
            except VCFError as e:
                self._fail(e)
                return False
            self.records_read += 1
            return True

    def variant(self) -> Variant:
        """The record decoded by the last successful ``scan()``."""
        if self._variant is None:
            raise RuntimeError("scan() has not produced a variant")
        return self._variant

    def check(self) -> None:
        """Raise the error that stopped the scan, if there was one."""
        if self._err is not None:
            raise self._err

    def close(self) -> None:
        """Stop early. Not an error: ``err`` stays unset."""
        if not self._done:
            logger.debug("Scan closed after %d records", self.records_read)
        self._finish()

    def _fail(self, error: Exception) -> None:
        logger.debug("Scan stopped after %d records: %s", self.records_read, error)
        self._err = error
        self._finish()

    def _finish(self) -> None:
        self._done = True
        self._variant = None
        close_lines = getattr(self._lines, "close", None)
        if close_lines is not None:
            close_lines()
        self._source.close()

    def __iter__(self) -> Iterator[Variant]:
        while self.scan():
            yield self.variant()

    def __enter__(self) -> "VariantScanner":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


@dataclass
class VCF:
    """A VCF, BCF or bgzipped VCF file together with its parsed header."""

    path: Path
    header: Header
    config: CodecConfig = field(default_factory=CodecConfig)
    plain_text: bool = False

    @classmethod
    def open(cls, path: Path | str, config: CodecConfig | None = None) -> "VCF":
        """Read the header of ``path``.

        Uses bcftools when it is available. An uncompressed ``.vcf`` is read
        directly when it is not.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            ToolError: If bcftools is needed but missing, or fails.
        """
        config = config or CodecConfig()
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"VCF file not found: {path}")

        try:
            find_bcftools(config.bcftools_path)
        except ToolError:
            if not path.name.endswith(".vcf"):
                raise
            logger.info("bcftools not found, reading %s as plain text", path)
            header = read_header(PlainTextSource(path))
            return cls(path=path, header=header, config=config, plain_text=True)

        header = read_header(BcftoolsHeaderSource(path, config.bcftools_path))
        return cls(path=path, header=header, config=config)

    def records(self, regions: str | None = None) -> LineSource:
        if self.plain_text:
            if regions:
                raise UnsupportedOperation("region queries require bcftools")
            return PlainTextSource(self.path)
        return BcftoolsLineSource(self.path, regions, self.config.bcftools_path)

    def scanner(self, regions: str | None = None) -> VariantScanner:
        """Start a scan over the file's records, optionally restricted to ``regions``."""
        return VariantScanner(self.header, self.records(regions))
