"""VCF header model: metadata lines, format version and sample names."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .errors import GrammarError, RequiredTagMissing, SchemaError
from .tag_grammar import format_tags, parse_tags

logger = logging.getLogger(__name__)

METADATA_PREFIX = "##"
COLUMN_HEADER_PREFIX = "#CHROM"
FIXED_COLUMNS = ("#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO")
DEFAULT_VERSION = 4.2

REQUIRED_TAGS: dict[str, tuple[str, ...]] = {
    "FILTER": ("ID", "Description"),
    "ALT": ("ID", "Description"),
    "FORMAT": ("ID", "Number", "Type", "Description"),
    "INFO": ("ID", "Number", "Type", "Description"),
    "contig": ("ID",),
}

# Written first, in this order, when present
LEADING_TAGS = ("ID", "Number", "Type", "Description")
BARE_TAGS = ("ID", "Number", "Type")
CONTIG_BARE_TAGS = ("ID", "length")

CATEGORY_KEYS = ("FILTER", "INFO", "FORMAT", "contig")

_KEY_PATTERN = re.compile(r"##(.+?)=")
_CSQ_FORMAT_PATTERN = re.compile(r"Format:\s*(.+)$")
# contig values are written bare unless they would break the tag list
_CONTIG_QUOTE_PATTERN = re.compile(r"[,\"<>\s]")


def validate_required_tags(key: str, tags: Mapping[str, str], line: str = "") -> None:
    """Check that a structured line carries the tags its kind requires.

    Raises:
        RequiredTagMissing: Naming the first missing tag.
    """
    for tag in REQUIRED_TAGS.get(key, ()):
        if tag not in tags:
            raise RequiredTagMissing(key, tag, line)


@dataclass(frozen=True)
class HeaderLine:
    """One metadata declaration from a VCF header.

    A line is either simple (``##key=value``) or structured
    (``##key=<ID=...,...>``); ``value`` is ``None`` for structured lines.
    Structured tags are kept as ``(name, value)`` pairs in declaration order.
    """

    key: str
    value: str | None = None
    tags: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        if self.value is not None and self.tags:
            raise ValueError(f"header line {self.key} cannot have both a value and tags")

    @classmethod
    def simple(cls, key: str, value: str) -> "HeaderLine":
        """Create a ``##key=value`` line."""
        return cls(key=key, value=value)

    @classmethod
    def structured(cls, key: str, tags: Mapping[str, str]) -> "HeaderLine":
        """Create a ``##key=<...>`` line, validating the required tags for ``key``."""
        validate_required_tags(key, tags)
        return cls(key=key, tags=tuple(tags.items()))

    @property
    def is_structured(self) -> bool:
        return self.value is None

    @property
    def mapping(self) -> dict[str, str]:
        return dict(self.tags)

    @property
    def id(self) -> str:
        """The ``ID`` tag, or an empty string when the line has none."""
        return self.get("ID", "")

    def get(self, tag: str, default: str | None = None) -> str | None:
        for name, value in self.tags:
            if name == tag:
                return value
        return default

    def to_vcf_line(self) -> str:
        """Render the line as it appears in a VCF header."""
        if not self.is_structured:
            return f"{METADATA_PREFIX}{self.key}={self.value}"

        mapping = self.mapping
        ordered = [(tag, mapping[tag]) for tag in LEADING_TAGS if tag in mapping]
        ordered.extend((tag, value) for tag, value in self.tags if tag not in LEADING_TAGS)

        if self.key == "contig":
            unquoted = {
                tag
                for tag, value in ordered
                if tag in CONTIG_BARE_TAGS or not _CONTIG_QUOTE_PATTERN.search(value)
            }
        else:
            unquoted = set(BARE_TAGS)
        return f"{METADATA_PREFIX}{self.key}={format_tags(ordered, unquoted)}"

    def __str__(self) -> str:
        return self.to_vcf_line()


def parse_header_line(line: str) -> HeaderLine:
    """Parse one ``##`` metadata line.

    The line is structured only when the text after ``##KEY=`` starts with
    ``<``. Any other value, including one that contains ``<`` further in,
    is kept verbatim as a simple value.

    Raises:
        GrammarError: If the line has no ``##KEY=`` prefix or its tag list is malformed.
        RequiredTagMissing: If a structured line lacks a required tag.
    """
    match = _KEY_PATTERN.match(line)
    if match is None:
        raise GrammarError(f"malformed header line: {line}")
    key = match.group(1)
    rest = line[match.end():]

    if rest.startswith("<"):
        try:
            tags = parse_tags(rest)
        except GrammarError as e:
            raise GrammarError(f"failed to parse header line {line!r}: {e}") from e
        validate_required_tags(key, tags, line)
        return HeaderLine(key=key, tags=tuple(tags.items()))

    return HeaderLine(key=key, value=rest)


def parse_version(value: str) -> float:
    """Parse a ``fileformat`` value such as ``VCFv4.2``."""
    try:
        return float(value.removeprefix("VCFv"))
    except ValueError:
        raise SchemaError(f"unable to parse version: {value}") from None


@dataclass
class Header:
    """A parsed VCF header.

    ``lines`` keeps insertion order, which is also the order lines are
    emitted within each section. ``samples`` defines the genotype column
    order of every record.
    """

    version: float = DEFAULT_VERSION
    lines: list[HeaderLine] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)

    def add_header_lines(self, *lines: HeaderLine) -> None:
        self.lines.extend(lines)

    def _lines_for(self, key: str) -> list[HeaderLine]:
        return [line for line in self.lines if line.key == key]

    def filters(self) -> list[HeaderLine]:
        return self._lines_for("FILTER")

    def infos(self) -> list[HeaderLine]:
        return self._lines_for("INFO")

    def formats(self) -> list[HeaderLine]:
        return self._lines_for("FORMAT")

    def contigs(self) -> list[HeaderLine]:
        return self._lines_for("contig")

    def others(self) -> list[HeaderLine]:
        """All lines that are not FILTER, INFO, FORMAT or contig."""
        return [line for line in self.lines if line.key not in CATEGORY_KEYS]

    def find(self, key: str, id_: str) -> HeaderLine | None:
        """Return the first ``key`` line whose ID is ``id_``."""
        for line in self._lines_for(key):
            if line.id == id_:
                return line
        return None

    def has_id(self, key: str, id_: str) -> bool:
        return self.find(key, id_) is not None

    def csq_keys(self) -> list[str]:
        """Return the CSQ annotation layout declared in the INFO Description.

        VEP writes it as ``Description="... Format: Allele|Consequence|..."``.
        """
        csq = self.find("INFO", "CSQ")
        if csq is None:
            return []
        match = _CSQ_FORMAT_PATTERN.search(csq.get("Description", ""))
        if match is None:
            return []
        return [key.strip() for key in match.group(1).split("|")]

    def column_header(self) -> str:
        columns = list(FIXED_COLUMNS)
        if self.samples:
            columns.append("FORMAT")
            columns.extend(self.samples)
        return "\t".join(columns)

    def to_vcf_lines(self) -> list[str]:
        """Serialize the header.

        Sections are written as fileformat, FILTER, FORMAT, INFO, other
        lines, contig and finally the column header line.
        """
        out = [f"{METADATA_PREFIX}fileformat=VCFv{self.version:.1f}"]
        out.extend(line.to_vcf_line() for line in self.filters())
        out.extend(line.to_vcf_line() for line in self.formats())
        out.extend(line.to_vcf_line() for line in self.infos())
        out.extend(
            line.to_vcf_line() for line in self.others() if line.key != "fileformat"
        )
        out.extend(line.to_vcf_line() for line in self.contigs())
        out.append(self.column_header())
        return out


def parse_header(header_lines: Iterable[str]) -> Header:
    """Build a Header from raw header text lines.

    Raises:
        SchemaError: If there is no ``fileformat`` line, the version is not
            numeric or a sample name is repeated.
        GrammarError: If a metadata line is malformed.
    """
    header = Header(version=0.0)
    for raw in header_lines:
        line = raw.rstrip("\r\n")
        if line.startswith(METADATA_PREFIX):
            header_line = parse_header_line(line)
            if header_line.key == "fileformat" and not header_line.is_structured:
                header.version = parse_version(header_line.value)
            header.add_header_lines(header_line)
        elif line.startswith(COLUMN_HEADER_PREFIX):
            columns = line.split("\t")
            if len(columns) > 9:
                header.samples = columns[9:]

    if header.version == 0:
        raise SchemaError("VCF has no version number")

    seen: set[str] = set()
    for sample in header.samples:
        if sample in seen:
            raise SchemaError(f"duplicate sample name in header: {sample}")
        seen.add(sample)

    logger.debug(
        "Parsed VCF header v%s with %d lines and %d samples",
        header.version,
        len(header.lines),
        len(header.samples),
    )
    return header


def standard_header_lines() -> list[HeaderLine]:
    """Return the FILTER, FORMAT and INFO lines most VCF writers declare."""
    return [
        HeaderLine.structured("FILTER", {"ID": "PASS", "Description": "All filters passed"}),
        HeaderLine.structured(
            "FORMAT",
            {"ID": "GT", "Number": "1", "Type": "String", "Description": "Genotype"},
        ),
        HeaderLine.structured(
            "INFO",
            {
                "ID": "AC",
                "Number": "A",
                "Type": "Integer",
                "Description": "Allele count in genotypes, for each ALT allele, "
                "in the same order as listed",
            },
        ),
        HeaderLine.structured(
            "INFO",
            {
                "ID": "AF",
                "Number": "A",
                "Type": "Float",
                "Description": "Allele Frequency, for each ALT allele, in the same order as listed",
            },
        ),
        HeaderLine.structured(
            "INFO",
            {
                "ID": "AN",
                "Number": "1",
                "Type": "Integer",
                "Description": "Total number of alleles in called genotypes",
            },
        ),
    ]
