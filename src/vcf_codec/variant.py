"""VCF data lines: decoding, encoding and biallelic type classification."""

from dataclasses import dataclass, field
from enum import Enum

from .errors import SchemaError
from .genotype import MISSING, Genotype
from .header import Header

MIN_COLUMNS = 8
FLAG_VALUE = "1"
PASS = "PASS"

# Any of these in an ALT allele marks it as symbolic, a breakend or a spanning deletion
SYMBOLIC_MARKERS = frozenset("*<[].")


class VariantType(Enum):
    """Classification of a variant from its REF and ALT alleles."""

    NO_VARIATION = "no_variation"
    SNP = "snp"
    MNP = "mnp"
    INDEL = "indel"
    SYMBOLIC = "symbolic"
    MIXED = "mixed"


def classify_allele(ref: str, alt: str) -> VariantType:
    """Classify a single REF/ALT pair."""
    if any(char in SYMBOLIC_MARKERS for char in alt):
        return VariantType.SYMBOLIC
    if len(ref) == len(alt):
        return VariantType.SNP if len(ref) == 1 else VariantType.MNP
    return VariantType.INDEL


def classify(ref: str, alts: list[str]) -> VariantType:
    """Classify a site; MIXED when its ALT alleles disagree."""
    if not alts:
        return VariantType.NO_VARIATION
    types = {classify_allele(ref, alt) for alt in alts}
    if len(types) == 1:
        return types.pop()
    return VariantType.MIXED


@dataclass
class Variant:
    """One VCF data line.

    ``filter`` is empty for unfiltered records; ``PASS`` and ``.`` are
    dropped on decode. Flag INFO keys are stored with the value ``"1"``.
    ``header`` is the header the record was read under and is only used
    for lookups.
    """

    chrom: str
    pos: int
    id: str = MISSING
    ref: str = ""
    alt: list[str] = field(default_factory=list)
    qual: str = MISSING
    filter: list[str] = field(default_factory=list)
    info: dict[str, str] = field(default_factory=dict)
    format: list[str] = field(default_factory=list)
    genotypes: list[Genotype] = field(default_factory=list)
    header: Header | None = field(default=None, repr=False, compare=False)

    def alleles(self) -> list[str]:
        """All alleles, REF first, so GT indices can be used directly."""
        return [self.ref, *self.alt]

    def sample(self, name: str) -> Genotype:
        for genotype in self.genotypes:
            if genotype.name == name:
                return genotype
        raise KeyError(f"no genotype for {name}")

    def genotype_alleles(self, genotype: Genotype | str) -> list[str]:
        """Resolve a genotype (or sample name) to allele strings at this site."""
        if isinstance(genotype, str):
            genotype = self.sample(genotype)
        return genotype.alleles(self.alleles())

    def add_genotype(self, genotype: Genotype) -> None:
        """Append a genotype whose values line up with this record's FORMAT.

        Raises:
            SchemaError: If the genotype has tags not in FORMAT or lacks one that is.
        """
        extra = [key for key in genotype.values if key not in self.format]
        if extra:
            raise SchemaError(
                f"genotype {genotype.name!r} contains tags not listed in FORMAT: {', '.join(extra)}"
            )
        for tag in self.format:
            if tag not in genotype.values:
                raise SchemaError(f"genotype {genotype.name!r} is missing {tag} key")
        self.genotypes.append(genotype)

    def has_attribute(self, key: str) -> bool:
        return key in self.info

    def attribute(self, key: str) -> str:
        try:
            return self.info[key]
        except KeyError:
            raise KeyError(f"no such info: {key}") from None

    def attribute_as_int(self, key: str) -> int:
        value = self.attribute(key)
        try:
            return int(value)
        except ValueError:
            raise SchemaError(f"unable to convert {key}={value!r} to int") from None

    def attribute_as_float(self, key: str) -> float:
        value = self.attribute(key)
        try:
            return float(value)
        except ValueError:
            raise SchemaError(f"unable to convert {key}={value!r} to float") from None

    def qual_as_float(self) -> float | None:
        if not self.qual or self.qual == MISSING:
            return None
        try:
            return float(self.qual)
        except ValueError:
            raise SchemaError(f"unable to convert QUAL {self.qual!r} to float") from None

    def is_filtered(self) -> bool:
        return any(f not in (PASS, MISSING) for f in self.filter)

    @property
    def variant_type(self) -> VariantType:
        return classify(self.ref, self.alt)

    def is_snp(self) -> bool:
        return self.variant_type is VariantType.SNP

    def is_indel(self) -> bool:
        return self.variant_type is VariantType.INDEL

    def consequences(self) -> list[dict[str, str]]:
        """Split the CSQ INFO value into one dict per annotation.

        Keys come from the header's CSQ Format declaration; annotations
        with the wrong number of fields are skipped.
        """
        if self.header is None or "CSQ" not in self.info:
            return []
        keys = self.header.csq_keys()
        if not keys:
            return []
        annotations = []
        for annotation in self.info["CSQ"].split(","):
            values = annotation.split("|")
            if len(values) != len(keys):
                continue
            annotations.append(dict(zip(keys, values, strict=True)))
        return annotations

    def _is_flag(self, key: str, header: Header | None) -> bool:
        if header is None:
            return False
        line = header.find("INFO", key)
        return line is not None and line.get("Type") == "Flag"

    def _info_column(self, bare_flags: bool, header: Header | None) -> str:
        if not self.info:
            return MISSING
        entries = []
        for key, value in self.info.items():
            if bare_flags and value == FLAG_VALUE and self._is_flag(key, header):
                entries.append(key)
            else:
                entries.append(f"{key}={value}")
        return ";".join(entries)

    def to_vcf_line(self, bare_flags: bool = True, header: Header | None = None) -> str:
        """Encode the record as a tab-separated data line (without newline).

        Flag INFO keys are written bare when ``bare_flags`` is set and
        ``header`` (or the record's own header) declares them Type=Flag.
        FORMAT and sample columns are only written when there are genotypes.
        """
        header = header or self.header
        columns = [
            self.chrom,
            str(self.pos),
            self.id or MISSING,
            self.ref,
            ",".join(self.alt) if self.alt else MISSING,
            self.qual or MISSING,
            ";".join(self.filter) if self.filter else MISSING,
            self._info_column(bare_flags, header),
        ]
        if self.genotypes:
            columns.append(":".join(self.format))
            columns.extend(g.to_vcf_field(self.format) for g in self.genotypes)
        return "\t".join(columns)

    def __str__(self) -> str:
        return self.to_vcf_line()


def _parse_info(column: str) -> dict[str, str]:
    info: dict[str, str] = {}
    if column == MISSING:
        return info
    for entry in column.split(";"):
        if not entry:
            continue
        key, sep, value = entry.partition("=")
        info[key] = value if sep else FLAG_VALUE
    return info


def _parse_filter(column: str) -> list[str]:
    return [f for f in column.split(";") if f not in (PASS, MISSING, "")]


def parse_variant_line(
    line: str, samples: list[str], header: Header | None = None
) -> Variant:
    """Decode one tab-separated data line.

    Args:
        line: The raw record text.
        samples: Sample names in header order, one per sample column.
        header: Header to attach to the decoded variant for lookups.

    Raises:
        SchemaError: If the line has fewer than 8 columns, POS is not an
            integer, the sample columns do not match ``samples`` or a GT is
            malformed.
    """
    columns = line.rstrip("\r\n").split("\t")
    if len(columns) < MIN_COLUMNS:
        raise SchemaError(f"less than 8 columns found in VCF line: {line!r}")
    try:
        pos = int(columns[1])
    except ValueError:
        raise SchemaError(f"unable to convert position {columns[1]!r}") from None

    variant = Variant(
        chrom=columns[0],
        pos=pos,
        id=columns[2],
        ref=columns[3],
        alt=[] if columns[4] == MISSING else columns[4].split(","),
        qual=columns[5],
        filter=_parse_filter(columns[6]),
        info=_parse_info(columns[7]),
        header=header,
    )
    if len(columns) > MIN_COLUMNS:
        variant.format = columns[8].split(":")

    sample_columns = columns[MIN_COLUMNS + 1:]
    if len(columns) > MIN_COLUMNS and len(sample_columns) != len(samples):
        raise SchemaError(
            f"record at {variant.chrom}:{variant.pos} has {len(sample_columns)} sample "
            f"columns but the header declares {len(samples)} samples"
        )

    for name, column in zip(samples, sample_columns, strict=False):
        values = column.split(":")
        if len(values) > len(variant.format):
            raise SchemaError(
                f"sample {name!r} at {variant.chrom}:{variant.pos} has more values than FORMAT: {column!r}"
            )
        # Trailing FORMAT fields may be dropped from a sample column
        values.extend([MISSING] * (len(variant.format) - len(values)))
        genotype = Genotype.from_attributes(name, dict(zip(variant.format, values, strict=True)))
        variant.add_genotype(genotype)

    return variant
