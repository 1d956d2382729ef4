"""Per-sample genotype calls.

A Genotype holds no reference to the variant it belongs to. Queries that
need the variant's alleles or FORMAT order take them as arguments; see
``Variant.genotype_alleles`` for the usual entry point.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .errors import AlleleReferenceError, SchemaError

MISSING = "."
PHASED_SEPARATOR = "|"
UNPHASED_SEPARATOR = "/"

# Non-standard calls seen in the wild, mapped to what they mean. The TSO500
# Local App writes 1/. when every AD read supports ALT but DP is higher.
GT_REWRITES = {"1/.": "1/1"}


def _parse_index(token: str, gt: str) -> int:
    if not (token.isascii() and token.isdigit()):
        raise SchemaError(f"unable to convert {token!r} in GT {gt!r} to an allele index")
    return int(token)


@dataclass
class Genotype:
    """One sample's call at one variant.

    ``values`` is keyed by the owning variant's FORMAT tags. An empty
    ``allele_indexes`` means the sample was not called.
    """

    name: str
    values: dict[str, str] = field(default_factory=dict)
    allele_indexes: tuple[int, ...] = ()
    phased: bool = False

    @classmethod
    def from_attributes(cls, name: str, attributes: Mapping[str, str]) -> "Genotype":
        """Build a genotype from raw FORMAT values, parsing GT if present.

        GT is optional; when present its tokens must be allele indices or
        all missing (``.``, ``./.``, ``.|.``).

        Raises:
            SchemaError: If a GT token is not a non-negative integer.
        """
        values = dict(attributes)
        gt = values.get("GT")
        if gt is None:
            return cls(name=name, values=values)

        gt = GT_REWRITES.get(gt, gt)
        phased = PHASED_SEPARATOR in gt
        separator = PHASED_SEPARATOR if phased else UNPHASED_SEPARATOR
        tokens = gt.split(separator)
        if all(token == MISSING for token in tokens):
            return cls(name=name, values=values)

        indexes = tuple(_parse_index(token, gt) for token in tokens)
        return cls(name=name, values=values, allele_indexes=indexes, phased=phased)

    @property
    def gt(self) -> str | None:
        return self.values.get("GT")

    def ploidy(self) -> int:
        """Number of parsed allele indices; 0 for a no-call."""
        return len(self.allele_indexes)

    def is_phased(self) -> bool:
        return self.phased

    def is_called(self) -> bool:
        """True if GT is present and none of its alleles is missing."""
        gt = self.gt
        if gt is None:
            return False
        separator = PHASED_SEPARATOR if self.phased else UNPHASED_SEPARATOR
        return all(token != MISSING for token in gt.split(separator))

    def is_no_call(self) -> bool:
        return not self.is_called()

    # Zygosity is read from the parsed indices alone, so the 1/. rewrite
    # counts as hom-var even though is_called() is False for it.

    def is_hom(self) -> bool:
        indexes = self.allele_indexes
        return bool(indexes) and all(i == indexes[0] for i in indexes)

    def is_hom_ref(self) -> bool:
        return self.is_hom() and self.allele_indexes[0] == 0

    def is_hom_var(self) -> bool:
        return self.is_hom() and self.allele_indexes[0] != 0

    def is_het(self) -> bool:
        return bool(self.allele_indexes) and not self.is_hom()

    def is_het_non_ref(self) -> bool:
        return self.is_het() and 0 not in self.allele_indexes

    def alleles(self, alleles: Sequence[str]) -> list[str]:
        """Resolve the called allele indices against ``[REF, *ALT]``.

        Raises:
            AlleleReferenceError: If the genotype has no alleles or an index
                is beyond the end of ``alleles``.
        """
        if not self.allele_indexes:
            raise AlleleReferenceError(f"genotype {self.name!r} has no alleles")
        resolved = []
        for index in self.allele_indexes:
            if index >= len(alleles):
                raise AlleleReferenceError(
                    f"GT {self.gt!r} of {self.name!r} has index {index}, "
                    f"but the variant only has {len(alleles)} alleles"
                )
            resolved.append(alleles[index])
        return resolved

    def attribute(self, key: str) -> str:
        try:
            return self.values[key]
        except KeyError:
            raise KeyError(f"no such attribute: {key}") from None

    def attribute_as_int(self, key: str) -> int:
        value = self.attribute(key)
        try:
            return int(value)
        except ValueError:
            raise SchemaError(f"unable to parse {key}={value!r} as int") from None

    def attribute_as_float(self, key: str) -> float:
        value = self.attribute(key)
        try:
            return float(value)
        except ValueError:
            raise SchemaError(f"unable to parse {key}={value!r} as float") from None

    def to_vcf_field(self, format_tags: Sequence[str]) -> str:
        """Join the values in ``format_tags`` order with ``:``."""
        return ":".join(self.values[tag] for tag in format_tags)
