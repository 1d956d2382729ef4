"""vcf-codec: VCF header and record model with a validating text codec."""

from .errors import (
    AlleleReferenceError,
    ConsistencyError,
    GrammarError,
    RequiredTagMissing,
    SchemaError,
    ToolError,
    UnsupportedOperation,
    VCFError,
)
from .genotype import Genotype
from .header import Header, HeaderLine, parse_header, parse_header_line, standard_header_lines
from .reader import VCF, VariantScanner, read_header
from .variant import Variant, VariantType, classify, parse_variant_line
from .writer import VCFWriter, open_writer, validate_variant

__version__ = "0.3.0"

__all__ = [
    "AlleleReferenceError",
    "ConsistencyError",
    "Genotype",
    "GrammarError",
    "Header",
    "HeaderLine",
    "RequiredTagMissing",
    "SchemaError",
    "ToolError",
    "UnsupportedOperation",
    "VCF",
    "VCFError",
    "VCFWriter",
    "Variant",
    "VariantScanner",
    "VariantType",
    "__version__",
    "classify",
    "open_writer",
    "parse_header",
    "parse_header_line",
    "parse_variant_line",
    "read_header",
    "standard_header_lines",
    "validate_variant",
]
