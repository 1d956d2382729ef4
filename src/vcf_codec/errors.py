"""Exception hierarchy for VCF parsing, encoding and writing."""


class VCFError(Exception):
    """Base class for all vcf-codec errors."""

    pass


class GrammarError(VCFError, ValueError):
    """Raised when a header tag list is malformed."""

    pass


class RequiredTagMissing(GrammarError):
    """Raised when a structured header line lacks a tag required for its kind."""

    def __init__(self, key: str, tag: str, line: str = ""):
        self.key = key
        self.tag = tag
        self.line = line
        message = f"{key} header line is missing required tag {tag}"
        if line:
            message = f"{message}: {line}"
        super().__init__(message)


class SchemaError(VCFError, ValueError):
    """Raised when a record or value does not fit the VCF column layout."""

    pass


class AlleleReferenceError(VCFError, IndexError):
    """Raised when a genotype refers to an allele the variant does not have."""

    pass


class ConsistencyError(VCFError):
    """Raised when a variant is not consistent with the header it is written under."""

    pass


class UnsupportedOperation(VCFError):
    """Raised for requests the codec deliberately does not handle."""

    pass


class ToolError(VCFError):
    """Raised when the external variant tool is missing or fails."""

    pass
