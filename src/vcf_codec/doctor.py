"""System dependency checker for vcf-codec."""

import platform
import sys
from dataclasses import dataclass

from .bcftools import bcftools_version, find_bcftools
from .errors import ToolError


@dataclass
class CheckResult:
    """Result of a dependency check."""

    name: str
    passed: bool
    version: str | None = None
    message: str | None = None


INSTALL_INSTRUCTIONS = {
    "bcftools": {
        "darwin": "brew install bcftools",
        "linux": "sudo apt install bcftools or conda install -c bioconda bcftools",
        "windows": "Install bcftools inside WSL: conda install -c bioconda bcftools",
    },
    "python": {
        "darwin": "brew install python@3.11",
        "linux": "sudo apt install python3.11 or use pyenv",
        "windows": "Download from https://www.python.org/downloads/",
    },
}


class DependencyChecker:
    """Check system dependencies for vcf-codec."""

    def __init__(self, bcftools: str | None = None):
        self._bcftools = bcftools

    def check_python(self) -> CheckResult:
        """Check Python version is 3.11+."""
        version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        passed = sys.version_info >= (3, 11)

        return CheckResult(
            name="Python",
            passed=passed,
            version=version,
            message=None if passed else "Python 3.11+ required",
        )

    def check_bcftools(self) -> CheckResult:
        """Check that bcftools can be found and reports a version.

        Only plain-text ``.vcf`` files can be read without it.
        """
        try:
            exe = find_bcftools(self._bcftools)
            version = bcftools_version(exe)
        except ToolError as e:
            return CheckResult(
                name="bcftools",
                passed=False,
                message=f"bcftools not available: {e}",
            )
        return CheckResult(name="bcftools", passed=True, version=version, message=exe)

    def check_all(self) -> list[CheckResult]:
        """Run all dependency checks.

        Returns:
            List of CheckResult for each dependency.
        """
        return [
            self.check_python(),
            self.check_bcftools(),
        ]

    def get_install_instructions(self, dependency: str, os_platform: str | None = None) -> str:
        """Get installation instructions for a dependency.

        Args:
            dependency: Name of the dependency (e.g., 'bcftools', 'python').
            os_platform: Platform name (darwin, linux, windows). Auto-detected if None.

        Returns:
            Installation instructions string.
        """
        if os_platform is None:
            os_platform = platform.system().lower()
            if os_platform not in ("darwin", "linux", "windows"):
                os_platform = "linux"

        instructions = INSTALL_INSTRUCTIONS.get(dependency, {})
        return instructions.get(os_platform, f"Please install {dependency}")

    def all_passed(self, results: list[CheckResult] | None = None) -> bool:
        """Whether every check passed, running the checks unless ``results`` is given."""
        if results is None:
            results = self.check_all()
        return all(r.passed for r in results)
