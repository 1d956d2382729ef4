"""bcftools-backed header source, record source, sink and index requests.

Decompression, BCF decoding and index construction are all left to
bcftools running as a subprocess; the codec only ever sees text lines.
"""

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Iterator
from pathlib import Path

from .errors import ToolError, UnsupportedOperation

logger = logging.getLogger(__name__)

BCFTOOLS_ENV_VAR = "VCF_CODEC_BCFTOOLS"


def find_bcftools(hint: str | None = None) -> str:
    """Locate the bcftools executable.

    Checks ``hint``, then ``$VCF_CODEC_BCFTOOLS``, then ``PATH``, then the
    directory of the running interpreter.

    Raises:
        ToolError: If no executable can be found.
    """
    for candidate in (hint, os.environ.get(BCFTOOLS_ENV_VAR)):
        if candidate:
            resolved = shutil.which(candidate)
            if resolved is None:
                raise ToolError(f"bcftools not found at {candidate}")
            return resolved

    exe = shutil.which("bcftools")
    if exe is not None:
        return exe

    # Batch schedulers (PBS Pro) do not always give jobs a login-shell PATH
    sibling = Path(sys.executable).parent / "bcftools"
    if sibling.exists():
        return str(sibling)
    raise ToolError("unable to find bcftools binary")


def _run(cmd: list[str]) -> str:
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise ToolError(f"failed to start {cmd[0]}: {e}") from e
    if result.returncode != 0:
        raise ToolError((result.stderr or f"{' '.join(cmd[:2])} failed").strip())
    return result.stdout


def bcftools_version(bcftools: str | None = None) -> str:
    """Return the version reported by ``bcftools --version``."""
    output = _run([find_bcftools(bcftools), "--version"])
    first = output.splitlines()[0] if output else ""
    parts = first.split()
    return parts[1] if len(parts) > 1 else "unknown"


def output_format(path: Path | str) -> str:
    """Return the ``bcftools -O`` code for an output path."""
    name = str(path)
    if name.endswith(".vcf.gz"):
        return "z"
    if name.endswith(".bcf"):
        return "b"
    return "v"


class BcftoolsHeaderSource:
    """Reads header lines with ``bcftools view -h``."""

    def __init__(self, path: Path | str, bcftools: str | None = None):
        self.path = Path(path)
        self._bcftools = bcftools

    def read_header_lines(self) -> list[str]:
        if not self.path.exists():
            raise FileNotFoundError(f"VCF file not found: {self.path}")
        exe = find_bcftools(self._bcftools)
        output = _run([exe, "view", "--no-version", "-h", str(self.path)])
        return output.splitlines()


class BcftoolsLineSource:
    """Streams record lines from ``bcftools view -H``.

    The process starts on first iteration. Closing the source before the
    stream ends terminates bcftools and is not treated as an error.
    """

    def __init__(
        self, path: Path | str, regions: str | None = None, bcftools: str | None = None
    ):
        self.path = Path(path)
        self.regions = regions
        self._bcftools = bcftools
        self._process: subprocess.Popen | None = None
        self._closed = False

    def command(self) -> list[str]:
        cmd = [find_bcftools(self._bcftools), "view", "-H", str(self.path)]
        if self.regions:
            cmd.extend(["-r", self.regions])
        return cmd

    def __iter__(self) -> Iterator[str]:
        cmd = self.command()
        logger.debug("Streaming records: %s", " ".join(cmd))
        with tempfile.TemporaryFile(mode="w+") as stderr:
            try:
                self._process = subprocess.Popen(
                    cmd, stdout=subprocess.PIPE, stderr=stderr, text=True
                )
            except OSError as e:
                raise ToolError(f"failed to start bcftools: {e}") from e

            for line in self._process.stdout:
                if self._closed:
                    return
                yield line.rstrip("\r\n")

            if self._closed:
                return
            if self._process.wait() != 0:
                stderr.seek(0)
                raise ToolError(stderr.read().strip() or "bcftools view failed")

    def close(self) -> None:
        self._closed = True
        process = self._process
        if process is None or process.poll() is not None:
            return
        process.stdout.close()
        process.terminate()
        process.wait()


class BcftoolsSink:
    """Pipes written lines into ``bcftools view`` to commit the target file.

    The container format follows the path suffix: ``.vcf.gz`` is
    bgzip-compressed VCF, ``.bcf`` is BCF, anything else is plain VCF.
    """

    def __init__(self, path: Path | str, bcftools: str | None = None):
        self.path = Path(path)
        self.format = output_format(path)
        cmd = [
            find_bcftools(bcftools), "view", "--no-version",
            "-O", self.format, "-o", str(self.path),
        ]
        logger.debug("Writing through %s", " ".join(cmd))
        self._stderr = tempfile.TemporaryFile(mode="w+")
        try:
            self._process = subprocess.Popen(
                cmd, stdin=subprocess.PIPE, stderr=self._stderr, text=True
            )
        except OSError as e:
            self._stderr.close()
            raise ToolError(f"failed to start process: {e}") from e

    def write_line(self, line: str) -> None:
        try:
            self._process.stdin.write(line + "\n")
        except BrokenPipeError:
            raise ToolError(f"bcftools exited while writing {self.path}: {self._read_stderr()}") from None

    def _read_stderr(self) -> str:
        self._stderr.seek(0)
        return self._stderr.read().strip()

    def close(self) -> None:
        try:
            try:
                self._process.stdin.close()
            except BrokenPipeError:
                pass
            if self._process.wait() != 0:
                raise ToolError(f"failed to write {self.path}: {self._read_stderr()}")
        finally:
            self._stderr.close()


def create_index(path: Path | str, bcftools: str | None = None) -> None:
    """Ask bcftools to index a compressed VCF or BCF file.

    ``.vcf.gz`` files get a tabix index, everything else a CSI index.

    Raises:
        UnsupportedOperation: For an uncompressed ``.vcf`` target.
        ToolError: If bcftools is missing or fails.
    """
    name = str(path)
    if name.endswith(".vcf"):
        raise UnsupportedOperation(f"cannot index uncompressed VCF file: {name}")
    exe = find_bcftools(bcftools)
    if name.endswith(".vcf.gz"):
        cmd = [exe, "index", "-t", name]
    else:
        cmd = [exe, "index", name]
    logger.info("Indexing %s", name)
    _run(cmd)
