"""Line-oriented capabilities the codec reads from and writes to.

The codec never opens compressed or binary files itself. Header lines and
record lines come from a ``HeaderSource`` and a ``LineSource``, and encoded
output goes to a ``LineSink``. The bcftools-backed implementations live in
``vcf_codec.bcftools``; the ones here serve in-memory data, plain-text
``.vcf`` files and text streams.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol, TextIO

from .errors import UnsupportedOperation
from .header import COLUMN_HEADER_PREFIX

logger = logging.getLogger(__name__)

COMPRESSED_SUFFIXES = (".gz", ".bgz", ".bcf", ".bz2", ".xz")


class HeaderSource(Protocol):
    """Supplies the raw header lines of a file."""

    def read_header_lines(self) -> list[str]:
        ...


class LineSource(Protocol):
    """Streams the raw data lines of a file, one per iteration step."""

    def __iter__(self) -> Iterator[str]:
        ...

    def close(self) -> None:
        ...


class LineSink(Protocol):
    """Accepts encoded lines and commits them on close."""

    def write_line(self, line: str) -> None:
        ...

    def close(self) -> None:
        ...


class MemoryHeaderSource:
    """Header lines held in memory."""

    def __init__(self, lines: Iterable[str]):
        self._lines = list(lines)

    def read_header_lines(self) -> list[str]:
        return list(self._lines)


class MemoryLineSource:
    """Record lines held in memory."""

    def __init__(self, lines: Iterable[str]):
        self._lines = list(lines)
        self.closed = False

    def __iter__(self) -> Iterator[str]:
        for line in self._lines:
            if self.closed:
                return
            yield line

    def close(self) -> None:
        self.closed = True


class MemorySink:
    """Collects written lines in a list."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.closed = False

    def write_line(self, line: str) -> None:
        if self.closed:
            raise ValueError("write to closed sink")
        self.lines.append(line)

    def close(self) -> None:
        self.closed = True

    def getvalue(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class StreamSink:
    """Writes lines to an open text stream such as ``sys.stdout``."""

    def __init__(self, stream: TextIO, close_stream: bool = False):
        self._stream = stream
        self._close_stream = close_stream

    def write_line(self, line: str) -> None:
        self._stream.write(line + "\n")

    def close(self) -> None:
        self._stream.flush()
        if self._close_stream:
            self._stream.close()


class PlainTextSource:
    """Header and record lines of an uncompressed ``.vcf`` file.

    This lets plain-text VCFs be read without the external tool.
    Compressed and binary inputs are rejected.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        if self.path.name.endswith(COMPRESSED_SUFFIXES):
            raise UnsupportedOperation(
                f"cannot read compressed or binary file without bcftools: {self.path}"
            )
        self._handle: TextIO | None = None

    def read_header_lines(self) -> list[str]:
        lines = []
        with open(self.path) as f:
            for raw in f:
                line = raw.rstrip("\r\n")
                if not line.startswith("#"):
                    break
                lines.append(line)
                if line.startswith(COLUMN_HEADER_PREFIX):
                    break
        return lines

    def __iter__(self) -> Iterator[str]:
        self._handle = open(self.path)
        logger.debug("Reading records from %s", self.path)
        try:
            for raw in self._handle:
                if raw.startswith("#"):
                    continue
                yield raw.rstrip("\r\n")
        finally:
            self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
