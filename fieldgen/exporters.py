# File: fieldgen/exporters.py
"""
fieldgen - Artifact Exporter (File-System Writer)
==================================================

Responsible for:
    1. Deriving the artifact path of a field from its id and the target
       namespace.
    2. Writing artifacts atomically (write-to-temp then rename).
    3. Recording what was written (size, lines, checksum) for the report.

A failed write raises ``WriteError``; the previous artifact, if any, is
left intact.  Files already written in the same run are never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Sequence

from fieldgen.errors import WriteError
from fieldgen.models import FieldDescriptor, TargetSettings
from fieldgen.utils import atomic_write, count_lines, sha256_hex, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen.exporters")


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported artifact."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


class ArtifactExporter:
    """
    Writes rendered artifacts under the target directory.

    Usage::

        exporter = ArtifactExporter(Path("./generated"), target_settings)
        rel = exporter.relative_path_for(descriptor)
        record = exporter.write(rel, rendered_text)

    Thread-safety: NOT thread-safe.  One exporter per target directory.
    """

    def __init__(self, output_dir: Path, target: TargetSettings) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._namespace_parts: Sequence[str] = tuple(target.namespace_parts)
        self._extension: str = target.file_extension
        self._records: List[FileRecord] = []

        logger.debug(
            "ArtifactExporter initialised: output_dir=%s, namespace=%s.",
            self._output_dir,
            ".".join(self._namespace_parts) or "<root>",
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def records(self) -> List[FileRecord]:
        return list(self._records)

    def relative_path_for(self, descriptor: FieldDescriptor) -> str:
        """``<namespace parts>/<snake(field id)><extension>`` as a POSIX path."""
        filename: str = f"{to_snake_case(descriptor.id) or 'field'}{self._extension}"
        return str(PurePosixPath(*self._namespace_parts, filename))

    def absolute_path_for(self, relative_path: str) -> Path:
        return self._output_dir.joinpath(*PurePosixPath(relative_path).parts)

    def exists(self, relative_path: str) -> bool:
        return self.absolute_path_for(relative_path).is_file()

    def write(self, relative_path: str, content: str) -> FileRecord:
        """
        Write one artifact atomically.

        Raises:
            WriteError: If the directory cannot be created or the file
                cannot be written or renamed into place.
        """
        full_path: Path = self.absolute_path_for(relative_path)
        encoded: bytes = content.encode("utf-8")

        try:
            atomic_write(full_path, encoded)
        except OSError as exc:
            raise WriteError(str(full_path), f"{type(exc).__name__}: {exc}") from exc

        record: FileRecord = FileRecord(
            relative_path=relative_path,
            absolute_path=str(full_path),
            size_bytes=len(encoded),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        self._records.append(record)

        logger.debug(
            "Wrote artifact: %s (%d bytes, %d lines).",
            relative_path,
            record.size_bytes,
            record.line_count,
        )
        return record


__all__: List[str] = ["ArtifactExporter", "FileRecord"]
