# File: fieldgen/errors.py
"""
fieldgen - Exception Taxonomy
==============================

Every error raised by the pipeline derives from ``FieldgenError`` so the CLI
can map it onto exactly one exit code.

Hierarchy::

    FieldgenError
    ├── ConfigurationError      bad template entry, bad skip pattern, bad map
    │   └── MapFileError        unparsable Generation Map file
    ├── ResolutionError         single-field lookup failed
    │   ├── FieldNotFoundError
    │   └── AmbiguousFieldError carries every candidate (id + name)
    ├── FieldServiceError       remote transport / HTTP failure
    ├── RenderError             per-field, template could not be rendered
    ├── WriteError              per-field, artifact could not be written
    └── GenerationInterrupted   user declined the confirmation gate
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple


class FieldgenError(Exception):
    """Base class for all fieldgen errors."""


class ConfigurationError(FieldgenError):
    """The mapping configuration or a persisted file is unusable."""


class MapFileError(ConfigurationError):
    """The Generation Map file exists but cannot be parsed."""

    def __init__(self, path: str, detail: str) -> None:
        self.path: str = path
        self.detail: str = detail
        super().__init__(f"Generation map {path} is corrupt: {detail}")


class ResolutionError(FieldgenError):
    """A field identifier or display name did not resolve to one field."""

    def __init__(self, query: str, message: str) -> None:
        self.query: str = query
        super().__init__(message)


class FieldNotFoundError(ResolutionError):
    def __init__(self, query: str) -> None:
        super().__init__(query, f"No remote field matches '{query}'.")


class AmbiguousFieldError(ResolutionError):
    """
    More than one remote field carries the requested display name.

    ``candidates`` holds ``(field_id, field_name)`` pairs so a human can
    switch to an id-based lookup.
    """

    def __init__(self, query: str, candidates: Sequence[Tuple[str, str]]) -> None:
        self.candidates: List[Tuple[str, str]] = list(candidates)
        listing: str = ", ".join(f"{fid} ({name})" for fid, name in self.candidates)
        super().__init__(
            query,
            f"Field name '{query}' is ambiguous; {len(self.candidates)} "
            f"candidates: {listing}. Use the field id instead.",
        )


class FieldServiceError(FieldgenError):
    """The remote field service could not be reached or answered badly."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code: Optional[int] = status_code
        super().__init__(message)


class RenderError(FieldgenError):
    def __init__(self, template_path: str, detail: str) -> None:
        self.template_path: str = template_path
        super().__init__(f"Failed to render {template_path}: {detail}")


class WriteError(FieldgenError):
    def __init__(self, path: str, detail: str) -> None:
        self.path: str = path
        super().__init__(f"Failed to write {path}: {detail}")


class GenerationInterrupted(FieldgenError):
    """Bulk generation was declined before any file was touched."""


__all__: List[str] = [
    "FieldgenError",
    "ConfigurationError",
    "MapFileError",
    "ResolutionError",
    "FieldNotFoundError",
    "AmbiguousFieldError",
    "FieldServiceError",
    "RenderError",
    "WriteError",
    "GenerationInterrupted",
]
