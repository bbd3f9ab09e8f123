# File: fieldgen/resolver.py
"""
fieldgen - Field Resolver
==========================
Turns a field identifier or display name into exactly one
``FieldDescriptor``.

- Input matching ``customfield_<digits>`` is looked up directly by id.
- Anything else is an exact, case-sensitive display-name search.

The outcome is a small sum type, ``Unique | Ambiguous | NotFound``;
``resolve_one`` converts the two failure variants into ``ResolutionError``
subclasses for the single-field path, where they are fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Tuple, Union

from fieldgen.errors import AmbiguousFieldError, FieldNotFoundError
from fieldgen.models import FIELD_ID_RE, FieldDescriptor, FieldOption

logger: logging.Logger = logging.getLogger("fieldgen.resolver")


class FieldService(Protocol):
    """The remote field service as the pipeline consumes it."""

    def list_fields(self) -> List[FieldDescriptor]: ...

    def get_by_id(self, field_id: str) -> FieldDescriptor: ...

    def search_by_name(self, name: str) -> List[FieldDescriptor]: ...

    def get_options(self, field_id: str) -> List[FieldOption]: ...


# ---------------------------------------------------------------------------
# Resolution sum type
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Unique:
    descriptor: FieldDescriptor


@dataclass(frozen=True, slots=True)
class Ambiguous:
    query: str
    candidates: Tuple[FieldDescriptor, ...]

    @property
    def choices(self) -> List[Tuple[str, str]]:
        return [(d.id, d.name) for d in self.candidates]


@dataclass(frozen=True, slots=True)
class NotFound:
    query: str


Resolution = Union[Unique, Ambiguous, NotFound]


class FieldResolver:
    """Read-only resolution against a ``FieldService``; never retries."""

    def __init__(self, service: FieldService) -> None:
        self._service: FieldService = service

    @staticmethod
    def is_field_id(value: str) -> bool:
        return FIELD_ID_RE.match(value) is not None

    def resolve(self, identifier_or_name: str) -> Resolution:
        query: str = identifier_or_name.strip()

        if self.is_field_id(query):
            try:
                descriptor: FieldDescriptor = self._service.get_by_id(query)
            except FieldNotFoundError:
                logger.debug("No field with id %s.", query)
                return NotFound(query)
            return Unique(descriptor)

        # The service may match loosely; only exact names count.
        matches: List[FieldDescriptor] = sorted(
            (d for d in self._service.search_by_name(query) if d.name == query),
            key=lambda d: d.id,
        )
        if not matches:
            return NotFound(query)
        if len(matches) > 1:
            logger.debug("Name '%s' matches %d fields.", query, len(matches))
            return Ambiguous(query, tuple(matches))
        return Unique(matches[0])

    def resolve_one(self, identifier_or_name: str) -> FieldDescriptor:
        """
        Resolve to exactly one descriptor.

        Raises:
            FieldNotFoundError: Nothing matches.
            AmbiguousFieldError: Several fields share the display name.
        """
        resolution: Resolution = self.resolve(identifier_or_name)
        if isinstance(resolution, Unique):
            logger.info(
                "Resolved '%s' to %s (%s).",
                identifier_or_name,
                resolution.descriptor.id,
                resolution.descriptor.name,
            )
            return resolution.descriptor
        if isinstance(resolution, Ambiguous):
            raise AmbiguousFieldError(resolution.query, resolution.choices)
        raise FieldNotFoundError(resolution.query)


__all__: List[str] = [
    "FieldService",
    "FieldResolver",
    "Resolution",
    "Unique",
    "Ambiguous",
    "NotFound",
]
