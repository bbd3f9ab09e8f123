# File: fieldgen/validators.py
"""
fieldgen - Configuration Validators
====================================
Collects configuration findings into a ``ValidationResult`` instead of
raising, so the configuration pass runs in partial-success mode:

- every template entry is validated on its own; bad entries are reported
  and dropped while the good ones still build the Template Binding Table;
- connection and target settings are sanity-checked;
- ``ValidationResult.has_errors`` is the aggregate "configuration had
  errors" flag the CLI turns into an exit status.

Finding codes:

    TEMPLATE_INVALID        entry is not a mapping or fails model validation
    TEMPLATE_MISSING_PATH   entry declares no source path
    TEMPLATE_NOT_FOUND      source path does not exist
    TEMPLATE_UNREACHABLE    entry binds no field id and no type id (warning)
    DUPLICATE_BINDING       field/type already claimed by another entry (warning)
    SKIP_SECTION_INVALID    skip section is neither a mapping nor a list
    SKIP_TOGGLE_INVALID     skip toggle is not a boolean
    SKIP_PATTERN_INVALID    regular-expression skip pattern does not compile
    CONNECTION_MISSING_URL  no base_url configured
    CONNECTION_BAD_URL      base_url is not http(s)
    CONNECTION_NO_TOKEN     no API token available (warning)
    TARGET_BAD_NAMESPACE    namespace segment is not an identifier (warning)
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from fieldgen.models import ConnectionSettings, MappingConfig, TargetSettings, TemplateEntry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen.validators")

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight finding descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` findings produced by the config pass."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))
        logger.error("%s: %s", code, message)

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))
        logger.warning("%s: %s", code, message)

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = "✗" if item.is_error else "⚠"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Template entries
# ---------------------------------------------------------------------------


def validate_template_entry(
    name: str,
    raw: Any,
    config: MappingConfig,
    result: ValidationResult,
) -> Optional[TemplateEntry]:
    """
    Validate one ``templates:`` entry.

    Returns the parsed entry with its path resolved, or None when the entry
    must be dropped (the reason is recorded in *result*).
    """
    context: Dict[str, Any] = {"template": name}

    if not isinstance(raw, dict):
        result.add_error(
            "TEMPLATE_INVALID",
            f"Template '{name}' must be a mapping, got {type(raw).__name__}.",
            context,
        )
        return None

    if not raw.get("path"):
        result.add_error(
            "TEMPLATE_MISSING_PATH",
            f"Template '{name}' does not declare a source path.",
            context,
        )
        return None

    if "name" in raw and raw["name"] != name:
        result.add_error(
            "TEMPLATE_INVALID",
            f"Template '{name}' declares a different name {raw['name']!r}.",
            context,
        )
        return None

    try:
        entry: TemplateEntry = TemplateEntry.model_validate({**raw, "name": name})
    except PydanticValidationError as exc:
        result.add_error(
            "TEMPLATE_INVALID",
            f"Template '{name}' is invalid: {exc.errors()[0]['msg']}",
            {**context, "detail": str(exc)},
        )
        return None

    resolved: str = config.resolve_path(entry.path)
    if not os.path.isfile(resolved):
        result.add_error(
            "TEMPLATE_NOT_FOUND",
            f"Template '{name}' source not found: {resolved}",
            {**context, "path": resolved},
        )
        return None

    if not entry.is_reachable:
        result.add_warning(
            "TEMPLATE_UNREACHABLE",
            f"Template '{name}' binds no field id and no type id; it is ignored.",
            {**context, "path": resolved},
        )
        return None

    entry.path = resolved
    return entry


# ---------------------------------------------------------------------------
# Connection & target
# ---------------------------------------------------------------------------


def validate_connection(settings: ConnectionSettings) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    if not settings.base_url:
        result.add_error(
            "CONNECTION_MISSING_URL",
            "connection.base_url is not configured.",
        )
    elif not settings.base_url.startswith(("http://", "https://")):
        result.add_error(
            "CONNECTION_BAD_URL",
            f"connection.base_url must be http(s): {settings.base_url}",
        )

    if not settings.resolved_token():
        result.add_warning(
            "CONNECTION_NO_TOKEN",
            f"No API token configured and ${settings.token_env} is unset; "
            "requests will be anonymous.",
        )

    return result


def validate_target(settings: TargetSettings) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for part in settings.namespace_parts:
        if not _IDENTIFIER_RE.match(part):
            result.add_warning(
                "TARGET_BAD_NAMESPACE",
                f"Namespace segment '{part}' is not a valid identifier.",
                {"namespace": settings.namespace},
            )

    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_template_entry",
    "validate_connection",
    "validate_target",
]

logger.debug("fieldgen.validators loaded.")
