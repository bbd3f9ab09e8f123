# File: fieldgen/models.py
"""
fieldgen - Core Data Models
============================
Pydantic V2 models for remote field descriptors, template bindings, skip
rules, Generation Map entries and the mapping configuration.  These models
are the single source of truth for the whole pipeline:

    Remote Field → Binding / Skip → Render → Generation Map → Export

Descriptors and bindings are frozen snapshots; only the configuration
models are mutable (CLI overrides are applied to them before a run).
"""

from __future__ import annotations

import logging
import os
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen.models")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FIELD_ID_RE: re.Pattern[str] = re.compile(r"^customfield_\d+$")
UNBOUND_REASON: str = "unbound"
_NAMESPACE_SPLIT_RE: re.Pattern[str] = re.compile(r"[.\\/]+")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FieldOutcome(str, Enum):
    """Terminal state of a single field in a generation pass."""

    WRITTEN = "written"
    SKIPPED = "skipped"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class SkipRuleKind(str, Enum):
    FIELD = "field"
    TYPE = "type"
    TYPE_PATTERN = "type_pattern"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_SNAPSHOT_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Remote field snapshot
# ---------------------------------------------------------------------------


class FieldOption(BaseModel):
    """A single allowed value of a select-like custom field."""

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., min_length=1, description="Remote option id.")
    value: str = Field(..., description="Display value.")
    disabled: bool = Field(default=False, description="Option hidden from users?")


class FieldDescriptor(BaseModel):
    """
    Immutable snapshot of one remote field definition.

    ``type_id`` is the identifier the Template Binding Table and Skip
    Evaluator match on: the ``schema.custom`` key for custom fields
    (e.g. ``com.atlassian.jira.plugin.system.customfieldtypes:select``),
    falling back to ``schema.type`` for system fields.
    """

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., min_length=1, description="Stable field identifier.")
    name: str = Field(..., description="Display name.")
    type_id: str = Field(default="", description="Field type identifier.")
    custom: bool = Field(default=False, description="Is this a custom field?")
    schema_info: Dict[str, Any] = Field(
        default_factory=dict, description="Raw remote schema block."
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Complete raw remote payload."
    )

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "FieldDescriptor":
        """Build a descriptor from a ``/rest/api/*/field`` payload item."""
        schema: Dict[str, Any] = payload.get("schema") or {}
        type_id: str = str(schema.get("custom") or schema.get("type") or "")
        field_id: str = str(payload["id"])
        return cls(
            id=field_id,
            name=str(payload.get("name", "")),
            type_id=type_id,
            custom=bool(payload.get("custom", FIELD_ID_RE.match(field_id))),
            schema_info=dict(schema),
            metadata=dict(payload),
        )

    @computed_field  # type: ignore[misc]
    @property
    def is_machine_id(self) -> bool:
        return FIELD_ID_RE.match(self.id) is not None

    def __repr__(self) -> str:
        return f"<FieldDescriptor {self.id} '{self.name}' type={self.type_id or '-'}>"


# ---------------------------------------------------------------------------
# Templates & skip rules
# ---------------------------------------------------------------------------


class TemplateEntry(BaseModel):
    """One ``templates:`` entry of the mapping configuration, as declared."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Config-declared template name.")
    path: str = Field(..., min_length=1, description="Template source path.")
    load_options: bool = Field(
        default=False,
        description="Fetch option values and pass them to the template.",
    )
    fields: List[str] = Field(default_factory=list, description="Bound field ids.")
    types: List[str] = Field(default_factory=list, description="Bound type ids.")

    @field_validator("fields", "types", mode="before")
    @classmethod
    def _single_value_to_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @computed_field  # type: ignore[misc]
    @property
    def is_reachable(self) -> bool:
        return bool(self.fields or self.types)


class TemplateBinding(BaseModel):
    """The resolved template that governs a field."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1, description="Template identity.")
    path: str = Field(..., min_length=1, description="Absolute template path.")
    load_options: bool = Field(default=False)

    def __repr__(self) -> str:
        return f"<TemplateBinding {self.name} → {self.path}>"


class SkipRule(BaseModel):
    """A configuration-declared suppression, individually toggleable."""

    model_config = _SNAPSHOT_CONFIG

    kind: SkipRuleKind
    value: str = Field(..., min_length=1)
    enabled: bool = True

    def __repr__(self) -> str:
        state: str = "on" if self.enabled else "off"
        return f"<SkipRule {self.kind}:{self.value} ({state})>"


class SkipReason(BaseModel):
    """Outcome of the Skip Evaluator for one field."""

    model_config = _SNAPSHOT_CONFIG

    skip: bool
    reason: str = ""
    explicit: bool = False


# ---------------------------------------------------------------------------
# Generation Map
# ---------------------------------------------------------------------------


class GenerationMapEntry(BaseModel):
    """Last successfully written artifact of one field."""

    model_config = _SNAPSHOT_CONFIG

    field_id: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1, description="POSIX path relative to target.")
    template: str = Field(..., min_length=1, description="Template identity.")
    fingerprint: str = Field(..., min_length=1, description="sha256:<hex>")


# ---------------------------------------------------------------------------
# Per-field result
# ---------------------------------------------------------------------------


class FieldResult(BaseModel):
    """Terminal state reached by one field, for reporting."""

    model_config = _SHARED_CONFIG

    field_id: str
    field_name: str = ""
    outcome: FieldOutcome
    reason: str = ""
    path: Optional[str] = None
    template: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def ok(self) -> bool:
        return self.outcome != FieldOutcome.FAILED


# ---------------------------------------------------------------------------
# Mapping configuration
# ---------------------------------------------------------------------------


class ConnectionSettings(BaseModel):
    """How to reach the remote field service."""

    model_config = _SHARED_CONFIG

    base_url: str = Field(default="", description="e.g. https://acme.atlassian.net")
    username: Optional[str] = Field(default=None, description="Basic-auth user.")
    token: Optional[str] = Field(default=None, description="API token (prefer token_env).")
    token_env: str = Field(
        default="FIELDGEN_API_TOKEN",
        description="Environment variable holding the API token.",
    )
    api_version: Literal["2", "3", "latest"] = Field(default="2")
    timeout: float = Field(default=30.0, gt=0, description="Seconds per request.")
    verify_ssl: bool = Field(default=True)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("api_version", mode="before")
    @classmethod
    def _version_to_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    def resolved_token(self) -> Optional[str]:
        if self.token:
            return self.token
        return os.environ.get(self.token_env) or None


class TargetSettings(BaseModel):
    """Where generated artifacts and the Generation Map live."""

    model_config = _SHARED_CONFIG

    directory: str = Field(default="./generated", description="Output root.")
    namespace: str = Field(default="", description="Target namespace, e.g. acme.fields")
    file_extension: str = Field(default=".py")
    map_file: str = Field(
        default=".fieldgen-map.json",
        description="Generation Map path, relative to the output root.",
    )

    @field_validator("file_extension")
    @classmethod
    def _leading_dot(cls, v: str) -> str:
        if v and not v.startswith("."):
            return f".{v}"
        return v

    @computed_field  # type: ignore[misc]
    @property
    def namespace_parts(self) -> List[str]:
        return [p for p in _NAMESPACE_SPLIT_RE.split(self.namespace) if p]


class SkipSettings(BaseModel):
    """Raw skip declarations; each value maps to an enabled toggle."""

    model_config = _SHARED_CONFIG

    fields: Any = Field(default_factory=dict)
    types: Any = Field(default_factory=dict)
    type_patterns: Any = Field(default_factory=dict)


class MappingConfig(BaseModel):
    """
    Root model of the YAML mapping configuration.

    ``templates`` is kept raw on purpose: each entry is validated on its own
    by ``fieldgen.bindings.build_binding_table`` so one bad entry does not
    reject the whole file.
    """

    model_config = _SHARED_CONFIG

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    target: TargetSettings = Field(default_factory=TargetSettings)
    templates: Dict[str, Any] = Field(default_factory=dict)
    skip: SkipSettings = Field(default_factory=SkipSettings)
    custom_only: bool = Field(
        default=True, description="Bulk mode only processes custom fields."
    )
    base_dir: str = Field(
        default=".", description="Directory that relative paths resolve against."
    )

    @field_validator("templates", mode="before")
    @classmethod
    def _none_templates(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("skip", mode="before")
    @classmethod
    def _none_skip(cls, v: Any) -> Any:
        return {} if v is None else v

    def resolve_path(self, path: str) -> str:
        """Resolve *path* against ``base_dir`` unless it is absolute."""
        expanded: str = os.path.expanduser(path)
        if os.path.isabs(expanded):
            return os.path.normpath(expanded)
        return os.path.normpath(os.path.join(self.base_dir, expanded))

    @computed_field  # type: ignore[misc]
    @property
    def target_directory(self) -> str:
        return self.resolve_path(self.target.directory)

    @computed_field  # type: ignore[misc]
    @property
    def map_path(self) -> str:
        expanded: str = os.path.expanduser(self.target.map_file)
        if os.path.isabs(expanded):
            return os.path.normpath(expanded)
        return os.path.normpath(os.path.join(self.target_directory, expanded))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FIELD_ID_RE",
    "UNBOUND_REASON",
    "FieldOutcome",
    "SkipRuleKind",
    "FieldOption",
    "FieldDescriptor",
    "TemplateEntry",
    "TemplateBinding",
    "SkipRule",
    "SkipReason",
    "GenerationMapEntry",
    "FieldResult",
    "ConnectionSettings",
    "TargetSettings",
    "SkipSettings",
    "MappingConfig",
]

logger.debug("fieldgen.models loaded — %d public symbols.", len(__all__))
