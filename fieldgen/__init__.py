# File: fieldgen/__init__.py
"""
fieldgen — Custom Field Class Generator
========================================

Generates one source artifact per remote custom field definition, driven by
a declarative YAML mapping of templates, field ids and field types.  Runs are
incremental: a Generation Map records what was written from which template,
so unchanged fields are left alone.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ FieldGenerator │────▶│ TemplateRenderer │
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────┬───────┘     └───────┬────────┘     └──────────────────┘
           │                     │
           ▼        ┌────────────┼─────────────┬───────────────┐
    ┌────────────┐  ▼            ▼             ▼               ▼
    │FieldResolver│ bindings    skip    generation_map     exporters
    │(resolver.py)│
    └──────┬─────┘
           ▼
    JiraFieldService (client.py)

Usage::

    # As a library
    from fieldgen import FieldGenerator, JiraFieldService, load_config
    config = load_config(Path("fieldgen.yaml"))
    with JiraFieldService(config.connection) as service:
        generator = FieldGenerator.from_config(config, service)
        generator.generate_all()

    # From the command line
    python -m fieldgen -c fieldgen.yaml --all --yes -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from fieldgen.errors import (
    AmbiguousFieldError,
    ConfigurationError,
    FieldgenError,
    FieldNotFoundError,
    FieldServiceError,
    GenerationInterrupted,
    MapFileError,
    RenderError,
    ResolutionError,
    WriteError,
)
from fieldgen.models import (
    FieldDescriptor,
    FieldOption,
    FieldOutcome,
    FieldResult,
    GenerationMapEntry,
    MappingConfig,
    SkipReason,
    SkipRule,
    TemplateBinding,
)
from fieldgen.bindings import TemplateBindingTable, build_binding_table
from fieldgen.skip import SkipEvaluator, build_skip_rules
from fieldgen.generation_map import GenerationMap
from fieldgen.resolver import Ambiguous, FieldResolver, NotFound, Unique
from fieldgen.templates import TemplateRenderer
from fieldgen.exporters import ArtifactExporter
from fieldgen.client import JiraFieldService
from fieldgen.generator import (
    FieldGenerator,
    GenerationReport,
    load_config,
    run_configuration_pass,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Orchestrator
    "FieldGenerator",
    "GenerationReport",
    "load_config",
    "run_configuration_pass",
    # Components
    "FieldResolver",
    "Unique",
    "Ambiguous",
    "NotFound",
    "TemplateBindingTable",
    "build_binding_table",
    "SkipEvaluator",
    "build_skip_rules",
    "GenerationMap",
    "TemplateRenderer",
    "ArtifactExporter",
    "JiraFieldService",
    # Models
    "FieldDescriptor",
    "FieldOption",
    "FieldOutcome",
    "FieldResult",
    "GenerationMapEntry",
    "MappingConfig",
    "SkipReason",
    "SkipRule",
    "TemplateBinding",
    # Errors
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
