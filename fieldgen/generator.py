# File: fieldgen/generator.py
"""
fieldgen - Generation Pipeline (Orchestrator)
==============================================

Connects every component together:

    Remote Field → Binding → Skip → Render → Fingerprint → Export → Map

The ``FieldGenerator`` class backs both the programmatic API and the CLI.

Per-field state machine, terminal states in capitals::

    resolve binding ─┐
    skip rules ──────┴─ skipped (explicit rule, or implicit "unbound") → SKIPPED
    render (+ options when the binding asks for them) ── error → FAILED
    fingerprint == map entry and artifact present → UNCHANGED
    write artifact, put map entry, flush map ── error → FAILED
                                              └─ ok → WRITTEN

Error handling strategy:
    - Configuration problems are collected by the configuration pass and
      surfaced on the report; they do not stop generation on their own.
    - A corrupt Generation Map raises ``MapFileError`` before any write.
    - Render / write errors are per-field.  Bulk mode attempts every field
      and reports an overall failure if any field failed.
    - Bulk mode asks ``confirm`` before touching anything; a "no" raises
      ``GenerationInterrupted`` with target and map untouched.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError as PydanticValidationError

from fieldgen.bindings import TemplateBindingTable, build_binding_table
from fieldgen.errors import (
    ConfigurationError,
    GenerationInterrupted,
    RenderError,
    WriteError,
)
from fieldgen.exporters import ArtifactExporter
from fieldgen.generation_map import GenerationMap
from fieldgen.models import (
    FieldDescriptor,
    FieldOption,
    FieldOutcome,
    FieldResult,
    GenerationMapEntry,
    MappingConfig,
    SkipReason,
    TemplateBinding,
)
from fieldgen.resolver import FieldService
from fieldgen.skip import SkipEvaluator, build_skip_rules
from fieldgen.templates import TemplateRenderer, build_context
from fieldgen.utils import Timer, fingerprint
from fieldgen.validators import ValidationResult, validate_connection, validate_target

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen.generator")

ConfirmFn = Callable[[Sequence[FieldDescriptor]], bool]


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``FieldGenerator``.

    Holds every per-field terminal state plus the findings of the
    configuration pass.
    """

    output_directory: str = ""
    map_file: str = ""
    dry_run: bool = False
    total_elapsed_seconds: float = 0.0
    map_error: Optional[str] = None

    results: List[FieldResult] = field(default_factory=list)
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    configuration_errors: List[str] = field(default_factory=list)
    configuration_warnings: List[str] = field(default_factory=list)

    def _with(self, outcome: FieldOutcome) -> List[FieldResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def written(self) -> List[FieldResult]:
        return self._with(FieldOutcome.WRITTEN)

    @property
    def skipped(self) -> List[FieldResult]:
        return self._with(FieldOutcome.SKIPPED)

    @property
    def unchanged(self) -> List[FieldResult]:
        return self._with(FieldOutcome.UNCHANGED)

    @property
    def failed(self) -> List[FieldResult]:
        return self._with(FieldOutcome.FAILED)

    @property
    def has_configuration_errors(self) -> bool:
        return bool(self.configuration_errors)

    @property
    def success(self) -> bool:
        return not self.failed and self.map_error is None

    def result_for(self, field_id: str) -> Optional[FieldResult]:
        for result in reversed(self.results):
            if result.field_id == field_id:
                return result
        return None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        if self.success and self.has_configuration_errors:
            status = "⚠ SUCCESS WITH CONFIGURATION ERRORS"
        lines.append(f"{'='*60}")
        lines.append("  fieldgen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:     {status}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"  Output:     {self.output_directory}")
        lines.append(f"  Map file:   {self.map_file}")
        lines.append(f"  Fields:     {len(self.results)}")
        lines.append(f"  Written:    {len(self.written)}")
        lines.append(f"  Unchanged:  {len(self.unchanged)}")
        lines.append(f"  Skipped:    {len(self.skipped)}")
        lines.append(f"  Failed:     {len(self.failed)}")
        lines.append(f"  Total time: {self.total_elapsed_seconds:.3f}s")

        if self.step_metrics:
            lines.append(f"{'─'*60}")
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        if self.configuration_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Configuration Errors ({len(self.configuration_errors)}):")
            for err in self.configuration_errors:
                lines.append(f"    ✗ {err}")

        if self.configuration_warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Configuration Warnings ({len(self.configuration_warnings)}):")
            for warn in self.configuration_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.failed:
            lines.append(f"{'─'*60}")
            lines.append(f"  Failed Fields ({len(self.failed)}):")
            for res in self.failed:
                lines.append(f"    ✗ {res.field_id} ({res.field_name}): {res.reason}")

        if self.map_error is not None:
            lines.append(f"{'─'*60}")
            lines.append(f"  Map Not Saved: {self.map_error}")

        unbound: List[FieldResult] = [r for r in self.skipped if r.reason == "unbound"]
        if unbound:
            lines.append(f"{'─'*60}")
            lines.append(f"  Unbound Fields ({len(unbound)}):")
            for res in unbound:
                lines.append(f"    ⊘ {res.field_id} ({res.field_name})")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a JSON object at top level of {path}, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level of {path}, got {type(data).__name__}."
        )
    return data


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a mapping configuration file (YAML or JSON) by extension.

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed.
    """
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    if path.suffix.lower() == ".json":
        return _load_json_file(path)
    return _load_yaml_file(path)


def parse_raw_config(raw: Dict[str, Any], base_dir: Path) -> MappingConfig:
    """
    Parse a raw configuration dictionary into a ``MappingConfig``.

    Relative paths in the configuration resolve against *base_dir* (the
    directory holding the configuration file).

    Raises:
        ConfigurationError: If the top-level structure is invalid.
    """
    data: Dict[str, Any] = dict(raw)
    declared_base: Optional[str] = data.get("base_dir")
    resolved_base: Path = base_dir
    if declared_base:
        resolved_base = (base_dir / Path(declared_base).expanduser()).resolve()
    data["base_dir"] = str(resolved_base)

    try:
        return MappingConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Configuration validation failed: {exc}") from exc


def load_config(path: Path) -> MappingConfig:
    """Load and parse the configuration file at *path*."""
    resolved: Path = Path(path).resolve()
    config: MappingConfig = parse_raw_config(load_config_file(resolved), resolved.parent)
    logger.info("Loaded configuration %s (%d template(s)).", resolved, len(config.templates))
    return config


@dataclass(frozen=True, slots=True)
class ConfigurationPass:
    """Everything the configuration pass derives from a ``MappingConfig``."""

    bindings: TemplateBindingTable
    skip_evaluator: SkipEvaluator
    validation: ValidationResult


def run_configuration_pass(
    config: MappingConfig, *, check_connection: bool = True
) -> ConfigurationPass:
    """
    Build the binding table and skip rules in partial-success mode.

    ``validation.has_errors`` is the aggregate "configuration had errors"
    flag; the caller decides what it means for the exit status.
    """
    validation: ValidationResult = ValidationResult()

    bindings, binding_result = build_binding_table(config)
    validation.merge(binding_result)

    rules, skip_result = build_skip_rules(config.skip)
    validation.merge(skip_result)

    if check_connection:
        validation.merge(validate_connection(config.connection))
    validation.merge(validate_target(config.target))

    logger.info("Configuration pass: %s", validation.summary())
    return ConfigurationPass(
        bindings=bindings,
        skip_evaluator=SkipEvaluator(rules),
        validation=validation,
    )


# ---------------------------------------------------------------------------
# FieldGenerator — orchestrator
# ---------------------------------------------------------------------------


class FieldGenerator:
    """
    Generates one artifact per remote field.

    Usage::

        generator = FieldGenerator.from_config(config, service)
        ok = generator.generate_all(confirm=ask_user)
        print(generator.report.summary())

    Not thread-safe: the target directory and the Generation Map are owned
    by one generator for the duration of a run.
    """

    def __init__(
        self,
        config: MappingConfig,
        service: FieldService,
        renderer: TemplateRenderer,
        bindings: TemplateBindingTable,
        skip_evaluator: SkipEvaluator,
        generation_map: GenerationMap,
        *,
        map_path: Path,
        exporter: Optional[ArtifactExporter] = None,
        dry_run: bool = False,
        flush_each_write: bool = True,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._config: MappingConfig = config
        self._service: FieldService = service
        self._renderer: TemplateRenderer = renderer
        self._bindings: TemplateBindingTable = bindings
        self._skip: SkipEvaluator = skip_evaluator
        self._map: GenerationMap = generation_map
        self._map_path: Path = Path(map_path)
        self._exporter: ArtifactExporter = exporter or ArtifactExporter(
            Path(config.target_directory), config.target
        )
        self._dry_run: bool = dry_run
        self._flush_each_write: bool = flush_each_write
        self._log: logging.Logger = log or logger

        self._report: GenerationReport = GenerationReport(
            output_directory=str(self._exporter.output_dir),
            map_file=str(self._map_path),
            dry_run=dry_run,
        )

        self._log.debug(
            "FieldGenerator initialised: output=%s, map=%s, dry_run=%s, flush_each_write=%s.",
            self._exporter.output_dir,
            self._map_path,
            dry_run,
            flush_each_write,
        )

    @classmethod
    def from_config(
        cls,
        config: MappingConfig,
        service: FieldService,
        *,
        renderer: Optional[TemplateRenderer] = None,
        dry_run: bool = False,
        flush_each_write: bool = True,
        check_connection: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> "FieldGenerator":
        """
        Run the configuration pass, load the Generation Map and build a
        generator.

        Raises:
            MapFileError: If the existing Generation Map cannot be parsed.
                Nothing has been written at that point.
        """
        config_pass: ConfigurationPass = run_configuration_pass(
            config, check_connection=check_connection
        )
        map_path: Path = Path(config.map_path)
        generation_map: GenerationMap = GenerationMap.load(map_path)

        generator: FieldGenerator = cls(
            config,
            service,
            renderer or TemplateRenderer(),
            config_pass.bindings,
            config_pass.skip_evaluator,
            generation_map,
            map_path=map_path,
            dry_run=dry_run,
            flush_each_write=flush_each_write,
            log=log,
        )
        generator.record_configuration(config_pass.validation)
        return generator

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    @property
    def report(self) -> GenerationReport:
        return self._report

    @property
    def generation_map(self) -> GenerationMap:
        return self._map

    def record_configuration(self, validation: ValidationResult) -> None:
        self._report.configuration_errors.extend(str(e) for e in validation.errors)
        self._report.configuration_warnings.extend(str(w) for w in validation.warnings)

    def generate_field(self, descriptor: FieldDescriptor) -> bool:
        """
        Generate the artifact of one field.

        Returns True unless the field ended in the Failed state or the
        Generation Map could not be saved.
        """
        start: float = time.perf_counter()
        result: FieldResult = self._process(descriptor)
        if not self._flush_each_write:
            self._flush_map_at_end()
        self._report.total_elapsed_seconds += time.perf_counter() - start
        return result.outcome != FieldOutcome.FAILED and self._report.map_error is None

    def generate_all(self, confirm: Optional[ConfirmFn] = None) -> bool:
        """
        Generate artifacts for the whole remote field catalog.

        *confirm* is called with the fields about to be processed before
        anything is written.  Every field is attempted; the result is True
        only if none of them failed.

        Raises:
            GenerationInterrupted: If *confirm* answers no.
            FieldServiceError: If the catalog cannot be listed.
        """
        start: float = time.perf_counter()

        with Timer("list fields") as t_list:
            fields: List[FieldDescriptor] = self._catalog()
        self._report.step_metrics.append(GenerationStepMetric(
            step_name="List Remote Fields",
            success=True,
            elapsed_seconds=t_list.elapsed,
            detail=f"{len(fields)} field(s)",
        ))

        if confirm is not None and not confirm(fields):
            self._log.warning("Bulk generation declined; nothing was written.")
            raise GenerationInterrupted("Bulk generation was not confirmed.")

        with Timer("generate") as t_gen:
            for descriptor in fields:
                self._process(descriptor)
            self._flush_map_at_end()

        self._report.step_metrics.append(GenerationStepMetric(
            step_name="Generate Artifacts",
            success=self._report.success,
            elapsed_seconds=t_gen.elapsed,
            detail=(
                f"{len(self._report.written)} written, "
                f"{len(self._report.unchanged)} unchanged, "
                f"{len(self._report.skipped)} skipped, "
                f"{len(self._report.failed)} failed"
            ),
        ))
        self._report.total_elapsed_seconds += time.perf_counter() - start

        if self._report.failed:
            self._log.error(
                "Bulk generation finished with %d failed field(s).",
                len(self._report.failed),
            )
        else:
            self._log.info("Bulk generation finished: %d field(s).", len(fields))

        return self._report.success

    # -----------------------------------------------------------------
    # Internal: catalog
    # -----------------------------------------------------------------

    def _catalog(self) -> List[FieldDescriptor]:
        fields: List[FieldDescriptor] = self._service.list_fields()
        if self._config.custom_only:
            fields = [f for f in fields if f.custom]
        return sorted(fields, key=lambda f: f.id)

    # -----------------------------------------------------------------
    # Internal: per-field state machine
    # -----------------------------------------------------------------

    def _finish(
        self,
        descriptor: FieldDescriptor,
        outcome: FieldOutcome,
        reason: str = "",
        path: Optional[str] = None,
        template: Optional[str] = None,
    ) -> FieldResult:
        result: FieldResult = FieldResult(
            field_id=descriptor.id,
            field_name=descriptor.name,
            outcome=outcome,
            reason=reason,
            path=path,
            template=template,
        )
        self._report.results.append(result)
        return result

    def _load_options(
        self, descriptor: FieldDescriptor, binding: TemplateBinding
    ) -> Optional[List[FieldOption]]:
        try:
            return self._service.get_options(descriptor.id)
        except Exception as exc:
            self._log.warning(
                "Could not load options for %s (%s), rendering '%s' without them: %s",
                descriptor.id,
                descriptor.name,
                binding.name,
                exc,
            )
            return None

    def _process(self, descriptor: FieldDescriptor) -> FieldResult:
        binding: Optional[TemplateBinding] = self._bindings.resolve(descriptor)
        decision: SkipReason = self._skip.should_skip(descriptor, bound=binding is not None)
        if decision.skip or binding is None:
            return self._finish(descriptor, FieldOutcome.SKIPPED, decision.reason)

        options: Optional[List[FieldOption]] = None
        if binding.load_options:
            options = self._load_options(descriptor, binding)

        relative_path: str = self._exporter.relative_path_for(descriptor)

        try:
            text: str = self._renderer.render(
                binding.path,
                build_context(descriptor, binding, self._config.target, options),
            )
        except RenderError as exc:
            self._log.error(
                "Field %s (%s) failed to render %s with template '%s' (%s): %s",
                descriptor.id,
                descriptor.name,
                relative_path,
                binding.name,
                binding.path,
                exc,
            )
            return self._finish(
                descriptor, FieldOutcome.FAILED, str(exc), relative_path, binding.name
            )

        digest: str = fingerprint(text)
        previous: Optional[GenerationMapEntry] = self._map.get(descriptor.id)
        if (
            previous is not None
            and previous.fingerprint == digest
            and previous.path == relative_path
            and previous.template == binding.name
            and self._exporter.exists(relative_path)
        ):
            self._log.debug("%s unchanged (%s).", descriptor.id, relative_path)
            return self._finish(
                descriptor, FieldOutcome.UNCHANGED, "", relative_path, binding.name
            )

        if self._dry_run:
            self._log.info("[dry-run] Would write %s for %s.", relative_path, descriptor.id)
            return self._finish(
                descriptor, FieldOutcome.WRITTEN, "dry-run", relative_path, binding.name
            )

        try:
            self._exporter.write(relative_path, text)
            self._map.put(GenerationMapEntry(
                field_id=descriptor.id,
                path=relative_path,
                template=binding.name,
                fingerprint=digest,
            ))
            if self._flush_each_write:
                self._map.flush(self._map_path)
        except WriteError as exc:
            self._log.error(
                "Field %s (%s) could not be written to %s with template '%s' (%s): %s",
                descriptor.id,
                descriptor.name,
                relative_path,
                binding.name,
                binding.path,
                exc,
            )
            return self._finish(
                descriptor, FieldOutcome.FAILED, str(exc), relative_path, binding.name
            )

        self._log.info(
            "Wrote %s for %s (%s) using '%s'.",
            relative_path,
            descriptor.id,
            descriptor.name,
            binding.name,
        )
        return self._finish(
            descriptor, FieldOutcome.WRITTEN, "", relative_path, binding.name
        )

    def _flush_map_at_end(self) -> None:
        if self._dry_run or not self._map.dirty:
            return
        try:
            self._map.flush(self._map_path)
        except WriteError as exc:
            self._log.error("Generation map could not be saved: %s", exc)
            self._report.map_error = str(exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ConfirmFn",
    "ConfigurationPass",
    "FieldGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_config",
    "load_config_file",
    "parse_raw_config",
    "run_configuration_pass",
]

logger.debug("fieldgen.generator loaded.")
