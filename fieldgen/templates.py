# File: fieldgen/templates.py
"""
fieldgen - Template Renderer
=============================
Thin wrapper around Jinja2 exposing a single capability::

    render(template_path, context) -> text

Rendering is deterministic: the context carries only the field snapshot,
its options and target settings, never timestamps or run ids.

Templates are rendered with ``StrictUndefined`` (a typo in a template is a
``RenderError`` rather than silently empty output) and
``keep_trailing_newline`` so the artifact ends exactly like the template.

Filters available to templates:

    snake       to_snake_case
    pascal      to_pascal_case
    camel       to_camel_case
    identifier  safe_identifier
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from fieldgen.errors import RenderError
from fieldgen.models import FieldDescriptor, FieldOption, TargetSettings, TemplateBinding
from fieldgen.utils import (
    safe_class_name,
    safe_identifier,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen.templates")


class TemplateRenderer:
    """
    Renders template files with a Jinja2 environment per template directory.

    The renderer is reusable across fields; environments are cached so a
    template used by many fields is compiled once.
    """

    def __init__(self) -> None:
        self._environments: Dict[str, Environment] = {}

    def _environment_for(self, directory: Path) -> Environment:
        key: str = str(directory)
        env: Optional[Environment] = self._environments.get(key)
        if env is None:
            env = Environment(
                loader=FileSystemLoader(key),
                undefined=StrictUndefined,
                keep_trailing_newline=True,
                autoescape=False,
            )
            env.filters["snake"] = to_snake_case
            env.filters["pascal"] = to_pascal_case
            env.filters["camel"] = to_camel_case
            env.filters["identifier"] = safe_identifier
            self._environments[key] = env
        return env

    def render(self, template_path: str, context: Dict[str, Any]) -> str:
        """
        Render *template_path* with *context*.

        Raises:
            RenderError: On a missing template, a syntax error, an undefined
                variable, or any exception raised while the template runs.
        """
        path: Path = Path(template_path).resolve()
        env: Environment = self._environment_for(path.parent)

        try:
            template = env.get_template(path.name)
            rendered: str = template.render(**context)
        except TemplateError as exc:
            raise RenderError(str(path), f"{type(exc).__name__}: {exc}") from exc
        except OSError as exc:
            raise RenderError(str(path), str(exc)) from exc
        except Exception as exc:
            # Errors raised by expressions inside the template are not wrapped by Jinja2.
            raise RenderError(str(path), f"{type(exc).__name__}: {exc}") from exc

        logger.debug("Rendered %s (%d chars).", path.name, len(rendered))
        return rendered


def build_context(
    descriptor: FieldDescriptor,
    binding: TemplateBinding,
    target: TargetSettings,
    options: Optional[Sequence[FieldOption]] = None,
) -> Dict[str, Any]:
    """
    Assemble the template context for one field.

    ``options`` is None when the binding does not load options or when
    fetching them failed; templates should test ``options is none``.
    """
    return {
        "field": descriptor.model_dump(),
        "field_id": descriptor.id,
        "field_name": descriptor.name,
        "type_id": descriptor.type_id,
        "schema": dict(descriptor.schema_info),
        "class_name": safe_class_name(descriptor.name or descriptor.id),
        "namespace": target.namespace,
        "namespace_parts": list(target.namespace_parts),
        "template_name": binding.name,
        "options": None if options is None else [o.model_dump() for o in options],
    }


__all__: List[str] = ["TemplateRenderer", "build_context"]
