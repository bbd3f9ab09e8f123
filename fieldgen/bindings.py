# File: fieldgen/bindings.py
"""
fieldgen - Template Binding Table
==================================
Two explicit ordered mappings built once at startup:

    field id → TemplateBinding
    type id  → TemplateBinding

``resolve()`` looks up the exact field id first and falls back to the type
id.  A field found in neither mapping is *unbound*: that is not an error
here, the Skip Evaluator turns it into the implicit ``unbound`` skip.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from fieldgen.models import FieldDescriptor, MappingConfig, TemplateBinding, TemplateEntry
from fieldgen.validators import ValidationResult, validate_template_entry

logger: logging.Logger = logging.getLogger("fieldgen.bindings")


class TemplateBindingTable:
    """
    Field-id and type-id lookups for template bindings.

    Not mutated once the configuration pass is over.
    """

    def __init__(self) -> None:
        self._by_field: Dict[str, TemplateBinding] = {}
        self._by_type: Dict[str, TemplateBinding] = {}

    def bind(self, field_id: str, binding: TemplateBinding) -> None:
        self._by_field[field_id] = binding

    def bind_type(self, type_id: str, binding: TemplateBinding) -> None:
        self._by_type[type_id] = binding

    def resolve(self, descriptor: FieldDescriptor) -> Optional[TemplateBinding]:
        binding: Optional[TemplateBinding] = self._by_field.get(descriptor.id)
        if binding is not None:
            logger.debug("%s bound by field id to '%s'.", descriptor.id, binding.name)
            return binding

        if descriptor.type_id:
            binding = self._by_type.get(descriptor.type_id)
            if binding is not None:
                logger.debug(
                    "%s bound by type %s to '%s'.",
                    descriptor.id,
                    descriptor.type_id,
                    binding.name,
                )
                return binding

        return None

    def is_field_bound(self, field_id: str) -> bool:
        return field_id in self._by_field

    def is_type_bound(self, type_id: str) -> bool:
        return type_id in self._by_type

    @property
    def field_bindings(self) -> Dict[str, TemplateBinding]:
        return dict(self._by_field)

    @property
    def type_bindings(self) -> Dict[str, TemplateBinding]:
        return dict(self._by_type)

    @property
    def templates(self) -> List[TemplateBinding]:
        """Distinct bindings in declaration order."""
        seen: Dict[str, TemplateBinding] = {}
        for binding in list(self._by_field.values()) + list(self._by_type.values()):
            seen.setdefault(binding.name, binding)
        return list(seen.values())

    def __len__(self) -> int:
        return len(self._by_field) + len(self._by_type)

    def __repr__(self) -> str:
        return (
            f"<TemplateBindingTable {len(self._by_field)} field binding(s), "
            f"{len(self._by_type)} type binding(s)>"
        )


def build_binding_table(
    config: MappingConfig,
) -> Tuple[TemplateBindingTable, ValidationResult]:
    """
    Build the table from ``config.templates`` in partial-success mode.

    Invalid entries are reported in the returned ``ValidationResult`` and
    left out; the table holds every valid entry.  When two entries claim the
    same field id (or type id) the first declared entry keeps it.
    """
    table: TemplateBindingTable = TemplateBindingTable()
    result: ValidationResult = ValidationResult()

    for name, raw in config.templates.items():
        entry: Optional[TemplateEntry] = validate_template_entry(
            str(name), raw, config, result
        )
        if entry is None:
            continue

        binding: TemplateBinding = TemplateBinding(
            name=entry.name,
            path=entry.path,
            load_options=entry.load_options,
        )

        for field_id in entry.fields:
            if table.is_field_bound(field_id):
                result.add_warning(
                    "DUPLICATE_BINDING",
                    f"Field {field_id} is already bound to "
                    f"'{table.field_bindings[field_id].name}'; "
                    f"ignoring binding to '{entry.name}'.",
                    {"template": entry.name, "field": field_id},
                )
                continue
            table.bind(field_id, binding)

        for type_id in entry.types:
            if table.is_type_bound(type_id):
                result.add_warning(
                    "DUPLICATE_BINDING",
                    f"Type {type_id} is already bound to "
                    f"'{table.type_bindings[type_id].name}'; "
                    f"ignoring binding to '{entry.name}'.",
                    {"template": entry.name, "type": type_id},
                )
                continue
            table.bind_type(type_id, binding)

    logger.info("Built %r.", table)
    return table, result


__all__: List[str] = ["TemplateBindingTable", "build_binding_table"]
