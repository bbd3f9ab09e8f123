"""
tests/conftest.py
Shared fixtures for the fieldgen test suite.

The remote field service is replaced by an in-memory fake; templates are
real Jinja2 files written into pytest's tmp_path, and all artifact and map
I/O is real file I/O inside temporary directories.
"""

from __future__ import annotations

import copy
import logging
import pathlib
import textwrap
from typing import Any, Dict, Iterable, List, Optional, Set

import pytest
import yaml

from fieldgen.errors import FieldNotFoundError, FieldServiceError
from fieldgen.generator import parse_raw_config
from fieldgen.models import FieldDescriptor, FieldOption, MappingConfig


TEXT_TYPE: str = "com.atlassian.jira.plugin.system.customfieldtypes:textfield"
SELECT_TYPE: str = "com.atlassian.jira.plugin.system.customfieldtypes:select"
EPIC_TYPE: str = "com.pyxis.greenhopper.jira:gh-epic-link"
UNKNOWN_TYPE: str = "com.example.plugin:mystery"


# ---------------------------------------------------------------------------
# Fake remote field service
# ---------------------------------------------------------------------------


def make_field(
    field_id: str,
    name: str,
    type_id: str = TEXT_TYPE,
    custom: bool = True,
) -> FieldDescriptor:
    """Build a descriptor the way the REST client would."""
    return FieldDescriptor.from_api({
        "id": field_id,
        "name": name,
        "custom": custom,
        "schema": {"type": "string", "custom": type_id} if custom else {"type": type_id},
    })


class FakeFieldService:
    """In-memory stand-in for ``JiraFieldService``."""

    def __init__(
        self,
        fields: Iterable[FieldDescriptor] = (),
        options: Optional[Dict[str, List[FieldOption]]] = None,
        failing_options: Iterable[str] = (),
    ) -> None:
        self.fields: List[FieldDescriptor] = list(fields)
        self.options: Dict[str, List[FieldOption]] = dict(options or {})
        self.failing_options: Set[str] = set(failing_options)
        self.option_calls: List[str] = []
        self.closed: bool = False

    def list_fields(self) -> List[FieldDescriptor]:
        return list(self.fields)

    def get_by_id(self, field_id: str) -> FieldDescriptor:
        for descriptor in self.fields:
            if descriptor.id == field_id:
                return descriptor
        raise FieldNotFoundError(field_id)

    def search_by_name(self, name: str) -> List[FieldDescriptor]:
        # Loose, case-insensitive like the real search endpoint.
        return [d for d in self.fields if name.lower() in d.name.lower()]

    def get_options(self, field_id: str) -> List[FieldOption]:
        self.option_calls.append(field_id)
        if field_id in self.failing_options:
            raise FieldServiceError(f"options for {field_id} unavailable", status_code=503)
        return list(self.options.get(field_id, []))

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeFieldService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@pytest.fixture()
def fake_service() -> FakeFieldService:
    """A catalog with text, select, epic-link, unbound and system fields."""
    return FakeFieldService(
        fields=[
            make_field("customfield_100", "Developer"),
            make_field("customfield_200", "Developer"),
            make_field("customfield_300", "Severity", SELECT_TYPE),
            make_field("customfield_400", "Epic Link", EPIC_TYPE),
            make_field("customfield_500", "Mystery", UNKNOWN_TYPE),
            make_field("summary", "Summary", "string", custom=False),
        ],
        options={
            "customfield_300": [
                FieldOption(id="1", value="Low"),
                FieldOption(id="2", value="High"),
            ],
        },
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

SCALAR_TEMPLATE: str = textwrap.dedent("""\
    class {{ class_name }}:
        FIELD_ID = "{{ field_id }}"
        FIELD_NAME = {{ field_name | tojson }}
        FIELD_TYPE = "{{ type_id }}"
    """)

SELECT_TEMPLATE: str = textwrap.dedent("""\
    class {{ class_name }}:
        FIELD_ID = "{{ field_id }}"
    {%- if options is none %}
        OPTIONS = None
    {%- else %}
        OPTIONS = {{ options | map(attribute="value") | list | tojson }}
    {%- endif %}
    """)

BROKEN_TEMPLATE: str = "class {{ class_name }}:\n    VALUE = {{ no_such_variable }}\n"


@pytest.fixture()
def templates_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the test templates and return their directory."""
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "scalar.j2").write_text(SCALAR_TEMPLATE, encoding="utf-8")
    (directory / "select.j2").write_text(SELECT_TEMPLATE, encoding="utf-8")
    (directory / "broken.j2").write_text(BROKEN_TEMPLATE, encoding="utf-8")
    return directory


# ---------------------------------------------------------------------------
# Mapping configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def raw_config(templates_dir: pathlib.Path) -> Dict[str, Any]:
    """Raw mapping configuration, paths relative to tmp_path."""
    return {
        "connection": {
            "base_url": "https://jira.example.test",
            "username": "bot@example.test",
            "token": "secret-token",
        },
        "target": {
            "directory": "out",
            "namespace": "acme.fields",
            "file_extension": ".py",
        },
        "templates": {
            "text": {"path": "templates/scalar.j2", "types": [TEXT_TYPE]},
            "select": {
                "path": "templates/select.j2",
                "load_options": True,
                "types": [SELECT_TYPE],
            },
        },
        "skip": {
            "type_patterns": {"com.pyxis.greenhopper.jira:*": True},
        },
    }


@pytest.fixture()
def config_dict(raw_config: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_config)


@pytest.fixture()
def mapping_config(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> MappingConfig:
    return parse_raw_config(config_dict, tmp_path)


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the config dict to a temporary YAML file and return its path."""
    path = tmp_path / "fieldgen.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(config_dict, fh, default_flow_style=False)
    return path


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "out"


# ---------------------------------------------------------------------------
# Logging hygiene
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_fieldgen_logger() -> Iterable[None]:
    """The CLI reconfigures the 'fieldgen' logger; restore it for caplog."""
    root = logging.getLogger("fieldgen")
    handlers = list(root.handlers)
    level = root.level
    propagate = root.propagate
    yield
    logging.disable(logging.NOTSET)
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate
