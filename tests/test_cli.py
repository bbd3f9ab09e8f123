"""
tests/test_cli.py
End-to-end tests for fieldgen.cli: argument handling and the exit-code
contract.  The remote service is replaced through ``fieldgen.cli._build_service``.
"""

from __future__ import annotations

import pathlib
from typing import Any, Dict, List, Optional

import pytest
import yaml

from conftest import FakeFieldService
from fieldgen import cli
from fieldgen.errors import FieldServiceError
from fieldgen.models import ConnectionSettings, FieldDescriptor


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.cli_main(argv)
    return exc_info.value.code


def _write_config(tmp_path: pathlib.Path, data: Dict[str, Any]) -> pathlib.Path:
    path = tmp_path / "fieldgen.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False)
    return path


@pytest.fixture()
def use_service(monkeypatch: pytest.MonkeyPatch):
    """Route the CLI to a given fake service; returns the setter."""

    def _use(service: FakeFieldService) -> FakeFieldService:
        def _build(settings: ConnectionSettings) -> FakeFieldService:
            return service

        monkeypatch.setattr(cli, "_build_service", _build)
        return service

    return _use


class _UnreachableService(FakeFieldService):
    def list_fields(self) -> List[FieldDescriptor]:
        raise FieldServiceError("GET /rest/api/2/field failed with HTTP 503.", status_code=503)


class _InterruptingService(FakeFieldService):
    def list_fields(self) -> List[FieldDescriptor]:
        raise KeyboardInterrupt


# ===========================================================================
# Argument handling
# ===========================================================================


class TestArguments:
    """Usage errors."""

    def test_no_mode_is_invalid(self, config_yaml_path: pathlib.Path) -> None:
        assert _run(["-c", str(config_yaml_path)]) == cli.EXIT_INVALID_OPTIONS

    def test_conflicting_modes_are_invalid(self, config_yaml_path: pathlib.Path) -> None:
        assert _run(["-c", str(config_yaml_path), "--all", "--field", "x"]) == 2

    def test_missing_config_file(self, tmp_path: pathlib.Path) -> None:
        assert _run(["-c", str(tmp_path / "nope.yaml"), "--all"]) == cli.EXIT_INVALID_OPTIONS


# ===========================================================================
# Validate-only mode
# ===========================================================================


class TestValidateOnly:

    def test_valid_configuration(
        self, config_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(["-c", str(config_yaml_path), "--validate-only"]) == cli.EXIT_SUCCESS
        assert "Valid:         Yes" in capsys.readouterr().out

    def test_invalid_configuration(
        self,
        config_dict: Dict[str, Any],
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        config_dict["templates"]["ghost"] = {"path": "templates/nope.j2", "types": ["x"]}
        path = _write_config(tmp_path, config_dict)
        assert _run(["-c", str(path), "--validate-only"]) == cli.EXIT_CONFIGURATION_ERROR
        assert "TEMPLATE_NOT_FOUND" in capsys.readouterr().out


# ===========================================================================
# Generation modes
# ===========================================================================


class TestGeneration:
    """Exit codes of --field and --all."""

    def test_bulk_run_succeeds(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--all", "--yes"]) == cli.EXIT_SUCCESS
        assert (output_dir / "acme" / "fields" / "customfield_100.py").is_file()
        assert (output_dir / ".fieldgen-map.json").is_file()
        assert "Written:    3" in capsys.readouterr().out
        assert fake_service.closed

    def test_single_field_by_id(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
    ) -> None:
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--field", "customfield_300"]) == 0
        assert (output_dir / "acme" / "fields" / "customfield_300.py").is_file()
        assert not (output_dir / "acme" / "fields" / "customfield_100.py").exists()

    def test_single_field_by_name(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
    ) -> None:
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--field", "Severity"]) == 0
        assert (output_dir / "acme" / "fields" / "customfield_300.py").is_file()

    def test_ambiguous_name_lists_candidates(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_service(fake_service)
        code = _run(["-c", str(config_yaml_path), "--field", "Developer"])
        assert code == cli.EXIT_FIELD_NOT_FOUND
        err = capsys.readouterr().err
        assert "customfield_100  Developer" in err
        assert "customfield_200  Developer" in err
        assert not output_dir.exists()

    def test_unknown_field(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        use_service,
    ) -> None:
        use_service(fake_service)
        code = _run(["-c", str(config_yaml_path), "--field", "customfield_999"])
        assert code == cli.EXIT_FIELD_NOT_FOUND

    def test_render_failure_exit_code(
        self,
        config_dict: Dict[str, Any],
        tmp_path: pathlib.Path,
        fake_service: FakeFieldService,
        use_service,
    ) -> None:
        config_dict["templates"]["broken"] = {
            "path": "templates/broken.j2",
            "fields": ["customfield_300"],
        }
        use_service(fake_service)
        path = _write_config(tmp_path, config_dict)
        assert _run(["-c", str(path), "--all", "--yes"]) == cli.EXIT_GENERATION_ERROR

    def test_configuration_errors_exit_code(
        self,
        config_dict: Dict[str, Any],
        tmp_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
    ) -> None:
        config_dict["templates"]["ghost"] = {"path": "templates/nope.j2", "types": ["x"]}
        use_service(fake_service)
        path = _write_config(tmp_path, config_dict)
        assert _run(["-c", str(path), "--all", "--yes"]) == cli.EXIT_CONFIGURATION_ERROR
        # Valid bindings were still generated.
        assert (output_dir / "acme" / "fields" / "customfield_100.py").is_file()

    def test_corrupt_map_exit_code(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
    ) -> None:
        output_dir.mkdir()
        (output_dir / ".fieldgen-map.json").write_text("nope", encoding="utf-8")
        use_service(fake_service)
        code = _run(["-c", str(config_yaml_path), "--all", "--yes"])
        assert code == cli.EXIT_CONFIGURATION_ERROR
        assert (output_dir / ".fieldgen-map.json").read_text(encoding="utf-8") == "nope"

    def test_missing_base_url(
        self,
        config_dict: Dict[str, Any],
        tmp_path: pathlib.Path,
        fake_service: FakeFieldService,
        use_service,
    ) -> None:
        config_dict["connection"]["base_url"] = ""
        use_service(fake_service)
        path = _write_config(tmp_path, config_dict)
        assert _run(["-c", str(path), "--all", "--yes"]) == cli.EXIT_CONFIGURATION_ERROR

    def test_remote_error_exit_code(
        self, config_yaml_path: pathlib.Path, use_service
    ) -> None:
        use_service(_UnreachableService())
        assert _run(["-c", str(config_yaml_path), "--all", "--yes"]) == cli.EXIT_REMOTE_ERROR

    def test_keyboard_interrupt_exit_code(
        self, config_yaml_path: pathlib.Path, use_service
    ) -> None:
        use_service(_InterruptingService())
        assert _run(["-c", str(config_yaml_path), "--all", "--yes"]) == cli.EXIT_INTERRUPTED

    def test_declined_confirmation(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        prompts: List[str] = []

        def fake_input(prompt: Optional[str] = None) -> str:
            prompts.append(prompt or "")
            return "n"

        monkeypatch.setattr("builtins.input", fake_input)
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--all"]) == cli.EXIT_INTERRUPTED
        assert "5 field(s)" in prompts[0]
        assert not output_dir.exists()

    def test_accepted_confirmation(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("builtins.input", lambda prompt=None: "yes")
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--all"]) == cli.EXIT_SUCCESS
        assert output_dir.exists()

    def test_dry_run_writes_nothing(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        output_dir: pathlib.Path,
        use_service,
    ) -> None:
        use_service(fake_service)
        assert _run(["-c", str(config_yaml_path), "--all", "--yes", "--dry-run"]) == 0
        assert not output_dir.exists()

    def test_output_and_namespace_overrides(
        self,
        config_yaml_path: pathlib.Path,
        fake_service: FakeFieldService,
        tmp_path: pathlib.Path,
        use_service,
    ) -> None:
        use_service(fake_service)
        target = tmp_path / "elsewhere"
        code = _run([
            "-c", str(config_yaml_path),
            "--field", "customfield_100",
            "-o", str(target),
            "--namespace", "other.ns",
        ])
        assert code == cli.EXIT_SUCCESS
        assert (target / "other" / "ns" / "customfield_100.py").is_file()
        assert (target / ".fieldgen-map.json").is_file()
