"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json

import pytest

from lead_pipeline import __main__
from lead_pipeline.cli import main


@pytest.fixture()
def config_path(tmp_path):
    path = tmp_path / "pipeline.yaml"
    path.write_text(
        f"store:\n  backend: memory\n  snapshot: {tmp_path / 'crm.json'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def input_path(tmp_path):
    path = tmp_path / "leads.csv"
    path.write_text(
        "Phone,Name,Email,Lead Source\n"
        "9876543210,Asha Rao,asha@example.com,whatsApp\n"
        "+91 91234 56789,Ravi Kumar,,referral\n",
        encoding="utf-8",
    )
    return path


def _run(capsys: pytest.CaptureFixture[str], *argv: str):
    exit_code = main(list(argv))
    captured = capsys.readouterr()
    return exit_code, captured


def test_cli_imports_calls_and_converts(
    tmp_path, config_path, input_path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = str(config_path)

    exit_code, _ = _run(capsys, "seed-counters", "--config", config)
    assert exit_code == 0

    exit_code, captured = _run(capsys, "import", str(input_path), "--config", config)
    assert exit_code == 0
    assert json.loads(captured.out)["committed"] == ["LDA1", "LDA2"]

    exit_code, captured = _run(capsys, "call", "lead", "LDA1", "not connected", "--config", config)
    assert exit_code == 0
    assert json.loads(captured.out)["contactStatus"] == "rnr-1"

    exit_code, captured = _run(
        capsys, "convert", "LDA1", "--set", "kamName=Priya", "--set", "firmName=Rao Realty", "--config", config
    )
    assert exit_code == 0
    assert json.loads(captured.out)["cpId"] == "CPB546"

    snapshot = json.loads((tmp_path / "crm.json").read_text(encoding="utf-8"))
    assert sorted(snapshot["leads"]) == ["LDA2"]
    assert snapshot["agents"]["CPB546"]["contactStatus"] == "rnr-1"
    assert snapshot["agents"]["CPB546"]["firmName"] == "Rao Realty"


def test_cli_validate_writes_preview(tmp_path, config_path, input_path, capsys: pytest.CaptureFixture[str]) -> None:
    preview = tmp_path / "preview.csv"

    exit_code, captured = _run(capsys, "validate", str(input_path), "--preview", str(preview), "--config", str(config_path))

    assert exit_code == 0
    assert json.loads(captured.out)["committable"] == 2
    assert preview.exists()
    assert "Ravi Kumar" in preview.read_text(encoding="utf-8")


def test_cli_reports_pipeline_errors(config_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code, captured = _run(
        capsys, "add-lead", "--name", "Asha", "--phone", "12345", "--source", "direct", "--config", str(config_path)
    )

    assert exit_code == 1
    assert "Phone number must be exactly 10 digits" in captured.err


def test_module_entry_point_delegates_to_cli(config_path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main(["seed-counters", "--config", str(config_path)])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert json.loads(captured.out)["agents"] == {"count": 545, "prefix": "B", "label": "CP"}


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m lead_pipeline" in captured.out
    assert exit_code == 2


def test_module_entry_point_reads_sys_argv(monkeypatch, config_path, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr("sys.argv", ["lead_pipeline", "seed-counters", "--config", str(config_path)])

    exit_code = __main__.main()

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["leads"]["label"] == "LD"
