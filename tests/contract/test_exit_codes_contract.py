from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import load_workbook

from client_import.cli import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL
from client_import.cli import main as cli_main
from tests.conftest import make_csv, make_xlsx

"""Exit code contract: 0 all imported, 2 partial, 1 fatal."""


@pytest.fixture()
def mock_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # no config/import.yml
    path = make_csv(temp_workdir / "data" / "c.csv", "Nome,E-mail\nAna,a@x.com\n")
    code = cli_main(["import", str(path), "--yes"])
    assert code == EXIT_FATAL == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(temp_workdir: Path, write_config: Path, mock_db, capsys):
    path = make_xlsx(
        temp_workdir / "data" / "clientes.xlsx",
        [["Nome", "E-mail", "Telefone"], ["Ana", "ana@x.com", "1"], ["Bia", "bia@x.com", "2"], ["Caio", "c@x.com", "3"]],
    )
    code = cli_main(["import", str(path), "--yes"])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS_ALL == 0
    assert "SUMMARY rows=3 valid=3 invalid=0 inserted=3 failed=0 cancelled=0" in out
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []


def test_exit_code_partial_on_invalid_rows(temp_workdir: Path, write_config: Path, mock_db, capsys):
    path = make_csv(temp_workdir / "data" / "c.csv", "Nome,E-mail\nAna,a@x.com\n,b@x.com\nCaio,bad\n")
    code = cli_main(["import", str(path), "--yes"])
    out = capsys.readouterr().out
    assert code == EXIT_PARTIAL_FAILURE == 2
    assert "row 2: Name is required." in out
    assert "row 3: At least one valid email is required." in out
    assert "SUMMARY rows=3 valid=1 invalid=2 inserted=1 failed=0 cancelled=0" in out
    assert len(list((temp_workdir / "logs").glob("errors-*.log"))) == 1


def test_exit_code_partial_when_nothing_valid(temp_workdir: Path, write_config: Path, mock_db, capsys):
    path = make_csv(temp_workdir / "data" / "c.csv", "Nome,E-mail\n,a@x.com\n")
    assert cli_main(["import", str(path), "--yes"]) == EXIT_PARTIAL_FAILURE
    assert "WARN no valid rows to import" in capsys.readouterr().out


def test_exit_code_fatal_on_bad_file(temp_workdir: Path, write_config: Path, mock_db, capsys):
    path = make_csv(temp_workdir / "data" / "c.csv", "Telefone,Cidade\n1,Recife\n")
    code = cli_main(["import", str(path), "--yes"])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert 'ERROR import: Required column(s) "Nome", "E-mail" not found.' in out
    assert "SUMMARY" not in out


@pytest.mark.parametrize("answer,expected", [("s", EXIT_SUCCESS_ALL), ("n", EXIT_PARTIAL_FAILURE)])
def test_exit_code_follows_confirmation(temp_workdir, write_config, mock_db, monkeypatch, capsys, answer, expected):
    path = make_csv(temp_workdir / "data" / "c.csv", "Nome,E-mail,Telefone\nAna,a@x.com,1\n")
    monkeypatch.setattr("builtins.input", lambda prompt: answer)
    assert cli_main(["import", str(path)]) == expected


def test_template_and_export_succeed(temp_workdir: Path, write_config: Path, mock_db, capsys):
    assert cli_main(["template", "-o", "out/modelo.xlsx"]) == EXIT_SUCCESS_ALL
    assert load_workbook(temp_workdir / "out" / "modelo.xlsx").sheetnames == ["Clientes", "Instruções"]

    assert cli_main(["export", "-o", "out/clientes.xlsx"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "WARN no clients to export" in out
    ws = load_workbook(temp_workdir / "out" / "clientes.xlsx")["Clientes"]
    assert ws["A1"].value == "Nome"
    assert ws.max_row == 1


def test_exit_code_fatal_when_commit_is_reset(temp_workdir, write_config, mock_db, monkeypatch, capsys):
    from client_import.services.orchestrator import ImportOrchestrator

    def reset_instead(self):
        self.reset()
        return self.snapshot()

    monkeypatch.setattr(ImportOrchestrator, "confirm_import", reset_instead)
    path = make_csv(temp_workdir / "data" / "c.csv", "Nome,E-mail,Telefone\nAna,a@x.com,1\n")
    code = cli_main(["import", str(path), "--yes"])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert "ERROR import: no result for" in out
    assert "SUMMARY" not in out
