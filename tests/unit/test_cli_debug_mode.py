from __future__ import annotations

from pathlib import Path

from client_import.cli import main as cli_main
from tests.conftest import make_csv


def test_cli_debug_mode_mock_disable_db(temp_workdir: Path, write_config: Path, capsys, monkeypatch):
    """--debug prints DEBUG lines and DISABLE_DB_CONNECT=1 selects mock mode."""
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    path = make_csv(temp_workdir / "data" / "clientes.csv", "Nome,E-mail,Telefone\nAna,ana@x.com,1\n")

    code = cli_main(["--debug", "import", str(path), "--yes"])

    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "mode=mock" in out
    assert "DEBUG import state idle -> parsing" in out


def test_cli_without_debug_hides_debug_lines(temp_workdir: Path, capsys):
    code = cli_main(["template", "-o", str(temp_workdir / "modelo.xlsx")])
    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG" not in out


def test_cli_dotenv_enables_mock_mode(temp_workdir: Path, write_config: Path, capsys, monkeypatch):
    # registered with monkeypatch so the value written by .env is undone afterwards
    monkeypatch.setenv("DISABLE_DB_CONNECT", "0")
    (temp_workdir / ".env").write_text("DISABLE_DB_CONNECT=1\n", encoding="utf-8")
    path = make_csv(temp_workdir / "data" / "clientes.csv", "Nome,E-mail,Telefone\nAna,ana@x.com,1\n")

    assert cli_main(["import", str(path), "-y"]) == 0
    assert "mode=mock" in capsys.readouterr().out
