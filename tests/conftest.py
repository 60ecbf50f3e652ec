# Shared pytest fixtures
from __future__ import annotations
import tempfile
from collections.abc import Sequence
from pathlib import Path

import pandas as pd
import pytest

from client_import.db.repository import RepositoryError
from client_import.logging.init import reset_logging
from client_import.models.client_record import ClientImportRecord
from client_import.models.import_result import InsertManyResult
from client_import.models.row_data import RawRow

HEADER = ["Nome", "E-mail", "Status", "Telefone", "Cidade", "UF"]


@pytest.fixture(autouse=True)
def clean_logging():
    # handlers bind sys.stdout at creation; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: clients
batch_size: 2
owner_id: advisor-1
timezone: America/Sao_Paulo
error_log_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: crm
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def raw_rows(*cells: Sequence[str], header: Sequence[str] = HEADER) -> list[RawRow]:
    """Build RawRows numbered from 1 the way the decoder would."""
    return [
        RawRow(row_number=i, values=dict(zip(header, row, strict=False)))
        for i, row in enumerate(cells, start=1)
    ]


def make_xlsx(path: Path, rows: list[list[object]], sheet: str = "Clientes") -> Path:
    """Write rows (first row = header) to an .xlsx without a pandas header line."""
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


def make_csv(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class FakeRepository:
    """In-memory ClientRepository.

    reject: primary emails the store refuses (e.g. a unique constraint).
    fail_calls: 1-based insert_many call numbers that raise RepositoryError.
    """

    def __init__(self, reject: Sequence[str] = (), fail_calls: Sequence[int] = ()) -> None:
        self.reject = {e.casefold() for e in reject}
        self.fail_calls = set(fail_calls)
        self.calls: list[list[ClientImportRecord]] = []
        self.stored: list[ClientImportRecord] = []

    def insert_many(self, records: Sequence[ClientImportRecord]) -> InsertManyResult:
        self.calls.append(list(records))
        if len(self.calls) in self.fail_calls:
            raise RepositoryError("connection lost")
        errors = []
        error_rows = []
        inserted = 0
        for rec in records:
            if rec.primary_email.casefold() in self.reject:
                errors.append(f"Row {rec.source_row}: duplicate key value violates unique constraint")
                error_rows.append(rec.source_row)
            else:
                self.stored.append(rec)
                inserted += 1
        return InsertManyResult(inserted=inserted, errors=tuple(errors), error_rows=tuple(error_rows))


@pytest.fixture()
def fake_repo() -> FakeRepository:
    return FakeRepository()
