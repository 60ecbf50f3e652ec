from __future__ import annotations
import zipfile
from pathlib import Path

import pandas as pd
import pytest

from client_import.excel.reader import (
    TabularDecodeError,
    TabularStructureError,
    decode,
    decode_frame,
    read_tabular_file,
)
from client_import.services.validator import validate_rows
from tests.conftest import make_csv, make_xlsx


def test_decode_xlsx_first_line_is_header(tmp_path: Path):
    path = make_xlsx(
        tmp_path / "clientes.xlsx",
        [
            ["Nome", "E-mail", "CEP"],
            ["Ana", "ana@x.com", "01234-567"],
            ["Bruno", "bruno@x.com", None],
        ],
    )
    rows = decode(path)
    assert [r.row_number for r in rows] == [1, 2]
    assert rows[0].values == {"Nome": "Ana", "E-mail": "ana@x.com", "CEP": "01234-567"}
    assert rows[1].get("CEP") == ""


def test_decode_xlsx_keeps_na_like_text(tmp_path: Path):
    path = make_xlsx(tmp_path / "na.xlsx", [["Nome", "E-mail", "UF"], ["Ana", "ana@x.com", "NA"]])
    (row,) = decode(path)
    assert row.get("UF") == "NA"


def test_decode_skips_blank_lines_but_keeps_numbering(tmp_path: Path):
    path = make_csv(
        tmp_path / "clientes.csv",
        "Nome,E-mail\nAna,ana@x.com\n,\nBia,bia@x.com\n",
    )
    rows = decode(path)
    assert [(r.row_number, r.get("Nome")) for r in rows] == [(1, "Ana"), (3, "Bia")]


def test_decode_semicolon_csv(tmp_path: Path):
    path = make_csv(tmp_path / "br.csv", "Nome;E-mail;Cidade\nAna;ana@x.com;Recife\n")
    (row,) = decode(path)
    assert row.values == {"Nome": "Ana", "E-mail": "ana@x.com", "Cidade": "Recife"}


def test_decode_csv_with_bom_and_quoted_emails(tmp_path: Path):
    path = tmp_path / "bom.csv"
    path.write_text('\ufeffNome,E-mail\n"Ana","ana@x.com;ana2@x.com"\n', encoding="utf-8")
    (row,) = decode(path)
    assert row.get("Nome") == "Ana"
    assert row.get("E-mail") == "ana@x.com;ana2@x.com"


def test_header_only_file_has_no_rows(tmp_path: Path):
    path = make_csv(tmp_path / "empty_body.csv", "Nome,E-mail\n")
    assert decode(path) == []


def test_empty_csv_is_structural_error(tmp_path: Path):
    path = make_csv(tmp_path / "empty.csv", "")
    with pytest.raises(TabularStructureError):
        decode(path)


def test_blank_header_row_is_structural_error():
    df = pd.DataFrame([[None, None], ["Ana", "ana@x.com"]])
    with pytest.raises(TabularStructureError):
        decode_frame(df)


def test_unsupported_extension(tmp_path: Path):
    path = tmp_path / "clients.pdf"
    path.write_bytes(b"%PDF-1.4")
    with pytest.raises(TabularDecodeError, match="unsupported file type"):
        read_tabular_file(path)


def test_corrupt_xlsx_is_decode_error(tmp_path: Path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"this is not a zip archive")
    with pytest.raises(TabularDecodeError):
        decode(path)


def test_unnamed_header_cells_get_placeholders():
    df = pd.DataFrame([["Nome", None, "E-mail"], ["Ana", "x", "ana@x.com"]])
    (row,) = decode_frame(df)
    assert list(row.values) == ["Nome", "Unnamed: 1", "E-mail"]


def test_zip_that_is_not_a_workbook_is_decode_error(tmp_path: Path):
    path = tmp_path / "clientes.xlsx"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("notes.txt", "not a spreadsheet")
    with pytest.raises(TabularDecodeError, match="could not read 'clientes.xlsx'"):
        decode(path)


def test_legacy_xls_is_rejected(tmp_path: Path):
    path = tmp_path / "clientes.xls"
    path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504)
    with pytest.raises(TabularDecodeError, match="unsupported file type '.xls'"):
        decode(path)


def test_repeated_header_keeps_every_column():
    df = pd.DataFrame([["Nome", "E-mail", "E-mail", "E-mail"], ["Ana", "a@x.com", "b@x.com", "c@x.com"]])
    (row,) = decode_frame(df)
    assert row.values == {"Nome": "Ana", "E-mail": "a@x.com", "E-mail.1": "b@x.com", "E-mail.2": "c@x.com"}


def test_repeated_email_column_first_one_wins(tmp_path: Path):
    path = make_csv(tmp_path / "dup.csv", "Nome,E-mail,E-mail\nAna,ana@x.com,other@x.com\n")
    (record,) = validate_rows(decode(path)).valid
    assert record.emails == ("ana@x.com",)
