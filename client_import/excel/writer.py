from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.client_record import Client
from .columns import HEADERS

"""Tabular encoder: clients -> downloadable spreadsheet.

encode() and encode_template() are pure and return an in-memory
TabularDocument; trigger_download() is the only function that touches the
filesystem. Values are written in the same textual formats the validator
accepts so that an exported file imports back without errors.
"""

__all__ = [
    "TabularDocument",
    "CLIENTS_SHEET",
    "INSTRUCTIONS_SHEET",
    "TEMPLATE_FILENAME",
    "encode",
    "encode_template",
    "export_filename",
    "format_patrimony",
    "format_client_since",
    "trigger_download",
]

CLIENTS_SHEET = "Clientes"
INSTRUCTIONS_SHEET = "Instruções"
TEMPLATE_FILENAME = "modelo_importacao_clientes.xlsx"

# Column widths (characters) in HEADERS order
_COLUMN_WIDTHS = [25, 40, 18, 22, 12, 20, 16, 20, 30, 20, 20, 20, 8, 12]

_TEMPLATE_EXAMPLE = {
    "Nome": "João da Silva",
    "E-mail": "joao@email.com;joao.pessoal@email.com",
    "CPF": "123.456.789-00",
    "Telefone": "+55 (11) 98888-7777",
    "Status": "Ativo",
    "Patrimônio": "R$ 1.500.000,00",
    "Cliente Desde": "15/03/2022",
    "Código Foundation": "FDN-001",
    "Logradouro": "Rua das Flores, 123",
    "Complemento": "Apto 45",
    "Bairro": "Jardim Paulista",
    "Cidade": "São Paulo",
    "UF": "SP",
    "CEP": "01234-567",
}

_INSTRUCTIONS = [
    "",
    "Campos obrigatórios:",
    "  - Nome: nome completo do cliente",
    "  - E-mail: ao menos um e-mail válido; separe vários com ponto e vírgula (;)",
    "",
    "Campos opcionais:",
    "  - CPF e Telefone: formato livre",
    "  - Status: Ativo, Prospect, Distrato ou Inativo (padrão: Ativo)",
    "  - Patrimônio: 'R$ 1.234.567,89' ou número simples (1234567.89)",
    "  - Cliente Desde: DD/MM/AAAA ou AAAA-MM-DD",
    "  - Código Foundation: identificador no sistema Foundation",
    "  - Endereço: Logradouro, Complemento, Bairro, Cidade, UF, CEP",
    "",
    "Dicas:",
    "  - Mantenha a primeira linha da aba 'Clientes' exatamente como está",
    "  - Substitua a linha de exemplo pelos seus clientes",
    "  - Salve como .xlsx ou .csv para importar",
]


@dataclass
class TabularDocument:
    """Ordered sheets of a spreadsheet to be written out."""
    sheets: dict[str, pd.DataFrame] = field(default_factory=dict)
    column_widths: dict[str, list[int]] = field(default_factory=dict)

    @property
    def primary(self) -> pd.DataFrame:
        return next(iter(self.sheets.values()))


def format_patrimony(value: Decimal | float | None) -> str:
    """Format as Brazilian currency text, e.g. 'R$ 1.500.000,00'."""
    if value is None:
        return ""
    text = f"{Decimal(str(value)):,.2f}"  # 1,500,000.00
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_client_since(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _client_row(client: Client) -> dict[str, str]:
    addr = client.address
    return {
        "Nome": client.name,
        "E-mail": ";".join(client.emails),
        "CPF": client.cpf or "",
        "Telefone": client.phone or "",
        "Status": client.status.value if client.status else "",
        "Patrimônio": format_patrimony(client.patrimony),
        "Cliente Desde": format_client_since(client.client_since),
        "Código Foundation": client.foundation_code or "",
        "Logradouro": addr.street,
        "Complemento": addr.complement,
        "Bairro": addr.neighborhood,
        "Cidade": addr.city,
        "UF": addr.state,
        "CEP": addr.zip_code,
    }


def encode(clients: Iterable[Client]) -> TabularDocument:
    """Build the export document: one row per client in canonical column order."""
    rows = [_client_row(c) for c in clients]
    df = pd.DataFrame(rows, columns=HEADERS, dtype=str)
    return TabularDocument(
        sheets={CLIENTS_SHEET: df},
        column_widths={CLIENTS_SHEET: list(_COLUMN_WIDTHS)},
    )


def encode_template() -> TabularDocument:
    """Build the import template: headers, one valid example row, instructions."""
    clients = pd.DataFrame([_TEMPLATE_EXAMPLE], columns=HEADERS, dtype=str)
    instructions = pd.DataFrame({"Instruções de preenchimento": _INSTRUCTIONS})
    return TabularDocument(
        sheets={CLIENTS_SHEET: clients, INSTRUCTIONS_SHEET: instructions},
        column_widths={CLIENTS_SHEET: list(_COLUMN_WIDTHS), INSTRUCTIONS_SHEET: [80]},
    )


def export_filename(today: date | None = None) -> str:
    day = today or date.today()
    return f"clientes_export_{day.isoformat()}.xlsx"


def trigger_download(document: TabularDocument, path: Path) -> Path:
    """Write the document to disk (.xlsx with every sheet, .csv with the first)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".csv":
        document.primary.to_csv(path, index=False, encoding="utf-8-sig")
        return path

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in document.sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
            sheet = writer.sheets[name]
            for idx, width in enumerate(document.column_widths.get(name, []), start=1):
                sheet.column_dimensions[get_column_letter(idx)].width = width
    return path
