from __future__ import annotations

import unicodedata

"""Spreadsheet column layout shared by the decoder, validator and encoder.

The canonical headers are what encode()/encode_template() write and what
the validator looks for. Aliases cover common variants seen in files that
were filled by hand.
"""

__all__ = [
    "COLUMN_MAP",
    "HEADERS",
    "NAME",
    "EMAIL",
    "resolve_header",
    "map_headers",
]

# Canonical header -> record field
COLUMN_MAP: dict[str, str] = {
    "Nome": "name",
    "E-mail": "emails",
    "CPF": "cpf",
    "Telefone": "phone",
    "Status": "status",
    "Patrimônio": "patrimony",
    "Cliente Desde": "client_since",
    "Código Foundation": "foundation_code",
    "Logradouro": "address.street",
    "Complemento": "address.complement",
    "Bairro": "address.neighborhood",
    "Cidade": "address.city",
    "UF": "address.state",
    "CEP": "address.zip_code",
}

HEADERS: list[str] = list(COLUMN_MAP)

NAME = "name"
EMAIL = "emails"

_ALIASES: dict[str, str] = {
    "email": "E-mail",
    "e-mails": "E-mail",
    "emails": "E-mail",
    "estado": "UF",
}


def _fold(text: str) -> str:
    # case and accent insensitive comparison key
    decomposed = unicodedata.normalize("NFKD", text.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_LOOKUP: dict[str, str] = {_fold(h): h for h in HEADERS}
_LOOKUP.update({_fold(alias): canonical for alias, canonical in _ALIASES.items()})


def resolve_header(header: str) -> str | None:
    """Return the canonical header for a raw header text, or None if unknown."""
    return _LOOKUP.get(_fold(str(header)))


def map_headers(raw_headers: list[str]) -> dict[str, str]:
    """Map raw header text -> record field for every recognized column.

    When two raw headers resolve to the same field the first one wins.
    """
    mapping: dict[str, str] = {}
    seen: set[str] = set()
    for raw in raw_headers:
        canonical = resolve_header(raw)
        if canonical is None:
            continue
        fld = COLUMN_MAP[canonical]
        if fld in seen:
            continue
        seen.add(fld)
        mapping[raw] = fld
    return mapping
