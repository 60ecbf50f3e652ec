from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from datetime import date
from decimal import Decimal, InvalidOperation

from ..excel.columns import EMAIL, NAME, map_headers
from ..excel.reader import MissingColumnsError
from ..models.client_record import Address, ClientImportRecord, ClientStatus, DEFAULT_STATUS
from ..models.row_data import RawRow
from ..models.validation_result import RowError, ValidationResult

"""Row validator: raw spreadsheet rows -> ValidationResult.

Pure and deterministic. Field rules run in a fixed order and every failure
of a row is collected, so the user sees all fixable problems in one pass.
Bad data never raises; only a header row without the required columns
does (MissingColumnsError).
"""

__all__ = [
    "validate_rows",
    "parse_emails",
    "parse_patrimony",
    "parse_client_since",
    "NAME_REQUIRED",
    "EMAIL_REQUIRED",
    "NO_DATA_WARNING",
]

NAME_REQUIRED = "Name is required."
EMAIL_REQUIRED = "At least one valid email is required."
NO_DATA_WARNING = "The file contains no data."

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_EMAIL_SPLIT_RE = re.compile(r"[;,]")
_BR_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?$")
_CURRENCY_RE = re.compile(r"R\$\s*", re.IGNORECASE)

_REQUIRED_COLUMNS = {NAME: "Nome", EMAIL: "E-mail"}


def parse_emails(value: str) -> tuple[list[str], list[str]]:
    """Split a cell on ';' or ',' into (valid, malformed) tokens, order kept."""
    valid: list[str] = []
    malformed: list[str] = []
    for token in _EMAIL_SPLIT_RE.split(value or ""):
        token = token.strip()
        if not token:
            continue
        if _EMAIL_RE.match(token):
            valid.append(token)
        else:
            malformed.append(token)
    return valid, malformed


def parse_patrimony(value: str) -> Decimal | None:
    """Parse 'R$ 1.500.000,00', '1500000,00' or '1500000.50'.

    Returns None for an empty cell; raises ValueError when unparseable.
    """
    text = _CURRENCY_RE.sub("", (value or "").strip()).replace(" ", "")
    if not text:
        return None
    if "," in text:
        # pt-BR: dots group thousands, comma marks decimals
        text = text.replace(".", "").replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(value) from e
    if not amount.is_finite():
        raise ValueError(value)
    return amount


def parse_client_since(value: str) -> date | None:
    """Parse DD/MM/YYYY or YYYY-MM-DD (optionally with a time part).

    Returns None for an empty cell; raises ValueError when unparseable.
    """
    text = (value or "").strip()
    if not text:
        return None
    m = _BR_DATE_RE.match(text)
    if m:
        day, month, year = (int(g) for g in m.groups())
        return date(year, month, day)
    m = _ISO_DATE_RE.match(text)
    if m:
        year, month, day = (int(g) for g in m.groups())
        return date(year, month, day)
    raise ValueError(value)


def _header_map(rows: Sequence[RawRow]) -> dict[str, str]:
    headers: dict[str, None] = {}
    for row in rows:
        for h in row.values:
            headers.setdefault(h, None)
    mapping = map_headers(list(headers))
    missing = [label for fld, label in _REQUIRED_COLUMNS.items() if fld not in mapping.values()]
    if missing:
        cols = ", ".join(f'"{m}"' for m in missing)
        raise MissingColumnsError(f"Required column(s) {cols} not found. Check the file headers.")
    return mapping


def _validate_row(
    row: RawRow, header_map: dict[str, str], warnings: list[str]
) -> ClientImportRecord | RowError:
    mapped = {fld: row.get(raw).strip() for raw, fld in header_map.items()}
    errors: list[str] = []

    name = mapped.get("name", "")
    if not name:
        errors.append(NAME_REQUIRED)

    emails, malformed = parse_emails(mapped.get("emails", ""))
    if not emails:
        errors.append(EMAIL_REQUIRED)
    else:
        for token in malformed:
            warnings.append(f"Row {row.row_number}: ignored invalid email '{token}'.")

    raw_status = mapped.get("status", "")
    status = DEFAULT_STATUS
    if raw_status:
        parsed = ClientStatus.parse(raw_status)
        if parsed is None:
            errors.append(f"Unrecognized status value: {raw_status}.")
        else:
            status = parsed

    raw_since = mapped.get("client_since", "")
    client_since = None
    try:
        client_since = parse_client_since(raw_since)
    except ValueError:
        errors.append(f"Invalid client-since date: {raw_since}. Use DD/MM/YYYY or YYYY-MM-DD.")

    raw_patrimony = mapped.get("patrimony", "")
    patrimony = None
    try:
        patrimony = parse_patrimony(raw_patrimony)
    except ValueError:
        errors.append(f"Invalid patrimony value: {raw_patrimony}.")

    if errors:
        return RowError(row=row.row_number, errors=tuple(errors))

    return ClientImportRecord(
        name=name,
        emails=tuple(emails),
        status=status,
        address=Address(
            street=mapped.get("address.street", ""),
            complement=mapped.get("address.complement", ""),
            neighborhood=mapped.get("address.neighborhood", ""),
            city=mapped.get("address.city", ""),
            state=mapped.get("address.state", ""),
            zip_code=mapped.get("address.zip_code", ""),
        ),
        cpf=mapped.get("cpf", ""),
        phone=mapped.get("phone", ""),
        patrimony=patrimony,
        client_since=client_since,
        foundation_code=mapped.get("foundation_code", ""),
        source_row=row.row_number,
    )


def _cross_row_warnings(valid: Sequence[ClientImportRecord]) -> list[str]:
    warnings: list[str] = []

    first_seen: dict[str, str] = {}
    counts: Counter[str] = Counter()
    for rec in valid:
        key = rec.primary_email.casefold()
        first_seen.setdefault(key, rec.primary_email)
        counts[key] += 1
    for key, n in counts.items():
        if n > 1:
            warnings.append(f"{n} rows share the email {first_seen[key]}.")

    no_phone = sum(1 for rec in valid if not rec.phone)
    if no_phone == 1:
        warnings.append("1 row has no phone number.")
    elif no_phone > 1:
        warnings.append(f"{no_phone} rows have no phone number.")
    return warnings


def validate_rows(rows: Sequence[RawRow]) -> ValidationResult:
    """Validate raw rows.

    Every input row yields exactly one entry in valid or invalid, in input
    order. Warnings never block an import.

    Raises
    ------
    MissingColumnsError: the header row lacks "Nome" or "E-mail"
    """
    if not rows:
        return ValidationResult(warnings=(NO_DATA_WARNING,))

    header_map = _header_map(rows)

    valid: list[ClientImportRecord] = []
    invalid: list[RowError] = []
    warnings: list[str] = []
    for row in rows:
        outcome = _validate_row(row, header_map, warnings)
        if isinstance(outcome, RowError):
            invalid.append(outcome)
        else:
            valid.append(outcome)

    warnings.extend(_cross_row_warnings(valid))
    return ValidationResult(valid=tuple(valid), invalid=tuple(invalid), warnings=tuple(warnings))
