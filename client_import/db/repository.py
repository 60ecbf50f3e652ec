from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import Json

from ..models.client_record import Address, Client, ClientImportRecord, ClientStatus, DEFAULT_STATUS
from ..models.config_models import DEFAULT_TABLE, local_today
from ..models.import_result import InsertManyResult
from .batch_insert import BatchInsertError, batch_insert

"""Client repository.

ClientRepository is the contract the import orchestrator depends on.
PostgresClientRepository implements it on a psycopg2 cursor: each
insert_many call is one transaction; when the batch is rejected it is
rolled back and retried one record per transaction so that failures are
reported per record, prefixed with the source row.
"""

__all__ = [
    "ClientRepository",
    "PostgresClientRepository",
    "RepositoryError",
    "INSERT_COLUMNS",
    "derive_initials",
]

logger = logging.getLogger(__name__)

INSERT_COLUMNS = (
    "name",
    "initials",
    "emails",
    "primary_email_index",
    "cpf",
    "phone",
    "status",
    "patrimony",
    "client_since",
    "foundation_code",
    "address",
    "owner_id",
)

_SELECT_COLUMNS = (
    "id",
    "name",
    "initials",
    "emails",
    "status",
    "cpf",
    "phone",
    "patrimony",
    "client_since",
    "foundation_code",
    "address",
)


class RepositoryError(Exception):
    """A repository call failed as a whole (connection, transaction)."""


class ClientRepository(Protocol):
    def insert_many(self, records: Sequence[ClientImportRecord]) -> InsertManyResult:
        """Insert records; report how many were stored and why others were not."""
        ...


def derive_initials(name: str) -> str:
    parts = name.split()
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0][0].upper()
    return (parts[0][0] + parts[-1][0]).upper()


def _address_from_json(raw: Any) -> Address:
    if not isinstance(raw, dict):
        return Address()
    return Address(
        street=raw.get("street") or "",
        complement=raw.get("complement") or "",
        neighborhood=raw.get("neighborhood") or "",
        city=raw.get("city") or "",
        state=raw.get("state") or "",
        zip_code=raw.get("zipCode") or "",
    )


class PostgresClientRepository:
    """ClientRepository over a psycopg2 cursor.

    cursor=None runs in mock mode: nothing is written and every record is
    reported as inserted.
    """

    def __init__(
        self,
        cursor: Any,
        table: str = DEFAULT_TABLE,
        owner_id: str | None = None,
        page_size: int = 1000,
        timezone: str = "UTC",
    ) -> None:
        self.cursor = cursor
        self.table = table
        self.owner_id = owner_id
        self.page_size = page_size
        self.timezone = timezone

    @property
    def mock_mode(self) -> bool:
        return self.cursor is None

    def _to_db_row(self, record: ClientImportRecord) -> tuple[Any, ...]:
        return (
            record.name,
            derive_initials(record.name),
            list(record.emails),
            0,
            record.cpf or None,
            record.phone or None,
            record.status.value,
            record.patrimony,
            record.client_since or local_today(self.timezone),
            record.foundation_code or None,
            Json(record.address.to_dict()),
            self.owner_id,
        )

    def _execute(self, statement: str) -> None:
        try:
            self.cursor.execute(statement)
        except psycopg2.Error as e:
            raise RepositoryError(f"{statement} failed: {e}") from e

    def _insert_in_transaction(self, rows: list[tuple[Any, ...]]) -> int:
        self._execute("BEGIN")
        try:
            result = batch_insert(self.cursor, self.table, INSERT_COLUMNS, rows, page_size=self.page_size)
        except BatchInsertError:
            self._execute("ROLLBACK")
            raise
        self._execute("COMMIT")
        return result.inserted_rows

    def insert_many(self, records: Sequence[ClientImportRecord]) -> InsertManyResult:
        if not records:
            return InsertManyResult(inserted=0)
        if self.mock_mode:
            logger.debug("mock mode: %d clients counted as inserted", len(records))
            return InsertManyResult(inserted=len(records))

        rows = [self._to_db_row(r) for r in records]
        try:
            return InsertManyResult(inserted=self._insert_in_transaction(rows))
        except BatchInsertError as e:
            logger.warning(
                "batch of %d clients rejected (%s); retrying one by one",
                len(rows),
                str(e).splitlines()[0] if str(e) else "error",
            )

        inserted = 0
        errors: list[str] = []
        error_rows: list[int] = []
        for index, (record, row) in enumerate(zip(records, rows, strict=True)):
            try:
                inserted += self._insert_in_transaction([row])
            except BatchInsertError as e:
                reason = str(e).splitlines()[0] if str(e) else "insert failed"
                errors.append(f"Row {record.source_row}: {reason}")
                error_rows.append(record.source_row)
            except RepositoryError as e:
                # connection lost mid-fallback: keep what was committed, report the rest
                logger.error("stopped after %d of %d clients: %s", index, len(records), e)
                errors.append(f"Row {record.source_row}: {e}")
                error_rows.append(record.source_row)
                for pending in records[index + 1:]:
                    errors.append(f"Row {pending.source_row}: not attempted ({e})")
                    error_rows.append(pending.source_row)
                break
        return InsertManyResult(inserted=inserted, errors=tuple(errors), error_rows=tuple(error_rows))

    def list_clients(self) -> list[Client]:
        """Read every stored client, ordered by name (export input)."""
        if self.mock_mode:
            return []
        cols = ",".join(f'"{c}"' for c in _SELECT_COLUMNS)
        try:
            self.cursor.execute(f"SELECT {cols} FROM {self.table} ORDER BY name")
            fetched = self.cursor.fetchall()
        except psycopg2.Error as e:
            raise RepositoryError(f"could not read clients: {e}") from e

        clients: list[Client] = []
        for raw in fetched:
            values = dict(zip(_SELECT_COLUMNS, raw, strict=False))
            since = values.get("client_since")
            patrimony = values.get("patrimony")
            clients.append(
                Client(
                    id=str(values["id"]),
                    name=values.get("name") or "",
                    initials=values.get("initials") or "",
                    emails=tuple(values.get("emails") or ()),
                    status=ClientStatus.parse(values.get("status") or "") or DEFAULT_STATUS,
                    cpf=values.get("cpf") or "",
                    phone=values.get("phone") or "",
                    patrimony=Decimal(str(patrimony)) if patrimony is not None else None,
                    client_since=since.date() if hasattr(since, "date") else since,
                    foundation_code=values.get("foundation_code") or "",
                    address=_address_from_json(values.get("address")),
                )
            )
        return clients
