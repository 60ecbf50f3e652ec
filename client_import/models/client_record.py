from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

"""Client domain models for the import/export pipeline.

ClientImportRecord is the only shape that leaves the validator for a row
that passed every rule. Client is the richer shape the rest of the CRM
works with; the export path accepts it directly.
"""

__all__ = [
    "Address",
    "Client",
    "ClientImportRecord",
    "ClientStatus",
    "DEFAULT_STATUS",
]


class ClientStatus(Enum):
    """Lifecycle status of a client.

    The first member is the default applied when a row leaves the status
    column empty.
    """
    ATIVO = "Ativo"
    PROSPECT = "Prospect"
    DISTRATO = "Distrato"
    INATIVO = "Inativo"

    @classmethod
    def parse(cls, value: str) -> ClientStatus | None:
        """Case-insensitive lookup by display value; None when unknown."""
        wanted = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        return None


DEFAULT_STATUS = ClientStatus.ATIVO


@dataclass(frozen=True)
class Address:
    """Postal address. Every part may be an empty string."""
    street: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""  # UF
    zip_code: str = ""

    def is_empty(self) -> bool:
        return not any(
            (self.street, self.complement, self.neighborhood, self.city, self.state, self.zip_code)
        )

    def to_dict(self) -> dict[str, str]:
        # Key names follow the clients.address JSON column
        return {
            "street": self.street,
            "complement": self.complement,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
        }


@dataclass(frozen=True)
class ClientImportRecord:
    """Normalized client produced by the validator for one valid row."""
    name: str
    emails: tuple[str, ...]  # at least one, first is the primary address
    status: ClientStatus = DEFAULT_STATUS
    address: Address = field(default_factory=Address)
    cpf: str = ""
    phone: str = ""
    patrimony: Decimal | None = None
    client_since: date | None = None
    foundation_code: str = ""
    source_row: int = -1  # RawRow number this record came from (-1 = unknown)

    @property
    def primary_email(self) -> str:
        return self.emails[0]


@dataclass(frozen=True)
class Client:
    """Stored client as read back from the repository (export input)."""
    id: str
    name: str
    emails: tuple[str, ...] = ()
    status: ClientStatus = DEFAULT_STATUS
    address: Address = field(default_factory=Address)
    cpf: str = ""
    phone: str = ""
    patrimony: Decimal | None = None
    client_since: date | None = None
    foundation_code: str = ""
    initials: str = ""
    advisor: str = ""
