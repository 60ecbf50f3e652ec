from __future__ import annotations

from dataclasses import dataclass, field

from .client_record import ClientImportRecord

"""Validation outcome models.

Every raw row handed to the validator ends up as exactly one entry in
either ValidationResult.valid or ValidationResult.invalid.
"""

__all__ = [
    "RowError",
    "ValidationResult",
]


@dataclass(frozen=True)
class RowError:
    """All validation failures of a single source row."""
    row: int  # 1-based source row number (header excluded)
    errors: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("RowError requires at least one message")


@dataclass(frozen=True)
class ValidationResult:
    valid: tuple[ClientImportRecord, ...] = ()
    invalid: tuple[RowError, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.invalid)

    @property
    def can_import(self) -> bool:
        return len(self.valid) > 0
