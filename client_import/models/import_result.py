from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .validation_result import ValidationResult

"""Commit-side result models and the pipeline state for the import flow.

InsertManyResult is what a repository reports for one insert_many call;
ImportResult is the aggregate the orchestrator hands to the presentation
layer once the commit finished (fully or partially).
"""

__all__ = [
    "ImportResult",
    "InsertManyResult",
    "PipelineSnapshot",
    "PipelineState",
]


class PipelineState(Enum):
    """Import pipeline lifecycle.

    idle -> parsing -> (previewing | error)
    previewing -> (importing | idle)
    importing -> done
    any -> idle on reset
    """
    IDLE = "idle"
    PARSING = "parsing"
    PREVIEWING = "previewing"
    IMPORTING = "importing"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class InsertManyResult:
    """Outcome of a single repository insert_many call.

    error_rows holds the source row of each entry in errors, in the same
    order; a missing or -1 entry means the error has no single source row.
    """
    inserted: int
    errors: tuple[str, ...] = ()
    error_rows: tuple[int, ...] = ()

    def rows_for_errors(self) -> tuple[int, ...]:
        return tuple(
            self.error_rows[i] if i < len(self.error_rows) else -1 for i in range(len(self.errors))
        )


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of the commit step.

    inserted may be lower than total_valid when the repository rejected
    records; errors carries exactly the repository's failure messages.
    """
    inserted: int
    errors: tuple[str, ...]
    total_valid: int
    total_invalid: int
    cancelled: bool = False

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def is_complete(self) -> bool:
        return not self.cancelled and not self.errors and self.inserted == self.total_valid


@dataclass(frozen=True)
class PipelineSnapshot:
    """Read-only view of the orchestrator consumed by the presentation layer."""
    state: PipelineState = PipelineState.IDLE
    validation: ValidationResult | None = None
    import_result: ImportResult | None = None
    error_message: str = ""
    progress: int = 0  # percent, 0..100
    file_name: str = field(default="", compare=False)
