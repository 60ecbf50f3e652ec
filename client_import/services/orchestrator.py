from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

from ..db.repository import ClientRepository, RepositoryError
from ..excel.reader import TabularDecodeError, TabularStructureError, decode
from ..logging.error_log import ErrorLogBuffer
from ..models.client_record import ClientImportRecord
from ..models.config_models import DEFAULT_BATCH_SIZE
from ..models.error_record import (
    CLIENT_INSERT_ERROR,
    FILE_STRUCTURE_ERROR,
    ROW_VALIDATION_ERROR,
    ErrorRecord,
)
from ..models.import_result import ImportResult, PipelineSnapshot, PipelineState
from ..models.row_data import RawRow
from ..models.validation_result import ValidationResult
from .validator import validate_rows

"""Import orchestrator: the state machine of the bulk client import.

    idle -> parsing -> previewing -> importing -> done
                    \\-> error
    previewing -> idle (cancel), done/error/any -> idle (reset)

Only structural file failures end in the error state. Invalid rows are
data and are shown in previewing; repository failures are part of the
ImportResult shown in done, since a partial import is still a finished
import.
"""

__all__ = [
    "ImportOrchestrator",
    "Listener",
]

logger = logging.getLogger(__name__)

Listener = Callable[[PipelineSnapshot], None]
Decoder = Callable[[Path], Sequence[RawRow]]
Validator = Callable[[Sequence[RawRow]], ValidationResult]


def _chunks(records: Sequence[ClientImportRecord], size: int) -> Iterator[Sequence[ClientImportRecord]]:
    for start in range(0, len(records), size):
        yield records[start:start + size]


class ImportOrchestrator:
    """Owns the pipeline state and drives decode -> validate -> commit.

    Collaborators are injected; the presentation layer receives the
    orchestrator instance explicitly and reads it through snapshot() or a
    subscribed listener. Every call runs to completion before returning.
    """

    def __init__(
        self,
        repository: ClientRepository,
        *,
        decoder: Decoder = decode,
        validator: Validator = validate_rows,
        batch_size: int = DEFAULT_BATCH_SIZE,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._repository = repository
        self._decoder = decoder
        self._validator = validator
        self._batch_size = batch_size
        self._error_log = error_log
        self._listeners: list[Listener] = []
        self._generation = 0  # bumped by reset(); lets an in-flight commit notice it
        self._clear()
        self._state = PipelineState.IDLE

    def _clear(self) -> None:
        self._validation: ValidationResult | None = None
        self._valid_records: tuple[ClientImportRecord, ...] = ()
        self._import_result: ImportResult | None = None
        self._error_message = ""
        self._progress = 0
        self._file_name = ""
        self._cancel_requested = False

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            state=self._state,
            validation=self._validation,
            import_result=self._import_result,
            error_message=self._error_message,
            progress=self._progress,
            file_name=self._file_name,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a fresh snapshot on every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _transition(self, state: PipelineState) -> None:
        logger.debug("import state %s -> %s", self._state.value, state.value)
        self._state = state
        self._notify()

    # -- user intents ------------------------------------------------------

    def handle_file_selected(self, path: Path) -> PipelineSnapshot:
        """Decode and validate an uploaded file, ending in previewing or error.

        Ignored while an import is being committed.
        """
        if self._state is PipelineState.IMPORTING:
            logger.warning("import in progress; ignoring file %s", path.name)
            return self.snapshot()

        self._clear()
        self._file_name = path.name
        self._transition(PipelineState.PARSING)

        try:
            rows = self._decoder(path)
            validation = self._validator(rows)
        except (TabularDecodeError, TabularStructureError) as e:
            self._fail(str(e))
            return self.snapshot()

        self._validation = validation
        self._valid_records = tuple(validation.valid)
        for row_error in validation.invalid:
            self._record_error(row_error.row, ROW_VALIDATION_ERROR, " ".join(row_error.errors))
        self._flush_error_log()
        logger.info(
            "parsed %s: valid=%d invalid=%d warnings=%d",
            path.name,
            len(validation.valid),
            len(validation.invalid),
            len(validation.warnings),
        )
        self._transition(PipelineState.PREVIEWING)
        return self.snapshot()

    def confirm_import(self) -> PipelineSnapshot:
        """Commit the currently held valid records in sequential chunks.

        No-op unless previewing with at least one valid record.
        """
        if self._state is not PipelineState.PREVIEWING:
            logger.debug("confirm_import ignored in state %s", self._state.value)
            return self.snapshot()
        records = self._valid_records
        if not records:
            logger.info("nothing to import: no valid rows")
            return self.snapshot()

        generation = self._generation
        self._cancel_requested = False
        self._progress = 0
        self._transition(PipelineState.IMPORTING)

        total = len(records)
        submitted = 0
        inserted = 0
        errors: list[str] = []
        error_rows: list[int] = []  # source row per error, -1 when unknown
        cancelled = False
        for index, chunk in enumerate(_chunks(records, self._batch_size), start=1):
            if generation != self._generation:
                # reset() was called from a listener mid-commit
                return self.snapshot()
            if self._cancel_requested:
                cancelled = True
                logger.info("import cancelled after %d of %d records", submitted, total)
                break
            try:
                result = self._repository.insert_many(chunk)
            except RepositoryError as e:
                message = f"Batch {index}: {e}"
                logger.error("insert failed: %s", message)
                errors.append(message)
                error_rows.append(-1)
            else:
                inserted += result.inserted
                errors.extend(result.errors)
                error_rows.extend(result.rows_for_errors())
            submitted += len(chunk)
            self._progress = submitted * 100 // total
            self._notify()

        if generation != self._generation:
            return self.snapshot()

        for row, message in zip(error_rows, errors, strict=True):
            self._record_error(row, CLIENT_INSERT_ERROR, message)
        self._import_result = ImportResult(
            inserted=inserted,
            errors=tuple(errors),
            total_valid=total,
            total_invalid=len(self._validation.invalid) if self._validation else 0,
            cancelled=cancelled,
        )
        logger.info("import finished: inserted=%d failed=%d of %d", inserted, len(errors), total)
        self._flush_error_log()
        self._transition(PipelineState.DONE)
        return self.snapshot()

    def cancel(self) -> None:
        """Cancel a preview, or stop issuing further chunks of a running import.

        Already committed chunks are never rolled back.
        """
        if self._state is PipelineState.PREVIEWING:
            self.reset()
        elif self._state is PipelineState.IMPORTING:
            self._cancel_requested = True

    def reset(self) -> None:
        """Return to idle from any state, discarding rows, results and errors."""
        self._generation += 1
        self._flush_error_log()
        self._clear()
        self._transition(PipelineState.IDLE)

    # -- internals ---------------------------------------------------------

    def _fail(self, message: str) -> None:
        logger.error("could not import %s: %s", self._file_name, message)
        self._error_message = message
        self._record_error(-1, FILE_STRUCTURE_ERROR, message)
        self._flush_error_log()
        self._transition(PipelineState.ERROR)

    def _record_error(self, row: int, error_type: str, message: str) -> None:
        if self._error_log is not None:
            self._error_log.append(ErrorRecord.create(self._file_name, row, error_type, message))

    def _flush_error_log(self) -> None:
        if self._error_log is None:
            return
        try:
            path = self._error_log.flush()
        except OSError as e:
            logger.warning("could not write error log: %s", e)
            return
        if path is not None:
            logger.info("error details written to %s", path)
