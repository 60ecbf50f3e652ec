"""Domain models for the client bulk import/export pipeline."""

from .client_record import Address, Client, ClientImportRecord, ClientStatus, DEFAULT_STATUS
from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .import_result import ImportResult, InsertManyResult, PipelineSnapshot, PipelineState
from .row_data import RawRow
from .validation_result import RowError, ValidationResult

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Client models
    "Address",
    "Client",
    "ClientImportRecord",
    "ClientStatus",
    "DEFAULT_STATUS",
    # Pipeline models
    "ErrorRecord",
    "ImportResult",
    "InsertManyResult",
    "PipelineSnapshot",
    "PipelineState",
    "RawRow",
    "RowError",
    "ValidationResult",
]
