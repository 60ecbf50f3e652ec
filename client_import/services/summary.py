from __future__ import annotations

from ..models.import_result import ImportResult
from ..models.validation_result import ValidationResult

"""SUMMARY line and preview rendering for the CLI."""

__all__ = [
    "render_summary_line",
    "render_preview",
]


def render_summary_line(validation: ValidationResult | None, result: ImportResult | None) -> str:
    """Render the single SUMMARY line of an import run.

    Format:
    SUMMARY rows={n} valid={v} invalid={i} inserted={k} failed={e} cancelled={0|1}

    >>> from client_import.models.import_result import ImportResult
    >>> r = ImportResult(inserted=8, errors=("a", "b"), total_valid=10, total_invalid=1)
    >>> render_summary_line(None, r)
    'SUMMARY rows=11 valid=10 invalid=1 inserted=8 failed=2 cancelled=0'
    """
    if result is not None:
        valid, invalid = result.total_valid, result.total_invalid
        inserted, failed, cancelled = result.inserted, result.failed, result.cancelled
    else:
        valid = len(validation.valid) if validation else 0
        invalid = len(validation.invalid) if validation else 0
        inserted, failed, cancelled = 0, 0, False
    return (
        f"SUMMARY rows={valid + invalid} "
        f"valid={valid} "
        f"invalid={invalid} "
        f"inserted={inserted} "
        f"failed={failed} "
        f"cancelled={int(cancelled)}"
    )


def render_preview(validation: ValidationResult, max_errors: int = 50) -> list[str]:
    """Human-readable preview lines: counts, row errors, warnings."""
    lines = [
        f"rows={validation.total_rows} valid={len(validation.valid)} invalid={len(validation.invalid)}"
    ]
    for row_error in validation.invalid[:max_errors]:
        lines.append(f"  row {row_error.row}: " + " ".join(row_error.errors))
    hidden = len(validation.invalid) - max_errors
    if hidden > 0:
        lines.append(f"  ... {hidden} more invalid rows")
    for warning in validation.warnings:
        lines.append(f"  warning: {warning}")
    return lines
