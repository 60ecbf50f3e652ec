from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.repository import PostgresClientRepository, RepositoryError
from ..excel.reader import TabularDecodeError, TabularStructureError, decode_frame, read_tabular_file
from ..excel.writer import TEMPLATE_FILENAME, encode, encode_template, export_filename, trigger_download
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig, local_today
from ..models.import_result import PipelineState
from ..services.orchestrator import ImportOrchestrator
from ..services.progress import ImportProgressBar
from ..services.summary import render_preview, render_summary_line

"""CLI entrypoint.

Commands:
- import FILE: decode, validate, preview, confirm, commit, SUMMARY line
- export: write every stored client to a spreadsheet
- template: write the import template
- inspect FILE: print headers and the first rows of a file

Exit codes: 0 everything imported, 2 partial (invalid rows, rejected
records, declined or cancelled), 1 fatal (config, file structure, DB).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _db_cursor(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper; tested via integration)
    """Yield a psycopg2 cursor in autocommit mode.

    Transactions are opened and closed explicitly by the repository.
    Connection parameters resolve in this order:
        1. DATABASE_URL / PGDSN (environment, .env already loaded)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the database section of the config file
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


@contextmanager
def _repository(cfg: ImportConfig) -> Iterator[PostgresClientRepository]:
    """Repository bound to a live connection, or mock mode with DISABLE_DB_CONNECT=1."""
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logging.getLogger(__name__).debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        yield PostgresClientRepository(None, table=cfg.table, owner_id=cfg.owner_id, timezone=cfg.timezone)
        return
    with _db_cursor(cfg) as cur:
        yield PostgresClientRepository(cur, table=cfg.table, owner_id=cfg.owner_id, timezone=cfg.timezone)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so that its DB settings win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="client-import", description="Bulk client import/export")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import clients from a CSV/Excel file")
    imp.add_argument("file", type=Path)
    imp.add_argument("-y", "--yes", action="store_true", help="Import without asking for confirmation")

    exp = sub.add_parser("export", help="Export stored clients to a spreadsheet")
    exp.add_argument("-o", "--output", type=Path, default=None)

    tpl = sub.add_parser("template", help="Write the import template")
    tpl.add_argument("-o", "--output", type=Path, default=Path(TEMPLATE_FILENAME))

    ins = sub.add_parser("inspect", help="Print headers and first rows of a file")
    ins.add_argument("file", type=Path)
    ins.add_argument("-n", "--rows", type=int, default=3)
    return p.parse_args(argv)


def _ask_confirmation(count: int) -> bool:
    try:
        answer = input(f"Import {count} clients? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes", "s", "sim"}


def _run_import(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    with _repository(cfg) as repo:
        orchestrator = ImportOrchestrator(
            repo,
            batch_size=cfg.batch_size,
            error_log=ErrorLogBuffer(cfg.error_log_dir),
        )
        logger.info(f"mode={'mock' if repo.mock_mode else 'live'} file={args.file}")
        snap = orchestrator.handle_file_selected(args.file)
        if snap.state is PipelineState.ERROR:
            logger.error(f"import: {snap.error_message}")
            return EXIT_FATAL

        validation = snap.validation
        if validation is None:
            logger.error(f"import: no validation result for {args.file}")
            return EXIT_FATAL
        for line in render_preview(validation):
            logger.info(line)

        if not validation.can_import:
            logger.warning("no valid rows to import")
            log_summary(render_summary_line(validation, None)[len("SUMMARY "):])
            return EXIT_PARTIAL_FAILURE

        if not args.yes and not _ask_confirmation(len(validation.valid)):
            orchestrator.cancel()
            logger.info("import declined")
            log_summary(render_summary_line(validation, None)[len("SUMMARY "):])
            return EXIT_PARTIAL_FAILURE

        with ImportProgressBar() as bar:
            unsubscribe = orchestrator.subscribe(bar)
            try:
                snap = orchestrator.confirm_import()
            finally:
                unsubscribe()

    result = snap.import_result
    if result is None:
        # reset before the commit finished
        logger.error(f"import: no result for {args.file}")
        return EXIT_FATAL
    for message in result.errors:
        logger.warning(f"not imported: {message}")
    log_summary(render_summary_line(validation, result)[len("SUMMARY "):])

    if result.is_complete and result.total_invalid == 0:
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


def _run_export(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    with _repository(cfg) as repo:
        clients = repo.list_clients()
    if not clients:
        logger.warning("no clients to export")
    output = args.output or Path(export_filename(local_today(cfg.timezone)))
    trigger_download(encode(clients), output)
    logger.info(f"exported {len(clients)} clients to {output}")
    return EXIT_SUCCESS_ALL


def _run_template(args: argparse.Namespace, logger: logging.Logger) -> int:
    path = trigger_download(encode_template(), args.output)
    logger.info(f"template written to {path}")
    return EXIT_SUCCESS_ALL


def _inspect_data(args: argparse.Namespace) -> int:
    try:
        rows = decode_frame(read_tabular_file(args.file))
    except (TabularDecodeError, TabularStructureError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    headers = list(rows[0].values) if rows else []
    print(f"FILE: {args.file.name} rows={len(rows)} cols={headers}")
    for row in rows[: args.rows]:
        print(f"  row {row.row_number}: {row.values}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    if args.command == "template":
        return _run_template(args, logger)
    if args.command == "inspect":
        return _inspect_data(args)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.command == "import":
            return _run_import(args, cfg, logger)
        return _run_export(args, cfg, logger)
    except (psycopg2.Error, RepositoryError) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
