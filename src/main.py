"""
ABO importer for Pohoda via mServer

Imports parsed ABO bank statements into Pohoda as bank movements,
skipping transactions imported before, and writes a MultiFlexi report.

Usage: abo-pohoda-import [abo-file-or-glob ...] [-o report.json|-] [-e .env]
"""

import argparse
import glob
import sys
from datetime import datetime
from typing import List, Optional, Sequence

from abo_models import ImportResult
from batch_importer import BatchImporter
from config_loader import ConfigError, ImporterSettings, load_settings
from duplicate_checker import DuplicateChecker
from execution_lock import ImportLock, LockError
from import_engine import ImportEngine
from ledger_client import LedgerClient
from report_generator import build_report, write_report
from statement_source import resolve_parser
from transaction_mapper import TransactionMapper


def expand_inputs(patterns: Sequence[str]) -> List[str]:
    """Expand glob patterns in the given order; unmatched entries stay literal"""
    paths = []
    for pattern in patterns:
        if glob.has_magic(pattern):
            matches = sorted(glob.glob(pattern))
            paths.extend(matches or [pattern])
        else:
            paths.append(pattern)
    return paths


def build_client(settings: ImporterSettings) -> LedgerClient:
    return LedgerClient(
        settings.pohoda_url,
        settings.username,
        settings.password,
        settings.ico,
        app_name=settings.app_name,
        app_version=settings.app_version,
        timeout=settings.timeout,
    )


def build_engine(settings: ImporterSettings) -> ImportEngine:
    mapper = TransactionMapper(
        app_name=settings.app_name,
        app_version=settings.app_version,
        job_id=settings.job_id,
        default_bank_code=settings.default_bank_code,
        target_account=settings.bank_ids,
        description_fallback=settings.description_fallback,
    )
    return ImportEngine(
        client=build_client(settings),
        duplicate_checker=DuplicateChecker(lambda: build_client(settings)),
        mapper=mapper,
        parser=resolve_parser(settings.parser),
    )


def run_import(engine: ImportEngine, paths: List[str]):
    if len(paths) == 1:
        return engine.import_file(paths[0])
    return BatchImporter(engine).import_files(paths)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="abo-pohoda-import",
        description="Import ABO bank statements into Pohoda via mServer",
    )
    parser.add_argument("paths", nargs="*", help="ABO file paths or glob patterns")
    parser.add_argument("-o", "--output", help="report file, '-' for stdout (default: RESULT_FILE)")
    parser.add_argument("-e", "--environment", default=".env", help="environment file (default: .env)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(args.environment)
        engine = build_engine(settings)
    except (ConfigError, ValueError, ImportError, AttributeError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    paths = expand_inputs(args.paths) or [settings.default_input]
    print(f"=== ABO import started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} ===", file=sys.stderr)

    lock = ImportLock(f"{settings.pohoda_url}|{settings.ico}", settings.lock_dir, settings.lock_timeout)
    try:
        with lock:
            result = run_import(engine, paths)
    except LockError as e:
        print(f"❌ {e}", file=sys.stderr)
        result = ImportResult(
            file_path=", ".join(paths),
            status="error",
            message=str(e),
            timestamp=datetime.now().astimezone(),
        )

    output = args.output if args.output is not None else settings.result_file
    if output:
        # a report that cannot be written does not change the exit code
        write_report(build_report(result), output, pretty=settings.debug)

    return 1 if result.status == "error" else 0


if __name__ == "__main__":
    sys.exit(main())
