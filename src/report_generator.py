"""MultiFlexi report rendering for import and batch results.

build_report() is a pure transformation into the report schema;
write_report() puts the JSON on stdout or into a file, atomically.
"""

import json
import os
import sys
import tempfile
from typing import Dict, List, Union

from abo_models import BatchResult, FileSummary, ImportResult, TransactionOutcome


STDOUT_TARGETS = {"", "-", "php://stdout"}


def _text(value) -> str:
    if value is None:
        return "n/a"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def format_imported(tx: TransactionOutcome) -> str:
    return f"Transaction {tx.document_number}: {_text(tx.amount)} on {_text(tx.date)}"


def format_failed(tx: TransactionOutcome) -> str:
    return f"Failed {tx.document_number}: {tx.reason}"


def format_skipped(tx: TransactionOutcome) -> str:
    return f"Skipped {tx.document_number}: {_text(tx.amount)} on {_text(tx.date)} - {tx.reason}"


def format_processed_file(summary: FileSummary) -> str:
    return f"Processed {summary.file_path}: {summary.total_transactions} transactions ({summary.status})"


def format_failed_file(summary: FileSummary) -> str:
    return f"Failed {summary.file_path}: {summary.message}"


def build_report(result: Union[ImportResult, BatchResult]) -> Dict:
    artifacts: Dict[str, List[str]] = {}

    if result.imported:
        artifacts["imported_transactions"] = [format_imported(tx) for tx in result.imported]
    if result.failed:
        artifacts["failed_transactions"] = [format_failed(tx) for tx in result.failed]
    if result.skipped:
        artifacts["skipped_transactions"] = [format_skipped(tx) for tx in result.skipped]

    if isinstance(result, BatchResult):
        if result.processed_files:
            artifacts["processed_files"] = [format_processed_file(f) for f in result.processed_files]
        if result.failed_files:
            artifacts["failed_files"] = [format_failed_file(f) for f in result.failed_files]

    return {
        "status": result.status,
        "timestamp": result.timestamp.isoformat(timespec="seconds") if result.timestamp else None,
        "message": result.message,
        "artifacts": artifacts,
        "metrics": result.metrics.to_dict(),
    }


def write_report(report: Dict, target: str = "-", pretty: bool = False) -> bool:
    """Write the report; returns False when the file could not be saved"""
    json_output = json.dumps(report, ensure_ascii=False, indent=2 if pretty else None)

    if target in STDOUT_TARGETS:
        sys.stdout.write(json_output + "\n")
        sys.stdout.flush()
        return True

    directory = os.path.dirname(os.path.abspath(target))
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".report-", suffix=".json", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json_output)
        os.replace(tmp_path, target)
    except OSError as e:
        print(f"❌ Failed to save report to: {target} ({e})", file=sys.stderr)
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        return False

    print(f"💾 Report saved to: {target}", file=sys.stderr)
    return True
