import os
import sys
import time
from datetime import datetime
from typing import Callable

from abo_models import (
    ImportResult,
    OutcomeKind,
    ParsedStatement,
    ParsedTransaction,
    TransactionOutcome,
)
from duplicate_checker import DuplicateChecker
from transaction_identity import transaction_identity
from transaction_mapper import TransactionMapper


DUPLICATE_REASON = "duplicate"
COMMIT_FAILED = "Failed to commit to Pohoda"


def classify_status(imported_count: int, error_count: int) -> str:
    if error_count > 0 and imported_count == 0:
        return "error"
    if error_count > 0:
        return "warning"
    return "success"


def summary_message(status: str, imported_count: int, error_count: int, skipped_count: int) -> str:
    if status == "error":
        return f"Import failed: {error_count} errors, no transactions imported"
    if status == "warning":
        return f"Import completed with issues: {imported_count} imported, {error_count} errors, {skipped_count} skipped"
    return f"Import successful: {imported_count} imported, {skipped_count} skipped"


def _log(message: str):
    print(message, file=sys.stderr)


class ImportEngine:
    """Imports one parsed ABO file into Pohoda, skipping transactions already present.

    Transactions are handled one at a time, check then submit, so the
    at-most-once guarantee holds only while a single importer writes to
    the ledger (see execution_lock.ImportLock).
    """

    def __init__(
        self,
        client,
        duplicate_checker: DuplicateChecker,
        mapper: TransactionMapper,
        parser: Callable[[str], ParsedStatement],
    ):
        self.client = client
        self.duplicate_checker = duplicate_checker
        self.mapper = mapper
        self.parser = parser

    def import_file(self, path: str) -> ImportResult:
        started = time.monotonic()
        result = ImportResult(file_path=str(path))
        _log(f"📥 Starting ABO import from: {path}")

        if not os.path.exists(path):
            result.status = "error"
            result.message = f"ABO file not found: {path}"
            return self._finish(result, started)

        try:
            parsed = self.parser(path)
        except Exception as e:
            result.status = "error"
            result.message = f"Fatal error during import: {e}"
            return self._finish(result, started)

        result.format_version = parsed.format_version
        result.statement_count = len(parsed.statements)
        result.metrics.total_transactions = len(parsed.transactions)
        _log(f"  Parsed ABO file with format: {parsed.format_version}")
        _log(f"  Found {len(parsed.statements)} statements and {len(parsed.transactions)} transactions")

        for i, tx in enumerate(parsed.transactions, 1):
            _log(f"  [{i}/{len(parsed.transactions)}] {tx.document_number} {tx.amount}")
            self._record(result, self.process_transaction(tx))

        metrics = result.metrics
        result.status = classify_status(metrics.imported_count, metrics.error_count)
        result.message = summary_message(
            result.status, metrics.imported_count, metrics.error_count, metrics.skipped_count
        )
        return self._finish(result, started)

    def process_transaction(self, tx: ParsedTransaction) -> TransactionOutcome:
        """Check, map, submit and classify a single transaction.

        Never raises: any failure becomes a FAILED outcome so the rest of
        the file still gets imported.
        """
        identity = transaction_identity(tx)
        try:
            if self.duplicate_checker.exists(identity):
                _log(f"    ⏭️ Transaction already exists, skipping: {tx.document_number}")
                return TransactionOutcome(
                    kind=OutcomeKind.SKIPPED,
                    transaction_id=identity,
                    document_number=tx.document_number,
                    amount=tx.amount,
                    date=tx.effective_date,
                    reason=DUPLICATE_REASON,
                )

            movement = self.mapper.map(tx)
            if self.client.submit(movement) and self.client.confirm():
                _log(f"    ✅ Imported transaction: {tx.document_number} (Amount: {tx.amount})")
                return TransactionOutcome(
                    kind=OutcomeKind.IMPORTED,
                    transaction_id=identity,
                    document_number=tx.document_number,
                    amount=tx.amount,
                    date=movement.payment_date,
                )

            _log(f"    ⚠️ Failed to import transaction: {tx.document_number}")
            return TransactionOutcome(
                kind=OutcomeKind.FAILED,
                transaction_id=identity,
                document_number=tx.document_number,
                amount=tx.amount,
                date=tx.effective_date,
                reason=COMMIT_FAILED,
            )
        except Exception as e:
            _log(f"    ❌ Error importing transaction {tx.document_number}: {e}")
            return TransactionOutcome(
                kind=OutcomeKind.FAILED,
                transaction_id=identity,
                document_number=tx.document_number,
                amount=tx.amount,
                date=tx.effective_date,
                reason=str(e) or e.__class__.__name__,
            )

    def _record(self, result: ImportResult, outcome: TransactionOutcome):
        if outcome.kind is OutcomeKind.IMPORTED:
            result.imported.append(outcome)
            result.metrics.imported_count += 1
        elif outcome.kind is OutcomeKind.SKIPPED:
            result.skipped.append(outcome)
            result.metrics.skipped_count += 1
        else:
            result.failed.append(outcome)
            result.metrics.error_count += 1

    def _finish(self, result: ImportResult, started: float) -> ImportResult:
        result.metrics.processing_time_seconds = time.monotonic() - started
        result.timestamp = datetime.now().astimezone()
        _log(("❌ " if result.status == "error" else "📊 ") + result.message)
        return result
