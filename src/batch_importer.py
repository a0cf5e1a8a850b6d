import sys
from datetime import datetime
from typing import Iterable

from abo_models import BatchResult, FileSummary, ImportResult
from import_engine import ImportEngine


def classify_batch(processed_files: int, failed_files: int) -> str:
    if processed_files == 0:
        return "error"
    if failed_files > 0:
        return "warning"
    return "success"


class BatchImporter:
    """Runs the import engine over several files and merges their results"""

    def __init__(self, engine: ImportEngine):
        self.engine = engine

    def import_files(self, paths: Iterable[str]) -> BatchResult:
        batch = BatchResult()
        # caller order is kept as is; it decides the report order
        for path in paths:
            try:
                result = self.engine.import_file(path)
            except Exception as e:
                print(f"❌ Unexpected error importing {path}: {e}", file=sys.stderr)
                result = ImportResult(
                    file_path=str(path),
                    status="error",
                    message=f"Fatal error during import: {e}",
                    timestamp=datetime.now().astimezone(),
                )
            self.add_result(batch, result)

        metrics = batch.metrics
        batch.status = classify_batch(metrics.processed_files, metrics.failed_files)
        batch.message = self._message(batch)
        batch.timestamp = datetime.now().astimezone()
        print(f"📦 {batch.message}", file=sys.stderr)
        return batch

    def add_result(self, batch: BatchResult, result: ImportResult):
        batch.file_results.append(result)
        batch.imported.extend(result.imported)
        batch.failed.extend(result.failed)
        batch.skipped.extend(result.skipped)
        batch.metrics.add(result.metrics)
        batch.metrics.total_files += 1

        summary = FileSummary(
            file_path=result.file_path,
            status=result.status,
            total_transactions=result.metrics.total_transactions,
            message=result.message,
        )
        # a warning file still counts as processed
        if result.status == "error":
            batch.failed_files.append(summary)
            batch.metrics.failed_files += 1
        else:
            batch.processed_files.append(summary)
            batch.metrics.processed_files += 1

    def _message(self, batch: BatchResult) -> str:
        m = batch.metrics
        if m.total_files == 0:
            return "No input files"
        prefix = "Batch import failed" if batch.status == "error" else "Batch import completed"
        return (
            f"{prefix}: {m.processed_files} files processed, {m.failed_files} files failed; "
            f"{m.imported_count} imported, {m.error_count} errors, {m.skipped_count} skipped"
        )
