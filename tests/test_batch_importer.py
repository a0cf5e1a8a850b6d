import os
import sys
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from abo_models import ImportMetrics, ImportResult, OutcomeKind, TransactionOutcome
from batch_importer import BatchImporter, classify_batch
from import_engine import ImportEngine


def _outcome(kind, doc):
    return TransactionOutcome(kind=kind, transaction_id=f"ABO_{doc}_1", document_number=doc)


def _result(path, status, imported=(), failed=(), skipped=(), seconds=0.5):
    return ImportResult(
        file_path=path,
        status=status,
        message=f"{path} {status}",
        metrics=ImportMetrics(
            total_transactions=len(imported) + len(failed) + len(skipped),
            imported_count=len(imported),
            error_count=len(failed),
            skipped_count=len(skipped),
            processing_time_seconds=seconds,
        ),
        imported=[_outcome(OutcomeKind.IMPORTED, d) for d in imported],
        failed=[_outcome(OutcomeKind.FAILED, d) for d in failed],
        skipped=[_outcome(OutcomeKind.SKIPPED, d) for d in skipped],
    )


class TestBatchImporter(unittest.TestCase):
    def setUp(self):
        self.engine = MagicMock(spec=ImportEngine)
        self.batch_importer = BatchImporter(self.engine)

    def _run(self, results):
        self.engine.import_file.side_effect = results
        return self.batch_importer.import_files([r.file_path if isinstance(r, ImportResult) else "broken.abo" for r in results])

    def test_metrics_are_summed_and_status_is_warning(self):
        batch = self._run([
            _result("a.abo", "success", imported=["1", "2"], skipped=["3"]),
            _result("b.abo", "error", failed=["4"]),
        ])
        m = batch.metrics
        self.assertEqual((m.imported_count, m.error_count, m.skipped_count), (2, 1, 1))
        self.assertEqual(m.total_transactions, 4)
        self.assertEqual(m.processing_time_seconds, 1.0)
        self.assertEqual((m.total_files, m.processed_files, m.failed_files), (2, 1, 1))
        self.assertEqual(batch.status, "warning")

    def test_batch_metrics_equal_sum_of_files(self):
        batch = self._run([
            _result("a.abo", "warning", imported=["1"], failed=["2"]),
            _result("b.abo", "success", skipped=["3", "4"]),
            _result("c.abo", "success", imported=["5"]),
        ])
        for name in ("total_transactions", "imported_count", "error_count", "skipped_count"):
            self.assertEqual(
                getattr(batch.metrics, name),
                sum(getattr(r.metrics, name) for r in batch.file_results),
            )

    def test_elapsed_time_is_summed_unrounded(self):
        batch = self._run([
            _result("a.abo", "success", seconds=0.0004),
            _result("b.abo", "success", seconds=0.0004),
            _result("c.abo", "success", seconds=0.0004),
        ])
        self.assertAlmostEqual(batch.metrics.processing_time_seconds, 0.0012)
        self.assertEqual(batch.metrics.to_dict()["processing_time_seconds"], 0.001)

    def test_order_is_file_major(self):
        batch = self._run([
            _result("b.abo", "success", imported=["3", "1"]),
            _result("a.abo", "success", imported=["2"]),
        ])
        self.assertEqual([o.document_number for o in batch.imported], ["3", "1", "2"])
        self.assertEqual([f.file_path for f in batch.processed_files], ["b.abo", "a.abo"])
        self.engine.import_file.assert_any_call("b.abo")

    def test_warning_file_counts_as_processed(self):
        batch = self._run([_result("a.abo", "warning", imported=["1"], failed=["2"])])
        self.assertEqual(len(batch.processed_files), 1)
        self.assertEqual(batch.failed_files, [])
        self.assertEqual(batch.status, "success")

    def test_all_files_failed_is_error(self):
        batch = self._run([_result("a.abo", "error"), _result("b.abo", "error")])
        self.assertEqual(batch.status, "error")
        self.assertTrue(batch.message.startswith("Batch import failed"))

    def test_escaping_exception_becomes_failed_file(self):
        batch = self._run([RuntimeError("disk on fire"), _result("b.abo", "success", imported=["1"])])
        self.assertEqual(batch.status, "warning")
        self.assertEqual(batch.failed_files[0].file_path, "broken.abo")
        self.assertIn("disk on fire", batch.failed_files[0].message)
        self.assertEqual(batch.metrics.imported_count, 1)

    def test_message(self):
        batch = self._run([
            _result("a.abo", "success", imported=["1", "2"], skipped=["3"]),
            _result("b.abo", "error", failed=["4"]),
        ])
        self.assertEqual(
            batch.message,
            "Batch import completed: 1 files processed, 1 files failed; 2 imported, 1 errors, 1 skipped",
        )

    def test_empty_batch(self):
        batch = self.batch_importer.import_files([])
        self.assertEqual(batch.status, "error")
        self.assertEqual(batch.message, "No input files")


def test_classify_batch():
    assert classify_batch(processed_files=0, failed_files=2) == "error"
    assert classify_batch(processed_files=1, failed_files=1) == "warning"
    assert classify_batch(processed_files=2, failed_files=0) == "success"


if __name__ == "__main__":
    unittest.main()
