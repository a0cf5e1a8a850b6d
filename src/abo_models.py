from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional


class ImporterError(Exception):
    """Base class for importer failures"""


class StatementParseError(ImporterError):
    """The parsed statement could not be read or is malformed"""


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise StatementParseError(f"Invalid date: {value!r}") from e


def _amount(value) -> Decimal:
    if value is None or value == "":
        raise StatementParseError("Transaction amount is missing")
    try:
        # float -> str keeps the shortest repr (1000.5, not 1000.4999...)
        return Decimal(str(value))
    except InvalidOperation as e:
        raise StatementParseError(f"Invalid amount: {value!r}") from e


@dataclass(frozen=True)
class ParsedTransaction:
    document_number: str
    account_number: str
    amount: Decimal
    counter_account: Optional[str] = None
    counter_bank_code: Optional[str] = None
    valuation_date: Optional[date] = None
    due_date: Optional[date] = None
    variable_symbol: Optional[str] = None
    constant_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None
    additional_info: Optional[str] = None
    data_type: Optional[str] = None

    @property
    def effective_date(self) -> Optional[date]:
        """Valuation date, falling back to the due date"""
        return self.valuation_date or self.due_date

    @classmethod
    def from_dict(cls, record: Dict) -> "ParsedTransaction":
        """Build a transaction from one parser record (snake_case keys)"""
        return cls(
            document_number="" if record.get("document_number") is None else str(record["document_number"]),
            account_number="" if record.get("account_number") is None else str(record["account_number"]),
            amount=_amount(record.get("amount")),
            counter_account=_optional_str(record.get("counter_account")),
            counter_bank_code=_optional_str(record.get("counter_bank_code")),
            valuation_date=_optional_date(record.get("valuation_date")),
            due_date=_optional_date(record.get("due_date")),
            variable_symbol=_optional_str(record.get("variable_symbol")),
            constant_symbol=_optional_str(record.get("constant_symbol")),
            specific_symbol=_optional_str(record.get("specific_symbol")),
            additional_info=_optional_str(record.get("additional_info")),
            data_type=_optional_str(record.get("data_type")),
        )


@dataclass
class ParsedStatement:
    format_version: Optional[str]
    statements: List[Dict]
    transactions: List[ParsedTransaction]


@dataclass(frozen=True)
class CounterParty:
    account_number: str
    bank_code: str
    name: Optional[str] = None


@dataclass(frozen=True)
class LedgerMovement:
    direction: str  # receipt|expense
    payment_date: date
    statement_date: date
    text: str
    internal_note: str
    amount: Decimal
    counter_party: Optional[CounterParty] = None
    variable_symbol: Optional[str] = None
    constant_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None
    target_account: Optional[str] = None

    def to_payload(self) -> Dict:
        """Render the movement with the mServer bank agenda field names.

        Optional fields are left out entirely: the ledger treats an
        omitted symbol differently from an empty one.
        """
        payload = {
            "bankType": self.direction,
            "datePayment": self.payment_date.isoformat(),
            "dateStatement": self.statement_date.isoformat(),
            "text": self.text,
            "intNote": self.internal_note,
            "homeCurrency": {"priceNone": str(self.amount)},
        }
        if self.counter_party:
            payload["paymentAccount"] = {
                "accountNo": self.counter_party.account_number,
                "bankCode": self.counter_party.bank_code,
            }
            if self.counter_party.name:
                payload["partnerIdentity"] = {"address": {"name": self.counter_party.name}}
        if self.variable_symbol:
            payload["symVar"] = self.variable_symbol
        if self.constant_symbol:
            payload["symConst"] = self.constant_symbol
        if self.specific_symbol:
            payload["symSpec"] = self.specific_symbol
        if self.target_account:
            payload["account"] = self.target_account
        return payload


class OutcomeKind(str, Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class TransactionOutcome:
    kind: OutcomeKind
    transaction_id: str
    document_number: str
    amount: Optional[Decimal] = None
    date: Optional[date] = None
    reason: Optional[str] = None


@dataclass
class ImportMetrics:
    total_transactions: int = 0
    imported_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    processing_time_seconds: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "total_transactions": self.total_transactions,
            "imported_count": self.imported_count,
            "error_count": self.error_count,
            "skipped_count": self.skipped_count,
            "processing_time_seconds": round(self.processing_time_seconds, 3),
        }


@dataclass
class BatchMetrics(ImportMetrics):
    total_files: int = 0
    processed_files: int = 0
    failed_files: int = 0

    def add(self, metrics: ImportMetrics):
        self.total_transactions += metrics.total_transactions
        self.imported_count += metrics.imported_count
        self.error_count += metrics.error_count
        self.skipped_count += metrics.skipped_count
        self.processing_time_seconds += metrics.processing_time_seconds

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data.update({
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "failed_files": self.failed_files,
        })
        return data


@dataclass
class ImportResult:
    file_path: str
    status: str = "success"  # success|warning|error
    message: str = ""
    timestamp: Optional[datetime] = None
    metrics: ImportMetrics = field(default_factory=ImportMetrics)
    imported: List[TransactionOutcome] = field(default_factory=list)
    failed: List[TransactionOutcome] = field(default_factory=list)
    skipped: List[TransactionOutcome] = field(default_factory=list)
    format_version: Optional[str] = None
    statement_count: int = 0


@dataclass(frozen=True)
class FileSummary:
    file_path: str
    status: str
    total_transactions: int
    message: str


@dataclass
class BatchResult:
    status: str = "success"
    message: str = ""
    timestamp: Optional[datetime] = None
    metrics: BatchMetrics = field(default_factory=BatchMetrics)
    imported: List[TransactionOutcome] = field(default_factory=list)
    failed: List[TransactionOutcome] = field(default_factory=list)
    skipped: List[TransactionOutcome] = field(default_factory=list)
    processed_files: List[FileSummary] = field(default_factory=list)
    failed_files: List[FileSummary] = field(default_factory=list)
    file_results: List[ImportResult] = field(default_factory=list)
