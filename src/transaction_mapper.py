from datetime import date
from typing import Callable, Optional

from abo_models import CounterParty, LedgerMovement, ParsedTransaction
from transaction_identity import transaction_identity, wrap_identity


DEFAULT_DESCRIPTION = "Bank transaction from ABO import"
DESCRIPTION_SEPARATOR = " | "


def build_transaction_description(tx: ParsedTransaction, fallback: str = DEFAULT_DESCRIPTION) -> str:
    """Movement text from the available transaction data.

    The part order and separator are referenced by reports, keep them stable.
    """
    parts = []
    if tx.additional_info:
        parts.append(tx.additional_info)
    if tx.counter_account:
        parts.append(f"Counter account: {tx.counter_account}")
    if tx.data_type:
        parts.append(f"Type: {tx.data_type}")
    return DESCRIPTION_SEPARATOR.join(parts) or fallback


class TransactionMapper:
    """Translates parsed ABO transactions into Pohoda bank movements"""

    def __init__(
        self,
        app_name: str,
        app_version: str,
        job_id: str = "n/a",
        default_bank_code: str = "",
        target_account: Optional[str] = None,
        description_fallback: str = DEFAULT_DESCRIPTION,
        today: Callable[[], date] = date.today,
    ):
        self.app_name = app_name
        self.app_version = app_version
        self.job_id = job_id or "n/a"
        self.default_bank_code = default_bank_code
        self.target_account = target_account or None
        self.description_fallback = description_fallback
        self.today = today

    def internal_note(self, identity: str) -> str:
        return (
            f"Automatic Import: {self.app_name} {self.app_version} "
            f"job:{self.job_id} {wrap_identity(identity)}"
        )

    def movement_date(self, tx: ParsedTransaction) -> date:
        # with neither valuation nor due date the movement is booked today
        return tx.effective_date or self.today()

    def map(self, tx: ParsedTransaction) -> LedgerMovement:
        movement_date = self.movement_date(tx)

        counter_party = None
        if tx.counter_account:
            counter_party = CounterParty(
                account_number=tx.counter_account,
                bank_code=tx.counter_bank_code or self.default_bank_code,
                name=tx.additional_info or None,
            )

        return LedgerMovement(
            direction="receipt" if tx.amount > 0 else "expense",
            payment_date=movement_date,
            statement_date=movement_date,
            text=build_transaction_description(tx, self.description_fallback),
            internal_note=self.internal_note(transaction_identity(tx)),
            amount=abs(tx.amount),
            counter_party=counter_party,
            variable_symbol=tx.variable_symbol or None,
            constant_symbol=tx.constant_symbol or None,
            specific_symbol=tx.specific_symbol or None,
            target_account=self.target_account,
        )
