import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from abo_models import ParsedTransaction
from transaction_identity import (
    identity_from_note,
    transaction_identity,
    wrap_identity,
)


def _tx(doc, account):
    return ParsedTransaction(document_number=doc, account_number=account, amount=Decimal("1"))


def test_identity_format():
    assert transaction_identity(_tx("123456", "789012345")) == "ABO_123456_789012345"


def test_identity_is_deterministic():
    assert transaction_identity(_tx("1", "2")) == transaction_identity(_tx("1", "2"))


def test_identity_differs_per_document_and_account():
    ids = {
        transaction_identity(_tx("1", "2")),
        transaction_identity(_tx("2", "2")),
        transaction_identity(_tx("1", "3")),
    }
    assert len(ids) == 3


def test_empty_fields_give_degenerate_identity():
    assert transaction_identity(_tx("", "")) == "ABO__"


def test_identity_round_trips_through_note():
    identity = transaction_identity(_tx("42", "1000"))
    note = f"Automatic Import: AboImporter 0.1.0 job:7 {wrap_identity(identity)}"
    assert identity_from_note(note) == identity


def test_identity_from_note_without_marker():
    assert identity_from_note(None) is None
    assert identity_from_note("") is None
    assert identity_from_note("manual entry") is None
