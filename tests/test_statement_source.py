import json
import os
import sys
from datetime import date
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from abo_models import ParsedTransaction, StatementParseError
from statement_source import load_parsed_statement, resolve_parser


def _write(tmp_path, data):
    path = tmp_path / "vystup.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_parsed_statement_keeps_order(tmp_path):
    path = _write(tmp_path, {
        "format_version": "basic",
        "statements": [{"account_number": "123"}],
        "transactions": [
            {"document_number": "2", "account_number": "123", "amount": 1000.5, "valuation_date": "2025-01-10"},
            {"document_number": "1", "account_number": "123", "amount": "-20.00", "due_date": "2025-01-11",
             "variable_symbol": "  ", "counter_account": "19-2000145399"},
        ],
    })
    statement = load_parsed_statement(path)

    assert statement.format_version == "basic"
    assert len(statement.statements) == 1
    assert [t.document_number for t in statement.transactions] == ["2", "1"]
    assert statement.transactions[0].amount == Decimal("1000.5")
    assert statement.transactions[0].valuation_date == date(2025, 1, 10)
    assert statement.transactions[1].effective_date == date(2025, 1, 11)
    assert statement.transactions[1].variable_symbol is None


def test_missing_amount_is_a_parse_error(tmp_path):
    path = _write(tmp_path, {"transactions": [{"document_number": "1", "account_number": "1"}]})
    with pytest.raises(StatementParseError, match="transaction #1"):
        load_parsed_statement(path)


def test_invalid_json_is_a_parse_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StatementParseError):
        load_parsed_statement(str(path))


def test_from_dict_numbers_become_strings():
    tx = ParsedTransaction.from_dict({"document_number": 17, "account_number": 2000145399, "amount": 3})
    assert tx.document_number == "17"
    assert tx.account_number == "2000145399"


def test_resolve_parser():
    assert resolve_parser(None) is load_parsed_statement
    assert resolve_parser("statement_source:load_parsed_statement") is load_parsed_statement
    with pytest.raises(ValueError):
        resolve_parser("statement_source")
