import importlib
import json
from typing import Callable, Optional

from abo_models import ParsedStatement, ParsedTransaction, StatementParseError


def load_parsed_statement(path: str) -> ParsedStatement:
    """Read the JSON export of the ABO parser.

    Expected shape: {"format_version": ..., "statements": [...],
    "transactions": [{...}, ...]}; transaction order is kept.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StatementParseError(f"Cannot read parsed statement {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("transactions"), list):
        raise StatementParseError(f"{path}: 'transactions' list is missing")

    transactions = []
    for i, record in enumerate(data["transactions"], 1):
        if not isinstance(record, dict):
            raise StatementParseError(f"{path}: transaction #{i} is not an object")
        try:
            transactions.append(ParsedTransaction.from_dict(record))
        except StatementParseError as e:
            raise StatementParseError(f"{path}: transaction #{i}: {e}") from e

    return ParsedStatement(
        format_version=data.get("format_version"),
        statements=list(data.get("statements") or []),
        transactions=transactions,
    )


def resolve_parser(reference: Optional[str]) -> Callable[[str], ParsedStatement]:
    """Parser callable from a 'module:function' reference, JSON reader by default"""
    if not reference:
        return load_parsed_statement
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise ValueError(f"ABO_PARSER must look like 'module:function', got {reference!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attr)
