import re
from typing import Optional

from abo_models import ParsedTransaction


IDENTITY_PREFIX = "ABO"
_NOTE_IDENTITY = re.compile(r"#([^#]+)#")


def transaction_identity(tx: ParsedTransaction) -> str:
    """Idempotency key of a transaction, e.g. ABO_123456_789012345.

    Empty fields are not rejected, they just give a degenerate key (ABO__).
    """
    return f"{IDENTITY_PREFIX}_{tx.document_number}_{tx.account_number}"


def wrap_identity(identity: str) -> str:
    """Form stored in the internal note; the # markers delimit it from free text"""
    return f"#{identity}#"


def identity_from_note(note: Optional[str]) -> Optional[str]:
    """Recover the first wrapped identity from an internal note"""
    if not note:
        return None
    m = _NOTE_IDENTITY.search(note)
    return m.group(1) if m else None
