import sys
from typing import Callable, Dict

from abo_models import ImporterError
from transaction_identity import wrap_identity


NOTE_FIELD = "intNote"


class DuplicateCheckError(ImporterError):
    """The ledger lookup could not be executed"""


def _like_literal(text: str) -> str:
    return text.replace("'", "''")


class DuplicateChecker:
    """Looks up already imported transactions in Pohoda by their note marker.

    Every lookup goes through a freshly built client, so a check can never
    touch the movement that the importing client is about to submit.
    """

    def __init__(self, client_factory: Callable):
        self.client_factory = client_factory

    def build_filter(self, identity: str) -> str:
        return f"{NOTE_FIELD} like '%{_like_literal(wrap_identity(identity))}%'"

    def exists(self, identity: str) -> bool:
        """Is a record with this transaction identity already present?

        Raises:
            DuplicateCheckError: the listing failed; never read as "not found"
        """
        checker = self.client_factory()
        query = checker.query(self.build_filter(identity), f"TransactionID: {identity}")
        found = checker.list(query)

        if found is False:
            raise DuplicateCheckError("Error fetching records for transaction check.")
        if not found:
            return False

        for record in found:
            if self._matches(record, identity):
                return True
        print(f"  ⚠️ {len(found)} loose match(es) for {identity} ignored", file=sys.stderr)
        return False

    def _matches(self, record: Dict, identity: str) -> bool:
        # '_' is a LIKE wildcard, so the server match is confirmed on the note itself
        if not isinstance(record, dict) or record.get(NOTE_FIELD) is None:
            return True
        return wrap_identity(identity) in str(record[NOTE_FIELD])
