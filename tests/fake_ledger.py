"""In-memory stand-in for the Pohoda ledger used by the importer tests"""

import re


class FakeLedger:
    def __init__(self, records=None, store=None):
        # clients built from one ledger share the same record store
        self.store = store if store is not None else {"records": list(records or []), "list_fails": False}
        self.pending = []
        self.queries = []
        self.submit_result = True
        self.confirm_result = True

    @property
    def records(self):
        return self.store["records"]

    def fail_listing(self, fail=True):
        self.store["list_fails"] = fail

    def checker(self):
        return FakeLedger(store=self.store)

    def query(self, filter_expression, label):
        self.queries.append((filter_expression, label))
        return filter_expression

    def list(self, query):
        if self.store["list_fails"]:
            return False
        needle = re.search(r"like '%(.*)%'", query).group(1).replace("''", "'")
        return [r for r in self.records if needle in r.get("intNote", "")]

    def submit(self, movement):
        if not self.submit_result:
            return False
        self.pending.append(movement)
        return True

    def confirm(self):
        if not self.confirm_result:
            self.pending = []
            return False
        for movement in self.pending:
            self.records.append(movement.to_payload())
        self.pending = []
        return True
