import base64
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import requests

from abo_models import LedgerMovement


@dataclass(frozen=True)
class LedgerQuery:
    agenda: str
    filter: str
    label: str


class LedgerClient:
    """Pohoda mServer bank agenda client (JSON gateway)

    query()/list() look records up, submit() stages one movement and
    confirm() sends the staged movements in a single request.
    """

    def __init__(self, url: str, username: str, password: str, ico: str,
                 app_name: str = "AboImporter", app_version: str = "",
                 timeout: float = 60, session: Optional[requests.Session] = None):
        self.base_url = url.rstrip("/")
        self.ico = ico
        self.timeout = timeout
        self.session = session or requests.Session()
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        self.session.headers.update({
            "STW-Authorization": f"Basic {credentials}",
            "STW-Application": f"{app_name} {app_version}".strip(),
            "User-Agent": f"{app_name}-{app_version} {requests.utils.default_user_agent()}",
            "Content-Type": "application/json",
        })
        self._pending: List[Dict] = []

    def query(self, filter_expression: str, label: str, agenda: str = "bank") -> LedgerQuery:
        return LedgerQuery(agenda=agenda, filter=filter_expression, label=label)

    def list(self, query: LedgerQuery) -> Union[List[Dict], bool]:
        """Records matching the query; False when the listing itself failed"""
        url = f"{self.base_url}/{query.agenda}/list"
        data = {"ico": self.ico, "filter": query.filter, "label": query.label}
        try:
            response = self.session.post(url, json=data, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"  ❌ Listing failed ({query.label}): {e}", file=sys.stderr)
            return False

        records = body.get("records") if isinstance(body, dict) else None
        if not isinstance(records, list):
            print(f"  ❌ Unexpected listing response ({query.label})", file=sys.stderr)
            return False
        return records

    def submit(self, movement: LedgerMovement) -> bool:
        self._pending.append(movement.to_payload())
        return True

    def confirm(self) -> bool:
        """Send the staged movements; True when the ledger accepted all of them"""
        movements, self._pending = self._pending, []
        if not movements:
            return False

        url = f"{self.base_url}/bank"
        response = self.session.post(
            url, json={"ico": self.ico, "movements": movements}, timeout=self.timeout
        )
        response.raise_for_status()
        body = response.json()
        return body.get("state") == "ok"
