"""Account directories listing mail accounts and their identities."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from .models import Account

log = logging.getLogger(__name__)


class StaticAccountDirectory:
    """Accounts held in memory."""

    def __init__(self, accounts: list[Account] | None = None) -> None:
        self.accounts = list(accounts or [])

    async def list(self) -> list[Account]:
        return list(self.accounts)


class JsonAccountDirectory:
    """Accounts read from a JSON file on every ``list()`` call.

    The file holds either a list of accounts or ``{"accounts": [...]}``::

        [{"id": "account1", "type": "imap", "name": "Work",
          "identities": [{"id": "id1", "email": "me@example.com"}]}]
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    async def list(self) -> list[Account]:
        return await asyncio.to_thread(self._read)

    def _read(self) -> list[Account]:
        if not self.path.exists():
            raise FileNotFoundError(f"Accounts file not found: {self.path}")

        data = json.loads(self.path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("accounts", [])
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of accounts in {self.path}")

        accounts = [Account.from_dict(entry) for entry in data]
        log.debug("Read %d account(s) from %s", len(accounts), self.path)
        return accounts
