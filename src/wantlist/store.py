"""Want-list store owned by the account subsystem."""

from typing import Dict, List, Optional, Protocol

from src.fetcher.backend_client import BackendClient
from src.models.data_models import WantlistEntry


class WantlistStore(Protocol):
    async def list(self, account: str) -> List[WantlistEntry]:
        ...

    async def remove(self, account: str, entry: WantlistEntry) -> None:
        ...


def _entry_from_dict(item: Dict) -> Optional[WantlistEntry]:
    if not isinstance(item, dict) or not item.get("product_id"):
        return None
    variant_id = item.get("variant_id")
    return WantlistEntry(
        product_id=str(item["product_id"]),
        variant_id=str(variant_id) if variant_id else None,
    )


class HttpWantlistStore:
    """
    Want-list over the commerce backend's ``/store/wantlist`` endpoint.

    ``account`` is the customer's bearer token; the backend scopes the list
    to whoever the token belongs to.
    """

    PATH = "/store/wantlist"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    @staticmethod
    def _auth(account: str) -> Dict[str, str]:
        return {"authorization": f"Bearer {account}"}

    async def list(self, account: str) -> List[WantlistEntry]:
        data = await self.backend.get_json(self.PATH, headers=self._auth(account))
        items = data.get("wantlist") or []
        return [entry for entry in (_entry_from_dict(i) for i in items) if entry is not None]

    async def remove(self, account: str, entry: WantlistEntry) -> None:
        body = {"product_id": entry.product_id}
        if entry.variant_id:
            body["variant_id"] = entry.variant_id
        await self.backend.delete(self.PATH, body, headers=self._auth(account))


class InMemoryWantlistStore:
    """Want-lists kept in a dict; for local runs and tests."""

    def __init__(self, wantlists: Optional[Dict[str, List[WantlistEntry]]] = None):
        self.wantlists: Dict[str, List[WantlistEntry]] = {
            account: list(entries) for account, entries in (wantlists or {}).items()
        }

    async def list(self, account: str) -> List[WantlistEntry]:
        return list(self.wantlists.get(account, []))

    async def remove(self, account: str, entry: WantlistEntry) -> None:
        entries = self.wantlists.get(account, [])
        if entry in entries:
            entries.remove(entry)
