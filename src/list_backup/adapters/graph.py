"""Microsoft Graph adapters for SharePoint lists and document libraries.

Provides ``GraphListStore`` (``RecordStoreClient``) and ``GraphDriveStore``
(``SnapshotStoreClient``), both sharing one ``GraphSession``.  The session
wraps an ``httpx.AsyncClient`` that is created lazily on first use under an
``asyncio.Lock``, and caches the SharePoint site id per instance.

Authentication is out of scope: the session is given an already-acquired
bearer token.

Usage:
    from list_backup.adapters.graph import GraphSession, GraphListStore, GraphDriveStore

    session = GraphSession(
        site_url="https://contoso.sharepoint.com/sites/TSS",
        token="eyJ0eXAi...",
    )
    records = GraphListStore(session)
    snapshots = GraphDriveStore(session, library="TSS_Backups")

    rows = await records.list_all("TSS_Company")
    await session.close()
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from list_backup.adapters.base import (
    SnapshotFileNotFoundError,
    SnapshotStoreNotProvisionedError,
)

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Lists without indexed columns refuse large reads unless asked politely
_PREFER_HEADER = {"Prefer": "HonorNonIndexedQueriesWarningMayFailRandomly"}


def _is_not_found(exc: httpx.HTTPStatusError) -> bool:
    return exc.response.status_code == 404


class GraphSession:
    """Shared Graph API connection for one SharePoint site.

    Args:
        site_url: Full SharePoint site URL
            (e.g. ``https://contoso.sharepoint.com/sites/TSS``).
        token: OAuth bearer token with Sites.ReadWrite.All scope.
        timeout: Per-request timeout in seconds.
        base_url: Graph API root.  Override for national clouds.
        transport: Optional ``httpx`` transport (tests pass
            ``httpx.MockTransport``).

    Example:
        session = GraphSession("https://contoso.sharepoint.com/sites/TSS", token)
        site_id = await session.get_site_id()
        await session.close()
    """

    def __init__(
        self,
        site_url: str,
        token: str,
        timeout: float = 30.0,
        base_url: str = GRAPH_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._site_url: str = site_url
        self._token: str = token
        self._timeout: float = timeout
        self._base_url: str = base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()
        self._site_id: str | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client.

        Uses an ``asyncio.Lock`` so the client is created exactly once,
        even under concurrent access.
        """
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self._base_url,
                        headers={"Authorization": f"Bearer {self._token}"},
                        timeout=self._timeout,
                        follow_redirects=True,
                        transport=self._transport,
                    )
        return self._client

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise ``httpx.HTTPStatusError`` on a 4xx/5xx reply.

        ``url`` may be relative to the Graph root or an absolute
        continuation link returned by a previous page.
        """
        client = await self._get_client()
        logger.debug(f"Graph {method} {url}")
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self.request("GET", url, **kwargs)
        return response.json()

    async def get_site_id(self) -> str:
        """Resolve and cache the Graph site id for ``site_url``."""
        if self._site_id is None:
            parsed = urlparse(self._site_url)
            site = await self.get_json(f"/sites/{parsed.hostname}:{parsed.path}")
            self._site_id = site["id"]
        return self._site_id

    async def close(self) -> None:
        """Close the HTTP client.

        If the client was never initialized, this is a no-op.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class GraphListStore:
    """SharePoint list implementation of the ``RecordStoreClient`` protocol.

    Args:
        session: Shared ``GraphSession``.
        page_size: Items requested per page (Graph caps this at 5000;
            SharePoint itself at 200 when fields are expanded).
    """

    def __init__(self, session: GraphSession, page_size: int = 200) -> None:
        self._session = session
        self._page_size = page_size

    async def _items_url(self, collection: str) -> str:
        site_id = await self._session.get_site_id()
        return f"/sites/{site_id}/lists/{collection}/items"

    async def _paginate(self, collection: str, params: dict[str, Any]) -> list[dict]:
        """Collect every item of a list, following ``@odata.nextLink``."""
        items: list[dict] = []
        url: str | None = await self._items_url(collection)
        page_params: dict[str, Any] | None = params

        while url:
            page = await self._session.get_json(url, params=page_params, headers=_PREFER_HEADER)
            items.extend(page.get("value", []))
            url = page.get("@odata.nextLink")
            # The continuation link already carries the query
            page_params = None

        return items

    async def list_all(self, collection: str) -> list[dict]:
        """Read every item with its raw fields (lookup ids included)."""
        items = await self._paginate(
            collection, {"$expand": "fields", "$top": self._page_size}
        )
        return [
            {"id": int(item["id"]), "fields": dict(item.get("fields", {}))}
            for item in items
        ]

    async def list_ids(self, collection: str) -> list[int]:
        items = await self._paginate(
            collection, {"$select": "id", "$top": self._page_size}
        )
        return [int(item["id"]) for item in items]

    async def create(self, collection: str, fields: dict[str, Any]) -> dict:
        url = await self._items_url(collection)
        response = await self._session.request("POST", url, json={"fields": fields})
        data = response.json()
        return {"id": int(data["id"]), "fields": dict(data.get("fields", {}))}

    async def patch(self, collection: str, record_id: int, fields: dict[str, Any]) -> None:
        url = await self._items_url(collection)
        await self._session.request("PATCH", f"{url}/{record_id}/fields", json=fields)

    async def delete(self, collection: str, record_id: int) -> None:
        url = await self._items_url(collection)
        await self._session.request("DELETE", f"{url}/{record_id}")

    async def close(self) -> None:
        await self._session.close()


class GraphDriveStore:
    """SharePoint document library implementation of ``SnapshotStoreClient``.

    Each snapshot is a folder at the root of the library.  Files are
    written with the simple upload endpoint (< 4 MB each, which is
    plenty for one list serialized as JSON).

    Args:
        session: Shared ``GraphSession``.
        library: Document library name holding the snapshots.
    """

    def __init__(self, session: GraphSession, library: str = "TSS_Backups") -> None:
        self._session = session
        self._library = library
        self._drive_id: str | None = None

    async def _get_drive_id(self) -> str:
        """Resolve and cache the drive id of the backup library.

        Raises:
            SnapshotStoreNotProvisionedError: If the library does not exist.
        """
        if self._drive_id is None:
            site_id = await self._session.get_site_id()
            drives = await self._session.get_json(f"/sites/{site_id}/drives")
            matches = [d for d in drives.get("value", []) if d.get("name") == self._library]
            if not matches:
                raise SnapshotStoreNotProvisionedError(
                    f'Document library "{self._library}" not found. '
                    f"Provision it before creating backups."
                )
            self._drive_id = matches[0]["id"]
        return self._drive_id

    @staticmethod
    def _path(folder: str, file_name: str | None = None) -> str:
        path = quote(folder, safe="")
        if file_name is not None:
            path += "/" + quote(file_name, safe="")
        return path

    async def list_folders(self) -> list[str]:
        try:
            drive_id = await self._get_drive_id()
        except SnapshotStoreNotProvisionedError:
            # Library not provisioned yet -- nothing to list
            return []

        names: list[str] = []
        url: str | None = f"/drives/{drive_id}/root/children"
        while url:
            page = await self._session.get_json(url)
            names.extend(item["name"] for item in page.get("value", []) if "folder" in item)
            url = page.get("@odata.nextLink")
        return names

    async def create_folder(self, name: str) -> None:
        drive_id = await self._get_drive_id()
        await self._session.request(
            "POST",
            f"/drives/{drive_id}/root/children",
            json={
                "name": name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": "fail",
            },
        )

    async def upload_file(self, folder: str, file_name: str, content: str) -> None:
        drive_id = await self._get_drive_id()
        await self._session.request(
            "PUT",
            f"/drives/{drive_id}/root:/{self._path(folder, file_name)}:/content",
            content=content.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    async def download_json(self, folder: str, file_name: str) -> Any:
        drive_id = await self._get_drive_id()
        try:
            return await self._session.get_json(
                f"/drives/{drive_id}/root:/{self._path(folder, file_name)}:/content"
            )
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                raise SnapshotFileNotFoundError(f"{folder}/{file_name} not found") from e
            raise

    async def delete_folder(self, folder: str) -> None:
        drive_id = await self._get_drive_id()
        try:
            item = await self._session.get_json(f"/drives/{drive_id}/root:/{self._path(folder)}")
            await self._session.request("DELETE", f"/drives/{drive_id}/items/{item['id']}")
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                logger.debug(f"Backup folder {folder} already gone")
                return
            raise

    async def close(self) -> None:
        await self._session.close()
