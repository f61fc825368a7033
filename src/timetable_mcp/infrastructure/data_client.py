from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Any

import httpx

from timetable_mcp.domain.exceptions import DataFetchError, DataFormatError
from timetable_mcp.infrastructure.data_store import DataSnapshot
from timetable_mcp.infrastructure.readers import read_data_dir, read_data_zip

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_URL = "https://data.trainarrives.in/latest.json"
DATA_VERSION = "v2"
DEFAULT_TIMEOUT = 60.0  # seconds; bundles are a few MB
ZIP_CONTENT_TYPE = "application/zip"


def hash_from_url(url: str) -> str:
    """Release name of a bundle, e.g. "2022-04-30" for ".../data/2022-04-30.zip"."""
    name = PurePosixPath(httpx.URL(url).path).name
    return name.removesuffix(".zip")


class DataClient:
    """Downloads timetable data bundles from the data server.

    The manifest lists a "latest" and a "backup" bundle per data version; the
    backup covers the window where the manifest is deployed before its zip.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        manifest_url: str = DEFAULT_MANIFEST_URL,
        data_version: str = DATA_VERSION,
    ) -> None:
        self._http = http_client
        self._manifest_url = manifest_url
        self._data_version = data_version

    async def fetch_manifest(self) -> dict[str, str]:
        """Return the {"latest": url, "backup": url} entry for our data version."""
        response = await self._http.get(self._manifest_url)
        self._raise_for_status(response)
        try:
            manifest: dict[str, Any] = response.json()
        except ValueError as exc:
            raise DataFetchError(
                f"There was not a json file at {self._manifest_url!r}"
            ) from exc

        versions = manifest.get("versions") if isinstance(manifest, dict) else None
        entry = versions.get(self._data_version) if isinstance(versions, dict) else None
        if not isinstance(entry, dict) or not all(
            isinstance(entry.get(k), str) for k in ("latest", "backup")
        ):
            raise DataFetchError(
                f"This data server does not provide {self._data_version!r} data "
                f"({self._manifest_url})"
            )
        return {"latest": entry["latest"], "backup": entry["backup"]}

    async def download_bundle(self, url: str) -> bytes:
        response = await self._http.get(url)
        self._raise_for_status(response)
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if content_type != ZIP_CONTENT_TYPE:
            raise DataFetchError(f"{url!r} was not a zip file (content-type {content_type!r})")
        return response.content

    async def fetch_snapshot(self) -> DataSnapshot:
        """Download and parse the latest bundle, falling back to the backup one."""
        urls = await self.fetch_manifest()
        try:
            return await self._fetch_bundle(urls["latest"])
        except (DataFetchError, DataFormatError, httpx.HTTPError) as exc:
            logger.warning("Latest data bundle %s unusable (%s), trying backup", urls["latest"], exc)
        try:
            return await self._fetch_bundle(urls["backup"])
        except (DataFetchError, DataFormatError, httpx.HTTPError) as exc:
            raise DataFetchError(
                f"Neither {urls['latest']!r} or backup option {urls['backup']!r} "
                "could be downloaded"
            ) from exc

    async def _fetch_bundle(self, url: str) -> DataSnapshot:
        content = await self.download_bundle(url)
        logger.info("Downloaded data bundle %s (%d bytes)", url, len(content))
        return await asyncio.to_thread(read_data_zip, content, hash_from_url(url))

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise DataFetchError for non-2xx responses."""
        if response.status_code >= 400:
            raise DataFetchError(
                f"Data server returned {response.status_code} for {response.url}",
                status_code=response.status_code,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


async def load_snapshot_from_dir(path: str | Path, hash: str | None = None) -> DataSnapshot:
    """Read an extracted bundle from disk. The hash defaults to the directory name."""
    root = Path(path)
    return await asyncio.to_thread(read_data_dir, root, hash or root.resolve().name)
