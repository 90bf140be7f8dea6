"""ScalarDB jar download from Maven Central with SHA-1 verification."""

import hashlib
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from scalardb_setup.config import settings
from scalardb_setup.core.errors import ChecksumMismatchError, DownloadError
from scalardb_setup.services.redis_client import cache_get, cache_set

logger = logging.getLogger(__name__)

ARTIFACT_ID = "scalardb"
VERSIONS_CACHE_KEY = "maven:scalardb:versions"

ProgressCallback = Callable[[dict[str, Any]], None]


def jar_name(version: str) -> str:
    return f"{ARTIFACT_ID}-{version}.jar"


def jar_url(version: str) -> str:
    group_path = settings.scalardb_group_id.replace(".", "/")
    return f"{settings.maven_repo_url}/{group_path}/{ARTIFACT_ID}/{version}/{jar_name(version)}"


def get_user_friendly_error(exc: BaseException) -> str:
    """Translate a download failure into a message for the wizard UI."""
    if isinstance(exc, ChecksumMismatchError):
        return "The downloaded file is corrupted (checksum mismatch). Please try again."
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return "Cannot reach Maven Central. Please check your internet connection."
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        if code == 404:
            return "The requested ScalarDB version was not found on Maven Central."
        if code >= 500:
            return "Maven Central is temporarily unavailable. Please try again later."
        return f"Maven Central returned HTTP {code}."
    if isinstance(exc, OSError):
        if exc.errno == 28:
            return "Not enough disk space to download ScalarDB."
        if exc.errno == 13:
            return "Permission denied writing the download directory."
    return f"Download failed: {exc}"


class ScalarDBDownloader:
    """Resolve, download and verify ScalarDB release jars."""

    def __init__(self, download_dir: str | Path | None = None) -> None:
        self.download_dir = Path(download_dir or settings.download_dir)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _search(self) -> dict[str, Any]:
        params = {
            "q": f'g:"{settings.scalardb_group_id}" AND a:"{ARTIFACT_ID}"',
            "core": "gav",
            "rows": 20,
            "wt": "json",
        }
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
            response = await client.get(settings.maven_search_url, params=params)
            response.raise_for_status()
            return response.json()

    async def get_available_versions(self) -> list[dict[str, Any]]:
        """Return ``[{version, release_date}]``, newest first."""
        cached = await cache_get(VERSIONS_CACHE_KEY)
        if cached is not None:
            return cached

        payload = await self._search()
        docs = payload.get("response", {}).get("docs")
        if not isinstance(docs, list):
            raise DownloadError("Unexpected response from Maven Central search")

        docs = sorted(docs, key=lambda d: d.get("timestamp", 0), reverse=True)
        versions = [
            {
                "version": doc["v"],
                "release_date": datetime.fromtimestamp(doc.get("timestamp", 0) / 1000, UTC).isoformat(),
            }
            for doc in docs
            if "v" in doc
        ]
        await cache_set(VERSIONS_CACHE_KEY, versions, settings.versions_cache_ttl)
        return versions

    async def get_latest_version(self) -> str:
        versions = await self.get_available_versions()
        for entry in versions:
            if "SNAPSHOT" not in entry["version"]:
                return entry["version"]
        raise DownloadError("No stable ScalarDB release found")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _fetch_checksum(self, version: str) -> str:
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
            response = await client.get(f"{jar_url(version)}.sha1")
            response.raise_for_status()
            return response.text.strip().split()[0]

    async def download_version(
        self,
        version: str,
        progress_callback: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Download ``scalardb-<version>.jar`` and verify it against the published SHA-1.

        Raises:
            ChecksumMismatchError: the file on disk does not match; it is deleted.
            httpx.HTTPError: Maven Central could not serve the artifact.
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        dest = self.download_dir / jar_name(version)
        expected = await self._fetch_checksum(version)

        logger.info("Downloading ScalarDB %s to %s", version, dest)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(300.0, connect=10.0), follow_redirects=True,
        ) as client:
            async with client.stream("GET", jar_url(version)) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length", 0))
                downloaded = 0
                last_reported = -1
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
                        downloaded += len(chunk)
                        if total and progress_callback is not None:
                            percent = downloaded * 100 // total
                            if percent != last_reported:
                                last_reported = percent
                                progress_callback({
                                    "progress": percent,
                                    "downloaded": downloaded,
                                    "total": total,
                                })

        if not self.verify_checksum(dest, expected):
            dest.unlink(missing_ok=True)
            raise ChecksumMismatchError(f"SHA-1 mismatch for {dest.name}")

        return {
            "success": True,
            "path": str(dest),
            "version": version,
            "size": os.path.getsize(dest),
        }

    @staticmethod
    def verify_checksum(path: Path, expected: str) -> bool:
        digest = hashlib.sha1()
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(65536), b""):
                digest.update(block)
        return digest.hexdigest().lower() == expected.strip().lower()

    def is_version_downloaded(self, version: str) -> bool:
        return (self.download_dir / jar_name(version)).is_file()

    def get_downloaded_versions(self) -> list[str]:
        if not self.download_dir.is_dir():
            return []
        prefix = f"{ARTIFACT_ID}-"
        return sorted(
            path.name[len(prefix):-len(".jar")]
            for path in self.download_dir.glob(f"{prefix}*.jar")
        )
