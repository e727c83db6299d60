"""Download GitHub zipballs and unpack them into scratch space."""

import json
import os
import shutil
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import httpx
from pydantic import BaseModel

from kobgitupdater.exceptions import FetchError
from kobgitupdater.logger import get_logger
from kobgitupdater.models.config import AppConfig
from kobgitupdater.services.github.client import build_headers

logger = get_logger(__name__)

# Entries some archivers add next to the real content
IGNORED_TOP_LEVEL = {"__MACOSX"}


class ExtractedArchive(BaseModel):
    """Scratch locations of a downloaded and unpacked archive."""

    archive_path: Path
    extract_dir: Path
    content_dir: Path


def find_content_directory(extract_dir: Path) -> Path:
    """
    Locate the single top-level directory of an unpacked GitHub archive.

    GitHub wraps the tree in ``{repo}-{ref-or-hash}/``.

    Raises:
        FetchError: If there is not exactly one top-level directory
    """
    directories = []
    for entry in sorted(extract_dir.iterdir()):
        if entry.name in IGNORED_TOP_LEVEL:
            continue
        if entry.is_dir():
            directories.append(entry)
        else:
            logger.warning(f"Ignoring top-level file in archive: {entry.name}")

    if len(directories) != 1:
        names = ", ".join(d.name for d in directories) or "none"
        raise FetchError(
            f"Unexpected archive structure: expected exactly one top-level directory, "
            f"found {len(directories)} ({names})"
        )
    return directories[0]


def _download_error_message(response: httpx.Response) -> str:
    try:
        data = json.loads(response.text)
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        message = str(data["message"])
    else:
        message = f"HTTP {response.status_code}"

    if response.status_code == 404:
        message += " (Repository not found or private)"
    elif response.status_code == 401:
        message += " (Invalid or missing authentication token)"
    return message


class ArchiveFetcher:
    """Downloads an authenticated zip archive and extracts it to temporary storage."""

    def __init__(
        self,
        timeout: float = 300.0,
        temp_dir: Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            timeout: Download timeout in seconds
            temp_dir: Parent for temporary files; the system temp dir if None
            transport: Optional httpx transport (used to fake GitHub in tests)
        """
        self.timeout = timeout
        self.temp_dir = temp_dir
        self._http = httpx.Client(timeout=timeout, follow_redirects=True, transport=transport)

    @classmethod
    def from_config(cls, config: AppConfig, transport: httpx.BaseTransport | None = None) -> "ArchiveFetcher":
        return cls(timeout=config.github.download_timeout, temp_dir=config.paths.temp_dir, transport=transport)

    @contextmanager
    def fetch_and_extract(self, download_url: str, auth_token: str | None) -> Iterator[ExtractedArchive]:
        """
        Download and unpack an archive for the duration of a ``with`` block.

        The temporary archive and the extraction directory are deleted when
        the block exits, whether it succeeds or raises.

        Args:
            download_url: Zipball URL
            auth_token: Token to send, or None

        Yields:
            Locations of the archive, the extraction root and the content directory

        Raises:
            FetchError: On download failure or unexpected archive structure
        """
        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)

        archive_path: Path | None = None
        extract_dir: Path | None = None
        try:
            archive_path = self._download(download_url, auth_token)
            extract_dir = Path(tempfile.mkdtemp(prefix="kgu-extract-", dir=self.temp_dir))
            self._extract(archive_path, extract_dir)
            content_dir = find_content_directory(extract_dir)
            logger.info(f"Archive content directory: {content_dir.name}")

            yield ExtractedArchive(archive_path=archive_path, extract_dir=extract_dir, content_dir=content_dir)
        finally:
            self._cleanup(archive_path, extract_dir)

    def _download(self, url: str, token: str | None) -> Path:
        if token:
            logger.info("Downloading with authentication token")
        else:
            logger.info("Downloading without authentication token")
        logger.info(f"Downloading from: {url}")

        fd, name = tempfile.mkstemp(prefix="kgu-download-", suffix=".zip", dir=self.temp_dir)
        archive_path = Path(name)
        try:
            with os.fdopen(fd, "wb") as out_file:
                with self._http.stream("GET", url, headers=build_headers(token)) as response:
                    if response.status_code != 200:
                        response.read()
                        raise FetchError(
                            f"Failed to download: {_download_error_message(response)}",
                            status=response.status_code,
                            url=url,
                        )
                    downloaded_size = 0
                    for chunk in response.iter_bytes(chunk_size=8192):
                        out_file.write(chunk)
                        downloaded_size += len(chunk)
        except httpx.HTTPError as e:
            archive_path.unlink(missing_ok=True)
            raise FetchError(f"Failed to download: {e}", url=url) from e
        except BaseException:
            archive_path.unlink(missing_ok=True)
            raise

        logger.info(f"Downloaded {downloaded_size} bytes to {archive_path}")
        return archive_path

    def _extract(self, archive_path: Path, extract_dir: Path) -> None:
        logger.info(f"Extracting {archive_path} to {extract_dir}")
        try:
            with zipfile.ZipFile(archive_path, "r") as zip_ref:
                zip_ref.extractall(extract_dir)
        except (zipfile.BadZipFile, OSError) as e:
            raise FetchError(f"Failed to extract: {e}") from e

    def _cleanup(self, archive_path: Path | None, extract_dir: Path | None) -> None:
        if archive_path is not None:
            try:
                archive_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove temporary archive {archive_path}: {e}")
        if extract_dir is not None and extract_dir.exists():
            try:
                shutil.rmtree(extract_dir)
            except OSError as e:
                logger.warning(f"Failed to remove extraction directory {extract_dir}: {e}")

    def close(self) -> None:
        self._http.close()

