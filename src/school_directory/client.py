"""Client for acquiring the directory export and the school calendar."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from .config import HTTP_TIMEOUT, USER_AGENT
from .directory import DirectoryIndex
from .models import CalendarEvent, StudentRecord
from .parsers import parse_directory_csv, parse_ical

logger = logging.getLogger(__name__)


class DirectoryLoadError(Exception):
    """Raised when the directory export cannot be obtained or read."""

    pass


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class DirectoryClient:
    """Loads the directory CSV from a URL or a local file."""

    def __init__(self, source: Union[str, Path], transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the client.

        Args:
            source: HTTP(S) URL or filesystem path of the CSV export
            transport: Optional httpx transport (used to stub the network in tests)
        """
        self.source = str(source)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=HTTP_TIMEOUT,
                transport=self._transport,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_text(self, url: str) -> str:
        client = await self._get_client()
        response = await client.get(url)
        response.raise_for_status()
        return response.text

    async def fetch_csv_text(self) -> str:
        """Fetch the raw export text.

        Raises:
            DirectoryLoadError: If the source cannot be fetched or read
        """
        if _is_url(self.source):
            try:
                return await self._get_text(self.source)
            except httpx.HTTPStatusError as e:
                raise DirectoryLoadError(
                    f"Failed to fetch data: {e.response.status_code} {e.response.reason_phrase}"
                )
            except httpx.HTTPError as e:
                raise DirectoryLoadError(f"Failed to fetch data from {self.source}: {e}")

        try:
            return await asyncio.to_thread(Path(self.source).read_text, encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise DirectoryLoadError(f"Failed to read {self.source}: {e}")

    async def load_students(self) -> list[StudentRecord]:
        """Fetch and parse the export.

        Malformed rows are skipped by the parser; a document without a
        header row is a load error.
        """
        text = await self.fetch_csv_text()
        if not text.strip():
            raise DirectoryLoadError(f"No directory data in {self.source}")
        students = parse_directory_csv(text)
        logger.info("Loaded %d students from %s", len(students), self.source)
        return students

    async def load_directory(self) -> DirectoryIndex:
        return DirectoryIndex(await self.load_students())

    async def download(self, dest: Union[str, Path], overwrite: bool = False) -> bool:
        """Save the export to ``dest``.

        Returns:
            True if a file was written, False if it already existed
        """
        dest = Path(dest)
        if dest.exists() and not overwrite:
            logger.info("Data file already exists at %s", dest)
            return False

        text = await self.fetch_csv_text()
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(text, encoding="utf-8")
        except OSError as e:
            raise DirectoryLoadError(f"Failed to write {dest}: {e}")
        logger.info("Download completed: %s", dest)
        return True

    async def fetch_calendar(self, url: str) -> list[CalendarEvent]:
        """Fetch and parse an iCalendar feed.

        The calendar is optional: any failure is logged and yields no events.
        """
        try:
            text = await self._get_text(url)
        except httpx.HTTPError as e:
            logger.warning("Calendar fetch from %s failed: %s", url, e)
            return []
        return parse_ical(text)
