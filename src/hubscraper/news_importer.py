# src/hubscraper/news_importer.py
import re
import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .constants import DIGEST_FILENAME_PATTERN
from .exceptions import ParsingError, PipelineError
from .parsers.digest_parser import DigestParser
from .storage.database import HubDatabase

logger = logging.getLogger(__name__)

_DIGEST_FILENAME = re.compile(DIGEST_FILENAME_PATTERN)


class ImportSummary(BaseModel):
    files: int = 0
    items: int = 0
    failed: List[str] = Field(default_factory=list)


class NewsImporter:
    """Imports ``YYYY-MM-DD-digest.md`` files from a directory into the news table."""

    def __init__(self, db: HubDatabase, parser: Optional[DigestParser] = None,
                 digests_dir: Union[str, Path] = "news-digests"):
        self.db = db
        self.parser = parser or DigestParser()
        self.digests_dir = Path(digests_dir)

    def discover(self) -> List[Path]:
        if not self.digests_dir.is_dir():
            return []
        return sorted(
            (p for p in self.digests_dir.iterdir() if p.is_file() and _DIGEST_FILENAME.match(p.name)),
            key=lambda p: p.name,
        )

    def import_file(self, path: Path) -> int:
        """Parses one digest and replaces its items in the store. Returns the item count."""
        match = _DIGEST_FILENAME.match(path.name)
        if not match:
            raise ParsingError(f"Not a digest file name: {path.name}")
        file_date = match.group(1)

        try:
            # Stray non-UTF-8 bytes become U+FFFD instead of failing the file
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ParsingError(f"Could not read digest {path}: {e}") from e

        items = self.parser.parse(content, file_date)
        with self.db.transaction():
            for item in items:
                self.db.replace_news_item(item)

        logger.info(f"  {path.name}: {len(items)} items")
        return len(items)

    def import_all(self) -> ImportSummary:
        if not self.digests_dir.is_dir():
            logger.info(f"No digest directory at {self.digests_dir}. Nothing to import.")
            return ImportSummary()

        files = self.discover()
        if not files:
            logger.info(f"No digest files found in {self.digests_dir}.")
            return ImportSummary()

        summary = ImportSummary()
        for path in files:
            try:
                summary.items += self.import_file(path)
            except PipelineError as e:
                logger.error(f"Failed to import digest {path.name}: {e}")
                summary.failed.append(path.name)
                continue
            summary.files += 1

        logger.info(f"Imported {summary.items} news items from {summary.files} digest files "
                    f"({len(summary.failed)} failed). "
                    f"Total news items in database: {self.db.count_rows('news')}")
        return summary
