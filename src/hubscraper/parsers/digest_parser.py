# src/hubscraper/parsers/digest_parser.py
import re
import logging
from dataclasses import dataclass, field
from itertools import islice
from typing import List, Optional, Set, Iterable
from urllib.parse import urlparse

from .base_parser import BaseParser
from .data_cleaner import clean_text, normalize_digest_date, slugify
from ..constants import (
    TOP_STORY_COUNT, VIDEO_SECTION_KEYWORDS, JUNK_TITLES, JUNK_URL_PATTERNS,
    SOURCE_DISPLAY_NAMES, NewsCategory,
)
from ..types import NewsItem

logger = logging.getLogger(__name__)

SECTION_HEADING = re.compile(r"^##\s+(.+)$")
SUB_HEADING = re.compile(r"^###\s+")
SUMMARY_CONTINUATION = re.compile(r"^\s{2,}")

# Bullet syntaxes, tried in this order; the first match wins
#   - **Title** ([Source](URL)) _date_
#   - [Title](URL) _date_ — summary
SOURCED_ITEM = re.compile(r"^-\s+\*\*(.+?)\*\*\s+\(\[(.+?)\]\((.+?)\)\)(?:\s+_(.+?)_)?$")
LINK_ITEM = re.compile(r"^-\s+\[(.+?)\]\((.+?)\)(?:\s+_(.+?)_)?(?:\s+[—-]\s+(.+))?$")

_JUNK_URL_REGEXES = [re.compile(p) for p in JUNK_URL_PATTERNS]


def is_junk_item(title: str, url: str) -> bool:
    if title in JUNK_TITLES:
        return True
    return any(p.search(url) for p in _JUNK_URL_REGEXES)


def source_from_url(url: str) -> str:
    """Display name for the site ``url`` points at: a known outlet name, else the bare host."""
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return "Unknown"
    if not hostname:
        return "Unknown"
    for domain, name in SOURCE_DISPLAY_NAMES.items():
        if hostname == domain or hostname.endswith("." + domain):
            return name
    return hostname[4:] if hostname.startswith("www.") else hostname


@dataclass
class _ParseState:
    """Where the parser is within one digest file."""
    is_video_section: bool = False
    items_in_section: int = 0
    seen_urls: Set[str] = field(default_factory=set)

    def enter_section(self, heading: str):
        lowered = heading.lower()
        self.is_video_section = any(keyword in lowered for keyword in VIDEO_SECTION_KEYWORDS)
        self.items_in_section = 0

    def next_category(self) -> str:
        if self.is_video_section:
            return NewsCategory.VIDEO.value
        self.items_in_section += 1
        if self.items_in_section <= TOP_STORY_COUNT:
            return NewsCategory.TOP.value
        return NewsCategory.NEWS.value


class DigestParser(BaseParser):
    """
    Line-oriented parser for dated markdown news digests.

    ``## Heading`` lines open a section (a heading mentioning YouTube or video opens a video
    section), ``### Sub-heading`` lines are ignored, and bullet lines are matched against the
    two item syntaxes above in priority order. Anything else is skipped.
    """

    def parse(self, content: str, source: str) -> List[NewsItem]:
        """
        :param content: The markdown text of one digest.
        :param source: The digest's date (YYYY-MM-DD), used for ids and as the fallback publish date.
        """
        file_date = source
        lines = content.splitlines()
        state = _ParseState()
        items: List[NewsItem] = []

        for index, line in enumerate(lines):
            if SUB_HEADING.match(line):
                continue
            heading = SECTION_HEADING.match(line)
            if heading:
                state.enter_section(heading.group(1))
                continue

            item = self._parse_item(line, islice(lines, index + 1, None), file_date, state)
            if item is not None:
                items.append(item)

        logger.debug(f"Parsed {len(items)} items from digest dated {file_date}.")
        return items

    def _parse_item(self, line: str, following: Iterable[str], file_date: str,
                    state: _ParseState) -> Optional[NewsItem]:
        match = SOURCED_ITEM.match(line)
        if match:
            title, source_name, url, date_marker = match.groups()
            summary = self._collect_summary(following)
        else:
            match = LINK_ITEM.match(line)
            if not match:
                return None
            title, url, date_marker, summary = match.groups()
            source_name = None

        title = title.strip()
        url = url.strip()

        if is_junk_item(title, url):
            logger.debug(f"Skipping junk digest item '{title}' ({url}).")
            return None
        if url in state.seen_urls:
            return None
        state.seen_urls.add(url)

        return NewsItem(
            id=f"{file_date}-{slugify(title)}",
            title=title,
            url=url,
            source=source_name.strip() if source_name else source_from_url(url),
            summary=clean_text(summary) or "",
            published_at=normalize_digest_date(date_marker, file_date),
            category=state.next_category(),
        )

    @staticmethod
    def _collect_summary(following: Iterable[str]) -> str:
        parts = []
        for line in following:
            if not SUMMARY_CONTINUATION.match(line):
                break
            # Whitespace-only indented lines keep the summary going
            if line.strip():
                parts.append(line.strip())
        return " ".join(parts)
