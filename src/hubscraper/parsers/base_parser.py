# src/hubscraper/parsers/base_parser.py
from abc import ABC, abstractmethod
from typing import List, Any

class BaseParser(ABC):
    """
    Abstract base class for text parsers (HTML leaderboard tables, markdown digests).
    """
    @abstractmethod
    def parse(self, content: str, source: str) -> List[Any]:
        """
        Parses raw content into a list of structured items.

        :param content: The HTML or markdown text to parse.
        :param source: Where the content came from (URL or file name), for context/logging.
        :return: A list of parsed items.
        """
        pass
