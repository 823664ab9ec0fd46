# src/hubscraper/parsers/table_parser.py
import logging
from typing import List, Dict, Any, Optional, Callable, Tuple
from bs4 import BeautifulSoup, Tag

from .base_parser import BaseParser
from ..exceptions import ParsingError
from . import data_cleaner

logger = logging.getLogger(__name__)

# Header text (lower-case) -> field name. Partial matches are tried in this order.
LEADERBOARD_COLUMN_MAP = {
    "model": "model",
    "arena score": "score",
    "arena elo": "score",
    "elo": "score",
    "rating": "score",
    "average": "score",
    "score": "score",
}


class GenericTableParser(BaseParser):
    """
    A generic parser for HTML tables.
    It can be configured with specific table identifiers and column processing logic.
    """

    def __init__(self,
                 table_identifier: Optional[Dict[str, str]] = None,
                 row_selector: str = "tr",
                 header_selector: str = "th",
                 cell_selector: str = "td",
                 column_map: Optional[Dict[str, str]] = None,
                 row_processor: Optional[Callable[[Tag, List[str], Dict[str, str]], Optional[Dict[str, Any]]]] = None):
        """
        :param table_identifier: Attributes used to find the table (e.g., {'id': 'leaderboard'}).
                                 If None, or if no table matches, the first table is used.
        :param column_map: Map of header text to standardized field names.
        :param row_processor: Optional custom function to process a single row.
                              Takes (bs4_row_element, header_keys, column_map_used) and returns a dict or None.
        """
        self.table_identifier = table_identifier
        self.row_selector = row_selector
        self.header_selector = header_selector
        self.cell_selector = cell_selector
        self.column_map = column_map if column_map else LEADERBOARD_COLUMN_MAP
        self.row_processor = row_processor if row_processor else self._default_row_processor

    def _find_table(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Finds the table element in the parsed HTML."""
        if self.table_identifier:
            table = soup.find("table", self.table_identifier)
            if table:
                return table
            logger.warning(f"Table with identifier {self.table_identifier} not found. Falling back to the first table.")
        return soup.find("table")

    def _extract_headers(self, table_element: Tag) -> Tuple[List[str], Optional[Tag]]:
        """Extracts header texts from <thead>, or from the first row when there is none. Also returns that row."""
        header_row = None
        thead = table_element.find("thead")
        if thead:
            header_row = thead.find(self.row_selector)
        if not header_row:
            header_row = table_element.find(self.row_selector)

        headers = []
        if header_row:
            for cell in header_row.find_all([self.header_selector, self.cell_selector]):
                header_text = data_cleaner.clean_text(" ".join(cell.stripped_strings))
                headers.append(header_text if header_text else f"unknown_header_{len(headers)}")

        logger.debug(f"Extracted headers: {headers}")
        return headers, header_row

    def _map_headers(self, extracted_headers: List[str]) -> Dict[str, str]:
        """Maps extracted headers to standardized field names using self.column_map."""
        mapped_headers = {}
        normalized_column_map = {k.lower().strip(): v for k, v in self.column_map.items()}
        used_fields = set()

        for i, header_text in enumerate(extracted_headers):
            cleaned_header = header_text.lower().strip()
            field_name = normalized_column_map.get(cleaned_header)
            if field_name is None:
                # "Arena Score (95% CI)" maps like "arena score"
                for map_key, candidate in normalized_column_map.items():
                    if map_key in cleaned_header:
                        field_name = candidate
                        break
            # First column wins when two headers map to the same field
            if field_name is None or field_name in used_fields:
                field_name = f"column_{i}"
            used_fields.add(field_name)
            mapped_headers[header_text] = field_name

        logger.debug(f"Final header mapping: {mapped_headers}")
        return mapped_headers

    def _default_row_processor(self, row_element: Tag, header_keys: List[str], mapped_fields: Dict[str, str]) -> Optional[Dict[str, Any]]:
        cells = row_element.find_all(self.cell_selector, recursive=False)
        if not cells:
            return None

        if len(cells) != len(header_keys):
            logger.warning(
                f"Row has {len(cells)} cells, but {len(header_keys)} headers were expected. "
                f"Row content (partial): {row_element.get_text(strip=True, separator='|')[:100]}. Skipping."
            )
            return None

        return {
            mapped_fields[header_keys[i]]: data_cleaner.clean_text(cell.get_text(separator=" "))
            for i, cell in enumerate(cells)
        }

    def parse(self, content: str, source: str) -> List[Dict[str, Any]]:
        """
        Parses the HTML content to extract table rows as dicts keyed by mapped field name.
        """
        if not content:
            logger.warning(f"Empty HTML content received for parsing from {source}.")
            return []

        try:
            soup = BeautifulSoup(content, "lxml")
        except Exception as e:
            logger.error(f"Failed to parse HTML with lxml from {source}: {e}")
            raise ParsingError(f"BeautifulSoup parsing failed for {source}") from e

        table_element = self._find_table(soup)
        if not table_element:
            logger.info(f"No table found in HTML from {source}.")
            return []

        original_headers, header_row = self._extract_headers(table_element)
        if not original_headers:
            logger.warning(f"Could not extract headers from table at {source}.")
            return []

        mapped_header_fields = self._map_headers(original_headers)

        parsed_items = []
        for i, row_element in enumerate(table_element.find_all(self.row_selector)):
            # Header rows, wherever they sit
            if row_element is header_row or row_element.find(self.header_selector):
                continue
            if not row_element.get_text(strip=True):
                continue
            processed_row_data = self.row_processor(row_element, original_headers, mapped_header_fields)
            if processed_row_data:
                parsed_items.append(processed_row_data)

        logger.info(f"Parsed {len(parsed_items)} rows from table at {source}.")
        return parsed_items
