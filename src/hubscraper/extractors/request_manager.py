# src/hubscraper/extractors/request_manager.py
import requests
import logging
from typing import Any, Dict, Optional

from ..types import Config
from ..exceptions import FetchError
from ..constants import COMMON_HEADERS, DEFAULT_USER_AGENT, ACCEPT_JSON

logger = logging.getLogger(__name__)


class RequestManager:
    """
    Thin fetch adapter over a pooled requests.Session.

    - Fixed bot identity (User-Agent) on every request
    - Accept negotiation per call (sources pass application/json for APIs)
    - Any non-2xx status, network error or timeout becomes a FetchError
    - No retries and no caching: every call is a fresh request. Retrying is left to
      the next scheduled run.
    """

    def __init__(self, config: Optional[Config] = None):
        config = config or {}
        self.fetch_config = config.get("fetch", {})
        self.user_agent: str = self.fetch_config.get("user_agent") or DEFAULT_USER_AGENT
        self.request_timeout: float = self.fetch_config.get("request_timeout", 30)
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(COMMON_HEADERS)
        session.headers["User-Agent"] = self.user_agent
        return session

    def get(self, url: str, accept: Optional[str] = None, headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, str]] = None) -> requests.Response:
        """
        Perform a single GET request. Returns the response only for 2xx statuses.
        """
        request_headers: Dict[str, str] = {}
        if accept:
            request_headers["Accept"] = accept
        if headers:
            request_headers.update(headers)
        # The identity header is never overridable per call
        request_headers["User-Agent"] = self.user_agent

        logger.debug(f"Making GET request to {url} with params {params}, Accept: {request_headers.get('Accept', 'default')}")

        try:
            response = self.session.get(
                url,
                params=params,
                headers=request_headers,
                timeout=self.request_timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout while requesting {url}: {e}")
            raise FetchError(f"Timeout for {url}", url=url, reason=str(e)) from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error while requesting {url}: {e}")
            raise FetchError(f"Connection error for {url}", url=url, reason=str(e)) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception for {url}: {e}")
            raise FetchError(f"Request failed for {url}", url=url, reason=str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.warning(f"HTTP {response.status_code} for {url}: {response.text[:200]}")
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason} for {url}",
                url=url,
                status_code=response.status_code,
                reason=response.reason,
            )

        logger.info(f"Successfully fetched {url}. Status: {response.status_code}.")
        return response

    def get_text(self, url: str, accept: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> str:
        return self.get(url, accept=accept, headers=headers).text

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET with Accept: application/json and return the decoded body."""
        response = self.get(url, accept=ACCEPT_JSON, headers=headers)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Response from {url} is not valid JSON", url=url,
                             status_code=response.status_code, reason=str(e)) from e

    def close(self):
        """Clean up resources."""
        logger.info("Closing RequestManager session.")
        self.session.close()
