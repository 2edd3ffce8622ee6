"""HTTP catalog and suggestion provider for the marketplace API."""

import logging
from typing import Optional
import requests

from schemas.catalog import Candidate
from .catalog_provider import CatalogProvider, SuggestionProvider, parse_candidate

logger = logging.getLogger(__name__)


class CatalogAPIProvider(CatalogProvider, SuggestionProvider):
    """
    Marketplace API provider for product search and term suggestions.

    Endpoints:
    - ``GET {base_url}/search?q=<term>`` -> products
    - ``GET {base_url}/suggest?q=<term>`` -> suggested terms (and products)

    Transport failures never raise: they are logged, recorded as the last
    error and reported as an empty result, so the next retrieval tier runs.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 8.0,
        auth_token: Optional[str] = None,
        limit: int = 30
    ):
        """
        Initialize marketplace API provider.

        Args:
            base_url: Base URL for the API (e.g., https://example.com/api)
            timeout: Request timeout in seconds (default: 8)
            auth_token: Optional authentication token
            limit: Maximum number of products requested per search
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.auth_token = auth_token
        self.limit = limit
        self._is_available = True
        self._last_error: Optional[str] = None

    def _get_headers(self) -> dict:
        """Build request headers."""
        headers = {
            "Accept": "application/json",
            "User-Agent": "Grounded-Shopping-Assistant/1.0"
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _handle_error(self, error: Exception, context: str) -> None:
        """
        Record an API error.

        Args:
            error: Exception that occurred
            context: Context string for logging
        """
        self._is_available = False
        self._last_error = str(error)
        logger.warning(f"Catalog API error during {context}: {error}")

    def _get_json(self, path: str, params: dict, context: str):
        """GET a JSON document, returning None on any failure."""
        try:
            response = requests.get(
                f"{self.base_url}/{path}",
                params=params,
                headers=self._get_headers(),
                timeout=self.timeout
            )

            # Handle authentication errors
            if response.status_code in (401, 403):
                self._handle_error(
                    Exception(f"Authentication failed: {response.status_code}"),
                    context
                )
                return None

            if response.status_code != 200:
                self._handle_error(
                    Exception(f"API returned status {response.status_code}: {response.text}"),
                    context
                )
                return None

            data = response.json()
            self._is_available = True
            return data

        except requests.exceptions.Timeout:
            self._handle_error(
                Exception(f"Request timeout after {self.timeout}s"),
                context
            )
            return None
        except requests.exceptions.RequestException as e:
            self._handle_error(e, context)
            return None
        except ValueError as e:
            # Body was not JSON
            self._handle_error(e, context)
            return None

    def search(self, term: str) -> list[Candidate]:
        """
        Search products via API.

        Args:
            term: Search term

        Returns:
            Parsed (unvalidated) candidates
        """
        data = self._get_json("search", {"q": term, "limit": self.limit}, "search")
        if data is None:
            return []

        # Expected format: {"products": [...]} or direct array [...]
        if isinstance(data, dict):
            items = data.get("products") or data.get("results") or data.get("data") or []
        elif isinstance(data, list):
            items = data
        else:
            logger.warning(f"Unexpected API response format: {type(data)}")
            return []

        candidates = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object catalog item: {item!r}")
                continue
            candidates.append(parse_candidate(item))

        return candidates

    def suggest(self, term: str) -> list[str]:
        """
        Get ranked alternate terms via API.

        Args:
            term: Original search term

        Returns:
            Suggested terms, best first
        """
        data = self._get_json("suggest", {"q": term}, "suggest")
        if data is None:
            return []

        if isinstance(data, dict):
            raw_terms = data.get("suggestions") or data.get("terms") or []
        elif isinstance(data, list):
            raw_terms = data
        else:
            logger.warning(f"Unexpected API response format: {type(data)}")
            return []

        terms = []
        for entry in raw_terms:
            if isinstance(entry, dict):
                entry = entry.get("term") or entry.get("text") or ""
            entry = str(entry).strip()
            if entry:
                terms.append(entry)
        return terms

    def is_available(self) -> bool:
        """Whether the last API call succeeded."""
        return self._is_available

    def get_last_error(self) -> Optional[str]:
        """Get the last error message."""
        return self._last_error

    def reset_availability(self) -> None:
        """Reset availability flag."""
        self._is_available = True
        self._last_error = None
