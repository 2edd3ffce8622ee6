"""Tests for CatalogAPIProvider."""

import pytest
from unittest.mock import Mock, patch
import requests
from retrieval.catalog_api_provider import CatalogAPIProvider
from schemas.catalog import Candidate


def _response(status_code: int = 200, payload=None, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


class TestCatalogAPIProvider:
    """Test marketplace API provider against mocked HTTP."""

    def setup_method(self):
        """Set up test fixtures."""
        self.base_url = "https://api.marketplace.example/v1"
        self.provider = CatalogAPIProvider(base_url=self.base_url, timeout=5)

    def test_initialization(self):
        """Test provider initialization."""
        assert self.provider.base_url == self.base_url
        assert self.provider.timeout == 5
        assert self.provider.is_available() is True

    def test_initialization_with_trailing_slash(self):
        """Test that trailing slash is removed from base URL."""
        provider = CatalogAPIProvider(base_url="https://api.marketplace.example/v1/")
        assert provider.base_url == self.base_url

    @patch('requests.get')
    def test_search_success(self, mock_get):
        """Test successful search."""
        mock_get.return_value = _response(payload={
            "products": [
                {
                    "id": "p-2001",
                    "title": "Drone DJI Mini 4 Pro",
                    "category": "drone",
                    "store": {"name": "Shopping China", "slug": "shopping-china"},
                    "price": {"USD": 759.0},
                    "imageUrl": "https://cdn.example/p-2001.jpg"
                },
                {
                    "productId": "p-2002",
                    "name": "Drone DJI Air 3",
                    "storeSlug": "nissei",
                    "price": "1249"
                }
            ]
        })

        results = self.provider.search("drone")

        assert len(results) == 2
        assert isinstance(results[0], Candidate)
        assert results[0].id == "p-2001"
        assert results[0].store == "Shopping China"
        assert results[0].price == 759.0
        assert results[0].image_url == "https://cdn.example/p-2001.jpg"
        assert results[1].id == "p-2002"
        assert results[1].title == "Drone DJI Air 3"
        assert results[1].store == "nissei"
        assert results[1].price == 1249.0

        # Verify API call
        mock_get.assert_called_once()
        call_args = mock_get.call_args
        assert call_args[0][0] == f"{self.base_url}/search"
        assert call_args[1]["params"]["q"] == "drone"
        assert call_args[1]["params"]["limit"] == 30
        assert call_args[1]["timeout"] == 5

    @patch('requests.get')
    def test_search_alternative_response_format(self, mock_get):
        """Test search with a direct array response."""
        mock_get.return_value = _response(payload=[
            {"id": "p-1", "title": "iPhone 15", "storeName": "Cellshop"}
        ])

        results = self.provider.search("iphone")

        assert [c.id for c in results] == ["p-1"]

    @patch('requests.get')
    def test_search_skips_non_object_items(self, mock_get):
        """Test that junk entries are skipped."""
        mock_get.return_value = _response(payload={"results": ["junk", {"id": "p-1", "title": "X", "store": "Y"}]})

        results = self.provider.search("x")

        assert len(results) == 1

    @patch('requests.get')
    def test_search_invalid_records_are_returned_unvalidated(self, mock_get):
        """Test that the provider leaves validation to the catalog gate."""
        mock_get.return_value = _response(payload={"data": [{"id": "p-1", "title": "Sem loja"}]})

        results = self.provider.search("x")

        assert len(results) == 1
        assert results[0].is_valid() is False

    @patch('requests.get')
    def test_search_timeout(self, mock_get):
        """Test search with timeout."""
        mock_get.side_effect = requests.exceptions.Timeout()

        results = self.provider.search("drone")

        assert results == []
        assert self.provider.is_available() is False
        assert "timeout" in self.provider.get_last_error().lower()

    @pytest.mark.parametrize("status_code", [401, 403])
    @patch('requests.get')
    def test_search_auth_errors(self, mock_get, status_code):
        """Test search with authentication errors."""
        mock_get.return_value = _response(status_code=status_code)

        results = self.provider.search("drone")

        assert results == []
        assert self.provider.is_available() is False
        assert "authentication" in self.provider.get_last_error().lower()

    @patch('requests.get')
    def test_search_connection_error(self, mock_get):
        """Test search with connection error."""
        mock_get.side_effect = requests.exceptions.ConnectionError("Connection refused")

        results = self.provider.search("drone")

        assert results == []
        assert self.provider.is_available() is False

    @patch('requests.get')
    def test_search_500_error(self, mock_get):
        """Test search with 500 server error."""
        mock_get.return_value = _response(status_code=500, text="Internal Server Error")

        results = self.provider.search("drone")

        assert results == []
        assert self.provider.is_available() is False
        assert "500" in self.provider.get_last_error()

    @patch('requests.get')
    def test_search_invalid_json(self, mock_get):
        """Test a 200 response whose body is not JSON."""
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = response

        assert self.provider.search("drone") == []
        assert self.provider.is_available() is False

    @patch('requests.get')
    def test_search_empty_response(self, mock_get):
        """Test search with empty response."""
        mock_get.return_value = _response(payload={"products": []})

        results = self.provider.search("xyzzy")

        assert results == []
        assert self.provider.is_available() is True  # API is available, just no results

    @patch('requests.get')
    def test_failure_does_not_latch(self, mock_get):
        """Test that a failed call does not block the next one."""
        mock_get.side_effect = [
            requests.exceptions.Timeout(),
            _response(payload={"products": [{"id": "p-1", "title": "X", "store": "Y"}]}),
        ]

        assert self.provider.search("drone") == []
        assert len(self.provider.search("drone")) == 1
        assert self.provider.is_available() is True
        assert mock_get.call_count == 2

    @patch('requests.get')
    def test_suggest(self, mock_get):
        """Test suggestion parsing with string and object entries."""
        mock_get.return_value = _response(payload={
            "suggestions": ["drone dji", {"term": "mavic"}, {"text": "quadricoptero"}, "  ", {}]
        })

        terms = self.provider.suggest("dron")

        assert terms == ["drone dji", "mavic", "quadricoptero"]
        call_args = mock_get.call_args
        assert call_args[0][0] == f"{self.base_url}/suggest"
        assert call_args[1]["params"]["q"] == "dron"

    @patch('requests.get')
    def test_suggest_failure(self, mock_get):
        """Test suggestion transport failure."""
        mock_get.side_effect = requests.exceptions.ConnectionError("down")

        assert self.provider.suggest("dron") == []

    def test_reset_availability(self):
        """Test resetting availability after error."""
        # Simulate error
        self.provider._is_available = False
        self.provider._last_error = "Test error"

        assert self.provider.is_available() is False

        # Reset
        self.provider.reset_availability()

        assert self.provider.is_available() is True
        assert self.provider.get_last_error() is None

    @patch('requests.get')
    def test_headers_with_auth_token(self, mock_get):
        """Test that auth token is included in headers."""
        provider = CatalogAPIProvider(
            base_url=self.base_url,
            auth_token="test_token_123"
        )
        mock_get.return_value = _response(payload={"products": []})

        provider.search("test")

        # Verify auth header was included
        headers = mock_get.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer test_token_123"
