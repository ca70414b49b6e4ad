"""
Visual CMS Client Module

This module wraps the Builder.io content and write APIs used by the site:
reading published content for a page and pushing component, theme and
model changes from the codebase back to the CMS.
"""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

CONTENT_API_URL = "https://cdn.builder.io/api/v2/content"
WRITE_API_URL = "https://builder.io/api/v1"
DEFAULT_TIMEOUT = 10


class CMSError(Exception):
    """Raised when a CMS API call fails."""

    pass


class BuilderClient:
    """Client for the Builder.io content (public key) and write (private key) APIs."""

    def __init__(
        self,
        api_key: Optional[str],
        private_key: Optional[str] = None,
        space_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.api_key = api_key
        self.private_key = private_key
        self.space_id = space_id
        self.session = session or requests.Session()
        self.timeout = timeout

    def _write_headers(self) -> Dict[str, str]:
        if not self.private_key:
            raise CMSError("Builder private key not configured")
        return {
            "Authorization": f"Bearer {self.private_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Builder API request failed: {method} {url}: {e}")
            raise CMSError("Builder API request failed") from e

        if not response.ok:
            logger.error(f"Builder API error: {method} {url} -> {response.status_code}")
            raise CMSError(f"Builder API error: {response.status_code}")

        try:
            return response.json()
        except ValueError:
            return {}

    def fetch_content(self, model: str = "page", url: str = "/", limit: int = 10) -> Dict[str, Any]:
        """
        Fetch published content entries of a model for a page URL.

        Args:
            model: CMS model name
            url: Page URL the content targets
            limit: Maximum number of entries

        Returns:
            Dict[str, Any]: Raw content API response
        """
        if not self.api_key:
            raise CMSError("Builder API key not configured")

        params = {"apiKey": self.api_key, "url": url, "limit": str(limit)}
        logger.debug(f"Fetching Builder content model={model} url={url} limit={limit}")
        return self._request("GET", f"{CONTENT_API_URL}/{model}", params=params)

    def write_component(self, component_data: Dict[str, Any]) -> Any:
        """Publish a component entry to the page model."""
        payload = {**component_data, "published": "published"}
        result = self._request(
            "POST", f"{WRITE_API_URL}/write/page", json=payload, headers=self._write_headers()
        )
        logger.info("Component synced to Builder")
        return result

    def update_theme(self, theme_data: Dict[str, Any]) -> Any:
        """Replace the space design tokens."""
        if not self.space_id:
            raise CMSError("Builder space id not configured")
        result = self._request(
            "PATCH",
            f"{WRITE_API_URL}/spaces/{self.space_id}/settings",
            json={"designTokens": theme_data},
            headers=self._write_headers(),
        )
        logger.info("Theme synced to Builder")
        return result

    def update_model(self, model: str, model_data: Dict[str, Any]) -> Any:
        """Patch a model schema."""
        result = self._request(
            "PATCH",
            f"{WRITE_API_URL}/models/{model}",
            json=model_data,
            headers=self._write_headers(),
        )
        logger.info(f"Model {model} synced to Builder")
        return result
