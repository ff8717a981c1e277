"""
Thin Notion REST client.

Only the two calls the costing sync needs: paginated database query and page
property update.
"""

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

import requests
from django.conf import settings

from apps.workflow.exceptions import NotionApiError

logger = logging.getLogger("notion")

PAGE_SIZE = 100
MAX_RATE_LIMIT_RETRIES = 3


class NotionClient:
    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.token = token or settings.NOTION_API_TOKEN
        if not self.token:
            raise NotionApiError("NOTION_API_TOKEN is not configured")
        self.base_url = settings.NOTION_API_BASE_URL.rstrip("/")
        self.timeout = settings.NOTION_REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {self.token}",
                "Notion-Version": settings.NOTION_API_VERSION,
                "Content-Type": "application/json",
            }
        )

    def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        for attempt in range(MAX_RATE_LIMIT_RETRIES + 1):
            try:
                response = self.session.request(
                    method, url, json=payload, timeout=self.timeout
                )
            except requests.RequestException as exc:
                raise NotionApiError(f"Notion request to {path} failed: {exc}") from exc

            if response.status_code == 429 and attempt < MAX_RATE_LIMIT_RETRIES:
                retry_after = float(response.headers.get("Retry-After", "1"))
                logger.warning(
                    f"Notion rate limit hit on {path}, retrying in {retry_after}s"
                )
                time.sleep(retry_after)
                continue

            if not response.ok:
                try:
                    detail = response.json().get("message", response.text)
                except ValueError:
                    detail = response.text
                raise NotionApiError(
                    f"Notion API {method} {path} returned {response.status_code}: {detail}",
                    status_code=response.status_code,
                )
            return response.json()

        raise NotionApiError(f"Notion rate limit persisted for {path}", status_code=429)

    def query_database(
        self,
        database_id: str,
        filter: Optional[Dict[str, Any]] = None,
        sorts: Optional[List[Dict[str, Any]]] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Yield every page matching the query, following pagination cursors."""
        payload: Dict[str, Any] = {"page_size": PAGE_SIZE}
        if filter:
            payload["filter"] = filter
        if sorts:
            payload["sorts"] = sorts

        while True:
            data = self._request("POST", f"databases/{database_id}/query", payload)
            for page in data.get("results", []):
                yield page
            if not data.get("has_more"):
                break
            payload["start_cursor"] = data["next_cursor"]

    def update_page_properties(
        self, page_id: str, properties: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self._request("PATCH", f"pages/{page_id}", {"properties": properties})
