# flowboard: board API client
#
# Thin HTTP client for the board/document JSON API, plus an adapter that
# turns a board update into an async persist callable for DebouncedSaver.

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when the board API rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BoardClient:
    """HTTP client for the boards API."""

    def __init__(self, base_url: str = "http://localhost:3000", timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        if not r.ok:
            try:
                body = r.json()
            except ValueError:
                body = None
            message = (body.get("error") if isinstance(body, dict) else None) or r.reason
            raise BackendError(f"{method} {path} → {r.status_code}: {message}", r.status_code)

        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    def get_board(self, board_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/boards/{board_id}")

    def update_board(self, board_id: str, **fields) -> Dict[str, Any]:
        """PATCH only the given fields (name, content, isArchived, ...)."""
        return self._request("PATCH", f"/api/boards/{board_id}", json=fields)

    def health(self) -> bool:
        """Check if the API is reachable."""
        try:
            r = self.session.get(f"{self.base_url}/api/health", timeout=2)
            return r.ok
        except requests.RequestException:
            return False


def board_saver(client: BoardClient, board_id: str) -> Callable[[str], Awaitable[None]]:
    """Async persist callable writing serialized board content."""

    async def on_save(content: str) -> None:
        await asyncio.to_thread(client.update_board, board_id, content=content)
        logger.debug(f"Board {board_id} saved ({len(content)} chars)")

    return on_save
