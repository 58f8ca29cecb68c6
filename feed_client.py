"""
feed_client.py
==============
Python client for the FetchFeed REST API, mirroring the calls the mobile
app makes.  Handy for scripts, smoke tests and seeding a dev server.

Usage
-----
::

    from feed_client import FeedClient

    client = FeedClient("http://localhost:3000/api")
    for post in client.fetch_posts():
        print(post["name"], post["initialLikes"])

    comment = client.add_comment("1", {"text": "Nice haul!", "name": "Alex"})
    client.like_comment("1", comment["id"])
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger('fetchfeed.client')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_API_URL = os.getenv("FETCHFEED_API_URL", "http://localhost:3000/api")
_DEFAULT_TIMEOUT = 10  # seconds


class FeedAPIError(Exception):
    """Raised when the FetchFeed API is unreachable or reports a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FeedClient:
    """Thin wrapper over the FetchFeed JSON endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: int = _DEFAULT_TIMEOUT,
        session: requests.Session = None,
    ) -> None:
        """
        Args:
            base_url: API root including the ``/api`` prefix.
            timeout:  HTTP request timeout in seconds.
            session:  Optional pre-configured :class:`requests.Session`.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def fetch_posts(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/posts", action="fetch posts")["posts"]

    def fetch_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/posts/{post_id}", action="fetch post")["post"]

    def create_post(self, post: Dict[str, Any]) -> Dict[str, Any]:
        """Create a post; the server fills in ``id`` and ``createdAt``."""
        return self._request("POST", "/posts", json=post, action="create post")["post"]

    def update_post(self, post_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/posts/{post_id}", json=updates,
                             action="update post")["post"]

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/posts/{post_id}", action="delete post")

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, post_id: str, comment: Dict[str, Any]) -> Dict[str, Any]:
        """Add a comment, or a reply when *comment* carries ``parentId``."""
        return self._request("POST", f"/posts/{post_id}/comments", json=comment,
                             action="add comment")["comment"]

    def delete_comment(self, post_id: str, comment_id: str) -> None:
        self._request("DELETE", f"/posts/{post_id}/comments/{comment_id}",
                      action="delete comment")

    def like_comment(self, post_id: str, comment_id: str) -> Dict[str, Any]:
        return self._request("PUT", f"/posts/{post_id}/comments/{comment_id}/like",
                             action="like comment")["comment"]

    # ------------------------------------------------------------------
    # Roast video
    # ------------------------------------------------------------------

    def generate_roast_video(
        self,
        roast_text: str,
        receipt_items: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Ask the server for a roast video.

        Never raises: the server's body is returned whatever its status,
        and transport failures come back as
        ``{"success": False, "error": "Failed to generate roast video"}``.
        """
        try:
            resp = self._session.post(
                f"{self._base_url}/generate-roast-video",
                json={"roastText": roast_text, "receiptItems": receipt_items},
                timeout=self._timeout,
            )
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error generating roast video: %s", exc)
            return {"success": False, "error": "Failed to generate roast video"}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, action: str,
                 json: Dict[str, Any] = None) -> Dict[str, Any]:
        """Send one request and return the decoded body.

        Raises:
            FeedAPIError: Network failure, non-JSON body or ``success`` false.
        """
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(method, url, json=json, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Error trying to %s: %s", action, exc)
            raise FeedAPIError(f"Failed to {action}: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise FeedAPIError(f"Failed to {action}: invalid JSON response",
                               resp.status_code) from exc

        if not isinstance(data, dict) or not data.get("success"):
            detail = data.get("error") if isinstance(data, dict) else None
            message = f"Failed to {action}" + (f": {detail}" if detail else "")
            logger.error("%s (HTTP %s)", message, resp.status_code)
            raise FeedAPIError(message, resp.status_code)
        return data
