"""VK community wall source adapter.

Reads the latest posts of a community with the wall.get method and
normalizes them into a Feed. Posts marked as advertising are dropped
here; only photo attachments are mapped.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable

from feed_relay.errors import FetchError
from feed_relay.identifier import Identifier
from feed_relay.post import Feed, MediaRef, NormalizedPost, Photo

LOGGER = logging.getLogger(__name__)

API_URL = "https://api.vk.com/method/wall.get"
API_VERSION = "5.131"

# Photo size letters from smallest to largest.
_SIZE_RANK = {"s": 1, "m": 2, "x": 3, "y": 4, "z": 5, "w": 6}


@dataclass
class VkConfig:
    token: str
    count: int = 5
    timeout: float = 30.0


def build_query(source_id: Identifier, count: int) -> dict[str, str]:
    """Numeric ids address the community wall by owner id, strings by domain."""
    flat = source_id.flatten()
    query = {"count": str(count)}
    if flat.is_number:
        # Community walls use negative owner ids.
        query["owner_id"] = f"-{flat}"
    else:
        query["domain"] = str(flat)
    query["extended"] = "1"
    query["v"] = API_VERSION
    return query


def permalink(group_id: int, post_id: int) -> str:
    return f"https://vk.com/wall-{group_id}_{post_id}"


def best_photo_url(sizes: list[dict[str, Any]]) -> str | None:
    """Pick the largest size; on ties the earlier entry in the list wins."""
    best: dict[str, Any] | None = None
    best_rank = -1
    for size in sizes:
        rank = _SIZE_RANK.get(str(size.get("type", "")), 0)
        if rank > best_rank:
            best, best_rank = size, rank
    if best is None:
        return None
    return best.get("url") or None


def parse_wall(payload: dict[str, Any]) -> Feed:
    """Turn a decoded wall.get response into a Feed."""
    if "error" in payload:
        err = payload["error"] or {}
        raise FetchError(
            f"API returned error {err.get('error_code')}: {err.get('error_msg', '')}"
        )

    response = payload.get("response")
    if not isinstance(response, dict) or not response.get("groups"):
        raise FetchError("API did not return any groups")

    group = response["groups"][0]
    group_id = int(group["id"])
    label = f"vk // {group.get('name', '')}"
    source_id = Identifier.number(group_id)

    posts: list[NormalizedPost] = []
    for item in response.get("items", []):
        if item.get("marked_as_ads", 0) != 0:
            continue
        media: list[MediaRef] = []
        for attachment in item.get("attachments", []):
            photo = attachment.get("photo")
            if not photo:
                continue
            url = best_photo_url(photo.get("sizes", []))
            if url is None:
                LOGGER.warning("Photo in post %s has no usable size", item.get("id"))
                continue
            media.append(Photo(url))
        post_id = int(item["id"])
        posts.append(NormalizedPost(
            id=Identifier.number(post_id),
            source_id=source_id,
            text=item.get("text", ""),
            media=tuple(media),
            source_label=label,
            permalink=permalink(group_id, post_id),
        ))

    return Feed(source_id=source_id, source_label=label, posts=tuple(posts))


class VkSource:
    """Source adapter backed by the VK API."""

    def __init__(
        self,
        config: VkConfig,
        fetch_func: Callable[[str, dict[str, str]], str] | None = None,
    ) -> None:
        self.config = config
        self._fetch = fetch_func  # Injectable for testing

    def _get(self, url: str, headers: dict[str, str]) -> str:
        """Blocking GET against the API."""
        if self._fetch:
            return self._fetch(url, headers)
        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
                return resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise FetchError(f"VK HTTP error {exc.code}: {body}") from exc
        except urllib.error.URLError as exc:
            raise FetchError(f"VK connection error: {exc.reason}") from exc
        except OSError as exc:
            raise FetchError(f"VK connection error: {exc}") from exc

    def _fetch_sync(self, source_id: Identifier) -> Feed:
        query = build_query(source_id, self.config.count)
        url = f"{API_URL}?{urllib.parse.urlencode(query)}"
        headers = {"Authorization": f"Bearer {self.config.token}"}
        body = self._get(url, headers)
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise FetchError(f"VK returned malformed JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise FetchError("VK returned an unexpected payload")
        try:
            return parse_wall(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"Unexpected VK response shape: {exc}") from exc

    async def fetch(self, source_id: Identifier) -> Feed:
        return await asyncio.to_thread(self._fetch_sync, source_id)
