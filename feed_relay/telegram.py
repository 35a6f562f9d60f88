"""Telegram Bot API delivery adapter.

Sends each post as a media group to a single channel. The post text and
a back-link to the source go into the caption of the first media item.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable

from feed_relay.errors import DeliveryError, RateLimited
from feed_relay.identifier import Identifier
from feed_relay.ports import DeliveryReceipt
from feed_relay.post import MediaKind, NormalizedPost

API_BASE = "https://api.telegram.org"


@dataclass
class TelegramConfig:
    token: str
    channel_id: Identifier
    timeout: float = 30.0


def escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_caption(post: NormalizedPost) -> str:
    return (
        f"{escape_html(post.text)}\n\n"
        f"src: <a href=\"{post.permalink}\">{escape_html(post.source_label)}</a>"
    )


def build_media_group(post: NormalizedPost) -> list[dict[str, Any]]:
    """Build the sendMediaGroup media array; the first item carries the caption."""
    if not post.media:
        raise DeliveryError("Sending text-only messages is not supported")

    media: list[dict[str, Any]] = []
    for ref in post.media:
        media.append({
            "type": "photo" if ref.kind == MediaKind.PHOTO else "video",
            "media": ref.url,
        })
    media[0]["caption"] = format_caption(post)
    media[0]["parse_mode"] = "HTML"
    return media


def parse_response(payload: dict[str, Any]) -> DeliveryReceipt:
    """Map a Bot API response to a receipt or raise the matching error."""
    if payload.get("ok"):
        result = payload.get("result") or []
        if not result:
            raise DeliveryError("Bot API returned no messages")
        return DeliveryReceipt(message_id=str(result[0]["message_id"]), raw=payload)

    error_code = payload.get("error_code")
    description = payload.get("description", "")
    parameters = payload.get("parameters") or {}
    if error_code == 429 and "retry_after" in parameters:
        raise RateLimited(float(parameters["retry_after"]))
    raise DeliveryError(f"API returned error {error_code}: {description}")


class TelegramDelivery:
    """Delivery adapter that posts media groups via the Bot API."""

    def __init__(
        self,
        config: TelegramConfig,
        send_func: Callable[[str, dict[str, str]], str] | None = None,
    ) -> None:
        self.config = config
        self._send = send_func  # Injectable for testing
        self._sent = 0

    def _endpoint(self) -> str:
        return f"{API_BASE}/bot{self.config.token}/sendMediaGroup"

    def _post(self, url: str, fields: dict[str, str]) -> str:
        """Blocking form POST; error responses still carry a JSON body."""
        if self._send:
            return self._send(url, fields)
        data = urllib.parse.urlencode(fields).encode("utf-8")
        req = urllib.request.Request(url, data=data, method="POST")
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
                return resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            return exc.read().decode("utf-8", errors="replace")
        except urllib.error.URLError as exc:
            raise DeliveryError(f"Telegram connection error: {exc.reason}") from exc
        except OSError as exc:
            raise DeliveryError(f"Telegram connection error: {exc}") from exc

    def _deliver_sync(self, post: NormalizedPost) -> DeliveryReceipt:
        fields = {
            "chat_id": str(self.config.channel_id),
            "media": json.dumps(build_media_group(post)),
        }
        body = self._post(self._endpoint(), fields)
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise DeliveryError(f"Bot API returned malformed JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise DeliveryError("Bot API returned an unexpected payload")
        receipt = parse_response(payload)
        self._sent += 1
        return receipt

    async def deliver(self, post: NormalizedPost) -> DeliveryReceipt:
        return await asyncio.to_thread(self._deliver_sync, post)

    @property
    def messages_sent(self) -> int:
        return self._sent
