"""Source-agnostic post model shared by sources, filtering and delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from feed_relay.identifier import Identifier


class MediaKind(Enum):
    PHOTO = "photo"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaRef:
    """A media URL. Photos are still images (not GIF); videos are MP4 or GIF."""
    kind: MediaKind
    url: str

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("MediaRef requires a URL")


def Photo(url: str) -> MediaRef:
    return MediaRef(MediaKind.PHOTO, url)


def Video(url: str) -> MediaRef:
    return MediaRef(MediaKind.VIDEO, url)


@dataclass(frozen=True)
class NormalizedPost:
    id: Identifier
    source_id: Identifier
    text: str = ""
    media: tuple[MediaRef, ...] = ()
    source_label: str = ""
    permalink: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable of media, store as a tuple.
        if not isinstance(self.media, tuple):
            object.__setattr__(self, "media", tuple(self.media))


@dataclass(frozen=True)
class Feed:
    """One source's batch of posts, newest first."""
    source_id: Identifier
    source_label: str = ""
    posts: tuple[NormalizedPost, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.posts, tuple):
            object.__setattr__(self, "posts", tuple(self.posts))

    def __iter__(self) -> Iterator[NormalizedPost]:
        return iter(self.posts)

    def __len__(self) -> int:
        return len(self.posts)

    @classmethod
    def empty(cls, source_id: Identifier) -> Feed:
        return cls(source_id=source_id)
