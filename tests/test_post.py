"""Tests for the post model."""

import pytest

from feed_relay.identifier import Identifier
from feed_relay.post import Feed, MediaKind, NormalizedPost, Photo, Video


def test_media_constructors():
    assert Photo("https://a/1.jpg").kind == MediaKind.PHOTO
    assert Video("https://a/1.mp4").kind == MediaKind.VIDEO


def test_media_requires_url():
    with pytest.raises(ValueError):
        Photo("")


def test_post_media_stored_as_tuple():
    post = NormalizedPost(
        id=Identifier.number(1),
        source_id=Identifier.number(2),
        media=[Photo("https://a/1.jpg")],
    )
    assert post.media == (Photo("https://a/1.jpg"),)


def test_post_is_immutable():
    post = NormalizedPost(id=Identifier.number(1), source_id=Identifier.number(2))
    with pytest.raises(AttributeError):
        post.text = "changed"


def test_feed_iteration_and_len():
    post = NormalizedPost(id=Identifier.number(1), source_id=Identifier.number(2))
    feed = Feed(source_id=Identifier.number(2), posts=[post])
    assert len(feed) == 1
    assert list(feed) == [post]
    assert len(Feed.empty(Identifier.number(3))) == 0
