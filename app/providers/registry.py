"""Registry and factory for upstream rate feeds."""

from __future__ import annotations

import os
from typing import Callable, Dict, Iterable, List

from .base import BaseRateFeed, FeedError

FeedFactory = Callable[[], BaseRateFeed]

_FEED_FACTORIES: Dict[str, FeedFactory] = {}


def _default_factories() -> Iterable[tuple[str, FeedFactory]]:
    from flask import current_app

    from .ecb_provider import EcbRateFeed
    from .mock import MockRateFeed

    def ecb_factory() -> EcbRateFeed:
        return EcbRateFeed.from_config(current_app.config)

    return [
        (MockRateFeed.name, MockRateFeed),
        (EcbRateFeed.name, ecb_factory),
    ]


def register_feed(name: str, factory: FeedFactory) -> None:
    """Register a feed factory under the given name."""

    if not name:
        raise ValueError("Feed name cannot be empty.")
    _FEED_FACTORIES[name.lower()] = factory


def list_feeds() -> List[str]:
    """Return the list of registered feed identifiers."""

    return sorted(_FEED_FACTORIES.keys())


def _resolve_name(name: str | None = None) -> str:
    return (name or os.getenv("FX_RATE_FEED") or "mock").lower()


def get_feed(name: str | None = None) -> BaseRateFeed:
    """Instantiate a feed using the supplied or configured name."""

    feed_name = _resolve_name(name)
    try:
        factory = _FEED_FACTORIES[feed_name]
    except KeyError as exc:
        available = ", ".join(list_feeds()) or "none registered"
        raise FeedError(f"Unknown feed '{feed_name}'. Available feeds: {available}") from exc
    return factory()


def init_feed(app) -> BaseRateFeed:
    """Attach the configured feed to the Flask app."""

    with app.app_context():
        feed = get_feed(app.config.get("FX_RATE_FEED"))
    app.extensions["rate_feed"] = feed
    return feed


def reset_registry(default_factories: Iterable[tuple[str, FeedFactory]] | None = None) -> None:
    """Reset feed registry; useful for tests."""

    _FEED_FACTORIES.clear()

    factories = default_factories or _default_factories()
    for name, factory in factories:
        register_feed(name, factory)


reset_registry()
