"""Upstream content API session and item fetcher."""

from .fetch import build_item_fetcher
from .session import UpstreamSession

__all__ = ["UpstreamSession", "build_item_fetcher"]
