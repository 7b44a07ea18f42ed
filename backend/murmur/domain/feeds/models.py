"""Feed definitions and saved feed entries."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit


@dataclass(frozen=True, slots=True)
class BuiltinFeed:
	name: str
	path: str
	query: str
	requires_actor: bool = False


PUBLIC_FEED = BuiltinFeed(name="public", path="/feed/public", query="note-local:true")
HOME_FEED = BuiltinFeed(
	name="home",
	path="/feed/home",
	query="note-from:subscribed-person,subscribed-group,subscribed-organization,subscribed-business",
	requires_actor=True,
)

BUILTIN_FEEDS: Mapping[str, BuiltinFeed] = MappingProxyType({feed.name: feed for feed in (PUBLIC_FEED, HOME_FEED)})

# Paths a saved feed may point at, and the route name stored with it.
FEED_ROUTES: Mapping[str, str] = MappingProxyType(
	{
		PUBLIC_FEED.path: "feed_public",
		HOME_FEED.path: "feed_home",
		"/search": "search",
	}
)


def resolve_route(url: str) -> Optional[str]:
	"""Route name for ``url``, or None when it is not a feed."""

	path = urlsplit(url.strip()).path.rstrip("/") or "/"
	return FEED_ROUTES.get(path)


@dataclass(frozen=True, slots=True)
class SavedFeed:
	actor_id: int
	url: str
	route: str
	title: str
	ordering: int

	def to_payload(self) -> dict[str, Any]:
		return {
			"actor_id": self.actor_id,
			"url": self.url,
			"route": self.route,
			"title": self.title,
			"ordering": self.ordering,
		}

	@classmethod
	def from_payload(cls, payload: Mapping[str, Any]) -> "SavedFeed":
		return cls(
			actor_id=int(payload["actor_id"]),
			url=str(payload["url"]),
			route=str(payload["route"]),
			title=str(payload["title"]),
			ordering=int(payload["ordering"]),
		)


# (url, title) in display order
DEFAULT_FEEDS: tuple[tuple[str, str], ...] = (
	(HOME_FEED.path, "Home"),
	(PUBLIC_FEED.path, "Public"),
)


def default_feeds(actor_id: int) -> list[SavedFeed]:
	feeds: list[SavedFeed] = []
	for ordering, (url, title) in enumerate(DEFAULT_FEEDS, start=1):
		route = resolve_route(url)
		assert route is not None
		feeds.append(SavedFeed(actor_id=actor_id, url=url, route=route, title=title, ordering=ordering))
	return feeds
