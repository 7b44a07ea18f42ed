"""Built-in feed reads and the per-actor saved feed list."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from murmur.domain.feeds import models
from murmur.domain.feeds import repo as repo_module
from murmur.domain.feeds.exceptions import (
	FeedConflictError,
	FeedNotFoundError,
	FeedValidationError,
)
from murmur.domain.search.models import ActorRef, SearchResult
from murmur.domain.search.service import FeedQueryService
from murmur.infra import postgres
from murmur.infra.redis import RedisProxy, redis_client
from murmur.obs import metrics as obs_metrics
from murmur.settings import settings

_LOG = logging.getLogger(__name__)


class FeedsService:
	"""Reads the built-in feeds through the shared query service."""

	def __init__(self, query_service: Optional[FeedQueryService] = None) -> None:
		self._queries = query_service or FeedQueryService()

	async def read_feed(
		self,
		name: str,
		*,
		page: int = 1,
		actor: Optional[ActorRef] = None,
		language: Optional[str] = None,
	) -> SearchResult:
		feed = models.BUILTIN_FEEDS.get(name)
		if feed is None:
			raise FeedNotFoundError()
		if feed.requires_actor and actor is None:
			raise FeedValidationError("actor_required", status_code=401)
		return await self._queries.search(
			feed.query,
			page=page,
			language=language,
			actor=actor,
			kind=f"feed_{feed.name}",
		)


class SavedFeedsCache:
	"""JSON list of an actor's saved feeds, keyed ``feeds:{actor_id}``."""

	def __init__(self, redis: RedisProxy | None = None, *, namespace: str = "feeds:") -> None:
		self.redis = redis or redis_client
		self.namespace = namespace

	def _key(self, actor_id: int) -> str:
		return f"{self.namespace}{actor_id}"

	async def get(self, actor_id: int) -> Optional[list[models.SavedFeed]]:
		raw = await self.redis.get(self._key(actor_id))
		if not raw:
			return None
		try:
			decoded = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
			payload = json.loads(decoded)
			return [models.SavedFeed.from_payload(item) for item in payload]
		except (json.JSONDecodeError, KeyError, TypeError, ValueError):
			return None

	async def set(self, actor_id: int, feeds: Sequence[models.SavedFeed], *, ttl: int) -> None:
		payload = json.dumps([feed.to_payload() for feed in feeds])
		await self.redis.set(self._key(actor_id), payload, ex=ttl)

	async def invalidate(self, actor_id: int) -> None:
		await self.redis.delete(self._key(actor_id))


class SavedFeedsService:
	def __init__(
		self,
		*,
		repository: Optional[repo_module.FeedsRepository] = None,
		cache: Optional[SavedFeedsCache] = None,
		ttl_seconds: Optional[int] = None,
	) -> None:
		self._repository = repository
		self._cache = cache or SavedFeedsCache()
		self._ttl = ttl_seconds if ttl_seconds is not None else settings.saved_feeds_cache_ttl_seconds

	async def _repo(self) -> repo_module.FeedsRepository:
		if self._repository is not None:
			return self._repository
		if settings.search_backend.lower() == "memory":
			return repo_module.memory_repository()
		try:
			pool = await postgres.get_pool()
		except AssertionError:
			return repo_module.memory_repository()
		self._repository = repo_module.PostgresFeedsRepository(pool)
		return self._repository

	async def list_feeds(self, actor_id: int) -> list[models.SavedFeed]:
		cached = await self._cache.get(actor_id)
		if cached is not None:
			obs_metrics.saved_feeds_cache("hit")
			return cached
		obs_metrics.saved_feeds_cache("miss")
		repository = await self._repo()
		feeds = await repository.list_feeds(actor_id)
		if not feeds:
			feeds = models.default_feeds(actor_id)
			await repository.replace_all(actor_id, feeds)
			_LOG.info("feeds.defaults_created", extra={"actor_id": actor_id})
		await self._cache.set(actor_id, feeds, ttl=self._ttl)
		return feeds

	async def add_feed(self, actor_id: int, *, url: str, title: str) -> models.SavedFeed:
		url = url.strip()
		title = title.strip()
		route = models.resolve_route(url)
		if route is None:
			raise FeedValidationError("invalid_route")
		if not title:
			raise FeedValidationError("title_required")
		current = await self.list_feeds(actor_id)
		if any(feed.url == url for feed in current):
			raise FeedConflictError()
		ordering = max((feed.ordering for feed in current), default=0) + 1
		feed = models.SavedFeed(actor_id=actor_id, url=url, route=route, title=title, ordering=ordering)
		repository = await self._repo()
		try:
			await repository.insert(feed)
		finally:
			await self._cache.invalidate(actor_id)
		_LOG.info("feeds.added", extra={"actor_id": actor_id, "route": route})
		return feed

	async def update_feeds(self, actor_id: int, updates: Sequence[dict[str, Any]]) -> list[models.SavedFeed]:
		"""Apply ``{key_url, url, title, ordering}`` updates to existing entries.

		Updated entries are sorted by their requested ordering and renumbered
		from 1; entries not mentioned keep their relative place after them.
		"""

		current = {feed.url: feed for feed in await self.list_feeds(actor_id)}
		requested: list[tuple[int, int, models.SavedFeed]] = []
		seen: set[str] = set()
		for position, update in enumerate(updates):
			key_url = str(update["key_url"])
			existing = current.get(key_url)
			if existing is None:
				raise FeedNotFoundError()
			if key_url in seen:
				raise FeedValidationError("duplicate_entry")
			seen.add(key_url)
			url = str(update.get("url") or existing.url).strip()
			route = models.resolve_route(url)
			if route is None:
				raise FeedValidationError("invalid_route")
			title = str(update.get("title") or existing.title).strip()
			ordering = update.get("ordering")
			ordering = existing.ordering if ordering is None else int(ordering)
			requested.append(
				(ordering, position, models.SavedFeed(actor_id=actor_id, url=url, route=route, title=title, ordering=ordering))
			)

		requested.sort(key=lambda item: (item[0], item[1]))
		untouched = [feed for url, feed in current.items() if url not in seen]
		merged = [feed for _, _, feed in requested] + untouched
		renumbered = [
			models.SavedFeed(actor_id=actor_id, url=feed.url, route=feed.route, title=feed.title, ordering=index)
			for index, feed in enumerate(merged, start=1)
		]
		urls = [feed.url for feed in renumbered]
		if len(set(urls)) != len(urls):
			raise FeedConflictError()

		repository = await self._repo()
		try:
			await repository.replace_all(actor_id, renumbered)
		finally:
			await self._cache.invalidate(actor_id)
		return renumbered

	async def remove_feed(self, actor_id: int, url: str) -> None:
		await self.list_feeds(actor_id)
		repository = await self._repo()
		try:
			removed = await repository.delete(actor_id, url.strip())
		finally:
			await self._cache.invalidate(actor_id)
		if not removed:
			raise FeedNotFoundError()

	async def reset_feeds(self, actor_id: int) -> list[models.SavedFeed]:
		feeds = models.default_feeds(actor_id)
		repository = await self._repo()
		try:
			await repository.replace_all(actor_id, feeds)
		finally:
			await self._cache.invalidate(actor_id)
		_LOG.info("feeds.reset", extra={"actor_id": actor_id})
		return feeds


async def reset_memory_state() -> None:
	await repo_module.memory_repository().reset()


__all__ = ["FeedsService", "SavedFeedsCache", "SavedFeedsService", "reset_memory_state"]
