"""Saved feed persistence: Postgres when a pool is configured, memory otherwise."""

from __future__ import annotations

import asyncio
from typing import Protocol, Sequence

import asyncpg

from murmur.domain.feeds import models
from murmur.domain.feeds.exceptions import FeedConflictError


class FeedsRepository(Protocol):
	async def list_feeds(self, actor_id: int) -> list[models.SavedFeed]: ...

	async def insert(self, feed: models.SavedFeed) -> None: ...

	async def replace_all(self, actor_id: int, feeds: Sequence[models.SavedFeed]) -> None: ...

	async def delete(self, actor_id: int, url: str) -> bool: ...


def _sorted(feeds: Sequence[models.SavedFeed]) -> list[models.SavedFeed]:
	return sorted(feeds, key=lambda feed: (feed.ordering, feed.url))


class MemoryFeedsRepository:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._feeds: dict[int, dict[str, models.SavedFeed]] = {}

	async def reset(self) -> None:
		async with self._lock:
			self._feeds.clear()

	async def list_feeds(self, actor_id: int) -> list[models.SavedFeed]:
		async with self._lock:
			return _sorted(list(self._feeds.get(actor_id, {}).values()))

	async def insert(self, feed: models.SavedFeed) -> None:
		async with self._lock:
			bucket = self._feeds.setdefault(feed.actor_id, {})
			if feed.url in bucket:
				raise FeedConflictError()
			bucket[feed.url] = feed

	async def replace_all(self, actor_id: int, feeds: Sequence[models.SavedFeed]) -> None:
		async with self._lock:
			self._feeds[actor_id] = {feed.url: feed for feed in feeds}

	async def delete(self, actor_id: int, url: str) -> bool:
		async with self._lock:
			return self._feeds.get(actor_id, {}).pop(url, None) is not None


class PostgresFeedsRepository:
	"""Thin data-access layer around asyncpg for the ``saved_feed`` table."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	@staticmethod
	def _from_row(row: asyncpg.Record) -> models.SavedFeed:
		return models.SavedFeed(
			actor_id=int(row["actor_id"]),
			url=row["url"],
			route=row["route"],
			title=row["title"],
			ordering=int(row["ordering"]),
		)

	async def list_feeds(self, actor_id: int) -> list[models.SavedFeed]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT actor_id, url, route, title, ordering
				FROM saved_feed
				WHERE actor_id = $1
				ORDER BY ordering, url
				""",
				actor_id,
			)
		return [self._from_row(row) for row in rows]

	async def insert(self, feed: models.SavedFeed) -> None:
		async with self._pool.acquire() as conn:
			try:
				await conn.execute(
					"""
					INSERT INTO saved_feed (actor_id, url, route, title, ordering)
					VALUES ($1, $2, $3, $4, $5)
					""",
					feed.actor_id,
					feed.url,
					feed.route,
					feed.title,
					feed.ordering,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise FeedConflictError() from exc

	async def replace_all(self, actor_id: int, feeds: Sequence[models.SavedFeed]) -> None:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute("DELETE FROM saved_feed WHERE actor_id = $1", actor_id)
				try:
					await conn.executemany(
						"""
						INSERT INTO saved_feed (actor_id, url, route, title, ordering)
						VALUES ($1, $2, $3, $4, $5)
						""",
						[(feed.actor_id, feed.url, feed.route, feed.title, feed.ordering) for feed in feeds],
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise FeedConflictError() from exc

	async def delete(self, actor_id: int, url: str) -> bool:
		async with self._pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM saved_feed WHERE actor_id = $1 AND url = $2",
				actor_id,
				url,
			)
		return status.endswith(" 1")


_MEMORY = MemoryFeedsRepository()


def memory_repository() -> MemoryFeedsRepository:
	return _MEMORY

