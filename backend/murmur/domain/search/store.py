"""Data stores executing compiled feed/search queries."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import fields
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence, assert_never

import asyncpg

from murmur.domain.search import sql
from murmur.domain.search.exceptions import DataStoreUnavailable
from murmur.domain.search.models import (
	ActorKind,
	ActorRecord,
	Domain,
	Join,
	OrderColumn,
	PageWindow,
	PostRecord,
	Record,
	SubscriptionRecord,
)
from murmur.domain.search.predicates import And, Contains, Eq, In, NotEq, Or, Predicate
from murmur.settings import settings

_LOG = logging.getLogger(__name__)


class DataStore(Protocol):
	async def fetch(
		self,
		domain: Domain,
		*,
		predicate: Optional[Predicate],
		joins: Sequence[Join],
		order: Sequence[OrderColumn],
		window: PageWindow,
	) -> list[Record]: ...


def _post_from_row(row: Mapping[str, Any]) -> PostRecord:
	return PostRecord(
		id=int(row["id"]),
		actor_id=int(row["actor_id"]),
		content=row["content"],
		created=row["created"],
		is_local=bool(row["is_local"]),
		conversation_id=int(row["conversation_id"]) if row["conversation_id"] is not None else None,
		language=row["language"],
	)


def _actor_from_row(row: Mapping[str, Any]) -> ActorRecord:
	return ActorRecord(
		id=int(row["id"]),
		nickname=row["nickname"],
		type=ActorKind(int(row["type"])),
		created=row["created"],
		fullname=row["fullname"],
		is_local=bool(row["is_local"]),
	)


_ROW_MAPPERS = {
	Domain.POST: _post_from_row,
	Domain.ACTOR: _actor_from_row,
}


class PostgresDataStore:
	"""Runs one ``SELECT`` per domain over an asyncpg pool."""

	def __init__(self, pool: asyncpg.Pool, *, timeout: Optional[float] = None) -> None:
		self._pool = pool
		self._timeout = timeout if timeout is not None else settings.search_fetch_timeout_seconds

	async def fetch(
		self,
		domain: Domain,
		*,
		predicate: Optional[Predicate],
		joins: Sequence[Join],
		order: Sequence[OrderColumn],
		window: PageWindow,
	) -> list[Record]:
		try:
			query, params = sql.build_select(domain, predicate=predicate, joins=joins, order=order, window=window)
		except ValueError as exc:
			raise DataStoreUnavailable("query_construction", domain=domain.value) from exc
		try:
			async with self._pool.acquire() as conn:
				rows = await conn.fetch(query, *params, timeout=self._timeout)
		except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
			raise DataStoreUnavailable("store_unavailable", domain=domain.value) from exc
		mapper = _ROW_MAPPERS[domain]
		return [mapper(row) for row in rows]


def _as_row(record: Any) -> dict[str, Any]:
	return {f.name: getattr(record, f.name) for f in fields(record)}


def _lookup(row: Mapping[str, Optional[Mapping[str, Any]]], field: str, base_alias: str) -> Any:
	alias, _, name = field.rpartition(".")
	alias = alias or base_alias
	if alias not in row:
		raise ValueError(f"unknown_alias:{alias}")
	values = row[alias]
	if values is None:
		return None
	if name not in values:
		raise ValueError(f"unknown_field:{field}")
	return values[name]


def evaluate(predicate: Predicate, row: Mapping[str, Optional[Mapping[str, Any]]], *, base_alias: str) -> bool:
	"""SQL-like evaluation where comparisons against NULL are never true."""

	match predicate:
		case Eq(field=field, value=None):
			return _lookup(row, field, base_alias) is None
		case Eq(field=field, value=value):
			current = _lookup(row, field, base_alias)
			return current is not None and current == value
		case NotEq(field=field, value=None):
			return _lookup(row, field, base_alias) is not None
		case NotEq(field=field, value=value):
			current = _lookup(row, field, base_alias)
			return current is not None and current != value
		case Contains(field=field, text=text):
			current = _lookup(row, field, base_alias)
			return current is not None and text in str(current)
		case In(field=field, values=values):
			current = _lookup(row, field, base_alias)
			return current is not None and current in values
		case And(items=items):
			return all(evaluate(item, row, base_alias=base_alias) for item in items)
		case Or(items=items):
			return any(evaluate(item, row, base_alias=base_alias) for item in items)
		case _:
			assert_never(predicate)


class MemoryDataStore:
	"""In-process store used when no Postgres pool is configured and in tests."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._relations: dict[str, list[Any]] = {"post": [], "actor": [], "subscription": []}

	async def reset(self) -> None:
		async with self._lock:
			for rows in self._relations.values():
				rows.clear()

	async def seed(
		self,
		*,
		posts: Iterable[PostRecord] | None = None,
		actors: Iterable[ActorRecord] | None = None,
		subscriptions: Iterable[SubscriptionRecord] | None = None,
	) -> None:
		async with self._lock:
			self._relations["post"] = list(posts or [])
			self._relations["actor"] = list(actors or [])
			self._relations["subscription"] = list(subscriptions or [])

	def _joined_rows(self, base_alias: str, record: Any, joins: Sequence[Join]) -> Iterable[dict[str, Optional[dict[str, Any]]]]:
		base = _as_row(record)
		options: list[list[Optional[dict[str, Any]]]] = []
		for join in joins:
			relation = self._relations.get(join.relation)
			if relation is None:
				raise ValueError(f"unknown_relation:{join.relation}")
			matches: list[Optional[dict[str, Any]]] = [
				row for row in map(_as_row, relation) if row.get(join.foreign_field) == base.get(join.local_field)
			]
			options.append(matches or [None])
		for combination in itertools.product(*options):
			joined: dict[str, Optional[dict[str, Any]]] = {base_alias: base}
			for join, values in zip(joins, combination):
				joined[join.alias] = values
			yield joined

	async def fetch(
		self,
		domain: Domain,
		*,
		predicate: Optional[Predicate],
		joins: Sequence[Join],
		order: Sequence[OrderColumn],
		window: PageWindow,
	) -> list[Record]:
		base_alias = sql.TABLES[domain]
		async with self._lock:
			records = list(self._relations[base_alias])
			try:
				if predicate is not None:
					records = [
						record
						for record in records
						if any(
							evaluate(predicate, row, base_alias=base_alias)
							for row in self._joined_rows(base_alias, record, joins)
						)
					]
			except ValueError as exc:
				raise DataStoreUnavailable("query_construction", domain=domain.value) from exc
		for column in reversed(order):
			records.sort(key=lambda record: getattr(record, column.column), reverse=column.descending)
		return records[window.offset : window.offset + window.limit]


_MEMORY = MemoryDataStore()


def memory_store() -> MemoryDataStore:
	return _MEMORY


async def seed_memory_store(
	*,
	posts: Iterable[PostRecord] | None = None,
	actors: Iterable[ActorRecord] | None = None,
	subscriptions: Iterable[SubscriptionRecord] | None = None,
) -> None:
	await _MEMORY.seed(posts=posts, actors=actors, subscriptions=subscriptions)


async def reset_memory_state() -> None:
	await _MEMORY.reset()
