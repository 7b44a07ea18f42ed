"""Service layer executing feed and search queries."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from murmur.domain.search import store as store_module
from murmur.domain.search.compiler import CompiledCriteria, PredicateCompiler
from murmur.domain.search.exceptions import DataStoreUnavailable, QueryValidationError
from murmur.domain.search.extensions import ExtensionBus, QueryBuilder, build_extension_bus
from murmur.domain.search.models import (
	DEFAULT_ORDER,
	ActorRef,
	Domain,
	PageWindow,
	Record,
	ResultPage,
	SearchContext,
	SearchResult,
)
from murmur.domain.search.predicates import Predicate, fields_of
from murmur.infra import postgres
from murmur.obs import metrics as obs_metrics
from murmur.settings import settings

_LOG = logging.getLogger(__name__)


def _check_joins(domain: Domain, predicate: Optional[Predicate], builder: QueryBuilder) -> None:
	"""Every qualified field must point at a joined alias."""

	if predicate is None:
		return
	missing = sorted(
		alias
		for alias in {field.rpartition(".")[0] for field in fields_of(predicate)}
		if alias and alias not in builder.aliases
	)
	if missing:
		_LOG.warning(
			"search.execute.missing_join",
			extra={"domain": domain.value, "aliases": missing},
		)
		raise DataStoreUnavailable("query_construction", domain=domain.value)


class FeedQueryService:
	"""Compile a query string and fetch one page of posts and one of actors."""

	def __init__(
		self,
		*,
		bus: Optional[ExtensionBus] = None,
		data_store: Optional[store_module.DataStore] = None,
		page_size: Optional[int] = None,
		parallel: Optional[bool] = None,
	) -> None:
		self._bus = bus or build_extension_bus(settings.search_extensions)
		self._compiler = PredicateCompiler(self._bus)
		self._data_store = data_store
		self._page_size = page_size or settings.feed_page_size
		self._parallel = settings.search_parallel_domains if parallel is None else parallel

	@property
	def bus(self) -> ExtensionBus:
		return self._bus

	@property
	def page_size(self) -> int:
		return self._page_size

	async def _store(self) -> store_module.DataStore:
		if self._data_store is not None:
			return self._data_store
		if settings.search_backend.lower() == "memory":
			return store_module.memory_store()
		try:
			pool = await postgres.get_pool()
		except AssertionError:
			# No pool configured (local tools, tests).
			return store_module.memory_store()
		except Exception as exc:
			raise DataStoreUnavailable("store_unavailable") from exc
		self._data_store = store_module.PostgresDataStore(pool)
		return self._data_store

	def compile(self, query: str, *, language: Optional[str] = None, actor: Optional[ActorRef] = None) -> CompiledCriteria:
		return self._compiler.compile(query, SearchContext(actor=actor, language=language))

	async def search(
		self,
		query: str,
		page: int = 1,
		language: Optional[str] = None,
		actor: Optional[ActorRef] = None,
		*,
		kind: str = "search",
	) -> SearchResult:
		if page < 1:
			raise QueryValidationError("invalid_page")
		start = time.perf_counter()
		try:
			criteria = self.compile(query, language=language, actor=actor)
			post_builder = QueryBuilder(Domain.POST)
			actor_builder = QueryBuilder(Domain.ACTOR)
			self._bus.build_query(post_builder, actor_builder)
			_check_joins(Domain.POST, criteria.post, post_builder)
			_check_joins(Domain.ACTOR, criteria.actor, actor_builder)

			data_store = await self._store()
			window = PageWindow(page=page, size=self._page_size)
			posts, actors = await self._fetch_both(
				data_store,
				(Domain.POST, criteria.post, post_builder),
				(Domain.ACTOR, criteria.actor, actor_builder),
				window,
			)
			result = SearchResult(
				posts=ResultPage(Domain.POST, tuple(posts)),  # type: ignore[arg-type]
				actors=ResultPage(Domain.ACTOR, tuple(actors)),  # type: ignore[arg-type]
			)
			obs_metrics.inc_search_query(kind)
			_LOG.info(
				"search.query",
				extra={"kind": kind, "page": page, "posts": len(result.posts), "actors": len(result.actors)},
			)
			return result
		finally:
			obs_metrics.observe_search_latency(kind, time.perf_counter() - start)

	async def _fetch(
		self,
		data_store: store_module.DataStore,
		domain: Domain,
		predicate: Optional[Predicate],
		builder: QueryBuilder,
		window: PageWindow,
	) -> list[Record]:
		try:
			return await data_store.fetch(
				domain,
				predicate=predicate,
				joins=builder.joins,
				order=DEFAULT_ORDER,
				window=window,
			)
		except DataStoreUnavailable:
			obs_metrics.inc_store_failure(domain.value)
			raise
		except Exception as exc:
			obs_metrics.inc_store_failure(domain.value)
			_LOG.exception("search.execute.store_error", extra={"domain": domain.value})
			raise DataStoreUnavailable("store_unavailable", domain=domain.value) from exc

	async def _fetch_both(
		self,
		data_store: store_module.DataStore,
		post_query: tuple[Domain, Optional[Predicate], QueryBuilder],
		actor_query: tuple[Domain, Optional[Predicate], QueryBuilder],
		window: PageWindow,
	) -> tuple[list[Record], list[Record]]:
		if not self._parallel:
			posts = await self._fetch(data_store, *post_query, window)
			actors = await self._fetch(data_store, *actor_query, window)
			return posts, actors

		tasks = [
			asyncio.create_task(self._fetch(data_store, *post_query, window), name="search-fetch-post"),
			asyncio.create_task(self._fetch(data_store, *actor_query, window), name="search-fetch-actor"),
		]
		try:
			# A failing domain does not cancel the other; both settle first.
			outcomes = await asyncio.gather(*tasks, return_exceptions=True)
		except asyncio.CancelledError:
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			raise
		for outcome in outcomes:
			if isinstance(outcome, BaseException):
				raise outcome
		posts, actors = outcomes
		return posts, actors  # type: ignore[return-value]


__all__ = ["FeedQueryService"]
