import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from murmur.domain.search import seed_memory_store
from murmur.domain.search.exceptions import DataStoreUnavailable, QueryValidationError
from murmur.domain.search.models import ActorKind, ActorRecord, ActorRef, Domain, PostRecord, SubscriptionRecord
from murmur.domain.search.service import FeedQueryService
from murmur.domain.search.store import MemoryDataStore

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _FailingStore:
	"""Delegates to a memory store but fails for one domain."""

	def __init__(self, inner, failing: Domain, *, delay: float = 0.0):
		self.inner = inner
		self.failing = failing
		self.delay = delay
		self.completed: list[Domain] = []

	async def fetch(self, domain, **kwargs):
		if domain is self.failing:
			raise ConnectionError("store down")
		await asyncio.sleep(self.delay)
		rows = await self.inner.fetch(domain, **kwargs)
		self.completed.append(domain)
		return rows


class _SlowStore:
	def __init__(self):
		self.cancelled = 0

	async def fetch(self, domain, **kwargs):
		try:
			await asyncio.sleep(10)
		except asyncio.CancelledError:
			self.cancelled += 1
			raise
		return []


async def _seeded_store() -> MemoryDataStore:
	store = MemoryDataStore()
	await store.seed(
		posts=[
			PostRecord(id=1, actor_id=10, content="hello world", created=BASE),
			PostRecord(id=2, actor_id=11, content="hello there", created=BASE + timedelta(minutes=1), is_local=False),
			PostRecord(id=3, actor_id=11, content=None, created=BASE + timedelta(minutes=2)),
		],
		actors=[
			ActorRecord(id=10, nickname="beep", type=ActorKind.BOT, created=BASE),
			ActorRecord(id=11, nickname="ann", type=ActorKind.PERSON, created=BASE + timedelta(minutes=1)),
		],
		subscriptions=[SubscriptionRecord(subscriber=11, subscribed=10)],
	)
	return store


@pytest.mark.asyncio
async def test_search_returns_both_domains():
	service = FeedQueryService(data_store=await _seeded_store(), page_size=10)
	result = await service.search("hello")
	assert [post.id for post in result.posts.items] == [2, 1]
	assert [actor.id for actor in result.actors.items] == [11, 10]
	assert result.posts.domain is Domain.POST
	assert result.actors.domain is Domain.ACTOR


@pytest.mark.asyncio
async def test_search_filters_each_domain_independently():
	service = FeedQueryService(data_store=await _seeded_store(), page_size=10)
	result = await service.search("note-local:true actor-types:bot")
	assert [post.id for post in result.posts.items] == [3, 1]
	assert [actor.id for actor in result.actors.items] == [10]


@pytest.mark.asyncio
async def test_home_feed_query_uses_subscriptions():
	service = FeedQueryService(data_store=await _seeded_store(), page_size=10)
	result = await service.search("note-from:subscribed-bot", actor=ActorRef(11))
	assert [post.id for post in result.posts.items] == [1]

	anonymous = await service.search("note-from:subscribed-bot")
	assert [post.id for post in anonymous.posts.items] == [3, 2, 1]


@pytest.mark.asyncio
async def test_invalid_page_rejected():
	service = FeedQueryService(data_store=await _seeded_store())
	with pytest.raises(QueryValidationError):
		await service.search("hello", page=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("parallel", [True, False])
async def test_actor_store_failure_fails_whole_search(parallel):
	store = _FailingStore(await _seeded_store(), Domain.ACTOR)
	service = FeedQueryService(data_store=store, parallel=parallel)
	with pytest.raises(DataStoreUnavailable) as excinfo:
		await service.search("hello")
	assert excinfo.value.domain == "actor"
	assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_failure_does_not_abort_sibling_fetch():
	store = _FailingStore(await _seeded_store(), Domain.ACTOR, delay=0.01)
	service = FeedQueryService(data_store=store, parallel=True)
	with pytest.raises(DataStoreUnavailable):
		await service.search("hello")
	assert store.completed == [Domain.POST]


@pytest.mark.asyncio
async def test_caller_cancellation_cancels_both_fetches():
	store = _SlowStore()
	service = FeedQueryService(data_store=store, parallel=True)
	task = asyncio.create_task(service.search("hello"))
	await asyncio.sleep(0.01)
	task.cancel()
	with pytest.raises(asyncio.CancelledError):
		await task
	assert store.cancelled == 2


@pytest.mark.asyncio
async def test_falls_back_to_memory_store_without_pool():
	await seed_memory_store(posts=[PostRecord(id=5, actor_id=1, content="seeded", created=BASE)])
	service = FeedQueryService()
	result = await service.search("seeded")
	assert [post.id for post in result.posts.items] == [5]


@pytest.mark.asyncio
async def test_missing_join_reported_as_store_failure():
	from murmur.domain.search.extensions import ExtensionBus
	from murmur.domain.search.predicates import Eq
	from murmur.domain.search.terms import FilterTerm

	bus = ExtensionBus()

	def compile_term(term, context, post_criteria, actor_criteria):
		if isinstance(term, FilterTerm) and term.key == "tag":
			post_criteria.add(Eq("tag.name", term.first_value))
			return True
		return False

	bus.on_compile_term(compile_term)
	service = FeedQueryService(bus=bus, data_store=await _seeded_store())
	with pytest.raises(DataStoreUnavailable) as excinfo:
		await service.search("tag:x")
	assert excinfo.value.detail == "query_construction"
