from datetime import datetime, timedelta, timezone

import pytest

from murmur.domain.search.exceptions import DataStoreUnavailable
from murmur.domain.search.models import (
	DEFAULT_ORDER,
	ActorKind,
	ActorRecord,
	Domain,
	PageWindow,
	PostRecord,
	SubscriptionRecord,
)
from murmur.domain.search.operators import AUTHOR_JOIN, SUBSCRIPTION_JOIN
from murmur.domain.search.predicates import And, Eq, In, NotEq
from murmur.domain.search.store import MemoryDataStore, evaluate

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _posts(count: int) -> list[PostRecord]:
	# pairs share a timestamp so ordering relies on the id tie-break
	return [
		PostRecord(id=i, actor_id=1 + i % 3, content=f"post {i}", created=BASE + timedelta(minutes=i // 2))
		for i in range(1, count + 1)
	]


@pytest.mark.asyncio
async def test_pages_concatenate_to_full_ordering():
	store = MemoryDataStore()
	posts = _posts(23)
	await store.seed(posts=posts)
	expected = sorted(posts, key=lambda post: (post.created, post.id), reverse=True)

	collected: list[PostRecord] = []
	for page in range(1, 5):
		rows = await store.fetch(
			Domain.POST, predicate=None, joins=(), order=DEFAULT_ORDER, window=PageWindow(page=page, size=5)
		)
		assert len(rows) <= 5
		collected.extend(rows)

	assert collected == expected[:20]
	assert len({post.id for post in collected}) == 20


@pytest.mark.asyncio
async def test_joins_do_not_duplicate_records():
	store = MemoryDataStore()
	await store.seed(
		posts=[PostRecord(id=1, actor_id=10, content="hi", created=BASE)],
		actors=[ActorRecord(id=10, nickname="bot", type=ActorKind.BOT, created=BASE)],
		subscriptions=[SubscriptionRecord(subscriber=1, subscribed=10), SubscriptionRecord(subscriber=2, subscribed=10)],
	)
	rows = await store.fetch(
		Domain.POST,
		predicate=NotEq("subscription.subscriber", None),
		joins=(SUBSCRIPTION_JOIN, AUTHOR_JOIN),
		order=DEFAULT_ORDER,
		window=PageWindow(page=1, size=10),
	)
	assert [row.id for row in rows] == [1]


@pytest.mark.asyncio
async def test_subscription_and_author_kind_filter():
	store = MemoryDataStore()
	await store.seed(
		posts=[
			PostRecord(id=1, actor_id=10, content="from a bot", created=BASE),
			PostRecord(id=2, actor_id=11, content="from a person", created=BASE),
			PostRecord(id=3, actor_id=12, content="from a stranger", created=BASE),
		],
		actors=[
			ActorRecord(id=10, nickname="bot", type=ActorKind.BOT, created=BASE),
			ActorRecord(id=11, nickname="ann", type=ActorKind.PERSON, created=BASE),
			ActorRecord(id=12, nickname="zed", type=ActorKind.PERSON, created=BASE),
		],
		subscriptions=[SubscriptionRecord(subscriber=99, subscribed=10), SubscriptionRecord(subscriber=99, subscribed=11)],
	)
	predicate = And((Eq("subscription.subscriber", 99), In("author.type", (ActorKind.PERSON,))))
	rows = await store.fetch(
		Domain.POST,
		predicate=predicate,
		joins=(SUBSCRIPTION_JOIN, AUTHOR_JOIN),
		order=DEFAULT_ORDER,
		window=PageWindow(page=1, size=10),
	)
	assert [row.id for row in rows] == [2]


def test_evaluate_null_semantics():
	row = {"post": {"content": None, "is_local": True}}
	assert evaluate(Eq("content", None), row, base_alias="post")
	assert not evaluate(NotEq("content", "x"), row, base_alias="post")
	assert not evaluate(Eq("subscription.subscriber", 1), {"post": {}, "subscription": None}, base_alias="post")


@pytest.mark.asyncio
async def test_unjoined_alias_is_a_query_construction_failure():
	store = MemoryDataStore()
	await store.seed(posts=_posts(1))
	with pytest.raises(DataStoreUnavailable) as excinfo:
		await store.fetch(
			Domain.POST,
			predicate=Eq("author.type", ActorKind.BOT),
			joins=(),
			order=DEFAULT_ORDER,
			window=PageWindow(page=1, size=10),
		)
	assert excinfo.value.detail == "query_construction"
