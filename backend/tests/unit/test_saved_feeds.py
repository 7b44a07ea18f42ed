import json

import pytest

from murmur.domain.feeds import models
from murmur.domain.feeds.exceptions import FeedConflictError, FeedNotFoundError, FeedValidationError
from murmur.domain.feeds.repo import MemoryFeedsRepository
from murmur.domain.feeds.service import FeedsService, SavedFeedsService
from murmur.domain.search.models import ActorRef

ACTOR_ID = 7


def _service(repo: MemoryFeedsRepository | None = None) -> SavedFeedsService:
	return SavedFeedsService(repository=repo or MemoryFeedsRepository(), ttl_seconds=60)


def test_resolve_route():
	assert models.resolve_route("/feed/public") == "feed_public"
	assert models.resolve_route("https://example.org/feed/home/") == "feed_home"
	assert models.resolve_route("/search?q=hello+note-local:true") == "search"
	assert models.resolve_route("/settings") is None


@pytest.mark.asyncio
async def test_defaults_created_on_first_list(fake_redis):
	repo = MemoryFeedsRepository()
	service = _service(repo)
	feeds = await service.list_feeds(ACTOR_ID)
	assert [(feed.url, feed.title, feed.ordering) for feed in feeds] == [
		("/feed/home", "Home", 1),
		("/feed/public", "Public", 2),
	]
	assert await repo.list_feeds(ACTOR_ID) == feeds
	cached = json.loads(await fake_redis.get(f"feeds:{ACTOR_ID}"))
	assert [item["url"] for item in cached] == ["/feed/home", "/feed/public"]


@pytest.mark.asyncio
async def test_list_served_from_cache(fake_redis):
	repo = MemoryFeedsRepository()
	service = _service(repo)
	await service.list_feeds(ACTOR_ID)
	await repo.replace_all(ACTOR_ID, [])
	feeds = await service.list_feeds(ACTOR_ID)
	assert len(feeds) == 2


@pytest.mark.asyncio
async def test_add_feed_validates_and_invalidates_cache(fake_redis):
	service = _service()
	await service.list_feeds(ACTOR_ID)
	feed = await service.add_feed(ACTOR_ID, url="/search?q=cats", title="Cats")
	assert feed.route == "search"
	assert feed.ordering == 3
	assert await fake_redis.get(f"feeds:{ACTOR_ID}") is None

	with pytest.raises(FeedConflictError):
		await service.add_feed(ACTOR_ID, url="/search?q=cats", title="Cats again")
	with pytest.raises(FeedValidationError) as excinfo:
		await service.add_feed(ACTOR_ID, url="/settings", title="Nope")
	assert excinfo.value.detail == "invalid_route"


@pytest.mark.asyncio
async def test_update_sorts_and_renumbers():
	service = _service()
	await service.list_feeds(ACTOR_ID)
	await service.add_feed(ACTOR_ID, url="/search?q=cats", title="Cats")

	feeds = await service.update_feeds(
		ACTOR_ID,
		[
			{"key_url": "/search?q=cats", "url": "/search?q=dogs", "title": "Dogs", "ordering": 10},
			{"key_url": "/feed/public", "title": "Everyone", "ordering": -4},
			{"key_url": "/feed/home", "ordering": 3},
		],
	)
	assert [(feed.url, feed.title, feed.ordering) for feed in feeds] == [
		("/feed/public", "Everyone", 1),
		("/feed/home", "Home", 2),
		("/search?q=dogs", "Dogs", 3),
	]
	assert await service.list_feeds(ACTOR_ID) == feeds


@pytest.mark.asyncio
async def test_update_unknown_entry():
	service = _service()
	with pytest.raises(FeedNotFoundError):
		await service.update_feeds(ACTOR_ID, [{"key_url": "/nowhere"}])


@pytest.mark.asyncio
async def test_update_to_duplicate_url_conflicts():
	service = _service()
	with pytest.raises(FeedConflictError):
		await service.update_feeds(ACTOR_ID, [{"key_url": "/feed/home", "url": "/feed/public"}])


@pytest.mark.asyncio
async def test_remove_and_reset():
	service = _service()
	await service.remove_feed(ACTOR_ID, "/feed/public")
	assert [feed.url for feed in await service.list_feeds(ACTOR_ID)] == ["/feed/home"]

	with pytest.raises(FeedNotFoundError):
		await service.remove_feed(ACTOR_ID, "/feed/public")

	feeds = await service.reset_feeds(ACTOR_ID)
	assert [feed.url for feed in feeds] == ["/feed/home", "/feed/public"]
	assert await service.list_feeds(ACTOR_ID) == feeds


@pytest.mark.asyncio
async def test_builtin_feed_reads():
	service = FeedsService()
	with pytest.raises(FeedNotFoundError):
		await service.read_feed("nope")
	with pytest.raises(FeedValidationError) as excinfo:
		await service.read_feed("home")
	assert excinfo.value.status_code == 401
	result = await service.read_feed("home", actor=ActorRef(1))
	assert len(result.posts) == 0
