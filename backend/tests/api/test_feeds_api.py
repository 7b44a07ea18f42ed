from datetime import datetime, timedelta, timezone

import pytest

from murmur.domain.search import seed_memory_store
from murmur.domain.search.models import ActorKind, ActorRecord, PostRecord, SubscriptionRecord

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)
ME = {"X-Actor-Id": "1"}


async def _seed():
	await seed_memory_store(
		posts=[
			PostRecord(id=1, actor_id=2, content="group news", created=BASE),
			PostRecord(id=2, actor_id=3, content="remote chatter", created=BASE + timedelta(minutes=1), is_local=False),
			PostRecord(id=3, actor_id=4, content="bot spam", created=BASE + timedelta(minutes=2)),
		],
		actors=[
			ActorRecord(id=1, nickname="me", type=ActorKind.PERSON, created=BASE),
			ActorRecord(id=2, nickname="club", type=ActorKind.GROUP, created=BASE),
			ActorRecord(id=3, nickname="far", type=ActorKind.PERSON, created=BASE, is_local=False),
			ActorRecord(id=4, nickname="beeper", type=ActorKind.BOT, created=BASE),
		],
		subscriptions=[
			SubscriptionRecord(subscriber=1, subscribed=2),
			SubscriptionRecord(subscriber=1, subscribed=4),
		],
	)


@pytest.mark.asyncio
async def test_public_feed(api_client):
	await _seed()
	response = await api_client.get("/feed/public")
	payload = response.json()
	assert response.status_code == 200
	assert payload["feed"] == "public"
	assert [item["id"] for item in payload["items"]] == [3, 1]


@pytest.mark.asyncio
async def test_home_feed_skips_bots(api_client):
	await _seed()
	response = await api_client.get("/feed/home", headers=ME)
	assert response.status_code == 200
	assert [item["id"] for item in response.json()["items"]] == [1]


@pytest.mark.asyncio
async def test_home_feed_requires_auth(api_client):
	response = await api_client.get("/feed/home")
	assert response.status_code == 401


@pytest.mark.asyncio
async def test_actor_header_ignored_outside_dev(api_client):
	from murmur.settings import settings

	settings.environment = "production"
	response = await api_client.get("/feed/home", headers=ME)
	assert response.status_code == 401


@pytest.mark.asyncio
async def test_saved_feeds_crud(api_client):
	listed = await api_client.get("/feeds", headers=ME)
	assert listed.status_code == 200
	assert [item["url"] for item in listed.json()["items"]] == ["/feed/home", "/feed/public"]

	created = await api_client.post("/feeds", json={"url": "/search?q=cats", "title": "Cats"}, headers=ME)
	assert created.status_code == 201
	assert created.json() == {"url": "/search?q=cats", "route": "search", "title": "Cats", "ordering": 3}

	duplicate = await api_client.post("/feeds", json={"url": "/search?q=cats", "title": "Cats"}, headers=ME)
	assert duplicate.status_code == 409
	assert duplicate.json()["detail"] == "feed_exists"

	invalid = await api_client.post("/feeds", json={"url": "/elsewhere", "title": "X"}, headers=ME)
	assert invalid.status_code == 422
	assert invalid.json()["detail"] == "invalid_route"

	updated = await api_client.put(
		"/feeds",
		json={"items": [{"key_url": "/search?q=cats", "ordering": 0}]},
		headers=ME,
	)
	assert updated.status_code == 200
	assert [item["url"] for item in updated.json()["items"]] == ["/search?q=cats", "/feed/home", "/feed/public"]
	assert [item["ordering"] for item in updated.json()["items"]] == [1, 2, 3]

	removed = await api_client.delete("/feeds", params={"url": "/feed/home"}, headers=ME)
	assert removed.status_code == 204
	missing = await api_client.delete("/feeds", params={"url": "/feed/home"}, headers=ME)
	assert missing.status_code == 404

	reset = await api_client.post("/feeds/reset", headers=ME)
	assert [item["url"] for item in reset.json()["items"]] == ["/feed/home", "/feed/public"]


@pytest.mark.asyncio
async def test_saved_feeds_require_auth(api_client):
	response = await api_client.get("/feeds")
	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"
