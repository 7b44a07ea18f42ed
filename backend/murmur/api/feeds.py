"""REST endpoints for the built-in feeds and the saved feed list."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from murmur.domain.feeds import schemas as feed_schemas
from murmur.domain.feeds.exceptions import FeedError
from murmur.domain.feeds.service import FeedsService, SavedFeedsService
from murmur.domain.search import schemas
from murmur.domain.search.exceptions import SearchError
from murmur.domain.search.models import ActorRef
from murmur.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(tags=["feeds"])

_feeds = FeedsService()
_saved = SavedFeedsService()


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, (FeedError, SearchError)):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=400, detail=str(exc))


async def _read(name: str, params: schemas.FeedParams, actor: Optional[ActorRef]) -> schemas.FeedResponse:
	try:
		result = await _feeds.read_feed(name, page=params.p, actor=actor, language=params.language)
	except (FeedError, SearchError) as exc:
		raise _as_http_error(exc) from exc
	return schemas.FeedResponse(
		feed=name,
		page=params.p,
		items=[schemas.PostResult.from_record(record) for record in result.posts.items],
	)


@router.get("/feed/public", response_model=schemas.FeedResponse)
async def public_feed_endpoint(
	params: schemas.FeedParams = Depends(),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.FeedResponse:
	actor = ActorRef(auth_user.actor_id) if auth_user else None
	return await _read("public", params, actor)


@router.get("/feed/home", response_model=schemas.FeedResponse)
async def home_feed_endpoint(
	params: schemas.FeedParams = Depends(),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.FeedResponse:
	return await _read("home", params, ActorRef(auth_user.actor_id))


@router.get("/feeds", response_model=feed_schemas.SavedFeedListResponse)
async def list_feeds_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> feed_schemas.SavedFeedListResponse:
	feeds = await _saved.list_feeds(auth_user.actor_id)
	return feed_schemas.SavedFeedListResponse.from_models(feeds)


@router.post("/feeds", response_model=feed_schemas.SavedFeedResponse, status_code=status.HTTP_201_CREATED)
async def add_feed_endpoint(
	payload: feed_schemas.SavedFeedCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> feed_schemas.SavedFeedResponse:
	try:
		feed = await _saved.add_feed(auth_user.actor_id, url=payload.url, title=payload.title)
	except FeedError as exc:
		raise _as_http_error(exc) from exc
	return feed_schemas.SavedFeedResponse.from_model(feed)


@router.put("/feeds", response_model=feed_schemas.SavedFeedListResponse)
async def update_feeds_endpoint(
	payload: feed_schemas.SavedFeedUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> feed_schemas.SavedFeedListResponse:
	try:
		feeds = await _saved.update_feeds(
			auth_user.actor_id,
			[item.model_dump() for item in payload.items],
		)
	except FeedError as exc:
		raise _as_http_error(exc) from exc
	return feed_schemas.SavedFeedListResponse.from_models(feeds)


@router.delete("/feeds", status_code=status.HTTP_204_NO_CONTENT)
async def remove_feed_endpoint(
	url: str = Query(..., min_length=1, max_length=2048),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _saved.remove_feed(auth_user.actor_id, url)
	except FeedError as exc:
		raise _as_http_error(exc) from exc


@router.post("/feeds/reset", response_model=feed_schemas.SavedFeedListResponse)
async def reset_feeds_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> feed_schemas.SavedFeedListResponse:
	feeds = await _saved.reset_feeds(auth_user.actor_id)
	return feed_schemas.SavedFeedListResponse.from_models(feeds)
