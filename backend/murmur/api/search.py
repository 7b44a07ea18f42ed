"""REST endpoint for free-form search over posts and actors."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from murmur.domain.search import schemas
from murmur.domain.search.exceptions import SearchError
from murmur.domain.search.models import ActorRef
from murmur.domain.search.service import FeedQueryService
from murmur.infra.auth import AuthenticatedUser, get_optional_user

router = APIRouter(tags=["search"])

_service = FeedQueryService()


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, SearchError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=400, detail=str(exc))


@router.get("/search", response_model=schemas.SearchResponse)
async def search_endpoint(
	params: schemas.SearchParams = Depends(),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.SearchResponse:
	actor = ActorRef(auth_user.actor_id) if auth_user else None
	try:
		result = await _service.search(params.q, page=params.p, language=params.language, actor=actor)
	except SearchError as exc:
		raise _as_http_error(exc) from exc
	return schemas.SearchResponse.from_result(q=params.q, page=params.p, result=result)
