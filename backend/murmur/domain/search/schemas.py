"""Pydantic schemas for the search and feed APIs."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from murmur.domain.search.models import ActorRecord, PostRecord, SearchResult


class SearchParams(BaseModel):
	q: str = Field(default="", max_length=1024, description="Raw query, terms separated by whitespace")
	p: int = Field(default=1, ge=1, description="1-based page number")
	language: Optional[str] = Field(default=None, max_length=16)


class FeedParams(BaseModel):
	p: int = Field(default=1, ge=1)
	language: Optional[str] = Field(default=None, max_length=16)


class PostResult(BaseModel):
	id: int
	actor_id: int
	content: Optional[str] = None
	is_local: bool
	conversation_id: Optional[int] = None
	language: Optional[str] = None
	created: datetime

	@classmethod
	def from_record(cls, record: PostRecord) -> "PostResult":
		return cls(
			id=record.id,
			actor_id=record.actor_id,
			content=record.content,
			is_local=record.is_local,
			conversation_id=record.conversation_id,
			language=record.language,
			created=record.created,
		)


class ActorResult(BaseModel):
	id: int
	nickname: str
	fullname: Optional[str] = None
	type: str
	is_local: bool
	created: datetime

	@classmethod
	def from_record(cls, record: ActorRecord) -> "ActorResult":
		return cls(
			id=record.id,
			nickname=record.nickname,
			fullname=record.fullname,
			type=record.type.name.lower(),
			is_local=record.is_local,
			created=record.created,
		)


class SearchResponse(BaseModel):
	q: str
	page: int
	posts: list[PostResult]
	actors: list[ActorResult]

	@classmethod
	def from_result(cls, *, q: str, page: int, result: SearchResult) -> "SearchResponse":
		return cls(
			q=q,
			page=page,
			posts=[PostResult.from_record(record) for record in result.posts.items],
			actors=[ActorResult.from_record(record) for record in result.actors.items],
		)


class FeedResponse(BaseModel):
	feed: str
	page: int
	items: list[PostResult]
