"""Pydantic schemas for the saved feeds API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from murmur.domain.feeds.models import SavedFeed


class SavedFeedResponse(BaseModel):
	url: str
	route: str
	title: str
	ordering: int

	@classmethod
	def from_model(cls, feed: SavedFeed) -> "SavedFeedResponse":
		return cls(url=feed.url, route=feed.route, title=feed.title, ordering=feed.ordering)


class SavedFeedListResponse(BaseModel):
	items: list[SavedFeedResponse]

	@classmethod
	def from_models(cls, feeds: list[SavedFeed]) -> "SavedFeedListResponse":
		return cls(items=[SavedFeedResponse.from_model(feed) for feed in feeds])


class SavedFeedCreate(BaseModel):
	url: str = Field(..., min_length=1, max_length=2048)
	title: str = Field(..., min_length=1, max_length=120)


class SavedFeedUpdate(BaseModel):
	key_url: str = Field(..., min_length=1, max_length=2048, description="Current url of the entry")
	url: Optional[str] = Field(default=None, min_length=1, max_length=2048)
	title: Optional[str] = Field(default=None, min_length=1, max_length=120)
	ordering: Optional[int] = None


class SavedFeedUpdateRequest(BaseModel):
	items: list[SavedFeedUpdate] = Field(default_factory=list)
