"""Domain models backing feed and search queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Generic, Optional, TypeVar, Union


class Domain(str, Enum):
	"""The two independently queried record kinds."""

	POST = "post"
	ACTOR = "actor"


class ActorKind(IntEnum):
	PERSON = 1
	GROUP = 2
	ORGANIZATION = 3
	BUSINESS = 4
	BOT = 5


@dataclass(frozen=True, slots=True)
class ActorRef:
	"""The requesting actor, as far as the compiler cares."""

	id: int


@dataclass(frozen=True, slots=True)
class SearchContext:
	actor: Optional[ActorRef] = None
	language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PostRecord:
	id: int
	actor_id: int
	content: Optional[str]
	created: datetime
	is_local: bool = True
	conversation_id: Optional[int] = None
	language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ActorRecord:
	id: int
	nickname: str
	type: ActorKind
	created: datetime
	fullname: Optional[str] = None
	is_local: bool = True


@dataclass(frozen=True, slots=True)
class SubscriptionRecord:
	"""`subscriber` follows `subscribed`."""

	subscriber: int
	subscribed: int
	created: Optional[datetime] = None


Record = Union[PostRecord, ActorRecord]
R = TypeVar("R", PostRecord, ActorRecord)


@dataclass(frozen=True, slots=True)
class Join:
	"""Left join of ``relation`` as ``alias`` on ``<base>.local_field = alias.foreign_field``."""

	alias: str
	relation: str
	local_field: str
	foreign_field: str


@dataclass(frozen=True, slots=True)
class OrderColumn:
	column: str
	descending: bool = True


# Newest first; the identity tie-break makes the order total.
DEFAULT_ORDER: tuple[OrderColumn, ...] = (OrderColumn("created"), OrderColumn("id"))


@dataclass(frozen=True, slots=True)
class PageWindow:
	page: int
	size: int

	@property
	def offset(self) -> int:
		return (self.page - 1) * self.size

	@property
	def limit(self) -> int:
		return self.size


@dataclass(frozen=True, slots=True)
class ResultPage(Generic[R]):
	domain: Domain
	items: tuple[R, ...] = field(default_factory=tuple)

	def __len__(self) -> int:
		return len(self.items)


@dataclass(frozen=True, slots=True)
class SearchResult:
	posts: ResultPage[PostRecord]
	actors: ResultPage[ActorRecord]
