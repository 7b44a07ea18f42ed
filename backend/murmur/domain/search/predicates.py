"""Typed boolean predicates compiled from query terms.

The variants form a closed union; every consumer (SQL rendering, in-memory
evaluation) matches on all six of them and fails loudly on anything else.
Fields name a column of the queried domain (``content``) or of a joined
relation (``subscription.subscriber``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union, assert_never


@dataclass(frozen=True, slots=True)
class Eq:
	field: str
	value: Any


@dataclass(frozen=True, slots=True)
class NotEq:
	field: str
	value: Any


@dataclass(frozen=True, slots=True)
class Contains:
	field: str
	text: str


@dataclass(frozen=True, slots=True)
class In:
	field: str
	values: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class And:
	items: tuple["Predicate", ...]


@dataclass(frozen=True, slots=True)
class Or:
	items: tuple["Predicate", ...]


Predicate = Union[Eq, NotEq, Contains, In, And, Or]


def fields_of(predicate: Predicate) -> set[str]:
	"""Every field referenced anywhere in the tree."""

	match predicate:
		case Eq(field=name) | NotEq(field=name) | Contains(field=name) | In(field=name):
			return {name}
		case And(items=items) | Or(items=items):
			found: set[str] = set()
			for item in items:
				found |= fields_of(item)
			return found
		case _:
			assert_never(predicate)
