"""Per-domain predicate accumulation and assembly."""

from __future__ import annotations

from typing import Iterator, Optional

from murmur.domain.search.models import Domain
from murmur.domain.search.predicates import And, Predicate


class CriteriaSet:
	"""Ordered predicate entries collected for one domain while compiling.

	Entries are single predicates or already-combined groups; the assembled
	tree is their conjunction.
	"""

	__slots__ = ("domain", "_entries")

	def __init__(self, domain: Domain) -> None:
		self.domain = domain
		self._entries: list[Predicate] = []

	def add(self, predicate: Predicate) -> None:
		self._entries.append(predicate)

	def __iter__(self) -> Iterator[Predicate]:
		return iter(self._entries)

	def __len__(self) -> int:
		return len(self._entries)

	def __bool__(self) -> bool:
		return bool(self._entries)

	def __repr__(self) -> str:  # pragma: no cover - debugging aid
		return f"CriteriaSet({self.domain.value}, {self._entries!r})"

	def assemble(self) -> Optional[Predicate]:
		return assemble(self._entries)


def assemble(entries: list[Predicate]) -> Optional[Predicate]:
	"""AND the entries together; nothing to apply when there are none."""

	if not entries:
		return None
	if len(entries) == 1:
		return entries[0]
	return And(tuple(entries))
