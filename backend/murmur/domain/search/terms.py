"""Split raw query strings into terms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class TextTerm:
	text: str


@dataclass(frozen=True, slots=True)
class FilterTerm:
	"""A ``key:value1,value2`` term; values are left unparsed."""

	key: str
	raw_values: tuple[str, ...]

	@property
	def first_value(self) -> str | None:
		return self.raw_values[0] if self.raw_values else None


Term = Union[TextTerm, FilterTerm]


def tokenize(query: str) -> tuple[Term, ...]:
	"""Return the whitespace-delimited terms of ``query`` in order.

	Never raises: ``key:`` yields a FilterTerm with no values, and there is no
	escaping, so a value can never contain a comma.
	"""

	query = (query or "").strip()
	if not query:
		return ()
	terms: list[Term] = []
	for chunk in query.split():
		if ":" in chunk:
			key, _, remainder = chunk.partition(":")
			values = tuple(value for value in remainder.split(",") if value)
			terms.append(FilterTerm(key=key, raw_values=values))
		else:
			terms.append(TextTerm(text=chunk))
	return tuple(terms)
