"""Exceptions raised by feed and search queries."""

from __future__ import annotations

from typing import Optional


class SearchError(Exception):
	"""Base class for search errors."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code


class QueryValidationError(SearchError):
	"""Raised when the inbound query parameters are unusable."""

	def __init__(self, detail: str, *, status_code: int = 422) -> None:
		super().__init__(detail, status_code=status_code)


class DataStoreUnavailable(SearchError):
	"""Raised when a domain fetch fails; the whole search fails with it."""

	def __init__(self, detail: str = "store_unavailable", *, domain: Optional[str] = None, status_code: int = 503) -> None:
		super().__init__(detail, status_code=status_code)
		self.domain = domain
