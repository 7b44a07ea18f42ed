"""Exceptions raised by saved feed operations."""

from __future__ import annotations


class FeedError(Exception):
	"""Base class for feed errors."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code


class FeedValidationError(FeedError):
	def __init__(self, detail: str, *, status_code: int = 422) -> None:
		super().__init__(detail, status_code=status_code)


class FeedConflictError(FeedError):
	def __init__(self, detail: str = "feed_exists", *, status_code: int = 409) -> None:
		super().__init__(detail, status_code=status_code)


class FeedNotFoundError(FeedError):
	def __init__(self, detail: str = "feed_not_found", *, status_code: int = 404) -> None:
		super().__init__(detail, status_code=status_code)
