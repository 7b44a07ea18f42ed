"""Built-in feeds and per-actor saved feed lists."""

from .service import FeedsService, SavedFeedsService, reset_memory_state

__all__ = [
	"FeedsService",
	"SavedFeedsService",
	"reset_memory_state",
]
