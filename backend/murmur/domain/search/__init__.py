"""Feed and search query compilation and execution."""

from .extensions import ExtensionBus, QueryBuilder, build_extension_bus
from .service import FeedQueryService
from .store import reset_memory_state, seed_memory_store
from .terms import tokenize

__all__ = [
	"ExtensionBus",
	"FeedQueryService",
	"QueryBuilder",
	"build_extension_bus",
	"reset_memory_state",
	"seed_memory_store",
	"tokenize",
]
