"""Extension points for the feed/search query compiler.

Other modules take part in compilation by registering handlers on an
:class:`ExtensionBus` at startup:

- build-query handlers receive the post and actor :class:`QueryBuilder` once
  per call, before any predicate is applied, and may add joins;
- compile-term handlers receive every free-text term and every filter term
  without a built-in operator, and may append predicates to either domain's
  criteria. They return True when they recognised the term.

Handlers run synchronously in registration order. The bus is assembled once
by :func:`build_extension_bus` and is not modified while serving requests.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from murmur.domain.search.criteria import CriteriaSet
from murmur.domain.search.models import Domain, Join, SearchContext
from murmur.domain.search.operators import AUTHOR_JOIN, SUBSCRIPTION_JOIN
from murmur.domain.search.terms import Term

_LOG = logging.getLogger(__name__)


class QueryBuilder:
	"""Joins requested for one domain's query."""

	__slots__ = ("domain", "_joins")

	def __init__(self, domain: Domain) -> None:
		self.domain = domain
		self._joins: dict[str, Join] = {}

	def add_join(self, join: Join) -> None:
		"""Register ``join``; a second join under the same alias is ignored."""

		existing = self._joins.get(join.alias)
		if existing is None:
			self._joins[join.alias] = join
		elif existing != join:
			_LOG.warning(
				"search.extensions.join_conflict",
				extra={"domain": self.domain.value, "alias": join.alias},
			)

	@property
	def joins(self) -> tuple[Join, ...]:
		return tuple(self._joins.values())

	@property
	def aliases(self) -> frozenset[str]:
		return frozenset(self._joins)


BuildQueryHandler = Callable[[QueryBuilder, QueryBuilder], None]
CompileTermHandler = Callable[[Term, SearchContext, CriteriaSet, CriteriaSet], bool]


@dataclass(frozen=True, slots=True)
class _Registration:
	name: str
	handler: Callable


class ExtensionBus:
	"""Ordered registry of build-query and compile-term handlers."""

	def __init__(self) -> None:
		self._build_query: list[_Registration] = []
		self._compile_term: list[_Registration] = []

	def on_build_query(self, handler: BuildQueryHandler, *, name: Optional[str] = None) -> BuildQueryHandler:
		self._build_query.append(_Registration(name or _handler_name(handler), handler))
		return handler

	def on_compile_term(self, handler: CompileTermHandler, *, name: Optional[str] = None) -> CompileTermHandler:
		self._compile_term.append(_Registration(name or _handler_name(handler), handler))
		return handler

	@property
	def handler_names(self) -> tuple[str, ...]:
		return tuple(reg.name for reg in (*self._build_query, *self._compile_term))

	def build_query(self, post_builder: QueryBuilder, actor_builder: QueryBuilder) -> None:
		for registration in self._build_query:
			registration.handler(post_builder, actor_builder)

	def compile_term(
		self,
		term: Term,
		context: SearchContext,
		post_criteria: CriteriaSet,
		actor_criteria: CriteriaSet,
	) -> bool:
		"""Offer ``term`` to every handler; True if any of them recognised it."""

		recognised = False
		for registration in self._compile_term:
			if registration.handler(term, context, post_criteria, actor_criteria):
				recognised = True
		return recognised


def _handler_name(handler: Callable) -> str:
	module = getattr(handler, "__module__", None) or "?"
	qualname = getattr(handler, "__qualname__", None) or repr(handler)
	return f"{module}.{qualname}"


def add_core_joins(post_builder: QueryBuilder, actor_builder: QueryBuilder) -> None:
	"""Joins the built-in ``note-from`` operator relies on."""

	post_builder.add_join(SUBSCRIPTION_JOIN)
	post_builder.add_join(AUTHOR_JOIN)


def register_core(bus: ExtensionBus) -> None:
	bus.on_build_query(add_core_joins, name="core.joins")


def _load_registrar(path: str) -> Callable[[ExtensionBus], None]:
	module_name, _, attr = path.partition(":")
	if not attr:
		module_name, _, attr = path.rpartition(".")
	if not module_name or not attr:
		raise ValueError(f"invalid search extension path: {path!r}")
	module = importlib.import_module(module_name)
	registrar = getattr(module, attr)
	if not callable(registrar):
		raise TypeError(f"search extension {path!r} is not callable")
	return registrar


def build_extension_bus(extensions: Iterable[str] = ()) -> ExtensionBus:
	"""Core handlers first, then each configured ``module:register`` in order."""

	bus = ExtensionBus()
	register_core(bus)
	for path in extensions:
		registrar = _load_registrar(path)
		registrar(bus)
		_LOG.info("search.extensions.registered", extra={"extension": path})
	return bus


__all__ = [
	"BuildQueryHandler",
	"CompileTermHandler",
	"ExtensionBus",
	"QueryBuilder",
	"add_core_joins",
	"build_extension_bus",
	"register_core",
]
