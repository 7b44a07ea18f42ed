"""Compile query terms into per-domain predicate trees."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, assert_never

from murmur.domain.search import operators
from murmur.domain.search.criteria import CriteriaSet
from murmur.domain.search.extensions import ExtensionBus
from murmur.domain.search.models import Domain, SearchContext
from murmur.domain.search.predicates import Contains, Predicate
from murmur.domain.search.terms import FilterTerm, Term, TextTerm, tokenize
from murmur.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledCriteria:
	"""Assembled predicate per domain; None means no filtering."""

	post: Optional[Predicate] = None
	actor: Optional[Predicate] = None


class PredicateCompiler:
	def __init__(self, bus: ExtensionBus) -> None:
		self._bus = bus

	def compile(self, query: str, context: SearchContext) -> CompiledCriteria:
		return self.compile_terms(tokenize(query), context)

	def compile_terms(self, terms: Iterable[Term], context: SearchContext) -> CompiledCriteria:
		post_criteria = CriteriaSet(Domain.POST)
		actor_criteria = CriteriaSet(Domain.ACTOR)
		for term in terms:
			self._compile_term(term, context, post_criteria, actor_criteria)
		return CompiledCriteria(post=post_criteria.assemble(), actor=actor_criteria.assemble())

	def _compile_term(
		self,
		term: Term,
		context: SearchContext,
		post_criteria: CriteriaSet,
		actor_criteria: CriteriaSet,
	) -> None:
		match term:
			case TextTerm(text=text):
				# Free text only ever searches post content.
				post_criteria.add(Contains("content", text))
				self._bus.compile_term(term, context, post_criteria, actor_criteria)
				obs_metrics.inc_search_term("text")
			case FilterTerm(key=key):
				operator = operators.resolve(key)
				if operator is not None:
					predicate = operator.rule(term, context)
					if predicate is not None:
						target = post_criteria if operator.domain is Domain.POST else actor_criteria
						target.add(predicate)
					obs_metrics.inc_search_term("builtin")
				elif self._bus.compile_term(term, context, post_criteria, actor_criteria):
					obs_metrics.inc_search_term("extension")
				else:
					_LOG.debug("search.compile.unresolved_filter", extra={"key": key})
					obs_metrics.inc_search_term("dropped")
			case _:
				assert_never(term)
