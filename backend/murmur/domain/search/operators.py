"""Built-in filter operators.

Keys in the ``note-``/``notes-`` namespace compile against posts, keys in the
``actor-``/``actors-`` namespace against actors. Anything else, and any
namespaced key without a rule here, is left to search extensions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from murmur.domain.search.models import ActorKind, Domain, Join, SearchContext
from murmur.domain.search.predicates import And, Eq, In, NotEq, Predicate
from murmur.domain.search.terms import FilterTerm

# Joins the post query needs before ``note-from`` predicates can reference them.
SUBSCRIPTION_JOIN = Join(alias="subscription", relation="subscription", local_field="actor_id", foreign_field="subscribed")
AUTHOR_JOIN = Join(alias="author", relation="actor", local_field="actor_id", foreign_field="id")

ACTOR_KIND_SYNONYMS: Mapping[ActorKind, frozenset[str]] = MappingProxyType(
	{
		ActorKind.PERSON: frozenset({"person", "people"}),
		ActorKind.GROUP: frozenset({"group", "groups"}),
		ActorKind.ORGANIZATION: frozenset(
			{"org", "orgs", "organization", "organizations", "organisation", "organisations"}
		),
		ActorKind.BUSINESS: frozenset({"business", "businesses"}),
		ActorKind.BOT: frozenset({"bot", "bots"}),
	}
)
ANY_ACTOR = frozenset({"actor", "actors"})
TEXT_NOTE_TYPES = frozenset({"text", "words"})

_TRUE_VALUES = frozenset({"1", "true", "on", "yes"})
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

Rule = Callable[[FilterTerm, SearchContext], Optional[Predicate]]


@dataclass(frozen=True, slots=True)
class Operator:
	key: str
	domain: Domain
	rule: Rule


def parse_bool(value: str) -> bool:
	return value.strip().lower() in _TRUE_VALUES


def parse_int(value: str) -> Optional[int]:
	match = _LEADING_INT.match(value)
	if match is None:
		return None
	return int(match.group(1))


def actor_kind(name: str) -> Optional[ActorKind]:
	"""Resolve a kind name or any of its synonyms."""

	lowered = name.lower()
	for kind, synonyms in ACTOR_KIND_SYNONYMS.items():
		if lowered in synonyms:
			return kind
	return None


def _note_local(term: FilterTerm, context: SearchContext) -> Optional[Predicate]:
	value = term.first_value
	if value is None:
		return None
	return Eq("is_local", parse_bool(value))


def _note_types(term: FilterTerm, context: SearchContext) -> Optional[Predicate]:
	if not term.raw_values:
		return None
	if TEXT_NOTE_TYPES.intersection(term.raw_values):
		return NotEq("content", None)
	return Eq("content", None)


def _note_conversation(term: FilterTerm, context: SearchContext) -> Optional[Predicate]:
	value = term.first_value
	if value is None:
		return None
	conversation_id = parse_int(value)
	if conversation_id is None:
		return None
	return Eq("conversation_id", conversation_id)


def _note_from(term: FilterTerm, context: SearchContext) -> Optional[Predicate]:
	if context.actor is None:
		return None
	subscribed_expr = Eq(f"{SUBSCRIPTION_JOIN.alias}.subscriber", context.actor.id)
	if term.raw_values == ("subscribed",):
		return subscribed_expr

	# None once cleared by an actor/actors value; a later kind starts a new list.
	kinds: Optional[list[ActorKind]] = []
	for value in term.raw_values:
		if not value.startswith("subscribed-"):
			continue
		name = value[len("subscribed-"):]
		if name in ANY_ACTOR:
			kinds = None
			continue
		kind = actor_kind(name)
		if kind is None:
			continue
		if kinds is None:
			kinds = []
		if kind not in kinds:
			kinds.append(kind)

	if kinds is None:
		return subscribed_expr
	if kinds:
		return And((subscribed_expr, In(f"{AUTHOR_JOIN.alias}.type", tuple(kinds))))
	return None


def _actor_types(term: FilterTerm, context: SearchContext) -> Optional[Predicate]:
	# Naming one kind excludes every other kind; a second restriction on
	# ``type`` from elsewhere can therefore make the whole tree unsatisfiable.
	if not term.raw_values:
		return None
	requested = {value.lower() for value in term.raw_values}
	predicates: list[Predicate] = []
	for kind, synonyms in ACTOR_KIND_SYNONYMS.items():
		if requested & synonyms:
			predicates.append(Eq("type", kind))
		else:
			predicates.append(NotEq("type", kind))
	return And(tuple(predicates))


def _build_table() -> Mapping[Domain, Mapping[str, Operator]]:
	post_rules: dict[str, Rule] = {
		"note-local": _note_local,
		"note-types": _note_types,
		"notes-include": _note_types,
		"note-filter": _note_types,
		"note-conversation": _note_conversation,
		"note-from": _note_from,
		"notes-from": _note_from,
	}
	actor_rules: dict[str, Rule] = {
		"actor-types": _actor_types,
		"actors-include": _actor_types,
		"actor-filter": _actor_types,
		"actor-local": _actor_types,
	}
	return MappingProxyType(
		{
			Domain.POST: MappingProxyType({key: Operator(key, Domain.POST, rule) for key, rule in post_rules.items()}),
			Domain.ACTOR: MappingProxyType({key: Operator(key, Domain.ACTOR, rule) for key, rule in actor_rules.items()}),
		}
	)


OPERATORS: Mapping[Domain, Mapping[str, Operator]] = _build_table()

_NAMESPACES: tuple[tuple[str, Domain], ...] = (
	("note-", Domain.POST),
	("notes-", Domain.POST),
	("actor-", Domain.ACTOR),
	("actors-", Domain.ACTOR),
)


def namespace_of(key: str) -> Optional[Domain]:
	for prefix, domain in _NAMESPACES:
		if key.startswith(prefix):
			return domain
	return None


def resolve(key: str) -> Optional[Operator]:
	"""Return the built-in operator for ``key``, if its namespace defines one."""

	domain = namespace_of(key)
	if domain is None:
		return None
	return OPERATORS[domain].get(key)
