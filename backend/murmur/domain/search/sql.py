"""Render predicate trees and page windows as PostgreSQL for asyncpg."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Iterable, Optional, assert_never

from murmur.domain.search.models import Domain, Join, OrderColumn, PageWindow
from murmur.domain.search.predicates import And, Contains, Eq, In, NotEq, Or, Predicate

TABLES: dict[Domain, str] = {
	Domain.POST: "post",
	Domain.ACTOR: "actor",
}

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def _identifier(name: str) -> str:
	if not _IDENTIFIER.match(name):
		raise ValueError(f"invalid_identifier:{name}")
	return name


def column(field: str, *, base_alias: str) -> str:
	"""Qualify ``field`` with the base alias unless it names a joined alias."""

	alias, _, name = field.rpartition(".")
	return f"{_identifier(alias or base_alias)}.{_identifier(name)}"


def _bind(params: list[Any], value: Any) -> str:
	if isinstance(value, Enum):
		value = value.value
	elif isinstance(value, (list, tuple)):
		value = [item.value if isinstance(item, Enum) else item for item in value]
	params.append(value)
	return f"${len(params)}"


def _escape_like(text: str) -> str:
	return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def render_predicate(predicate: Predicate, params: list[Any], *, base_alias: str) -> str:
	"""Append bind values to ``params`` and return the SQL boolean expression."""

	match predicate:
		case Eq(field=field, value=None):
			return f"{column(field, base_alias=base_alias)} IS NULL"
		case Eq(field=field, value=value):
			return f"{column(field, base_alias=base_alias)} = {_bind(params, value)}"
		case NotEq(field=field, value=None):
			return f"{column(field, base_alias=base_alias)} IS NOT NULL"
		case NotEq(field=field, value=value):
			return f"{column(field, base_alias=base_alias)} <> {_bind(params, value)}"
		case Contains(field=field, text=text):
			return f"{column(field, base_alias=base_alias)} LIKE {_bind(params, f'%{_escape_like(text)}%')}"
		case In(field=field, values=values):
			if not values:
				return "FALSE"
			return f"{column(field, base_alias=base_alias)} = ANY({_bind(params, list(values))})"
		case And(items=items):
			if not items:
				return "TRUE"
			return "(" + " AND ".join(render_predicate(item, params, base_alias=base_alias) for item in items) + ")"
		case Or(items=items):
			if not items:
				return "FALSE"
			return "(" + " OR ".join(render_predicate(item, params, base_alias=base_alias) for item in items) + ")"
		case _:
			assert_never(predicate)


def render_join(join: Join, *, base_alias: str) -> str:
	alias = _identifier(join.alias)
	return (
		f"LEFT JOIN {_identifier(join.relation)} AS {alias} "
		f"ON {base_alias}.{_identifier(join.local_field)} = {alias}.{_identifier(join.foreign_field)}"
	)


def build_select(
	domain: Domain,
	*,
	predicate: Optional[Predicate],
	joins: Iterable[Join],
	order: Iterable[OrderColumn],
	window: PageWindow,
) -> tuple[str, list[Any]]:
	"""Return ``(sql, params)`` fetching one ordered page of ``domain``.

	``DISTINCT ON`` the ordering columns keeps one row per record when a join
	fans out (one post, many subscribers).
	"""

	order = tuple(order)
	table = TABLES[domain]
	base_alias = table
	params: list[Any] = []
	order_columns = [f"{base_alias}.{_identifier(col.column)}" for col in order]
	order_by = ", ".join(
		f"{expr} {'DESC' if col.descending else 'ASC'}" for expr, col in zip(order_columns, order)
	)
	parts = [
		f"SELECT DISTINCT ON ({', '.join(order_columns)}) {base_alias}.*",
		f"FROM {table} AS {base_alias}",
	]
	parts.extend(render_join(join, base_alias=base_alias) for join in joins)
	if predicate is not None:
		parts.append(f"WHERE {render_predicate(predicate, params, base_alias=base_alias)}")
	parts.append(f"ORDER BY {order_by}")
	parts.append(f"LIMIT {_bind(params, window.limit)} OFFSET {_bind(params, window.offset)}")
	return "\n".join(parts), params
