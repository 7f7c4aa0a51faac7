"""Translate list-endpoint query strings into scoped SQLAlchemy queries.

Recognised parameters are ``select``, ``sort``, ``page`` and ``limit``; every
other key is a field filter, optionally suffixed with one of the comparison
operators ``[gt]``, ``[gte]``, ``[lt]``, ``[lte]`` or ``[in]``. Field names
are the camelCase names used in responses; foreign keys are addressed by the
name of the related entity (``course`` for ``course_id``).
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from pydantic.alias_generators import to_camel
from sqlalchemy import Boolean, Date, DateTime, Enum as SQLEnum, Float, Integer
from sqlalchemy.orm import Query

from .errors import Invalid
from .timeutil import ensure_utc, to_day

logger = logging.getLogger(__name__)

RESERVED = ("select", "sort", "page", "limit")
LIST_KEYS = ("select", "sort")
OPERATORS = ("gt", "gte", "lt", "lte", "in")
DEFAULT_LIMIT = 25
HIDDEN_COLUMNS = {"password_hash"}

_KEY_RE = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[A-Za-z]+)\])?$")


@dataclass
class ListQuery:
    """A parsed list request."""

    filters: List[Tuple[str, str, Any]] = field(default_factory=list)
    select: Optional[List[str]] = None
    sort: Optional[List[str]] = None
    page: int = 1
    limit: int = DEFAULT_LIMIT


def _field_map(model: Type) -> Dict[str, Any]:
    """Public field name -> column for ``model``."""
    fields = {}
    for column in model.__table__.columns:
        if column.key in HIDDEN_COLUMNS:
            continue
        attr = getattr(model, column.key)
        fields[to_camel(column.key)] = attr
        fields[column.key] = attr
        if column.key.endswith("_id") and column.key != "id":
            fields[to_camel(column.key[:-3])] = attr
    return fields


def _parse_datetime(raw: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))


def _coercer(column) -> Callable[[str], Any]:
    col_type = column.type
    if isinstance(col_type, SQLEnum) and col_type.enum_class is not None:
        enum_class = col_type.enum_class
        return lambda raw: enum_class(raw)
    if isinstance(col_type, Boolean):
        def to_bool(raw: str) -> bool:
            lowered = raw.strip().lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            raise ValueError(raw)
        return to_bool
    if isinstance(col_type, Integer):
        return int
    if isinstance(col_type, Float):
        return float
    if isinstance(col_type, DateTime):
        return _parse_datetime
    if isinstance(col_type, Date):
        return to_day
    return str


class QueryCompiler:
    """Compile caller parameters into a filtered, sorted, paginated query."""

    def __init__(self, model: Type, default_sort: str = "-createdAt", strict: bool = False):
        self.model = model
        self.default_sort = default_sort
        self.strict = strict
        self.fields = _field_map(model)

    def _reject_or_ignore(self, field_name: str, reason: str):
        if self.strict:
            raise Invalid(field_name, reason)
        logger.debug(f"Ignoring query parameter {field_name}: {reason}")

    def parse(self, params: Mapping[str, str]) -> ListQuery:
        parsed = ListQuery()
        for key, raw in params.items():
            if key in RESERVED:
                continue
            match = _KEY_RE.match(key)
            if not match:
                self._reject_or_ignore(key, "malformed filter")
                continue
            name, op = match.group("field"), match.group("op") or "eq"
            if name not in self.fields:
                self._reject_or_ignore(name, "unknown field")
                continue
            if op != "eq" and op not in OPERATORS:
                self._reject_or_ignore(key, f"unsupported operator {op}")
                continue
            parsed.filters.append((name, op, self._coerce(name, op, raw)))

        if params.get("select"):
            parsed.select = [f.strip() for f in params["select"].split(",") if f.strip()]
        sort = params.get("sort") or self.default_sort
        parsed.sort = [s.strip() for s in sort.split(",") if s.strip()]
        parsed.page = self._positive_int("page", params.get("page"), 1)
        parsed.limit = self._positive_int("limit", params.get("limit"), DEFAULT_LIMIT)
        return parsed

    def _positive_int(self, name: str, raw: Optional[str], default: int) -> int:
        if raw in (None, ""):
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise Invalid(name, "must be an integer")
        if value < 1:
            raise Invalid(name, "must be at least 1")
        return value

    def _coerce(self, name: str, op: str, raw: str):
        convert = _coercer(self.fields[name])
        try:
            if op == "in":
                return [convert(part) for part in str(raw).split(",") if part != ""]
            return convert(raw)
        except ValueError:
            raise Invalid(name, f"invalid value {raw!r}")

    def _condition(self, name: str, op: str, value):
        column = self.fields[name]
        if op == "eq":
            return column.is_(None) if value is None else column == value
        if op == "in":
            return column.in_(value)
        return {
            "gt": column > value,
            "gte": column >= value,
            "lt": column < value,
            "lte": column <= value,
        }[op]

    def _order_by(self, sort: List[str]):
        clauses = []
        for key in sort:
            descending = key.startswith("-")
            name = key.lstrip("-+")
            if name not in self.fields:
                self._reject_or_ignore(name, "unknown sort field")
                continue
            column = self.fields[name]
            clauses.append(column.desc() if descending else column.asc())
        # Stable tie-break so pagination never repeats or skips rows
        clauses.append(self.model.id.asc())
        return clauses

    def compile(self, base: Query, parsed: ListQuery) -> Query:
        query = base
        for name, op, value in parsed.filters:
            query = query.filter(self._condition(name, op, value))
        return query

    def execute(self, base: Query, params: Mapping[str, str], serialize: Callable[[Any], dict]) -> dict:
        """Run the list query and build ``{count, pagination, data}``."""
        parsed = self.parse(params)
        query = self.compile(base, parsed)
        total = query.order_by(None).count()
        start = (parsed.page - 1) * parsed.limit
        rows = query.order_by(*self._order_by(parsed.sort)).offset(start).limit(parsed.limit).all()

        data = [project(serialize(row), parsed.select) for row in rows]
        pagination = {}
        if parsed.page * parsed.limit < total:
            pagination["next"] = {"page": parsed.page + 1, "limit": parsed.limit}
        if start > 0:
            pagination["prev"] = {"page": parsed.page - 1, "limit": parsed.limit}
        return {"success": True, "count": len(data), "total": total, "pagination": pagination, "data": data}


def project(item: dict, select: Optional[List[str]]) -> dict:
    """Keep only the selected keys (plus ``id``)."""
    if not select:
        return item
    keep = set(select) | {"id"}
    return {k: v for k, v in item.items() if k in keep}


def query_params(request) -> Dict[str, str]:
    """Flatten a Starlette request's query string.

    Repeated keys join with commas where the value is a list (``[in]``
    filters, ``select`` and ``sort``); otherwise the last value wins.
    """
    params: Dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        if key in params and (key.endswith("[in]") or key in LIST_KEYS):
            params[key] = f"{params[key]},{value}"
        else:
            params[key] = value
    return params
