"""Find parameters and their two interpretations.

``apply`` evaluates a :class:`FindParams` against documents held in memory;
``to_c8ql`` and friends render the same parameters as a C8QL query with bind
variables for the hosted store. Both understand the same operator set.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import QueryError

_MISSING = object()
# Upper bound used for LIMIT when only an offset was requested.
_NO_LIMIT = 2**53 - 1


class FindParams(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    query: Dict[str, Any] = Field(default_factory=dict)
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)
    sort: List[str] = Field(default_factory=list)
    search: Optional[str] = None
    search_fields: Optional[List[str]] = Field(default=None, alias="searchFields")

    @field_validator("sort", mode="before")
    @classmethod
    def _split_sort(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return v.replace(",", " ").split()
        return v

    @field_validator("query", mode="before")
    @classmethod
    def _none_query(cls, v: Any) -> Any:
        return {} if v is None else v


def coerce_params(params: Any) -> FindParams:
    if params is None:
        return FindParams()
    if isinstance(params, FindParams):
        return params
    try:
        return FindParams.model_validate(params)
    except ValidationError as ve:
        raise QueryError(f"Invalid find parameters: {ve.errors()}")


# ------- in-memory evaluation -------

def _lookup(doc: Mapping[str, Any], path: str) -> Any:
    cur: Any = doc
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def _safe(cmp: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def wrapped(a: Any, b: Any) -> bool:
        if a is None or b is None:
            return False
        try:
            return bool(cmp(a, b))
        except TypeError:
            return False
    return wrapped


def _in(a: Any, b: Any) -> bool:
    if not isinstance(b, (list, tuple, set)):
        raise QueryError("$in/$nin expect a list")
    return a in b


_OPS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": _safe(operator.gt),
    "$gte": _safe(operator.ge),
    "$lt": _safe(operator.lt),
    "$lte": _safe(operator.le),
    "$in": _in,
    "$nin": lambda a, b: not _in(a, b),
}

_C8QL_OPS = {
    "$eq": "==",
    "$ne": "!=",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
    "$in": "IN",
    "$nin": "NOT IN",
}


def _is_operator_doc(cond: Any) -> bool:
    return isinstance(cond, Mapping) and bool(cond) and all(str(k).startswith("$") for k in cond)


def _operators(cond: Mapping[str, Any]) -> Iterable[Tuple[str, Any]]:
    for op, arg in cond.items():
        if op not in _OPS:
            raise QueryError(f"Unsupported query operator {op}")
        yield op, arg


def matches(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    for path, cond in query.items():
        value = _lookup(doc, path)
        actual = None if value is _MISSING else value
        if _is_operator_doc(cond):
            if not all(_OPS[op](actual, arg) for op, arg in _operators(cond)):
                return False
        elif actual != cond:
            return False
    return True


def _text_match(doc: Mapping[str, Any], term: str, fields: Optional[List[str]]) -> bool:
    needle = term.lower()
    if fields:
        values = [_lookup(doc, f) for f in fields]
    else:
        values = list(doc.values())
    return any(isinstance(v, str) and needle in v.lower() for v in values)


def _type_order(v: Any) -> Tuple[int, Any]:
    """Total order across value types: null < bool < number < string < array < object."""
    if v is _MISSING or v is None:
        return (0, 0)
    if isinstance(v, bool):
        return (1, v)
    if isinstance(v, (int, float)):
        return (2, v)
    if isinstance(v, str):
        return (3, v)
    if isinstance(v, (list, tuple)):
        return (4, tuple(_type_order(i) for i in v))
    if isinstance(v, Mapping):
        return (5, tuple(sorted((str(k), _type_order(i)) for k, i in v.items())))
    return (6, repr(v))


def _sort_key(path: str) -> Callable[[Mapping[str, Any]], Tuple[int, Any]]:
    def key(doc: Mapping[str, Any]) -> Tuple[int, Any]:
        return _type_order(_lookup(doc, path))
    return key


def apply(docs: Iterable[Mapping[str, Any]], params: FindParams) -> List[Mapping[str, Any]]:
    out = [d for d in docs if matches(d, params.query)]
    if params.search:
        out = [d for d in out if _text_match(d, params.search, params.search_fields)]
    # Stable sorts applied last key first give a multi-key ordering.
    for field in reversed(params.sort):
        desc = field.startswith("-")
        out.sort(key=_sort_key(field.lstrip("-")), reverse=desc)
    if params.offset:
        out = out[params.offset:]
    if params.limit is not None:
        out = out[:params.limit]
    return out


# ------- C8QL rendering -------

class _Binds:
    def __init__(self, collection: str) -> None:
        self.vars: Dict[str, Any] = {"@coll": collection}
        self._n = 0

    def _name(self, prefix: str) -> str:
        name = f"{prefix}{self._n}"
        self._n += 1
        return name

    def attr(self, path: str) -> str:
        parts = []
        for part in path.split("."):
            if part == "_id":
                part = "_key"
            name = self._name("f")
            self.vars[name] = part
            parts.append(f"@{name}")
        return "d." + ".".join(parts)

    def value(self, v: Any) -> str:
        name = self._name("v")
        self.vars[name] = v
        return f"@{name}"


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filters(binds: _Binds, params: FindParams) -> List[str]:
    lines = []
    for path, cond in params.query.items():
        if _is_operator_doc(cond):
            for op, arg in _operators(cond):
                lines.append(f"FILTER {binds.attr(path)} {_C8QL_OPS[op]} {binds.value(arg)}")
        else:
            lines.append(f"FILTER {binds.attr(path)} == {binds.value(cond)}")
    if params.search:
        pattern = binds.value(_like_pattern(params.search))
        if params.search_fields:
            likes = " OR ".join(f"LIKE({binds.attr(f)}, {pattern}, true)" for f in params.search_fields)
            lines.append(f"FILTER ({likes})")
        else:
            lines.append(
                "FILTER LENGTH(FOR v IN VALUES(d) FILTER IS_STRING(v) "
                f"AND LIKE(v, {pattern}, true) LIMIT 1 RETURN 1) > 0"
            )
    return lines


def to_c8ql(collection: str, params: FindParams, count: bool = False) -> Tuple[str, Dict[str, Any]]:
    binds = _Binds(collection)
    lines = ["FOR d IN @@coll"]
    lines.extend(_filters(binds, params))
    if count:
        lines.append("COLLECT WITH COUNT INTO n")
        lines.append("RETURN n")
        return "\n".join(lines), binds.vars
    if params.sort:
        keys = []
        for field in params.sort:
            direction = "DESC" if field.startswith("-") else "ASC"
            keys.append(f"{binds.attr(field.lstrip('-'))} {direction}")
        lines.append("SORT " + ", ".join(keys))
    if params.limit is not None or params.offset:
        limit = _NO_LIMIT if params.limit is None else params.limit
        lines.append(f"LIMIT {binds.value(params.offset)}, {binds.value(limit)}")
    lines.append("RETURN d")
    return "\n".join(lines), binds.vars


def to_c8ql_update(collection: str, query: Mapping[str, Any], patch: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    binds = _Binds(collection)
    lines = ["FOR d IN @@coll"]
    lines.extend(_filters(binds, FindParams(query=dict(query))))
    lines.append(f"UPDATE d WITH {binds.value(dict(patch))} IN @@coll")
    lines.append("COLLECT WITH COUNT INTO n")
    lines.append("RETURN n")
    return "\n".join(lines), binds.vars


def to_c8ql_remove(collection: str, query: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    binds = _Binds(collection)
    lines = ["FOR d IN @@coll"]
    lines.extend(_filters(binds, FindParams(query=dict(query))))
    lines.append("REMOVE d IN @@coll")
    lines.append("COLLECT WITH COUNT INTO n")
    lines.append("RETURN n")
    return "\n".join(lines), binds.vars
