"""쿼리 번역 모듈 — 호출자 필터를 SQLAlchemy 조건과 옵션으로 변환.

Query translation module.
Parses the caller filter dialect (equality plus ``$in``, ``$nin``, ``$lt``,
``$lte``, ``$gt``, ``$gte``, ``$ne``, ``$or``, ``$and`` and the reserved
``$limit``, ``$skip``, ``$sort``, ``$select`` keys) into a small constraint
tree, then compiles that tree into a SQLAlchemy ``WHERE`` clause and
``StorageOptions`` for a given entity.

Usage:
    caller_query = parse_query({"age": {"$gte": 18}, "$sort": {"name": 1}})
    clause, options = translate(caller_query, Person)
"""

import operator
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Literal

from sqlalchemy import ColumnElement, and_, inspect, or_, true

from recordkit.utils.exceptions import InvalidQueryError

# 예약 키 — Reserved top-level keys, stripped from the filter
RESERVED_KEYS: tuple[str, ...] = ("$limit", "$skip", "$sort", "$select")
LOGICAL_KEYS: tuple[str, ...] = ("$or", "$and")

CompareOp = Literal["$lt", "$lte", "$gt", "$gte"]

_COMPARATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "$lt": operator.lt,
    "$lte": operator.le,
    "$gt": operator.gt,
    "$gte": operator.ge,
}


# ---------------------------------------------------------------------------
# 제약 조건 트리 — Constraint tree
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class NotIn:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Compare:
    field: str
    op: CompareOp
    value: Any


@dataclass(frozen=True)
class And:
    clauses: tuple["Constraint", ...] = ()


@dataclass(frozen=True)
class Or:
    clauses: tuple["Constraint", ...] = ()


Constraint = Equals | NotEquals | In | NotIn | Compare | And | Or


@dataclass(frozen=True)
class CallerQuery:
    """파싱된 호출자 쿼리.

    Parsed caller query: the filter tree plus the reserved keys.
    """

    where: And = And()
    sort: dict[str, int] = field(default_factory=dict)
    skip: int | None = None
    limit: int | None = None
    select: list[str] | None = None


@dataclass
class StorageOptions:
    """SQLAlchemy 조회 옵션.

    Find options understood by ``RecordRepository``.

    Attributes:
        order_by: 정렬 {필드: "asc" | "desc"} (Ordering per field)
        offset: 건너뛸 행 수 (Rows to skip)
        limit: 최대 행 수 (Maximum rows)
        fields: 로드할 컬럼 (Columns to load; identity is always loaded)
        populate: 즉시 로드할 관계 (Relationships to eager-load)
    """

    order_by: dict[str, str] = field(default_factory=dict)
    offset: int | None = None
    limit: int | None = None
    fields: list[str] | None = None
    populate: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# 파싱 — Parsing
# ---------------------------------------------------------------------------
def parse_query(raw: Mapping[str, Any] | None) -> CallerQuery:
    """호출자 필터를 파싱합니다.

    Parse a caller filter into a ``CallerQuery``.

    Raises:
        InvalidQueryError: 알 수 없는 연산자 또는 잘못된 예약 키 값
                           (Unknown operator or malformed reserved key value)
    """
    if raw is None:
        return CallerQuery()
    if not isinstance(raw, Mapping):
        raise InvalidQueryError("Query must be a mapping")

    where: And = _parse_conjunction({k: v for k, v in raw.items() if k not in RESERVED_KEYS})
    return CallerQuery(
        where=where,
        sort=_parse_sort(raw.get("$sort")),
        skip=_parse_count("$skip", raw.get("$skip")),
        limit=_parse_count("$limit", raw.get("$limit")),
        select=_parse_select(raw.get("$select")),
    )


def _parse_conjunction(mapping: Mapping[str, Any]) -> And:
    clauses: list[Constraint] = []
    for key, value in mapping.items():
        if key in LOGICAL_KEYS:
            clauses.append(_parse_logical(key, value))
        elif key.startswith("$"):
            raise InvalidQueryError(f"Invalid query parameter {key}")
        else:
            clauses.extend(_parse_field(key, value))
    return And(tuple(clauses))


def _parse_logical(key: str, value: Any) -> And | Or:
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, (list, tuple)) or not value:
        raise InvalidQueryError(f"{key} must be a non-empty list of queries")
    branches: list[And] = []
    for branch in value:
        if not isinstance(branch, Mapping):
            raise InvalidQueryError(f"{key} entries must be mappings")
        branches.append(_parse_conjunction(branch))
    return Or(tuple(branches)) if key == "$or" else And(tuple(branches))


def _parse_field(name: str, value: Any) -> list[Constraint]:
    if isinstance(value, Mapping):
        if not value:
            raise InvalidQueryError(f"Empty operator object for {name}")
        return [_parse_operator(name, op, operand) for op, operand in value.items()]
    if isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidQueryError(f"Use $in to match {name} against a list")
    return [Equals(name, value)]


def _parse_operator(name: str, op: str, operand: Any) -> Constraint:
    if op in ("$in", "$nin"):
        if isinstance(operand, (str, bytes)) or not isinstance(operand, (list, tuple, set, frozenset)):
            raise InvalidQueryError(f"{op} for {name} must be a list")
        values: tuple[Any, ...] = tuple(operand)
        return In(name, values) if op == "$in" else NotIn(name, values)
    if op in _COMPARATORS:
        return Compare(name, op, operand)
    if op == "$ne":
        return NotEquals(name, operand)
    raise InvalidQueryError(f"Invalid query parameter {op}")


def _parse_sort(value: Any) -> dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidQueryError("$sort must be a mapping of field to 1 or -1")

    sort: dict[str, int] = {}
    for name, direction in value.items():
        if isinstance(direction, str) and direction.strip() in ("1", "-1"):
            direction = int(direction)
        if isinstance(direction, bool) or direction not in (1, -1):
            raise InvalidQueryError(f"Invalid $sort direction for {name}: {direction!r}")
        sort[name] = direction
    return sort


def _parse_count(key: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQueryError(f"{key} must be a non-negative integer")
    return value


def _parse_select(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise InvalidQueryError("$select must be a list of field names")
    if not all(isinstance(name, str) for name in value):
        raise InvalidQueryError("$select must be a list of field names")
    return list(value)


# ---------------------------------------------------------------------------
# 번역 — Translation
# ---------------------------------------------------------------------------
def translate(query: CallerQuery, entity: type) -> tuple[ColumnElement[bool], StorageOptions]:
    """파싱된 쿼리를 SQLAlchemy 조건과 조회 옵션으로 변환합니다.

    Translate a parsed query into a ``WHERE`` clause and find options.
    ``$sort`` becomes ``order_by``, ``$skip`` becomes ``offset`` and
    ``$select`` becomes ``fields``; ``$limit`` is left to the pagination
    policy.

    Args:
        query: 파싱된 호출자 쿼리 (Parsed caller query)
        entity: 대상 엔티티 클래스 (Mapped entity class)

    Returns:
        tuple[ColumnElement[bool], StorageOptions]: (조건, 옵션) (Clause and options)

    Raises:
        InvalidQueryError: 엔티티에 없는 필드 (Unknown field name)
    """
    clause: ColumnElement[bool] = compile_constraint(entity, query.where)
    options = StorageOptions(
        order_by={name: "asc" if direction == 1 else "desc" for name, direction in query.sort.items()},
        offset=query.skip,
        fields=query.select,
    )
    _check_options(entity, options)
    return clause, options


def compile_constraint(entity: type, constraint: Constraint) -> ColumnElement[bool]:
    """제약 조건 트리를 SQLAlchemy 표현식으로 컴파일합니다.

    Compile a constraint tree into a SQLAlchemy boolean expression.
    ``None`` compares as ``IS NULL`` / ``IS NOT NULL``.
    """
    if isinstance(constraint, And):
        parts = [compile_constraint(entity, c) for c in constraint.clauses]
        return and_(*parts) if parts else true()
    if isinstance(constraint, Or):
        return or_(*[compile_constraint(entity, c) for c in constraint.clauses])
    if isinstance(constraint, Equals):
        return column_for(entity, constraint.field) == constraint.value
    if isinstance(constraint, NotEquals):
        return column_for(entity, constraint.field) != constraint.value
    if isinstance(constraint, In):
        return column_for(entity, constraint.field).in_(constraint.values)
    if isinstance(constraint, NotIn):
        return column_for(entity, constraint.field).not_in(constraint.values)
    if isinstance(constraint, Compare):
        return _COMPARATORS[constraint.op](column_for(entity, constraint.field), constraint.value)
    raise TypeError(f"Unsupported constraint: {constraint!r}")


def column_for(entity: type, name: str) -> Any:
    """엔티티의 컬럼 속성을 반환합니다 — Return the mapped column attribute for ``name``."""
    if name not in column_names(entity):
        raise InvalidQueryError(f"Unknown field '{name}' for {entity.__name__}")
    return getattr(entity, name)


def column_names(entity: type) -> set[str]:
    return {attr.key for attr in inspect(entity).column_attrs}


def merge_options(entity: type, options: StorageOptions, overrides: Mapping[str, Any] | None) -> StorageOptions:
    """호출자가 직접 준 저장소 옵션을 번역된 옵션 위에 병합합니다.

    Merge caller storage options over translated ones; the caller wins on
    conflicting keys.

    Raises:
        InvalidQueryError: 알 수 없는 옵션 키 또는 잘못된 값 (Unknown option key or bad value)
    """
    if not overrides:
        return options

    known: set[str] = {f.name for f in fields(StorageOptions)}
    unknown: set[str] = set(overrides) - known
    if unknown:
        raise InvalidQueryError(f"Unknown storage options: {', '.join(sorted(unknown))}")

    merged: StorageOptions = replace(options, **dict(overrides))
    if not isinstance(merged.order_by, Mapping):
        raise InvalidQueryError("order_by must be a mapping of field to 'asc' or 'desc'")
    merged.order_by = {name: str(direction).lower() for name, direction in merged.order_by.items()}
    merged.populate = list(merged.populate or [])
    _check_options(entity, merged)
    return merged


def _check_options(entity: type, options: StorageOptions) -> None:
    columns: set[str] = column_names(entity)
    for name, direction in options.order_by.items():
        if name not in columns:
            raise InvalidQueryError(f"Unknown sort field '{name}' for {entity.__name__}")
        if direction not in ("asc", "desc"):
            raise InvalidQueryError(f"Invalid sort direction for {name}: {direction!r}")
    for name in options.fields or ():
        if name not in columns:
            raise InvalidQueryError(f"Unknown field '{name}' for {entity.__name__}")
    relationships: set[str] = set(inspect(entity).relationships.keys())
    for name in options.populate:
        if name not in relationships:
            raise InvalidQueryError(f"Unknown relation '{name}' for {entity.__name__}")
