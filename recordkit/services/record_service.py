"""레코드 서비스 — 엔티티 하나에 대한 범용 CRUD 파사드.

Record Service — Generic CRUD facade over one mapped entity.
Composes the query translator, the pagination policy and the session
provider. Internal operations (``_get``, ``_find``, ...) do the work;
the public ones (``get``, ``find``, ...) add the ``multi`` checks and emit
the standard events.

Multi-step batch operations (patch or remove by query) read and write in
one session but are not wrapped in a single transaction: a failure between
the read and the write leaves the matched records untouched but the caller
sees the storage error. Events are emitted after the commit, so a failing
listener surfaces an error for a write that has already persisted.
"""

import inspect
import logging
from collections import defaultdict
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, Generic
from uuid import UUID

from sqlalchemy import ColumnElement, and_

from recordkit.repositories.base import ModelType, RecordRepository
from recordkit.schemas.service import Params, ServiceConfig
from recordkit.session import SessionProvider
from recordkit.utils.exceptions import (
    BadRequestError,
    MethodNotAllowedError,
    NotFoundError,
    StorageFailureError,
)
from recordkit.utils.pagination import Page, PageRequest, merge_pagination, resolve_pagination
from recordkit.utils.query import (
    StorageOptions,
    column_for,
    column_names,
    merge_options,
    parse_query,
    translate,
)
from recordkit.utils.records import merge_fields, select_fields

logger = logging.getLogger(__name__)

Id = int | str | UUID

# 표준 이벤트 — Standard events emitted after successful mutations
STANDARD_EVENTS: tuple[str, ...] = ("created", "updated", "patched", "removed")

# 일괄 선택 시 유지되는 예약 키 — Reserved keys kept when building a batch selector
_BATCH_KEPT_KEYS: tuple[str, ...] = ("$select", "$sort")


class RecordService(Generic[ModelType]):
    """엔티티 하나에 대한 레코드 서비스.

    Record service for one entity type. Stateless across calls apart from
    its ``ServiceConfig`` and registered event listeners; every operation
    opens its own session.

    Attributes:
        config: 서비스 구성 (Service configuration)
        entity: 관리 대상 엔티티 클래스 (Mapped entity class)
        name: 엔티티 이름, 오류 메시지에 사용 (Entity name used in error messages)
        sessions: 연산별 세션 제공자 (Per-operation session provider)
    """

    def __init__(self, config: ServiceConfig, sessions: SessionProvider | None = None) -> None:
        self.config: ServiceConfig = config
        self.entity: type[ModelType] = config.entity
        self.name: str = config.entity.__name__
        self.sessions: SessionProvider = sessions or SessionProvider()
        self._listeners: defaultdict[str, list[Callable[[Any], Any]]] = defaultdict(list)

        if config.id_field not in column_names(config.entity):
            raise ValueError(f"{self.name} has no column named '{config.id_field}'")
        clashing: set[str] = set(config.events) & set(STANDARD_EVENTS)
        if clashing:
            raise ValueError(f"Custom events clash with standard events: {', '.join(sorted(clashing))}")

    @property
    def id(self) -> str:
        return self.config.id_field

    @property
    def events(self) -> list[str]:
        return list(self.config.events)

    # -----------------------------------------------------------------------
    # 공개 연산 — Public operations
    # -----------------------------------------------------------------------
    async def get(self, id: Id, params: Params | None = None) -> Any:
        return await self._get(id, params)

    async def find(self, params: Params | None = None) -> list[Any] | Page:
        return await self._find(params)

    async def create(self, data: Mapping[str, Any] | list[Mapping[str, Any]], params: Params | None = None) -> Any:
        if isinstance(data, list) and not self.allows_multi("create"):
            raise MethodNotAllowedError("Can not create multiple entries")
        result = await self._create(data, params)
        await self._emit_each("created", result)
        return result

    async def update(self, id: Id | None, data: Mapping[str, Any], params: Params | None = None) -> Any:
        if id is None or isinstance(data, list):
            raise BadRequestError("You can not replace multiple instances. Did you mean 'patch'?")
        result = await self._update(id, data, params)
        await self._emit_each("updated", result)
        return result

    async def patch(self, id: Id | None, data: Mapping[str, Any], params: Params | None = None) -> Any:
        if id is None and not self.allows_multi("patch"):
            raise MethodNotAllowedError("Can not patch multiple entries")
        result = await self._patch(id, data, params)
        await self._emit_each("patched", result)
        return result

    async def remove(self, id: Id | None, params: Params | None = None) -> Any:
        if id is None and not self.allows_multi("remove"):
            raise MethodNotAllowedError("Can not remove multiple entries")
        result = await self._remove(id, params)
        await self._emit_each("removed", result)
        return result

    def allows_multi(self, method: str) -> bool:
        """다중 처리 허용 여부 — Whether batch calls are allowed for ``method``."""
        multi = self.config.multi
        if isinstance(multi, bool):
            return multi
        return method in multi

    # -----------------------------------------------------------------------
    # 내부 연산 — Internal operations
    # -----------------------------------------------------------------------
    async def _get(self, id: Id, params: Params | None = None) -> Any:
        """ID와 쿼리 조건으로 단일 레코드를 조회합니다.

        Retrieve one record by identity, ANDed with any ``params.query``
        constraints. Lookup failures of any kind are reported as not found.

        Raises:
            NotFoundError: 일치하는 레코드가 없거나 조회 실패 (No match or failed lookup)
            InvalidQueryError: 잘못된 쿼리 (Malformed query, raised before the lookup)
        """
        where, options = self._lookup(id, params)
        async with self.sessions.open(self.entity, self.id) as repository:
            record = await self._fetch_one(repository, where, options)
        return select_fields(record, options.fields, self.id)

    async def _find(self, params: Params | None = None) -> list[Any] | Page:
        """쿼리에 맞는 레코드를 조회합니다.

        Find records. Without params every record is returned unfiltered and
        unpaginated. Otherwise the result is a ``Page`` in count-only and
        paginated mode and a plain list in plain mode.
        """
        if params is None:
            async with self.sessions.open(self.entity, self.id) as repository:
                return await repository.find_all()

        where, options, request = self._prepare_find(params)
        async with self.sessions.open(self.entity, self.id) as repository:
            return await self._run_find(repository, where, options, request)

    async def _create(
        self,
        data: Mapping[str, Any] | list[Mapping[str, Any]],
        params: Params | None = None,
    ) -> Any:
        """새 레코드를 생성합니다.

        Create one record from a mapping, or one record per mapping from a
        list, persisted in one batch. The result has the input's cardinality.
        """
        fields: list[str] | None = self._selection(params)
        payloads: list[Mapping[str, Any]] = data if isinstance(data, list) else [data]
        records: list[ModelType] = [self._build(payload) for payload in payloads]

        async with self.sessions.open(self.entity, self.id) as repository:
            await repository.persist_batch(records)

        selected: list[Any] = [select_fields(record, fields, self.id) for record in records]
        return selected if isinstance(data, list) else selected[0]

    async def _update(self, id: Id, data: Mapping[str, Any], params: Params | None = None) -> Any:
        """기존 레코드에 데이터를 병합해 저장합니다.

        Fetch the record as ``_get`` does, merge ``data`` onto it and persist.

        Raises:
            NotFoundError: 일치하는 레코드가 없을 때 (No record matches id and query)
        """
        where, options = self._lookup(id, params)
        async with self.sessions.open(self.entity, self.id) as repository:
            record = await self._fetch_one(repository, where, replace(options, fields=None))
            merge_fields(record, data, self.id)
            await repository.persist_batch([record])
        return select_fields(record, options.fields, self.id)

    async def _patch(self, id: Id | None, data: Mapping[str, Any], params: Params | None = None) -> Any:
        """레코드를 부분 수정합니다.

        With an id this behaves like ``_update``. Without one, ``params.where``
        (or the query) selects every matching record, unpaginated; each is
        merged and all are persisted in one batch.

        Raises:
            NotFoundError: 선택 결과가 비었을 때 (Selector matched nothing)
        """
        if id is not None:
            return await self._update(id, data, params)

        where, options, request = self._prepare_find(self._batch_params(params))
        async with self.sessions.open(self.entity, self.id) as repository:
            records: list[ModelType] = await self._run_find(
                repository, where, replace(options, fields=None), request
            )
            if not records:
                raise NotFoundError("cannot patch query, returned empty result set")
            for record in records:
                merge_fields(record, data, self.id)
            await repository.persist_batch(records)

        return [select_fields(record, options.fields, self.id) for record in records]

    async def _remove(self, id: Id | None, params: Params | None = None) -> Any:
        """레코드를 삭제하고 삭제 직전 상태를 반환합니다.

        With an id, fetch as ``_get`` and delete that record. Without one,
        find every match (unpaginated) and delete them with one bulk delete
        filtered by their identities.

        Raises:
            NotFoundError: id로 찾을 수 없을 때 (No record matches id and query)
        """
        id_column = column_for(self.entity, self.id)

        if id is not None:
            where, options = self._lookup(id, params)
            async with self.sessions.open(self.entity, self.id) as repository:
                record = await self._fetch_one(repository, where, replace(options, fields=None))
                await repository.delete_by_filter(id_column == getattr(record, self.id))
            return select_fields(record, options.fields, self.id)

        where, options, request = self._prepare_find(self._batch_params(params))
        async with self.sessions.open(self.entity, self.id) as repository:
            records = await self._run_find(repository, where, replace(options, fields=None), request)
            if records:
                await repository.delete_by_filter(id_column.in_([getattr(r, self.id) for r in records]))
        return [select_fields(record, options.fields, self.id) for record in records]

    # -----------------------------------------------------------------------
    # 이벤트 — Events
    # -----------------------------------------------------------------------
    def on(self, event: str, listener: Callable[[Any], Any]) -> None:
        """이벤트 리스너를 등록합니다 — Register a sync or async listener."""
        self._check_event(event)
        self._listeners[event].append(listener)

    async def emit(self, event: str, data: Any) -> None:
        """이벤트를 발행합니다.

        Call every listener of ``event`` in registration order; coroutine
        results are awaited. Listener errors propagate to the caller.

        Events fire after the mutation has committed, so a listener error
        does not undo the write: the caller sees the error while the
        change stays persisted, and later listeners of the batch are
        skipped.
        """
        self._check_event(event)
        for listener in list(self._listeners[event]):
            result = listener(data)
            if inspect.isawaitable(result):
                await result

    async def _emit_each(self, event: str, result: Any) -> None:
        for item in result if isinstance(result, list) else [result]:
            await self.emit(event, item)

    def _check_event(self, event: str) -> None:
        if event not in STANDARD_EVENTS and event not in self.config.events:
            raise ValueError(f"Unknown event '{event}' for {self.name} service")

    # -----------------------------------------------------------------------
    # 헬퍼 — Helpers
    # -----------------------------------------------------------------------
    def _lookup(self, id: Id, params: Params | None) -> tuple[ColumnElement[bool], StorageOptions]:
        query: dict[str, Any] | None = params.query if params else None
        clause, translated = translate(parse_query(query), self.entity)
        populate: list[str] = list(params.populate or []) if params else []
        options: StorageOptions = merge_options(
            self.entity, StorageOptions(fields=translated.fields), {"populate": populate}
        )
        return and_(column_for(self.entity, self.id) == id, clause), options

    async def _fetch_one(
        self,
        repository: RecordRepository[ModelType],
        where: ColumnElement[bool],
        options: StorageOptions,
    ) -> ModelType:
        try:
            record: ModelType | None = await repository.find_one(where, options)
        except StorageFailureError as exc:
            logger.warning("%s lookup failed, reporting not found: %s", self.name, exc.__cause__ or exc)
            raise NotFoundError(f"{self.name} not found") from exc
        if record is None:
            raise NotFoundError(f"{self.name} not found.")
        return record

    def _prepare_find(self, params: Params) -> tuple[ColumnElement[bool], StorageOptions, PageRequest]:
        caller = parse_query(params.query)
        where, options = translate(caller, self.entity)

        overrides: dict[str, Any] = dict(params.options or {})
        if params.populate is not None:
            overrides.setdefault("populate", params.populate)
        options = merge_options(self.entity, options, overrides)

        paginate = merge_pagination(self.config.paginate, params.paginate)
        request: PageRequest = resolve_pagination(caller.limit, options.offset, paginate)
        options = replace(options, limit=request.limit, offset=request.skip)
        return where, options, request

    async def _run_find(
        self,
        repository: RecordRepository[ModelType],
        where: ColumnElement[bool],
        options: StorageOptions,
        request: PageRequest,
    ) -> list[Any] | Page:
        logger.debug("%s find in %s mode (limit=%s, skip=%s)", self.name, request.mode, request.limit, request.skip)

        if request.mode == "count_only":
            total: int = await repository.count(where)
            return Page(total=total, limit=0, skip=request.skip or 0, data=[])

        if request.mode == "paginated":
            records, total = await repository.find_and_count(where, options)
            data = [select_fields(record, options.fields, self.id) for record in records]
            return Page(total=total, limit=request.limit or 0, skip=request.skip or 0, data=data)

        records = await repository.find(where, options)
        return [select_fields(record, options.fields, self.id) for record in records]

    def _batch_params(self, params: Params | None) -> Params:
        params = params or Params()
        query: dict[str, Any] = dict(params.query or {})
        if params.where is not None:
            kept: dict[str, Any] = {k: v for k, v in query.items() if k in _BATCH_KEPT_KEYS}
            query = {**params.where, **kept}
        else:
            query.pop("$limit", None)
            query.pop("$skip", None)
        return params.model_copy(update={"query": query, "paginate": False})

    def _selection(self, params: Params | None) -> list[str] | None:
        _, options = translate(parse_query(params.query if params else None), self.entity)
        return options.fields

    def _build(self, payload: Mapping[str, Any]) -> ModelType:
        try:
            return self.entity(**payload)
        except TypeError as exc:
            raise BadRequestError(f"Invalid data for {self.name}: {exc}") from exc


def create_service(entity: type, sessions: SessionProvider | None = None, **options: Any) -> RecordService:
    """레코드 서비스를 생성합니다.

    Build a ``RecordService`` for ``entity``; keyword options are
    ``ServiceConfig`` fields (``id_field``, ``paginate``, ``events``, ``multi``).
    """
    return RecordService(ServiceConfig(entity=entity, **options), sessions)
