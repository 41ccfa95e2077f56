"""기본 레코드 레포지토리 — 세션 하나에 묶인 저장소 기본 연산.

Base record repository — Storage primitives bound to one session.
A repository instance wraps a single ``AsyncSession`` (and therefore a single
identity map) and lives only as long as one service operation.

Usage:
    async with session_provider.open(Book) as repository:
        books = await repository.find(Book.title == "test", StorageOptions(limit=10))
"""

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload

from recordkit.utils.exceptions import StorageFailureError
from recordkit.utils.query import StorageOptions

logger = logging.getLogger(__name__)

# 제네릭 타입 변수 — SQLAlchemy 엔티티를 나타냄
# Generic type variable representing a mapped entity
ModelType = TypeVar("ModelType")


class RecordRepository(Generic[ModelType]):
    """제네릭 레코드 레포지토리.

    Generic repository over one session.
    SQLAlchemy errors are wrapped into ``StorageFailureError`` with the
    original error chained.

    Attributes:
        session: 이 연산 전용 비동기 세션 (Async session owned by this operation)
        model: 관리 대상 엔티티 클래스 (Mapped entity class)
        id_field: 식별자 필드 이름 (Identity field name)
    """

    def __init__(self, session: AsyncSession, model: type[ModelType], id_field: str = "id") -> None:
        self.session: AsyncSession = session
        self.model: type[ModelType] = model
        self.id_field: str = id_field

    async def find_one(self, where: ColumnElement[bool], options: StorageOptions | None = None) -> ModelType | None:
        """조건에 맞는 단일 레코드를 조회합니다.

        Retrieve the single record matching ``where``.

        Returns:
            ModelType | None: 조회된 레코드 또는 None (Found record or None)

        Raises:
            StorageFailureError: 두 개 이상 일치하거나 저장소 오류
                                 (More than one match, or an engine error)
        """
        query: Select = self._apply_options(select(self.model).where(where), options, ordered=False)
        try:
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"{self.model.__name__} lookup failed") from exc

    async def find(self, where: ColumnElement[bool], options: StorageOptions | None = None) -> list[ModelType]:
        """조건에 맞는 레코드 목록을 조회합니다.

        Retrieve all records matching ``where``, honouring order, offset,
        limit, projection and eager loading.
        """
        query: Select = self._apply_options(select(self.model).where(where), options)
        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"{self.model.__name__} find failed") from exc

    async def find_all(self) -> list[ModelType]:
        """필터 없이 모든 레코드를 조회합니다 — Full unfiltered scan."""
        try:
            result = await self.session.execute(select(self.model))
            return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"{self.model.__name__} find failed") from exc

    async def count(self, where: ColumnElement[bool]) -> int:
        """조건에 맞는 레코드 수를 셉니다 — Count records matching ``where``."""
        query: Select = select(func.count()).select_from(self.model).where(where)
        try:
            return (await self.session.execute(query)).scalar() or 0
        except SQLAlchemyError as exc:
            raise StorageFailureError(f"{self.model.__name__} count failed") from exc

    async def find_and_count(
        self,
        where: ColumnElement[bool],
        options: StorageOptions | None = None,
    ) -> tuple[list[ModelType], int]:
        """페이지 레코드와 전체 개수를 함께 조회합니다.

        Retrieve one page of records together with the unrestricted count.

        Returns:
            tuple[list[ModelType], int]: (레코드 목록, 전체 개수)
                                         (Page of records, total count)
        """
        # 전체 카운트는 offset/limit 없이 — Total ignores offset/limit
        total: int = await self.count(where)
        items: list[ModelType] = await self.find(where, options)
        return items, total

    async def persist_batch(self, records: Sequence[ModelType]) -> None:
        """레코드를 한 번의 커밋으로 저장합니다.

        Insert or update all records in one flush and one commit, then
        refresh them so generated values (ids, defaults) are loaded.
        """
        try:
            self.session.add_all(records)
            await self.session.flush()
            for record in records:
                await self.session.refresh(record)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageFailureError(f"{self.model.__name__} persist failed") from exc

    async def delete_by_filter(self, where: ColumnElement[bool]) -> int:
        """조건에 맞는 레코드를 일괄 삭제합니다.

        Issue one native bulk ``DELETE`` and commit.

        Returns:
            int: 삭제된 행 수 (Number of deleted rows)
        """
        query = delete(self.model).where(where).execution_options(synchronize_session=False)
        try:
            result = await self.session.execute(query)
            await self.session.commit()
            return result.rowcount
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageFailureError(f"{self.model.__name__} delete failed") from exc

    def _apply_options(self, query: Select, options: StorageOptions | None, ordered: bool = True) -> Select:
        if options is None:
            options = StorageOptions()

        if options.fields is not None:
            # 식별자는 항상 로드 — load_only always keeps the primary key
            columns = [getattr(self.model, name) for name in dict.fromkeys([self.id_field, *options.fields])]
            query = query.options(load_only(*columns))
        for relation in options.populate:
            query = query.options(selectinload(getattr(self.model, relation)))

        if options.order_by:
            for name, direction in options.order_by.items():
                column = getattr(self.model, name)
                query = query.order_by(column.desc() if direction == "desc" else column.asc())
        elif ordered:
            # 안정적인 페이지 순서 — Stable paging order by identity
            query = query.order_by(getattr(self.model, self.id_field).asc())

        if options.offset:
            query = query.offset(options.offset)
        if options.limit is not None:
            query = query.limit(options.limit)
        return query
