"""페이지네이션 정책 모듈.

Pagination policy module.
Decides, from the caller's $limit/$skip and the pagination defaults, which
limit applies and whether a find runs as a plain find, a count-only query,
or a paginated find-and-count. Also provides the ``Page`` envelope model.
"""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field

from recordkit.schemas.service import PaginationConfig

PageMode = Literal["plain", "count_only", "paginated"]


class Page(BaseModel):
    """페이지네이션 결과 모델.

    Paginated result envelope.
    ``len(data) <= limit`` unless ``limit`` is 0, in which case ``data`` is
    empty and ``total`` is still the full match count.

    Attributes:
        total: 필터에 일치하는 전체 레코드 수 (Total matching records)
        limit: 적용된 limit (Resolved limit)
        skip: 건너뛴 레코드 수 (Records skipped)
        data: 현재 페이지 레코드 목록 (Records of the current page)
    """

    total: int = Field(ge=0)  # 전체 항목 수 (Total item count)
    limit: int = Field(ge=0)  # 적용된 limit (Applied limit)
    skip: int = Field(ge=0)  # 오프셋 (Offset)
    data: list[Any]  # 현재 페이지 항목 목록 (Page items)


@dataclass(frozen=True)
class PageRequest:
    """페이지네이션 결정 결과 — Resolved pagination decision."""

    mode: PageMode
    limit: int | None
    skip: int | None


def merge_pagination(
    service_paginate: PaginationConfig | None,
    call_paginate: PaginationConfig | Literal[False] | None,
) -> PaginationConfig | None:
    """서비스 기본값과 호출별 설정을 병합합니다.

    Merge the service pagination defaults with a per-call override.
    Keys set on the call override win; ``False`` disables pagination for the
    call entirely, including the ``max`` ceiling.

    Returns:
        PaginationConfig | None: 유효한 설정, None이면 페이지네이션 없음
                                 (Effective config; None means no pagination)
    """
    if call_paginate is False:
        return None
    if call_paginate is None:
        return service_paginate

    merged: dict[str, Any] = service_paginate.model_dump() if service_paginate else {}
    merged.update(call_paginate.model_dump(exclude_unset=True))
    return PaginationConfig(**merged)


def resolve_pagination(
    limit: int | None,
    skip: int | None,
    paginate: PaginationConfig | None,
) -> PageRequest:
    """호출자 limit과 설정으로부터 실행 방식을 결정합니다.

    Resolve the limit and execution mode:

    1. ``max`` set: the caller limit capped by ``max`` (0 included), or
       ``max`` itself when the caller sends none. ``default`` is not used.
    2. No ``max``: the caller limit, else ``default``, else None.

    A ``max`` of 0 counts as unset. A resolved limit of 0 means count-only.
    A ``default`` in the effective config turns on the paginated envelope.
    Anything else is a plain find.

    Args:
        limit: 호출자의 $limit (Caller $limit, None if absent)
        skip: 호출자의 $skip (Caller $skip, None if absent)
        paginate: 유효한 페이지네이션 설정 (Effective pagination config)

    Returns:
        PageRequest: 결정된 모드, limit, skip (Resolved mode, limit and skip)
    """
    default: int | None = paginate.default if paginate is not None else None
    ceiling: int | None = paginate.max if paginate is not None else None

    if ceiling:
        resolved: int | None = ceiling if limit is None else min(limit, ceiling)
    else:
        resolved = limit if limit is not None else default

    if resolved == 0:
        return PageRequest(mode="count_only", limit=0, skip=skip or 0)

    if paginate is not None and paginate.default is not None:
        return PageRequest(mode="paginated", limit=resolved, skip=skip or 0)

    return PageRequest(mode="plain", limit=resolved, skip=skip)
