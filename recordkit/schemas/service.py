"""레코드 서비스 설정 및 호출 파라미터 스키마.

Record service configuration and call parameter schemas.
``ServiceConfig`` is fixed at construction time; ``Params`` travels with every
call and carries the caller filter plus storage passthrough options.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PaginationConfig(BaseModel):
    """페이지네이션 기본값 스키마.

    Pagination defaults.

    Attributes:
        default: 호출자가 $limit을 주지 않았을 때의 limit (Limit used when the caller sends none)
        max: 호출자 $limit의 상한, 0이면 미설정 (Ceiling for any caller limit; 0 counts as unset)
    """

    default: int | None = Field(default=None, ge=0)
    max: int | None = Field(default=None, ge=0)


class ServiceConfig(BaseModel):
    """레코드 서비스 구성 스키마.

    Record service configuration.

    Attributes:
        entity: 관리 대상 SQLAlchemy 엔티티 클래스 (Mapped entity class)
        id_field: 식별자 필드 이름 (Identity field name, default "id")
        paginate: 페이지네이션 기본값, None이면 비활성 (Pagination defaults; None disables)
        events: 추가로 발행 가능한 커스텀 이벤트 이름 (Custom event names the service may emit)
        multi: 다중 처리 허용 여부 또는 허용 메서드 목록
               (Allow batch calls; True, False or a list of method names)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    entity: type
    id_field: str = "id"
    paginate: PaginationConfig | None = None
    events: list[str] = Field(default_factory=list)
    multi: bool | list[Literal["create", "patch", "remove"]] = True


class Params(BaseModel):
    """서비스 호출 파라미터 스키마.

    Per-call parameters.

    Attributes:
        query: 호출자 필터 (Caller filter with equality, operators and reserved $ keys)
        options: 저장소 옵션 직접 지정, 번역된 옵션보다 우선
                 (Storage options merged over the translated ones; caller wins)
        populate: 즉시 로드할 관계 이름 (Relationship names to eager-load)
        where: id 없는 일괄 patch/remove의 선택 필터 (Batch selector for id-less patch/remove)
        paginate: 이 호출에만 적용되는 페이지네이션 설정, False면 비활성
                  (Per-call pagination override; False disables pagination)
    """

    query: dict[str, Any] | None = None
    options: dict[str, Any] | None = None
    populate: list[str] | None = None
    where: dict[str, Any] | None = None
    paginate: PaginationConfig | Literal[False] | None = None
