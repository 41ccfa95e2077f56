"""레코드 병합 및 필드 선택 유틸리티.

Record merge and field projection helpers used by update/patch and by any
call that carries ``$select``.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from recordkit.utils.query import column_names


def merge_fields(record: Any, data: Mapping[str, Any], id_field: str) -> Any:
    """부분 데이터를 기존 레코드에 병합합니다.

    Assign the given fields onto an existing record, leaving every other
    field untouched. Only mapped columns are assigned; the identity field is
    immutable after creation and unknown keys are ignored.

    Args:
        record: 대상 레코드 (Record to update in place)
        data: 병합할 필드와 값 (Fields and values to assign)
        id_field: 식별자 필드 이름 (Identity field name)

    Returns:
        Any: 같은 레코드 (The same record, mutated)
    """
    columns: set[str] = column_names(type(record))
    for name, value in data.items():
        if name == id_field or name not in columns:
            continue
        setattr(record, name, value)
    return record


def select_fields(record: Any, fields: Iterable[str] | None, id_field: str) -> Any:
    """선택된 필드만 담은 dict를 반환합니다.

    Project a record onto the selected fields. The identity field is always
    included. Without a selection the record itself is returned.
    """
    if fields is None:
        return record
    names: list[str] = [id_field] + [name for name in fields if name != id_field]
    return {name: getattr(record, name) for name in names}
