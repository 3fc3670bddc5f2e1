"""
匯入服務：驗證管理員上傳的學生 / 學校資料

純驗證邏輯：輸入是 JSON 解析後的資料，輸出是核心快照型別。
任何格式問題都拋出 BulkLoadValidationError，不做隱性轉型。
"""
from typing import Any, List

from pydantic import TypeAdapter, ValidationError

from core.exceptions import BulkLoadValidationError
from core.snapshot import ParticipantState, SchoolState
from schemas import ParticipantRow, SchoolRow

_participant_rows = TypeAdapter(List[ParticipantRow])
_school_rows = TypeAdapter(List[SchoolRow])


def _format_errors(kind: str, error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(loc) for loc in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    more = error.error_count() - len(parts)
    if more > 0:
        parts.append(f"... and {more} more")
    return f"Invalid {kind} data: " + "; ".join(parts)


def _require_array(kind: str, payload: Any) -> None:
    if not isinstance(payload, list):
        raise BulkLoadValidationError(f"{kind.capitalize()} data must be an array")


def _require_unique(kind: str, field: str, values: List[int]) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise BulkLoadValidationError(f"Duplicate {kind} {field}: {value}")
        seen.add(value)


def parse_participants(payload: Any) -> List[ParticipantState]:
    """
    驗證學生資料

    每列格式：{id, name, rank, needsSecondRound}
    - needsSecondRound 未提供時預設為 True（也接受 needsDoubleSemester）
    - id 與 rank 不可重複
    """
    _require_array("participant", payload)
    try:
        rows = _participant_rows.validate_python(payload)
    except ValidationError as e:
        raise BulkLoadValidationError(_format_errors("participant", e)) from e

    _require_unique("participant", "id", [row.id for row in rows])
    _require_unique("participant", "rank", [row.rank for row in rows])

    return [
        ParticipantState(
            id=row.id,
            name=row.name,
            rank=row.rank,
            needs_second_round=row.needs_second_round,
        )
        for row in rows
    ]


def parse_schools(payload: Any) -> List[SchoolState]:
    """
    驗證學校資料

    每列格式：{id, name, locale|country, seatsPrimaryTerm|slotsFall,
    seatsSecondaryTerm|slotsSpring, seatsFlexible|slotsFlexible}，名額不可為負
    """
    _require_array("school", payload)
    try:
        rows = _school_rows.validate_python(payload)
    except ValidationError as e:
        raise BulkLoadValidationError(_format_errors("school", e)) from e

    _require_unique("school", "id", [row.id for row in rows])

    return [
        SchoolState(
            id=row.id,
            name=row.name,
            country=row.country,
            seats_fall=row.seats_fall,
            seats_spring=row.seats_spring,
            seats_flexible=row.seats_flexible,
        )
        for row in rows
    ]
