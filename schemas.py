"""
Pydantic schemas

- 管理員匯入的資料列（ParticipantRow / SchoolRow），strict 模式，不做隱性轉型
- API request / response
"""
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from models import ParticipantStatus, Term


# ============ 管理員匯入 ============

class ParticipantRow(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    id: int
    name: str
    rank: int
    needs_second_round: bool = Field(
        default=True,
        validation_alias=AliasChoices("needs_second_round", "needsSecondRound", "needsDoubleSemester"),
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class SchoolRow(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    id: int
    name: str
    country: str = Field(validation_alias=AliasChoices("country", "locale"))
    seats_fall: int = Field(
        ge=0, validation_alias=AliasChoices("seats_fall", "seatsPrimaryTerm", "slotsFall")
    )
    seats_spring: int = Field(
        ge=0, validation_alias=AliasChoices("seats_spring", "seatsSecondaryTerm", "slotsSpring")
    )
    seats_flexible: int = Field(
        ge=0, validation_alias=AliasChoices("seats_flexible", "seatsFlexible", "slotsFlexible")
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class ResetRequest(BaseModel):
    # 型別檢查交給 bulk_load_service，才能回傳一致的 validation_error
    participants: Any
    schools: Any


class CsvResetRequest(BaseModel):
    participants_csv: str
    schools_csv: str


# ============ 學生操作 ============

class LoginRequest(BaseModel):
    name_or_id: str


class PickSubmit(BaseModel):
    school_id: int
    term: Term


# ============ Response ============

class SelectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    school_id: int
    term: Term
    used_flexible_seat: bool


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    rank: int
    status: ParticipantStatus
    needs_second_round: bool
    round1_pick: Optional[SelectionResponse] = None
    round2_pick: Optional[SelectionResponse] = None


class SchoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    country: str
    seats_fall: int
    seats_spring: int
    seats_flexible: int


class StateResponse(BaseModel):
    """
    短輪詢回應

    since_version 與目前版本相同時 changed=False，participants / schools 為 None，
    前端保留原畫面即可。
    """
    version: int
    changed: bool = True
    current_round: int
    active_rank: Optional[int]
    finished: bool
    total_remaining_seats: int
    poll_interval_seconds: float
    participants: Optional[List[ParticipantResponse]] = None
    schools: Optional[List[SchoolResponse]] = None


class ActiveRankResponse(BaseModel):
    active_rank: Optional[int]
    current_round: int


class RoundResponse(BaseModel):
    current_round: int
    finished: bool


class SessionResponse(BaseModel):
    participant: ParticipantResponse
    is_my_turn: bool
    version: int


class ActionResponse(BaseModel):
    status: str
    version: int
    current_round: int
    active_rank: Optional[int]
