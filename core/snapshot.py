"""
狀態快照：核心邏輯的輸入與輸出

所有核心函式（turn_engine / selection_transaction）都只接收並回傳不可變快照，
不直接修改資料庫物件。寫入由 store 以單一 compare-and-swap 步驟完成。
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from models import ParticipantStatus, Term


@dataclass(frozen=True)
class Selection:
    """一次選校結果，記錄實際扣除的是哪個名額池"""
    school_id: int
    term: Term
    used_flexible_seat: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "school_id": self.school_id,
            "term": self.term.value,
            "used_flexible_seat": self.used_flexible_seat,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Selection"]:
        if data is None:
            return None
        return cls(
            school_id=int(data["school_id"]),
            term=Term(data["term"]),
            used_flexible_seat=bool(data.get("used_flexible_seat", False)),
        )


@dataclass(frozen=True)
class ParticipantState:
    id: int
    name: str
    rank: int
    status: ParticipantStatus = ParticipantStatus.WAITING
    needs_second_round: bool = True
    round1_pick: Optional[Selection] = None
    round2_pick: Optional[Selection] = None

    def with_status(self, status: ParticipantStatus) -> "ParticipantState":
        if status == self.status:
            return self
        return replace(self, status=status)

    @property
    def is_done(self) -> bool:
        """Completed / Skipped 的學生在本輪不會再被輪到"""
        return self.status in (ParticipantStatus.COMPLETED, ParticipantStatus.SKIPPED)


@dataclass(frozen=True)
class SchoolState:
    id: int
    name: str
    country: str = ""
    seats_fall: int = 0
    seats_spring: int = 0
    seats_flexible: int = 0

    def seats_for(self, term: Term) -> int:
        return self.seats_fall if term == Term.FALL else self.seats_spring


@dataclass(frozen=True)
class AllocationSnapshot:
    """
    某一時間點的完整分配狀態

    version 對應資料庫 app_state.state_version，
    寫回時用來做 compare-and-swap。
    """
    version: int = 0
    current_round: int = 1
    participants: Tuple[ParticipantState, ...] = field(default_factory=tuple)
    schools: Tuple[SchoolState, ...] = field(default_factory=tuple)

    def find_participant(self, participant_id: int) -> Optional[ParticipantState]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def find_school(self, school_id: int) -> Optional[SchoolState]:
        for school in self.schools:
            if school.id == school_id:
                return school
        return None

    def sorted_participants(self) -> Tuple[ParticipantState, ...]:
        return tuple(sorted(self.participants, key=lambda p: p.rank))

    def same_state_as(self, other: "AllocationSnapshot") -> bool:
        """忽略 version，比較實際內容是否相同"""
        return (
            self.current_round == other.current_round
            and self.participants == other.participants
            and self.schools == other.schools
        )
