"""
名額帳本：計算扣除名額

純計算邏輯，不涉及資料庫。選校一旦完成就不可撤銷，因此沒有「歸還名額」的操作。
"""
from dataclasses import dataclass, replace
from typing import Iterable

from models import Term
from core.exceptions import NoCapacity
from core.snapshot import SchoolState


@dataclass(frozen=True)
class ChargeResult:
    school: SchoolState
    consumed_flexible: bool


def charge(school: SchoolState, term: Term) -> ChargeResult:
    """
    為指定學期扣除一個名額

    規則：
    1. 該學期名額 > 0：扣學期名額
    2. 否則彈性名額 > 0：扣彈性名額（consumed_flexible=True）
    3. 都沒有：拋出 NoCapacity

    參數：
        school: 扣除前的學校快照
        term: Term.FALL 或 Term.SPRING

    返回：
        ChargeResult（扣除後的新學校快照，原快照不變）

    範例：
        seats_fall=0, seats_flexible=1 -> 扣彈性名額，consumed_flexible=True
    """
    if school.seats_for(term) > 0:
        if term == Term.FALL:
            updated = replace(school, seats_fall=school.seats_fall - 1)
        else:
            updated = replace(school, seats_spring=school.seats_spring - 1)
        return ChargeResult(school=updated, consumed_flexible=False)

    if school.seats_flexible > 0:
        updated = replace(school, seats_flexible=school.seats_flexible - 1)
        return ChargeResult(school=updated, consumed_flexible=True)

    raise NoCapacity(school.id, term)


def can_seat(school: SchoolState, term: Term) -> bool:
    return school.seats_for(term) > 0 or school.seats_flexible > 0


def remaining_seats(school: SchoolState) -> int:
    return school.seats_fall + school.seats_spring + school.seats_flexible


def total_remaining_seats(schools: Iterable[SchoolState]) -> int:
    """所有學校剩餘名額總和（狀態看板上的「剩餘名額」）"""
    return sum(remaining_seats(school) for school in schools)
