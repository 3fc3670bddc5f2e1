"""
選校交易：學生「選校」或「放棄」的原子操作

每個函式接收一份快照，驗證後回傳新快照。
驗證失敗時直接拋出異常，輸入快照完全不變，所以不可能寫入部分結果。
實際的讀取 / 寫回由 AllocationManager 負責。
"""
from dataclasses import replace
from typing import Sequence
import logging

from models import ParticipantStatus, Term
from core.capacity_ledger import charge
from core.exceptions import (
    DuplicateSchool,
    DuplicateTerm,
    NotYourTurn,
    ParticipantNotFound,
    SchoolNotFound,
)
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState, Selection
from core.turn_engine import FIRST_ROUND, SECOND_ROUND, compute_active_rank, refresh_status

logger = logging.getLogger(__name__)


def _require_turn(snapshot: AllocationSnapshot, participant_id: int) -> ParticipantState:
    participant = snapshot.find_participant(participant_id)
    if participant is None:
        raise ParticipantNotFound(participant_id)

    active_rank = compute_active_rank(snapshot.participants, snapshot.current_round)
    if participant.rank != active_rank:
        raise NotYourTurn(active_rank)
    return participant


def _finish(
    snapshot: AllocationSnapshot,
    participant: ParticipantState,
    schools: Sequence[SchoolState]
) -> AllocationSnapshot:
    """寫回學生紀錄後重新推導所有人的 status 與輪次"""
    participants = [participant if p.id == participant.id else p for p in snapshot.participants]
    participants, current_round = refresh_status(participants, snapshot.current_round)
    return replace(
        snapshot,
        current_round=current_round,
        participants=tuple(participants),
        schools=tuple(schools),
    )


def submit_pick(
    snapshot: AllocationSnapshot,
    participant_id: int,
    school_id: int,
    term: Term
) -> AllocationSnapshot:
    """
    學生選校

    流程：
    1. 找到學生（ParticipantNotFound）
    2. 檢查是否輪到該學生（NotYourTurn）
    3. Round 2 限制：學期不可與第一輪相同（DuplicateTerm），
       學校不可與第一輪相同（DuplicateSchool）
    4. 扣除名額（SchoolNotFound / NoCapacity）
    5. 記錄 Selection，status 設為 Completed
    6. refresh_status 推導下一位

    返回：
        新快照（version 不變，由 store 寫入時推進）
    """
    participant = _require_turn(snapshot, participant_id)

    if snapshot.current_round == SECOND_ROUND and participant.round1_pick is not None:
        if participant.round1_pick.term == term:
            raise DuplicateTerm(term)
        if participant.round1_pick.school_id == school_id:
            raise DuplicateSchool(school_id)

    school = snapshot.find_school(school_id)
    if school is None:
        raise SchoolNotFound(school_id)

    result = charge(school, term)
    selection = Selection(
        school_id=school_id,
        term=term,
        used_flexible_seat=result.consumed_flexible,
    )

    if snapshot.current_round == FIRST_ROUND:
        participant = replace(participant, round1_pick=selection)
    else:
        participant = replace(participant, round2_pick=selection)
    participant = participant.with_status(ParticipantStatus.COMPLETED)

    schools = [result.school if s.id == school_id else s for s in snapshot.schools]

    logger.debug(
        f"Participant {participant_id} picked school {school_id} ({term.value}) "
        f"in round {snapshot.current_round}, flexible={result.consumed_flexible}"
    )
    return _finish(snapshot, participant, schools)


def skip_turn(snapshot: AllocationSnapshot, participant_id: int) -> AllocationSnapshot:
    """
    學生放棄本輪

    注意：
        Round 1 放棄等同放棄 Round 2（needs_second_round 設為 False，不可逆）
    """
    participant = _require_turn(snapshot, participant_id)

    participant = participant.with_status(ParticipantStatus.SKIPPED)
    if snapshot.current_round == FIRST_ROUND:
        participant = replace(participant, needs_second_round=False)

    return _finish(snapshot, participant, snapshot.schools)


def reset(
    participants: Sequence[ParticipantState],
    schools: Sequence[SchoolState],
    version: int = 0
) -> AllocationSnapshot:
    """
    管理員重設：整批取代學生與學校

    - 所有學生 status 設為 Waiting，清除兩輪的選校紀錄
    - 學生依 rank 排序
    - 輪次強制回到 1，再呼叫一次 refresh_status 決定第一位 Selecting
    """
    fresh = sorted(
        (
            replace(
                p,
                status=ParticipantStatus.WAITING,
                round1_pick=None,
                round2_pick=None,
            )
            for p in participants
        ),
        key=lambda p: p.rank,
    )
    refreshed, current_round = refresh_status(fresh, FIRST_ROUND)
    return AllocationSnapshot(
        version=version,
        current_round=current_round,
        participants=tuple(refreshed),
        schools=tuple(schools),
    )
