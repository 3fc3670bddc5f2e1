"""
順位引擎：決定「現在輪到誰」以及輪次轉換

規則：
- 依 rank 由小到大輪流選校
- Round 1：所有尚未 Completed / Skipped 的學生依序選
- Round 2：只有 needs_second_round=True 且第一輪有選到學校的學生才有資格
- Round 1 全部結束後自動進入 Round 2（只會 1 -> 2，不會倒退）

所有函式都是純函式：輸入快照，回傳新快照，不修改輸入。
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from models import ParticipantStatus
from core.snapshot import ParticipantState

FIRST_ROUND = 1
SECOND_ROUND = 2


def is_second_round_eligible(participant: ParticipantState) -> bool:
    """第一輪放棄（round1_pick 為 None）或不需要第二學期的學生，永遠沒有第二輪資格"""
    return participant.needs_second_round and participant.round1_pick is not None


def compute_active_rank(
    participants: Iterable[ParticipantState],
    current_round: int
) -> Optional[int]:
    """
    計算目前輪到的 rank

    參數：
        participants: 所有學生（順序不拘）
        current_round: 1 或 2

    返回：
        rank，或 None（本輪所有人都已完成 / 放棄）
    """
    for participant in sorted(participants, key=lambda p: p.rank):
        if current_round == SECOND_ROUND and not is_second_round_eligible(participant):
            continue
        if not participant.is_done:
            return participant.rank
    return None


def refresh_status(
    participants: Sequence[ParticipantState],
    current_round: int
) -> Tuple[List[ParticipantState], int]:
    """
    依目前狀態重新推導每位學生的 status，必要時進入 Round 2

    流程：
    1. 計算 active rank
    2. active rank 為 None：
       - Round 1：進入 Round 2，有資格者設為 Waiting，其餘設為 Skipped，
         再計算 Round 2 的 active rank 並設為 Selecting
       - Round 2：已是終局，不變
    3. active rank 不為 None：該 rank 設為 Selecting，其餘未完成者設為 Waiting
       （Completed / Skipped 永遠不動）

    返回：
        (新的學生列表, 新的輪次)

    注意：
        - 冪等：對同一輸入重複呼叫，第二次結果與第一次相同
        - 每次修改學生資料後都必須重新呼叫
    """
    updated = list(participants)
    active_rank = compute_active_rank(updated, current_round)

    if active_rank is None:
        if current_round != FIRST_ROUND:
            return updated, current_round

        current_round = SECOND_ROUND
        updated = [
            p.with_status(
                ParticipantStatus.WAITING if is_second_round_eligible(p) else ParticipantStatus.SKIPPED
            )
            for p in updated
        ]

        second_round_rank = compute_active_rank(updated, current_round)
        if second_round_rank is not None:
            updated = [_promote_or_demote(p, second_round_rank) for p in updated]
        return updated, current_round

    updated = [
        p if p.is_done else p.with_status(
            ParticipantStatus.SELECTING if p.rank == active_rank else ParticipantStatus.WAITING
        )
        for p in updated
    ]
    return updated, current_round


def _promote_or_demote(participant: ParticipantState, active_rank: int) -> ParticipantState:
    if participant.rank == active_rank:
        return participant.with_status(ParticipantStatus.SELECTING)
    if participant.status == ParticipantStatus.SELECTING:
        return participant.with_status(ParticipantStatus.WAITING)
    return participant


def is_finished(participants: Iterable[ParticipantState], current_round: int) -> bool:
    """Round 2 且沒有人可以再選：整個選校流程結束"""
    return current_round == SECOND_ROUND and compute_active_rank(participants, current_round) is None
