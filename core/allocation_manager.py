"""
Allocation Manager：把選校交易套用到儲存層

職責：
1. 讀取最新狀態（reconcile）
2. 呼叫純函式的選校交易 / 順位引擎
3. 以 compare-and-swap 寫回（state_version 不符就拒絕）

原則：
- 所有狀態變更都是「讀 -> 算 -> 一次寫回」，不做原地修改
- 失敗時不寫入任何東西，異常原樣往上拋，由 API 層轉成 HTTP 回應
- 不自動重試：業務錯誤重試也不會成功，版本衝突交給客戶端重新整理後再送
"""
from typing import Sequence
import logging

from models import Term
from core import selection_transaction
from core.exceptions import ExchangeSelectException, StaleStateVersion
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState
from core.store import AllocationStore
from core.turn_engine import refresh_status

logger = logging.getLogger(__name__)


class AllocationManager:
    """選校流程管理器"""

    def __init__(self, store: AllocationStore):
        self.store = store

    def submit_pick(self, participant_id: int, school_id: int, term: Term) -> AllocationSnapshot:
        """
        學生選校

        參數：
            participant_id: 學生 id
            school_id: 學校 id
            term: Term.FALL / Term.SPRING

        返回：
            寫入後的最新快照

        異常：
            ParticipantNotFound / SchoolNotFound / NotYourTurn / DuplicateTerm /
            DuplicateSchool / NoCapacity / StaleStateVersion
        """
        current = self.store.load_snapshot()
        try:
            updated = selection_transaction.submit_pick(current, participant_id, school_id, term)
        except ExchangeSelectException as e:
            logger.warning(f"Pick rejected for participant {participant_id}: {e}")
            raise

        saved = self._save(updated, current)
        logger.info(
            f"Participant {participant_id} picked school {school_id} ({term.value}) "
            f"in round {current.current_round}; now round {saved.current_round}, version {saved.version}"
        )
        return saved

    def skip_turn(self, participant_id: int) -> AllocationSnapshot:
        """學生放棄本輪（Round 1 放棄會一併失去 Round 2 資格）"""
        current = self.store.load_snapshot()
        try:
            updated = selection_transaction.skip_turn(current, participant_id)
        except ExchangeSelectException as e:
            logger.warning(f"Skip rejected for participant {participant_id}: {e}")
            raise

        saved = self._save(updated, current)
        logger.info(
            f"Participant {participant_id} skipped round {current.current_round}; "
            f"now round {saved.current_round}, version {saved.version}"
        )
        return saved

    def reset_data(
        self,
        participants: Sequence[ParticipantState],
        schools: Sequence[SchoolState]
    ) -> AllocationSnapshot:
        """
        管理員重設：整批取代學生與學校，輪次回到 1

        已登入的學生若不在新名單中，下一次同步時 session 會失效。
        """
        current = self.store.load_snapshot()
        updated = selection_transaction.reset(participants, schools, version=current.version)
        saved = self._save(updated, current)
        logger.info(
            f"Data reset with {len(participants)} participants and {len(schools)} schools "
            f"(version {saved.version})"
        )
        return saved

    def refresh_status(self) -> AllocationSnapshot:
        """
        重新推導 status / 輪次

        只有結果與目前狀態不同時才寫入，避免輪詢時無意義地推進 state_version。
        """
        current = self.store.load_snapshot()
        participants, current_round = refresh_status(current.participants, current.current_round)
        updated = AllocationSnapshot(
            version=current.version,
            current_round=current_round,
            participants=tuple(participants),
            schools=current.schools,
        )
        if updated.same_state_as(current):
            return current

        logger.info(f"Status refresh changed state at version {current.version}")
        return self._save(updated, current)

    def _save(self, updated: AllocationSnapshot, current: AllocationSnapshot) -> AllocationSnapshot:
        try:
            return self.store.save_snapshot(updated, expected_version=current.version)
        except StaleStateVersion as e:
            logger.warning(f"Write conflict, nothing persisted: {e}")
            raise

    def get_snapshot(self) -> AllocationSnapshot:
        return self.store.load_snapshot()

    def is_empty(self) -> bool:
        snapshot = self.store.load_snapshot()
        return not snapshot.participants and not snapshot.schools
