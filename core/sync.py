"""
狀態同步：讓客戶端的本地畫面跟上儲存層

兩種來源：
- 短輪詢：每 poll_interval 秒讀一次（永遠可用的後備方案）
- 推播：store.subscribe() 在寫入後立即喚醒輪詢執行緒（有支援時可縮短延遲）

兩者最後都在同一條 state-sync 執行緒上走 sync_once()，store（例如 SQLAlchemy
Session）不會被多個執行緒同時使用；只有 state_version 改變時才通知畫面更新。
Session 綁定一位學生；若該學生在重設後不存在，session 失效並要求重新登入。
"""
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple
import logging
import threading

from core.capacity_ledger import total_remaining_seats
from core.exceptions import SessionInvalidated
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState
from core.store import AllocationStore
from core.turn_engine import compute_active_rank, is_finished

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateView:
    """客戶端看到的唯讀狀態"""
    version: int
    current_round: int
    active_rank: Optional[int]
    finished: bool
    participants: Tuple[ParticipantState, ...]
    schools: Tuple[SchoolState, ...]
    total_remaining_seats: int


def build_view(snapshot: AllocationSnapshot) -> StateView:
    return StateView(
        version=snapshot.version,
        current_round=snapshot.current_round,
        active_rank=compute_active_rank(snapshot.participants, snapshot.current_round),
        finished=is_finished(snapshot.participants, snapshot.current_round),
        participants=snapshot.sorted_participants(),
        schools=snapshot.schools,
        total_remaining_seats=total_remaining_seats(snapshot.schools),
    )


def find_participant(
    participants: Iterable[ParticipantState],
    name_or_id: str
) -> Optional[ParticipantState]:
    """以姓名（不分大小寫）或學號找學生"""
    needle = name_or_id.strip()
    for participant in participants:
        if participant.name.lower() == needle.lower() or str(participant.id) == needle:
            return participant
    return None


class ParticipantSession:
    """綁定一位學生的登入狀態"""

    def __init__(self, participant_id: int):
        self.participant_id = participant_id
        self.valid = True
        self.participant: Optional[ParticipantState] = None

    def reconcile(self, view: StateView) -> ParticipantState:
        if not self.valid:
            raise SessionInvalidated(self.participant_id)

        for participant in view.participants:
            if participant.id == self.participant_id:
                self.participant = participant
                return participant

        logger.info(f"Session for participant {self.participant_id} invalidated at version {view.version}")
        self.valid = False
        self.participant = None
        raise SessionInvalidated(self.participant_id)

    def is_my_turn(self, view: StateView) -> bool:
        return (
            self.valid
            and self.participant is not None
            and self.participant.rank == view.active_rank
        )


class StateSynchronizer:
    """
    客戶端同步器

    參數：
        store: 儲存層
        poll_interval: 輪詢間隔（秒），建議 1-2 秒
        on_change: 狀態版本改變時呼叫，參數為新的 StateView
        session: 選填，登入中的學生 session
        on_session_invalidated: 選填，session 失效時呼叫
    """

    def __init__(
        self,
        store: AllocationStore,
        poll_interval: float = 1.0,
        on_change: Callable[[StateView], None] = None,
        session: ParticipantSession = None,
        on_session_invalidated: Callable[[ParticipantSession], None] = None,
    ):
        self.store = store
        self.poll_interval = poll_interval
        self.on_change = on_change
        self.session = session
        self.on_session_invalidated = on_session_invalidated
        self.view: Optional[StateView] = None

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._ready = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe = None

    def sync_once(self) -> StateView:
        """讀取最新狀態；版本有變才通知 on_change"""
        view = build_view(self.store.load_snapshot())

        with self._lock:
            # 直接呼叫 sync_once 可能與輪詢重疊，較舊的結果不可覆蓋較新的畫面
            if self.view is not None and view.version < self.view.version:
                return self.view
            changed = self.view is None or self.view.version != view.version
            self.view = view
        self._ready.set()

        if self.session is not None and self.session.valid:
            try:
                self.session.reconcile(view)
            except SessionInvalidated:
                if self.on_session_invalidated:
                    self.on_session_invalidated(self.session)

        if changed and self.on_change:
            self.on_change(view)
        return view

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._unsubscribe = self.store.subscribe(self._on_push)
        self._thread = threading.Thread(target=self._poll_loop, name="state-sync", daemon=True)
        self._thread.start()
        logger.info(f"State synchronizer started (poll every {self.poll_interval}s)")

    def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=max(self.poll_interval * 2, 5.0))
            self._thread = None

    def _on_push(self) -> None:
        # 在寫入方的執行緒被呼叫，只負責喚醒輪詢執行緒
        self._wake.set()

    def _poll_loop(self) -> None:
        while not self._stop.is_set():
            self._wake.clear()
            self._sync_logged()
            self._wake.wait(self.poll_interval)

    def _sync_logged(self) -> None:
        try:
            self.sync_once()
        except Exception as e:
            # 單次同步失敗不結束輪詢，下一輪再試
            logger.error(f"State sync failed: {e}", exc_info=True)

    # ============ 唯讀查詢 ============

    def _current_view(self) -> StateView:
        if self._thread is not None:
            # 背景執行緒運作中時 store 只由它讀取，這裡等第一次同步完成
            if not self._ready.wait(max(self.poll_interval * 5, 5.0)):
                raise TimeoutError("State synchronizer has not completed a sync yet")
        with self._lock:
            view = self.view
        return view if view is not None else self.sync_once()

    def get_participants(self) -> Tuple[ParticipantState, ...]:
        return self._current_view().participants

    def get_schools(self) -> Tuple[SchoolState, ...]:
        return self._current_view().schools

    def get_active_rank(self) -> Optional[int]:
        return self._current_view().active_rank

    def get_current_round(self) -> int:
        return self._current_view().current_round
