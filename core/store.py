"""
狀態儲存介面

核心邏輯只依賴 AllocationStore，不關心底層是記憶體還是資料庫：
- InMemoryStore：單一程序內使用（測試、單機示範）
- SqlAlchemyStore（core/sql_store.py）：多客戶端共用的資料庫

每次寫入成功後都會推進 state_version 並通知訂閱者；
客戶端仍應保留短輪詢作為後備。
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, List, Sequence, Tuple
import logging
import threading

from core.exceptions import StaleStateVersion
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class ChangeNotifier:
    """簡單的訂閱者清單，寫入成功後逐一呼叫"""

    def __init__(self):
        self._listeners: List[ChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                # 訂閱者出錯不應影響已完成的寫入
                logger.error(f"Change listener {listener!r} failed: {e}", exc_info=True)


class AllocationStore(ABC):
    """
    儲存層介面

    read_* / write_* 為逐項存取；load_snapshot / save_snapshot 為整份快照的
    原子讀寫，選校交易一律使用後者。
    """

    def __init__(self, notifier: ChangeNotifier = None):
        self.notifier = notifier if notifier is not None else ChangeNotifier()

    @abstractmethod
    def read_participants(self) -> Tuple[ParticipantState, ...]:
        ...

    @abstractmethod
    def write_participants(self, participants: Sequence[ParticipantState]) -> None:
        ...

    @abstractmethod
    def read_schools(self) -> Tuple[SchoolState, ...]:
        ...

    @abstractmethod
    def write_schools(self, schools: Sequence[SchoolState]) -> None:
        ...

    @abstractmethod
    def read_round(self) -> int:
        ...

    @abstractmethod
    def write_round(self, current_round: int) -> None:
        ...

    @abstractmethod
    def read_version(self) -> int:
        ...

    @abstractmethod
    def load_snapshot(self) -> AllocationSnapshot:
        """讀取最新的完整狀態"""

    @abstractmethod
    def save_snapshot(self, snapshot: AllocationSnapshot, expected_version: int) -> AllocationSnapshot:
        """
        原子寫入整份快照

        若目前 version 不等於 expected_version，拋出 StaleStateVersion 且不寫入任何資料。
        成功時回傳帶新 version 的快照。
        """

    def subscribe(self, on_change: ChangeListener) -> Unsubscribe:
        return self.notifier.subscribe(on_change)


class InMemoryStore(AllocationStore):
    """單一程序內的儲存，所有操作以同一把鎖保護"""

    def __init__(self, snapshot: AllocationSnapshot = None, notifier: ChangeNotifier = None):
        super().__init__(notifier)
        self._snapshot = snapshot if snapshot is not None else AllocationSnapshot()
        self._lock = threading.RLock()

    def _write(self, **changes) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, version=self._snapshot.version + 1, **changes)
        self.notifier.notify()

    def read_participants(self) -> Tuple[ParticipantState, ...]:
        with self._lock:
            return self._snapshot.sorted_participants()

    def write_participants(self, participants: Sequence[ParticipantState]) -> None:
        self._write(participants=tuple(participants))

    def read_schools(self) -> Tuple[SchoolState, ...]:
        with self._lock:
            return self._snapshot.schools

    def write_schools(self, schools: Sequence[SchoolState]) -> None:
        self._write(schools=tuple(schools))

    def read_round(self) -> int:
        with self._lock:
            return self._snapshot.current_round

    def write_round(self, current_round: int) -> None:
        self._write(current_round=current_round)

    def read_version(self) -> int:
        with self._lock:
            return self._snapshot.version

    def load_snapshot(self) -> AllocationSnapshot:
        with self._lock:
            return self._snapshot

    def save_snapshot(self, snapshot: AllocationSnapshot, expected_version: int) -> AllocationSnapshot:
        with self._lock:
            if self._snapshot.version != expected_version:
                raise StaleStateVersion(expected_version, self._snapshot.version)
            self._snapshot = replace(snapshot, version=expected_version + 1)
            saved = self._snapshot
        self.notifier.notify()
        return saved
