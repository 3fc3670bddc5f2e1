"""
SQLAlchemy 儲存實作

多個客戶端（每個 HTTP request 一個 Session）共用同一個資料庫。
- 讀取前 expire_all()，確保看到最新已 commit 的資料
- save_snapshot 在單一 transaction 內：鎖定 AppState ->
  UPDATE ... WHERE state_version = expected（比對並推進版本）-> 寫回學生 / 學校
"""
from typing import Sequence, Tuple
import logging

from sqlalchemy.orm import Session

from models import APP_STATE_ID, AppState, Participant, School
from database import transactional
from core.exceptions import StaleStateVersion
from core.locks import with_app_state_lock
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState, Selection
from core.store import AllocationStore, ChangeNotifier

logger = logging.getLogger(__name__)

# 同一程序內所有 SqlAlchemyStore 共用，寫入後推播給訂閱者
process_notifier = ChangeNotifier()


def participant_from_row(row: Participant) -> ParticipantState:
    return ParticipantState(
        id=row.id,
        name=row.name,
        rank=row.rank,
        status=row.status,
        needs_second_round=bool(row.needs_second_round),
        round1_pick=Selection.from_dict(row.round1_pick),
        round2_pick=Selection.from_dict(row.round2_pick),
    )


def school_from_row(row: School) -> SchoolState:
    return SchoolState(
        id=row.id,
        name=row.name,
        country=row.country or "",
        seats_fall=row.seats_fall,
        seats_spring=row.seats_spring,
        seats_flexible=row.seats_flexible,
    )


def _participant_values(participant: ParticipantState) -> dict:
    return {
        "name": participant.name,
        "rank": participant.rank,
        "status": participant.status,
        "needs_second_round": participant.needs_second_round,
        "round1_pick": participant.round1_pick.to_dict() if participant.round1_pick else None,
        "round2_pick": participant.round2_pick.to_dict() if participant.round2_pick else None,
    }


def _school_values(school: SchoolState) -> dict:
    return {
        "name": school.name,
        "country": school.country,
        "seats_fall": school.seats_fall,
        "seats_spring": school.seats_spring,
        "seats_flexible": school.seats_flexible,
    }


def _lock_app_state(db: Session) -> AppState:
    state = with_app_state_lock(db).first()
    if state is None:
        state = AppState(id=APP_STATE_ID, current_round=1, state_version=0)
        db.add(state)
        db.flush()
    return state


def _replace_participants(db: Session, participants: Sequence[ParticipantState]) -> None:
    """
    寫回學生列表

    rank 有 unique constraint：若 (id, rank) 組合有變（只會發生在管理員重設），
    先全部刪除再重建，避免逐列更新時暫時撞到重複 rank。
    """
    existing = {row.id: row for row in db.query(Participant).all()}
    identities = {(p.id, p.rank) for p in participants}

    if {(row.id, row.rank) for row in existing.values()} != identities:
        for row in existing.values():
            db.delete(row)
        db.flush()
        for participant in participants:
            db.add(Participant(id=participant.id, **_participant_values(participant)))
        return

    for participant in participants:
        row = existing[participant.id]
        for key, value in _participant_values(participant).items():
            setattr(row, key, value)


def _replace_schools(db: Session, schools: Sequence[SchoolState]) -> None:
    existing = {row.id: row for row in db.query(School).all()}
    keep_ids = {s.id for s in schools}

    for school_id, row in existing.items():
        if school_id not in keep_ids:
            db.delete(row)

    for school in schools:
        row = existing.get(school.id)
        if row is None:
            db.add(School(id=school.id, **_school_values(school)))
            continue
        for key, value in _school_values(school).items():
            setattr(row, key, value)


def _current_version(db: Session) -> int:
    return db.query(AppState.state_version).filter(AppState.id == APP_STATE_ID).scalar()


def _claim_version(db: Session, expected_version: int, current_round: int) -> None:
    """
    以條件式 UPDATE 推進 state_version

    版本比對與寫入是同一個 SQL 敘述，SQLite 不支援 FOR UPDATE 時也不會有
    「兩個請求都通過檢查」的空窗；必須是 transaction 內的第一個寫入。
    """
    claimed = db.query(AppState).filter(
        AppState.id == APP_STATE_ID,
        AppState.state_version == expected_version,
    ).update(
        {
            AppState.state_version: expected_version + 1,
            AppState.current_round: current_round,
        },
        synchronize_session=False,
    )
    if claimed == 0:
        raise StaleStateVersion(expected_version, _current_version(db))


@transactional
def persist_snapshot(db: Session, snapshot: AllocationSnapshot, expected_version: int) -> int:
    """
    以單一 transaction 寫入整份快照（compare-and-swap）

    返回：
        寫入後的新 state_version

    異常：
        StaleStateVersion: 資料庫中的 version 已被其他請求推進
    """
    _lock_app_state(db)
    _claim_version(db, expected_version, snapshot.current_round)

    _replace_participants(db, snapshot.participants)
    _replace_schools(db, snapshot.schools)
    return expected_version + 1


@transactional
def _write_part(db: Session, participants=None, schools=None, current_round=None) -> int:
    state = _lock_app_state(db)
    values = {AppState.state_version: AppState.state_version + 1}
    if current_round is not None:
        values[AppState.current_round] = current_round
    # 先遞增版本（原子操作）再寫資料，與 persist_snapshot 的寫入順序一致
    db.query(AppState).filter(AppState.id == state.id).update(values, synchronize_session=False)

    if participants is not None:
        _replace_participants(db, participants)
    if schools is not None:
        _replace_schools(db, schools)
    return _current_version(db)


class SqlAlchemyStore(AllocationStore):
    """以 SQLAlchemy Session 為後端的 AllocationStore"""

    def __init__(self, db: Session, notifier: ChangeNotifier = None):
        super().__init__(notifier if notifier is not None else process_notifier)
        self.db = db

    def _fresh(self) -> Session:
        # 丟棄 identity map 中的舊資料，下一次查詢會重新讀取
        self.db.expire_all()
        return self.db

    def read_participants(self) -> Tuple[ParticipantState, ...]:
        rows = self._fresh().query(Participant).order_by(Participant.rank).all()
        return tuple(participant_from_row(row) for row in rows)

    def read_schools(self) -> Tuple[SchoolState, ...]:
        rows = self._fresh().query(School).order_by(School.id).all()
        return tuple(school_from_row(row) for row in rows)

    def read_round(self) -> int:
        state = self._fresh().query(AppState).filter(AppState.id == APP_STATE_ID).first()
        return state.current_round if state else 1

    def read_version(self) -> int:
        state = self._fresh().query(AppState).filter(AppState.id == APP_STATE_ID).first()
        return state.state_version if state else 0

    def write_participants(self, participants: Sequence[ParticipantState]) -> None:
        _write_part(self.db, participants=participants)
        self.notifier.notify()

    def write_schools(self, schools: Sequence[SchoolState]) -> None:
        _write_part(self.db, schools=schools)
        self.notifier.notify()

    def write_round(self, current_round: int) -> None:
        _write_part(self.db, current_round=current_round)
        self.notifier.notify()

    def load_snapshot(self) -> AllocationSnapshot:
        db = self._fresh()
        state = db.query(AppState).filter(AppState.id == APP_STATE_ID).first()
        participants = db.query(Participant).order_by(Participant.rank).all()
        schools = db.query(School).order_by(School.id).all()
        return AllocationSnapshot(
            version=state.state_version if state else 0,
            current_round=state.current_round if state else 1,
            participants=tuple(participant_from_row(row) for row in participants),
            schools=tuple(school_from_row(row) for row in schools),
        )

    def save_snapshot(self, snapshot: AllocationSnapshot, expected_version: int) -> AllocationSnapshot:
        new_version = persist_snapshot(self.db, snapshot, expected_version)
        logger.info(f"Persisted state version {new_version} (round {snapshot.current_round})")
        self.notifier.notify()
        return AllocationSnapshot(
            version=new_version,
            current_round=snapshot.current_round,
            participants=snapshot.participants,
            schools=snapshot.schools,
        )
