"""Tests for client-side state synchronization and session binding."""
import threading

import pytest

from models import Term
from core.allocation_manager import AllocationManager
from core.exceptions import SessionInvalidated
from core.sql_store import SqlAlchemyStore
from core.store import InMemoryStore
from core.sync import ParticipantSession, StateSynchronizer, build_view, find_participant
from factories import make_participant, make_school


@pytest.fixture
def store():
    store = InMemoryStore()
    AllocationManager(store).reset_data(
        [make_participant(1, name="Alice Chen"), make_participant(2, name="Bob Smith")],
        [make_school(1, fall=1, spring=1, flexible=1)],
    )
    return store


def test_build_view(store):
    view = build_view(store.load_snapshot())

    assert view.version == 1
    assert view.current_round == 1
    assert view.active_rank == 1
    assert view.finished is False
    assert view.total_remaining_seats == 3
    assert [p.rank for p in view.participants] == [1, 2]


def test_find_participant_by_name_or_id(store):
    participants = store.read_participants()

    assert find_participant(participants, "alice chen").id == 1
    assert find_participant(participants, " 2 ").name == "Bob Smith"
    assert find_participant(participants, "Mallory") is None


class TestParticipantSession:

    def test_reconcile_refreshes_participant(self, store):
        session = ParticipantSession(2)
        manager = AllocationManager(store)

        view = build_view(store.load_snapshot())
        session.reconcile(view)
        assert not session.is_my_turn(view)

        manager.submit_pick(1, 1, Term.FALL)
        view = build_view(store.load_snapshot())
        participant = session.reconcile(view)

        assert participant.id == 2
        assert session.is_my_turn(view)

    def test_invalidated_when_identity_disappears(self, store):
        session = ParticipantSession(1)
        AllocationManager(store).reset_data([make_participant(10)], [make_school(1, fall=1)])

        with pytest.raises(SessionInvalidated):
            session.reconcile(build_view(store.load_snapshot()))

        assert session.valid is False
        # 失效後即使名單恢復也必須重新登入
        AllocationManager(store).reset_data([make_participant(1)], [make_school(1, fall=1)])
        with pytest.raises(SessionInvalidated):
            session.reconcile(build_view(store.load_snapshot()))


class TestStateSynchronizer:

    def test_on_change_only_when_version_moves(self, store):
        views = []
        sync = StateSynchronizer(store, on_change=views.append)

        sync.sync_once()
        sync.sync_once()
        AllocationManager(store).submit_pick(1, 1, Term.SPRING)
        sync.sync_once()

        assert [v.version for v in views] == [1, 2]
        assert sync.get_active_rank() == 2
        assert sync.get_current_round() == 1
        assert sync.get_schools()[0].seats_spring == 0
        assert [p.id for p in sync.get_participants()] == [1, 2]

    def test_session_invalidation_callback(self, store):
        invalidated = []
        session = ParticipantSession(2)
        sync = StateSynchronizer(store, session=session, on_session_invalidated=invalidated.append)

        sync.sync_once()
        assert invalidated == []

        AllocationManager(store).reset_data([make_participant(1)], [make_school(1, fall=1)])
        sync.sync_once()
        sync.sync_once()

        assert invalidated == [session]
        assert session.valid is False

    def test_push_notification_wakes_poll_thread(self, store):
        views = []
        updated = threading.Event()

        def on_change(view):
            views.append(view)
            if view.version >= 2:
                updated.set()

        sync = StateSynchronizer(store, poll_interval=60, on_change=on_change)
        sync.start()
        try:
            assert sync.get_current_round() == 1
            saved = AllocationManager(store).submit_pick(1, 1, Term.FALL)
            # 輪詢間隔 60 秒，能馬上看到新版本只可能是推播喚醒
            assert updated.wait(5)
        finally:
            sync.stop()

        assert views[-1].version == saved.version

    def test_reads_lazily_sync_when_never_started(self, store):
        sync = StateSynchronizer(store)

        assert sync.get_current_round() == 1
        assert sync.view is not None


def test_sql_store_is_only_read_from_sync_thread(session_factory):
    writer_db = session_factory()
    sync_db = session_factory()
    try:
        writer = AllocationManager(SqlAlchemyStore(writer_db))
        writer.reset_data([make_participant(1), make_participant(2)], [make_school(1, fall=1)])

        store = SqlAlchemyStore(sync_db)
        reader_threads = set()
        load_snapshot = store.load_snapshot

        def tracking_load_snapshot():
            reader_threads.add(threading.current_thread().name)
            return load_snapshot()

        store.load_snapshot = tracking_load_snapshot
        updated = threading.Event()
        sync = StateSynchronizer(
            store,
            poll_interval=0.05,
            on_change=lambda view: updated.set() if view.version >= 2 else None,
        )
        sync.start()
        try:
            assert [p.id for p in sync.get_participants()] == [1, 2]
            writer.submit_pick(1, 1, Term.FALL)
            assert updated.wait(5)
        finally:
            sync.stop()

        # 寫入方的推播只喚醒輪詢執行緒，Session 不會跨執行緒共用
        assert reader_threads == {"state-sync"}
        assert sync.get_active_rank() == 2
    finally:
        writer_db.close()
        sync_db.close()
