"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）。
SQLite 不支援 FOR UPDATE，SQLAlchemy 會直接忽略，此時由 state_version 的
compare-and-swap 保證不會重複寫入。
"""
from sqlalchemy.orm import Session, Query

from models import APP_STATE_ID, AppState


def with_app_state_lock(db: Session) -> Query:
    """
    鎖定全域 AppState（行級鎖）

    使用場景：
    - 寫入整份快照前，確保 state_version 在整個 transaction 期間不被其他請求修改

    範例：
        state = with_app_state_lock(db).first()
        if state.state_version != expected_version:
            raise StaleStateVersion(expected_version, state.state_version)
        state.state_version += 1

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(AppState).filter(
        AppState.id == APP_STATE_ID
    ).with_for_update(nowait=False)
