"""
資料庫模型

- Participant：依 rank 排序輪流選校的學生
- School：提供 Fall / Spring / Flexible 名額的交換學校
- AppState：全域單列狀態（目前輪次 + state_version）
"""
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Integer,
    JSON,
    String,
)
from sqlalchemy.sql import func

from database import Base


class ParticipantStatus(str, enum.Enum):
    WAITING = "Waiting"
    SELECTING = "Selecting"
    COMPLETED = "Completed"
    SKIPPED = "Skipped"  # 放棄本輪，或不具第二輪資格


class Term(str, enum.Enum):
    FALL = "Fall"
    SPRING = "Spring"


# AppState 只有一列，固定 id
APP_STATE_ID = 1


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(200), nullable=False)
    rank = Column(Integer, nullable=False, unique=True, index=True)
    status = Column(Enum(ParticipantStatus), nullable=False, default=ParticipantStatus.WAITING)
    needs_second_round = Column(Boolean, nullable=False, default=True)
    # {"school_id": int, "term": "Fall" | "Spring", "used_flexible_seat": bool}
    round1_pick = Column(JSON, nullable=True)
    round2_pick = Column(JSON, nullable=True)


class School(Base):
    __tablename__ = "schools"
    __table_args__ = (
        CheckConstraint("seats_fall >= 0", name="ck_schools_seats_fall"),
        CheckConstraint("seats_spring >= 0", name="ck_schools_seats_spring"),
        CheckConstraint("seats_flexible >= 0", name="ck_schools_seats_flexible"),
    )

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(200), nullable=False)
    country = Column(String(100), nullable=False, default="")
    seats_fall = Column(Integer, nullable=False, default=0)
    seats_spring = Column(Integer, nullable=False, default=0)
    seats_flexible = Column(Integer, nullable=False, default=0)


class AppState(Base):
    __tablename__ = "app_state"
    __table_args__ = (
        CheckConstraint("current_round IN (1, 2)", name="ck_app_state_round"),
    )

    id = Column(Integer, primary_key=True, default=APP_STATE_ID)
    current_round = Column(Integer, nullable=False, default=1)
    state_version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
