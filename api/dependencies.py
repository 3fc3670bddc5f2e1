"""
API 共用的 dependency 與錯誤轉換
"""
from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from core.allocation_manager import AllocationManager
from core.exceptions import (
    BulkLoadValidationError,
    DuplicateSchool,
    DuplicateTerm,
    ExchangeSelectException,
    NoCapacity,
    NotYourTurn,
    ParticipantNotFound,
    SchoolNotFound,
    SessionInvalidated,
    StaleStateVersion,
)
from core.sql_store import SqlAlchemyStore

_STATUS_CODES = {
    ParticipantNotFound: 404,
    SchoolNotFound: 404,
    NotYourTurn: 409,
    NoCapacity: 409,
    StaleStateVersion: 409,
    DuplicateTerm: 400,
    DuplicateSchool: 400,
    BulkLoadValidationError: 422,
    SessionInvalidated: 410,
}


def get_manager(db: Session = Depends(get_db)) -> AllocationManager:
    """每個 request 一個 SqlAlchemyStore（共用 request 的 Session）"""
    return AllocationManager(SqlAlchemyStore(db))


def to_http_error(e: ExchangeSelectException) -> HTTPException:
    """業務異常 -> HTTPException，detail 帶穩定的 error code 讓前端判斷"""
    status_code = _STATUS_CODES.get(type(e), 400)
    return HTTPException(
        status_code=status_code,
        detail={"error": e.code, "message": str(e)},
    )
