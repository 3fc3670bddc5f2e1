"""
State API Endpoints - 短輪詢版

前端每 poll_interval_seconds 秒呼叫 GET /api/state?since_version=N，
版本沒變時只回傳 changed=False，有變才回傳完整名單。
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from database import get_settings
from schemas import (
    ActiveRankResponse,
    ParticipantResponse,
    RoundResponse,
    SchoolResponse,
    StateResponse,
)
from core.allocation_manager import AllocationManager
from core.sync import build_view
from api.dependencies import get_manager

router = APIRouter(prefix="/api", tags=["state"])
logger = logging.getLogger(__name__)


@router.get("/state", response_model=StateResponse)
def get_state(
    since_version: Optional[int] = Query(None),
    manager: AllocationManager = Depends(get_manager)
):
    """
    取得目前狀態

    參數：
        since_version: 前端目前持有的版本（選填）

    返回：
        - version / current_round / active_rank / finished
        - participants / schools（版本沒變時為 None）
    """
    try:
        view = build_view(manager.get_snapshot())
        changed = since_version is None or since_version != view.version

        return StateResponse(
            version=view.version,
            changed=changed,
            current_round=view.current_round,
            active_rank=view.active_rank,
            finished=view.finished,
            total_remaining_seats=view.total_remaining_seats,
            poll_interval_seconds=get_settings().poll_interval_seconds,
            participants=[ParticipantResponse.model_validate(p) for p in view.participants] if changed else None,
            schools=[SchoolResponse.model_validate(s) for s in view.schools] if changed else None,
        )

    except Exception as e:
        logger.error(f"Failed to get state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/participants", response_model=list[ParticipantResponse])
def list_participants(manager: AllocationManager = Depends(get_manager)):
    """依 rank 排序的學生名單"""
    try:
        view = build_view(manager.get_snapshot())
        return [ParticipantResponse.model_validate(p) for p in view.participants]

    except Exception as e:
        logger.error(f"Failed to list participants: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/schools", response_model=list[SchoolResponse])
def list_schools(manager: AllocationManager = Depends(get_manager)):
    try:
        view = build_view(manager.get_snapshot())
        return [SchoolResponse.model_validate(s) for s in view.schools]

    except Exception as e:
        logger.error(f"Failed to list schools: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/state/active-rank", response_model=ActiveRankResponse)
def get_active_rank(manager: AllocationManager = Depends(get_manager)):
    try:
        view = build_view(manager.get_snapshot())
        return ActiveRankResponse(active_rank=view.active_rank, current_round=view.current_round)

    except Exception as e:
        logger.error(f"Failed to get active rank: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/state/round", response_model=RoundResponse)
def get_current_round(manager: AllocationManager = Depends(get_manager)):
    try:
        view = build_view(manager.get_snapshot())
        return RoundResponse(current_round=view.current_round, finished=view.finished)

    except Exception as e:
        logger.error(f"Failed to get current round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
