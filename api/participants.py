"""
Participant API Endpoints

職責：
1. 學生登入（姓名或學號查詢）與 session 檢查
2. 選校
3. 放棄本輪
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import ActionResponse, LoginRequest, ParticipantResponse, PickSubmit, SessionResponse
from core.allocation_manager import AllocationManager
from core.exceptions import ExchangeSelectException, ParticipantNotFound
from core.sync import ParticipantSession, build_view, find_participant
from api.dependencies import get_manager, to_http_error

router = APIRouter(prefix="/api", tags=["participants"])
logger = logging.getLogger(__name__)


def _action_response(snapshot) -> ActionResponse:
    view = build_view(snapshot)
    return ActionResponse(
        status="ok",
        version=view.version,
        current_round=view.current_round,
        active_rank=view.active_rank,
    )


@router.post("/session/login", response_model=ParticipantResponse)
def login(request: LoginRequest, manager: AllocationManager = Depends(get_manager)):
    """
    學生登入

    輸入姓名（不分大小寫）或學號，找不到回傳 404。
    """
    view = build_view(manager.get_snapshot())
    participant = find_participant(view.participants, request.name_or_id)
    if participant is None:
        raise to_http_error(ParticipantNotFound(request.name_or_id))

    logger.info(f"Participant {participant.id} ({participant.name}) logged in")
    return ParticipantResponse.model_validate(participant)


@router.get("/session/{participant_id}", response_model=SessionResponse)
def check_session(participant_id: int, manager: AllocationManager = Depends(get_manager)):
    """
    檢查 session 是否仍然有效

    學生在管理員重設後不存在時回傳 410，前端應回到登入畫面。
    """
    view = build_view(manager.get_snapshot())
    session = ParticipantSession(participant_id)
    try:
        participant = session.reconcile(view)
    except ExchangeSelectException as e:
        raise to_http_error(e)

    return SessionResponse(
        participant=ParticipantResponse.model_validate(participant),
        is_my_turn=session.is_my_turn(view),
        version=view.version,
    )


@router.post("/participants/{participant_id}/pick", response_model=ActionResponse)
def submit_pick(
    participant_id: int,
    pick: PickSubmit,
    manager: AllocationManager = Depends(get_manager)
):
    """
    選校（最終決定，不可撤銷）

    前置條件：
    - 必須輪到該學生
    - Round 2 的學期與學校都不可與 Round 1 相同
    - 該學期名額或彈性名額尚有剩餘
    """
    try:
        snapshot = manager.submit_pick(participant_id, pick.school_id, pick.term)
        return _action_response(snapshot)

    except ExchangeSelectException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to submit pick: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/participants/{participant_id}/skip", response_model=ActionResponse)
def skip_turn(participant_id: int, manager: AllocationManager = Depends(get_manager)):
    """
    放棄本輪

    注意：Round 1 放棄會同時失去 Round 2 資格
    """
    try:
        snapshot = manager.skip_turn(participant_id)
        return _action_response(snapshot)

    except ExchangeSelectException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to skip turn: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
