"""
Admin API Endpoints

職責：
1. 重設資料（JSON 或 CSV）
2. 匯出目前名單為 CSV
3. 下載 CSV 範本
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
import logging

from schemas import ActionResponse, CsvResetRequest, ResetRequest
from core.allocation_manager import AllocationManager
from core.exceptions import ExchangeSelectException
from core.sync import build_view
from services import csv_service
from services.bulk_load_service import parse_participants, parse_schools
from api.dependencies import get_manager, to_http_error

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _reset(manager: AllocationManager, participants_payload, schools_payload) -> ActionResponse:
    participants = parse_participants(participants_payload)
    schools = parse_schools(schools_payload)
    snapshot = manager.reset_data(participants, schools)
    view = build_view(snapshot)
    return ActionResponse(
        status="ok",
        version=view.version,
        current_round=view.current_round,
        active_rank=view.active_rank,
    )


@router.post("/reset", response_model=ActionResponse)
def reset_data(request: ResetRequest, manager: AllocationManager = Depends(get_manager)):
    """
    以 JSON 重設所有資料

    效果：
    - 整批取代學生與學校，清除所有選校紀錄
    - 輪次回到 1，自動決定第一位 Selecting
    - 不在新名單中的學生 session 會失效
    """
    try:
        return _reset(manager, request.participants, request.schools)

    except ExchangeSelectException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to reset data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/reset/csv", response_model=ActionResponse)
def reset_data_from_csv(request: CsvResetRequest, manager: AllocationManager = Depends(get_manager)):
    """以 CSV 文字重設所有資料（格式見 /templates）"""
    try:
        return _reset(
            manager,
            csv_service.parse_participants_csv(request.participants_csv),
            csv_service.parse_schools_csv(request.schools_csv),
        )

    except ExchangeSelectException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to reset data from CSV: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/export/participants.csv")
def export_participants(manager: AllocationManager = Depends(get_manager)):
    snapshot = manager.get_snapshot()
    return _csv_response(csv_service.participants_to_csv(snapshot.participants), "participants.csv")


@router.get("/export/schools.csv")
def export_schools(manager: AllocationManager = Depends(get_manager)):
    snapshot = manager.get_snapshot()
    return _csv_response(csv_service.schools_to_csv(snapshot.schools), "schools.csv")


@router.get("/templates/participants.csv")
def participants_template():
    return _csv_response(csv_service.participants_template(), "participants_template.csv")


@router.get("/templates/schools.csv")
def schools_template():
    return _csv_response(csv_service.schools_template(), "schools_template.csv")
