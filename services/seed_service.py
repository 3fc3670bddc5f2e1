"""
示範資料：資料庫為空時載入，方便直接試用

走與管理員重設相同的流程（驗證 -> reset），不另外寫資料。
"""
import logging

from core.allocation_manager import AllocationManager
from services.bulk_load_service import parse_participants, parse_schools

logger = logging.getLogger(__name__)

DEMO_SCHOOLS = [
    {"id": 1, "name": "University of California, Berkeley", "country": "USA",
     "slotsFall": 1, "slotsSpring": 1, "slotsFlexible": 0},
    {"id": 2, "name": "ETH Zurich", "country": "Switzerland",
     "slotsFall": 2, "slotsSpring": 0, "slotsFlexible": 1},
    {"id": 3, "name": "University of Tokyo", "country": "Japan",
     "slotsFall": 1, "slotsSpring": 1, "slotsFlexible": 1},
    {"id": 4, "name": "National University of Singapore", "country": "Singapore",
     "slotsFall": 2, "slotsSpring": 2, "slotsFlexible": 0},
    {"id": 5, "name": "University of Melbourne", "country": "Australia",
     "slotsFall": 0, "slotsSpring": 2, "slotsFlexible": 2},
    {"id": 6, "name": "Seoul National University", "country": "South Korea",
     "slotsFall": 1, "slotsSpring": 1, "slotsFlexible": 0},
    {"id": 7, "name": "Technical University of Munich", "country": "Germany",
     "slotsFall": 2, "slotsSpring": 0, "slotsFlexible": 0},
]

DEMO_PARTICIPANTS = [
    {"id": 1, "name": "Alice Chen", "rank": 1, "needsSecondRound": True},
    {"id": 2, "name": "Bob Smith", "rank": 2, "needsSecondRound": True},
    {"id": 3, "name": "Charlie Kim", "rank": 3, "needsSecondRound": True},
    {"id": 4, "name": "David Lee", "rank": 4, "needsSecondRound": True},
    {"id": 5, "name": "Eve Patel", "rank": 5, "needsSecondRound": True},
    {"id": 6, "name": "Frank Wright", "rank": 6, "needsSecondRound": True},
]


def seed_demo_data(manager: AllocationManager) -> bool:
    """
    資料庫為空時載入示範資料

    返回：
        True 如果有載入，False 如果已有資料（不覆蓋）
    """
    if not manager.is_empty():
        return False

    manager.reset_data(parse_participants(DEMO_PARTICIPANTS), parse_schools(DEMO_SCHOOLS))
    logger.info(
        f"Seeded demo data: {len(DEMO_PARTICIPANTS)} participants, {len(DEMO_SCHOOLS)} schools"
    )
    return True
