"""
CSV 服務：學生 / 學校名單的匯入、匯出與範本

格式：
- 學生：id,name,rank,needsDoubleSemester
- 學校：id,name,country,slotsFall,slotsSpring,slotsFlexible
- UTF-8，可帶 BOM；含逗號或引號的欄位以雙引號包起來

解析結果是 JSON 匯入格式的 dict 列表，之後一律交給 bulk_load_service 驗證。
"""
from typing import Dict, Iterable, List, Optional
import csv
import io

from core.exceptions import BulkLoadValidationError
from core.snapshot import ParticipantState, SchoolState

UTF8_BOM = "\ufeff"

PARTICIPANTS_CSV_HEADER = ["id", "name", "rank", "needsDoubleSemester"]
SCHOOLS_CSV_HEADER = ["id", "name", "country", "slotsFall", "slotsSpring", "slotsFlexible"]

PARTICIPANTS_CSV_TEMPLATE_ROWS = [
    [1, "Alice Chen", 1, "true"],
    [2, "Bob Smith", 2, "true"],
    [3, "Charlie Kim", 3, "true"],
    [4, "David Lee", 4, "true"],
]

SCHOOLS_CSV_TEMPLATE_ROWS = [
    [1, "UC Berkeley", "USA", 1, 1, 0],
    [2, "ETH Zurich", "Switzerland", 2, 0, 1],
    [3, "Univ. of Tokyo", "Japan", 1, 1, 1],
]

TRUE_VALUES = {"true", "1", "yes", "是"}


def _read_rows(csv_text: str) -> List[List[str]]:
    text = csv_text.replace(UTF8_BOM, "").strip()
    rows = [
        [cell.strip() for cell in row]
        for row in csv.reader(io.StringIO(text))
        if any(cell.strip() for cell in row)
    ]
    if len(rows) < 2:
        raise BulkLoadValidationError("CSV needs a header row and at least one data row")
    return rows


def _header_index(header: List[str]) -> Dict[str, int]:
    return {name.lower(): index for index, name in enumerate(header)}


def _cell(row: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def _parse_int(value: str, field: str, line_no: int, default: Optional[int] = None) -> int:
    if value == "" and default is not None:
        return default
    try:
        return int(value)
    except ValueError:
        raise BulkLoadValidationError(f"Line {line_no}: {field} must be an integer, got {value!r}")


def parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def parse_participants_csv(csv_text: str) -> List[dict]:
    """
    解析學生 CSV

    規則：
    - 表頭必須包含 id, name, rank（不分大小寫）
    - needsDoubleSemester 欄位缺少時預設 true
    - 姓名空白的列略過；id 空白時以資料列序號代替
    """
    rows = _read_rows(csv_text)
    columns = _header_index(rows[0])
    if not {"id", "name", "rank"} <= columns.keys():
        raise BulkLoadValidationError("Participant CSV header must include: id, name, rank")

    parsed = []
    for line_no, row in enumerate(rows[1:], start=1):
        name = _cell(row, columns["name"])
        if not name:
            continue
        needs_cell = _cell(row, columns.get("needsdoublesemester"))
        parsed.append({
            "id": _parse_int(_cell(row, columns["id"]), "id", line_no, default=line_no),
            "name": name,
            "rank": _parse_int(_cell(row, columns["rank"]), "rank", line_no),
            "needsSecondRound": parse_bool(needs_cell) if needs_cell else True,
        })
    return parsed


def parse_schools_csv(csv_text: str) -> List[dict]:
    """
    解析學校 CSV

    表頭必須包含 name, country；名額欄位缺少或空白時視為 0。
    """
    rows = _read_rows(csv_text)
    columns = _header_index(rows[0])
    if not {"name", "country"} <= columns.keys():
        raise BulkLoadValidationError("School CSV header must include: name, country")

    parsed = []
    for line_no, row in enumerate(rows[1:], start=1):
        name = _cell(row, columns["name"])
        if not name:
            continue
        parsed.append({
            "id": _parse_int(_cell(row, columns.get("id")), "id", line_no, default=line_no),
            "name": name,
            "country": _cell(row, columns["country"]),
            "slotsFall": _parse_int(_cell(row, columns.get("slotsfall")), "slotsFall", line_no, default=0),
            "slotsSpring": _parse_int(_cell(row, columns.get("slotsspring")), "slotsSpring", line_no, default=0),
            "slotsFlexible": _parse_int(
                _cell(row, columns.get("slotsflexible")), "slotsFlexible", line_no, default=0
            ),
        })
    return parsed


def _write_csv(header: List[str], rows: Iterable[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return UTF8_BOM + buffer.getvalue()


def participants_to_csv(participants: Iterable[ParticipantState]) -> str:
    """匯出目前學生名單（含 BOM，方便 Excel 開啟）"""
    return _write_csv(
        PARTICIPANTS_CSV_HEADER,
        (
            [p.id, p.name, p.rank, "true" if p.needs_second_round else "false"]
            for p in sorted(participants, key=lambda p: p.rank)
        ),
    )


def schools_to_csv(schools: Iterable[SchoolState]) -> str:
    return _write_csv(
        SCHOOLS_CSV_HEADER,
        (
            [s.id, s.name, s.country, s.seats_fall, s.seats_spring, s.seats_flexible]
            for s in schools
        ),
    )


def participants_template() -> str:
    return _write_csv(PARTICIPANTS_CSV_HEADER, PARTICIPANTS_CSV_TEMPLATE_ROWS)


def schools_template() -> str:
    return _write_csv(SCHOOLS_CSV_HEADER, SCHOOLS_CSV_TEMPLATE_ROWS)
