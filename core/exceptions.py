"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理。
每個異常帶有穩定的 code，API 層直接回傳給前端。
"""


class ExchangeSelectException(Exception):
    """所有選校異常的基類"""
    code = "error"


# ============ 查詢相關異常 ============

class ParticipantNotFound(ExchangeSelectException):
    """學生不存在"""
    code = "not_found"

    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} not found")


class SchoolNotFound(ExchangeSelectException):
    """學校不存在"""
    code = "not_found"

    def __init__(self, school_id):
        self.school_id = school_id
        super().__init__(f"School {school_id} not found")


# ============ 選校相關異常 ============

class NotYourTurn(ExchangeSelectException):
    """目前不是該學生的順位"""
    code = "not_your_turn"

    def __init__(self, active_rank):
        self.active_rank = active_rank
        if active_rank is None:
            message = "Selection is closed: no participant is currently selecting"
        else:
            message = f"It is currently Rank {active_rank}'s turn"
        super().__init__(message)


class NoCapacity(ExchangeSelectException):
    """該學期名額與彈性名額都已用完"""
    code = "no_capacity"

    def __init__(self, school_id, term):
        self.school_id = school_id
        self.term = term
        super().__init__(f"No slots available for {term.value} at school {school_id}")


class DuplicateTerm(ExchangeSelectException):
    """第二輪不能選擇與第一輪相同的學期"""
    code = "duplicate_term"

    def __init__(self, term):
        self.term = term
        super().__init__(
            f"Round 2 pick must use a different term than round 1 ({term.value})"
        )


class DuplicateSchool(ExchangeSelectException):
    """第二輪不能選擇與第一輪相同的學校"""
    code = "duplicate_school"

    def __init__(self, school_id):
        self.school_id = school_id
        super().__init__(
            f"Round 2 pick must use a different school than round 1 (school {school_id})"
        )


# ============ 管理員匯入異常 ============

class BulkLoadValidationError(ExchangeSelectException):
    """匯入資料格式錯誤（非陣列、缺少必要欄位、型別不符）"""
    code = "validation_error"


# ============ 同步 / 並發異常 ============

class StaleStateVersion(ExchangeSelectException):
    """寫入時 state_version 已被其他請求推進（compare-and-swap 失敗）"""
    code = "stale_state"

    def __init__(self, expected_version, actual_version):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"State changed concurrently (expected version {expected_version}, "
            f"found {actual_version}); reload and retry"
        )


class SessionInvalidated(ExchangeSelectException):
    """綁定的學生已不存在（例如管理員重設資料），需重新登入"""
    code = "session_invalidated"

    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} no longer exists; please log in again")
