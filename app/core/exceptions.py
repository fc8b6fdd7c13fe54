# ============================================================================
# Custom Exceptions
# ============================================================================
from typing import Optional

class StudyPlannerException(Exception):
    """Base exception for Study Planner"""
    def __init__(
        self,
        detail: str,
        status_code: int = 400,
        error_code: Optional[str] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "STUDY_PLANNER_ERROR"
        super().__init__(self.detail)

class InvalidRequest(StudyPlannerException):
    def __init__(self, message: str = "Missing required fields"):
        super().__init__(
            detail=message,
            status_code=400,
            error_code="INVALID_REQUEST"
        )

class NotAuthenticated(StudyPlannerException):
    def __init__(self):
        super().__init__(
            detail="Unauthorized",
            status_code=401,
            error_code="NOT_AUTHENTICATED"
        )

class NotOwner(StudyPlannerException):
    def __init__(self, entity: str):
        super().__init__(
            detail=f"Forbidden - you can only modify your own {entity}",
            status_code=403,
            error_code="FORBIDDEN"
        )

class EntityNotFound(StudyPlannerException):
    def __init__(self, entity: str, entity_id: Optional[str] = None):
        detail = f"{entity} not found"
        if entity_id:
            detail += f": {entity_id}"
        super().__init__(
            detail=detail,
            status_code=404,
            error_code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND"
        )

class DuplicateQuestion(StudyPlannerException):
    def __init__(self):
        super().__init__(
            detail="One or more questions already exist in your library",
            status_code=409,
            error_code="DUPLICATE_QUESTION"
        )
