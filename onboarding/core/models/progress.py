from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field
from datetime import date, datetime
from enum import Enum

from onboarding.core.models.course import ModuleType

# =========================================================================
# ENUMS (Restricted Values)
# =========================================================================

class AssignmentStatus(str, Enum):
    """Lifecycle of an enrollment. Only ever moves forward."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class UnlockState(str, Enum):
    """Access state of a module for one assignment."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"

# =========================================================================
# EMPLOYEE PROGRESS (State Data)
# =========================================================================

def _new_id() -> str:
    return str(uuid4())

class CourseAssignment(BaseModel):
    """One employee's enrollment in a course."""
    id: str = Field(default_factory=_new_id)
    employee_id: str
    course_id: str
    course_title: Optional[str] = None
    status: AssignmentStatus = Field(default=AssignmentStatus.NOT_STARTED)
    progress_percentage: int = Field(default=0, ge=0, le=100)
    current_module_id: Optional[str] = None
    certificate_url: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    due_date: Optional[date] = None

class ModuleProgress(BaseModel):
    """Completion record for one (assignment, module) pair."""
    id: str = Field(default_factory=_new_id)
    assignment_id: str
    module_id: str
    module_type: ModuleType
    employee_id: Optional[str] = None
    course_id: Optional[str] = None
    completed: bool = False
    progress_percentage: int = Field(default=0, ge=0, le=100)
    completed_date: Optional[datetime] = None
    quiz_score: Optional[float] = None
    quiz_passed: Optional[bool] = None
    quiz_attempts: int = 0
