from pydantic import BaseModel, Field
from datetime import date
from typing import Dict, List, Optional

# IMPORT MODELS for Structure reuse
from onboarding.core.models.course import Module
from onboarding.core.models.progress import (
    CourseAssignment,
    ModuleProgress,
    UnlockState,
)
from onboarding.modules.training.quiz_grader import QuestionReview

# --- INPUT SCHEMAS ---

class VideoProgressRequest(BaseModel):
    """One playback sample from the video player."""
    played_seconds: float = Field(..., ge=0, examples=[42.3], description="Current playback position")
    duration_seconds: float = Field(..., ge=0, examples=[600.0], description="Total video length, 0 if not loaded yet")

class ReadingProgressRequest(BaseModel):
    """One scroll sample from the reading pane."""
    scroll_top: float = Field(..., ge=0, examples=[1200])
    scroll_height: float = Field(..., ge=0, examples=[4000])
    client_height: float = Field(..., ge=0, examples=[800])

class QuizSubmissionRequest(BaseModel):
    """Selected option index per question index."""
    answers: Dict[int, int] = Field(
        ...,
        examples=[{"0": 2, "1": 0, "2": 1}],
        description="Map of question index -> selected option index"
    )

class AssignCourseRequest(BaseModel):
    """Request to enroll several employees in one course."""
    course_id: str = Field(..., examples=["safety_basics"])
    employee_ids: List[str] = Field(..., min_length=1, examples=[["EMP_001", "EMP_002"]])
    due_date: Optional[date] = Field(None, description="Defaults to today + DEFAULT_DUE_DAYS")

# --- OUTPUT SCHEMAS ---

class ModuleStatus(BaseModel):
    module_id: str
    title: str
    module_type: str
    state: UnlockState

class CourseState(BaseModel):
    """Assignment as the learner sees it: per-module access and overall progress."""
    assignment: CourseAssignment
    modules: List[ModuleStatus]
    progress: List[ModuleProgress]
    progress_percentage: int
    next_module_id: Optional[str] = None

class ModuleAccess(BaseModel):
    """Returned when a learner opens a module."""
    assignment: CourseAssignment
    module: Module
    state: UnlockState
    progress: Optional[ModuleProgress] = None

class ProgressUpdate(BaseModel):
    """Common part of every gate/grader outcome."""
    assignment: CourseAssignment
    progress: Optional[ModuleProgress] = None
    module_completed: bool = False
    course_completed: bool = False

class VideoProgressOutcome(ProgressUpdate):
    seek_to: Optional[float] = None
    watched_percentage: float = 0.0

class ReadingProgressOutcome(ProgressUpdate):
    progress_percentage: float = 0.0

class QuizSubmissionOutcome(ProgressUpdate):
    score_percentage: float
    passed: bool
    correct_count: int
    total_questions: int
    attempts: int
    review: List[QuestionReview] = Field(default_factory=list)

class AssignmentSummary(BaseModel):
    """Dashboard row for one enrollment."""
    assignment: CourseAssignment
    is_overdue: bool = False

class EmployeeDashboard(BaseModel):
    active: List[AssignmentSummary] = Field(default_factory=list)
    completed: List[AssignmentSummary] = Field(default_factory=list)

class AssignCourseResponse(BaseModel):
    created: List[CourseAssignment] = Field(default_factory=list)
    skipped_employee_ids: List[str] = Field(default_factory=list, description="Already enrolled in this course")

class CourseStats(BaseModel):
    course_id: str
    total_assigned: int = 0
    not_started: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    average_progress: float = 0.0
