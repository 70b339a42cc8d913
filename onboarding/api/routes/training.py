from fastapi import APIRouter, Depends

from onboarding.core.auth.deps import get_current_user, require_roles
from onboarding.core.cache.cache_manager import get_dragonfly_client
from onboarding.core.models.progress import CourseAssignment
from onboarding.core.schemas.auth import CurrentUser
from onboarding.core.schemas.training import (
    AssignCourseRequest,
    AssignCourseResponse,
    CourseState,
    CourseStats,
    EmployeeDashboard,
    ModuleAccess,
    QuizSubmissionOutcome,
    QuizSubmissionRequest,
    ReadingProgressOutcome,
    ReadingProgressRequest,
    VideoProgressOutcome,
    VideoProgressRequest,
)
from onboarding.modules.training.engine import CourseProgressionEngine
from onboarding.modules.training.enrollment_service import EnrollmentService
from onboarding.modules.training.gate_sessions import GateSessionCache
from onboarding.modules.training.session_service import TrainingSessionService
from onboarding.modules.training.training_store import BeanieTrainingStore, TrainingStore

# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_training_store() -> TrainingStore:
    return BeanieTrainingStore()

def get_gate_sessions() -> GateSessionCache:
    return GateSessionCache(get_dragonfly_client())

def get_session_service(
    store: TrainingStore = Depends(get_training_store),
    sessions: GateSessionCache = Depends(get_gate_sessions),
) -> TrainingSessionService:
    return TrainingSessionService(CourseProgressionEngine(store), sessions)

def get_enrollment_service(store: TrainingStore = Depends(get_training_store)) -> EnrollmentService:
    return EnrollmentService(store)

# =============================================================================
# MAIN ROUTER
# =============================================================================

router = APIRouter(prefix="/training")

# =============================================================================
# ADMIN ROUTES
# =============================================================================

admin_router = APIRouter(prefix="/admin", tags=["Training Admin"])

@admin_router.post(
    "/assignments",
    status_code=201,
    response_model=AssignCourseResponse,
    summary="Assign Course to Employees",
    description="Enrolls each listed employee in the course. Employees already enrolled are skipped."
)
async def assign_course(
    request: AssignCourseRequest,
    current_user: CurrentUser = Depends(require_roles("Admin", "HR")),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.assign_course(
        request.course_id, request.employee_ids, assigned_by=current_user.emp_id, due_date=request.due_date
    )

@admin_router.get(
    "/courses/{course_id}/stats",
    response_model=CourseStats,
    summary="Course Enrollment Statistics",
    description="Counts of enrollments per status, overdue enrollments, and average progress."
)
async def get_course_stats(
    course_id: str,
    current_user: CurrentUser = Depends(require_roles("Admin", "HR")),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.course_stats(course_id)

# =============================================================================
# EMPLOYEE ROUTES
# =============================================================================

employee_router = APIRouter(prefix="/employee", tags=["Training Employee"])

@employee_router.get(
    "/assignments",
    response_model=EmployeeDashboard,
    summary="Get My Training Dashboard",
    description="Returns the caller's enrollments, split into active and completed, with overdue flags."
)
async def get_my_assignments(
    current_user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.list_for_employee(current_user.emp_id)

@employee_router.post(
    "/courses/{course_id}/enroll",
    status_code=201,
    response_model=CourseAssignment,
    summary="Enroll in a Course",
)
async def enroll(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.self_enroll(current_user.emp_id, course_id)

@employee_router.get(
    "/assignments/{assignment_id}",
    response_model=CourseState,
    summary="Get Course Progress",
    description="Per-module lock state, stored progress records and the module to continue with."
)
async def get_course_state(
    assignment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TrainingSessionService = Depends(get_session_service),
):
    return await service.get_course_state(current_user.emp_id, assignment_id)

@employee_router.post(
    "/assignments/{assignment_id}/modules/{module_id}/open",
    response_model=ModuleAccess,
    summary="Open a Module",
    description="Checks the module is unlocked, starts the course on first access, and begins a viewing session.",
    responses={409: {"description": "Module is locked; body names the module to complete first"}}
)
async def open_module(
    assignment_id: str,
    module_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TrainingSessionService = Depends(get_session_service),
):
    return await service.open_module(current_user.emp_id, assignment_id, module_id)

@employee_router.post(
    "/assignments/{assignment_id}/modules/{module_id}/video-progress",
    response_model=VideoProgressOutcome,
    summary="Report Video Playback",
    description="Playback sample. When `seek_to` is set the player must jump back to that position."
)
async def report_video_progress(
    assignment_id: str,
    module_id: str,
    request: VideoProgressRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: TrainingSessionService = Depends(get_session_service),
):
    return await service.report_video(
        current_user.emp_id, assignment_id, module_id, request.played_seconds, request.duration_seconds
    )

@employee_router.post(
    "/assignments/{assignment_id}/modules/{module_id}/reading-progress",
    response_model=ReadingProgressOutcome,
    summary="Report Reading Scroll Position",
)
async def report_reading_progress(
    assignment_id: str,
    module_id: str,
    request: ReadingProgressRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: TrainingSessionService = Depends(get_session_service),
):
    return await service.report_reading(
        current_user.emp_id, assignment_id, module_id,
        request.scroll_top, request.scroll_height, request.client_height,
    )

@employee_router.post(
    "/assignments/{assignment_id}/modules/{module_id}/quiz",
    response_model=QuizSubmissionOutcome,
    summary="Submit Quiz Answers",
    description="Grades the answers. A failed attempt can be retried; every submission counts as an attempt."
)
async def submit_quiz(
    assignment_id: str,
    module_id: str,
    request: QuizSubmissionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: TrainingSessionService = Depends(get_session_service),
):
    return await service.submit_quiz(current_user.emp_id, assignment_id, module_id, request.answers)

# =============================================================================
# INTEGRATION
# =============================================================================

router.include_router(admin_router)
router.include_router(employee_router)
