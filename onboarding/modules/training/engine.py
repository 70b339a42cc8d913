"""
Course progression engine.

Consumes gate and grader results, persists module progress, and moves the
course assignment through not_started -> in_progress -> completed. All I/O
of the training subsystem happens here; gates and the grader are pure.

Reads always happen before writes inside one operation, and the module
progress write happens before the assignment write. A failed write raises
PersistenceError with the caller's gate untouched, so repeating the same
report completes the module without re-watching or re-reading.
"""

import logging
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Tuple

from onboarding.core.exceptions import LockedAccessError, NotFoundError, ValidationError
from onboarding.core.models.course import (
    Course, Module, ModuleType, QuizModule, ReadingModule, VideoModule
)
from onboarding.core.models.progress import (
    AssignmentStatus, CourseAssignment, ModuleProgress, UnlockState
)
from onboarding.core.monitoring.prometheus_middleware import (
    track_course_completion,
    track_locked_access,
    track_module_completion,
    track_quiz_submission,
    track_video_seek_rejection,
)
from onboarding.core.schemas.training import (
    CourseState,
    ModuleAccess,
    ModuleStatus,
    ProgressUpdate,
    QuizSubmissionOutcome,
    ReadingProgressOutcome,
    VideoProgressOutcome,
)
from onboarding.modules.training.certificate_resolver import CertificateResolver
from onboarding.modules.training.quiz_grader import QuizGrader
from onboarding.modules.training.reading_gate import ReadingGate
from onboarding.modules.training.sequencer import ModuleSequencer
from onboarding.modules.training.training_store import TrainingStore
from onboarding.modules.training.video_gate import VideoGate
from onboarding.shared.timezone import get_local_now

logger = logging.getLogger(__name__)

_Context = Tuple[CourseAssignment, Course, List[ModuleProgress]]


class CourseProgressionEngine:

    def __init__(
        self,
        store: TrainingStore,
        certificate_resolver: Optional[CertificateResolver] = None,
        clock: Callable[[], datetime] = get_local_now,
    ):
        self.store = store
        self.certificate_resolver = certificate_resolver or CertificateResolver(store)
        self.clock = clock

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def _load(self, employee_id: Optional[str], assignment_id: str) -> _Context:
        assignment = await self.store.get_assignment(assignment_id)
        # Another learner's assignment is reported exactly like a missing one.
        if assignment is None or (employee_id is not None and assignment.employee_id != employee_id):
            raise NotFoundError(f"Assignment '{assignment_id}' not found")

        course = await self.store.get_course(assignment.course_id)
        if course is None:
            raise NotFoundError(f"Course '{assignment.course_id}' not found")

        records = await self.store.list_module_progress(assignment.id)
        return assignment, course, records

    @staticmethod
    def _module(course: Course, module_id: str) -> Module:
        module = course.find_module(module_id)
        if module is None:
            raise NotFoundError(f"Module '{module_id}' not found in course '{course.id}'")
        return module

    @staticmethod
    def _record(records: List[ModuleProgress], module_id: str) -> Optional[ModuleProgress]:
        return next((r for r in records if r.module_id == module_id), None)

    def _check_access(self, course: Course, records: List[ModuleProgress], module: Module) -> UnlockState:
        state = ModuleSequencer.compute_unlock_state(course.modules, records)[module.id]
        if state == UnlockState.LOCKED:
            track_locked_access()
            redirect = ModuleSequencer.next_module_id(course.modules, records)
            logger.warning(f"Locked module '{module.id}' requested, redirecting to '{redirect}'")
            raise LockedAccessError(module.id, redirect_module_id=redirect)
        return state

    async def _start(self, assignment: CourseAssignment) -> CourseAssignment:
        """First access to any module moves the assignment to in_progress."""
        if assignment.status != AssignmentStatus.NOT_STARTED:
            return assignment
        assignment = await self.store.update_assignment(
            assignment.model_copy(update={"status": AssignmentStatus.IN_PROGRESS})
        )
        logger.info(f"Assignment '{assignment.id}' started by '{assignment.employee_id}'")
        return assignment

    # =========================================================================
    # READ / OPEN
    # =========================================================================

    async def get_course_state(self, employee_id: Optional[str], assignment_id: str) -> CourseState:
        assignment, course, records = await self._load(employee_id, assignment_id)
        states = ModuleSequencer.compute_unlock_state(course.modules, records)
        return CourseState(
            assignment=assignment,
            modules=[
                ModuleStatus(module_id=m.id, title=m.title, module_type=m.type, state=states[m.id])
                for m in course.modules
            ],
            progress=records,
            progress_percentage=ModuleSequencer.compute_course_percentage(course.modules, records),
            next_module_id=ModuleSequencer.next_module_id(course.modules, records),
        )

    async def open_module(self, employee_id: Optional[str], assignment_id: str, module_id: str) -> ModuleAccess:
        """Access check for a module; the first access starts the assignment."""
        assignment, course, records = await self._load(employee_id, assignment_id)
        module = self._module(course, module_id)
        state = self._check_access(course, records, module)

        assignment = await self._start(assignment)
        return ModuleAccess(
            assignment=assignment,
            module=module,
            state=state,
            progress=self._record(records, module.id),
        )

    # =========================================================================
    # GATE / GRADER EVENTS
    # =========================================================================

    async def report_video_progress(
        self,
        employee_id: Optional[str],
        assignment_id: str,
        module_id: str,
        gate: VideoGate,
        played_seconds: float,
        duration_seconds: float,
    ) -> VideoProgressOutcome:
        assignment, course, records = await self._load(employee_id, assignment_id)
        module = self._module(course, module_id)
        if not isinstance(module, VideoModule):
            raise ValidationError(f"Module '{module_id}' is not a video module")
        self._check_access(course, records, module)
        assignment = await self._start(assignment)

        result = gate.report_progress(played_seconds, duration_seconds)
        if result.seek_to is not None:
            track_video_seek_rejection()

        update = self._unchanged(assignment, records, module)
        if result.completed:
            update = await self._complete_module(assignment, course, records, module)

        return VideoProgressOutcome(
            **update.model_dump(),
            seek_to=result.seek_to,
            watched_percentage=result.watched_percentage,
        )

    async def report_reading_progress(
        self,
        employee_id: Optional[str],
        assignment_id: str,
        module_id: str,
        gate: ReadingGate,
        scroll_top: float,
        scroll_height: float,
        client_height: float,
    ) -> ReadingProgressOutcome:
        assignment, course, records = await self._load(employee_id, assignment_id)
        module = self._module(course, module_id)
        if not isinstance(module, ReadingModule):
            raise ValidationError(f"Module '{module_id}' is not a reading module")
        self._check_access(course, records, module)
        assignment = await self._start(assignment)

        result = gate.report_scroll(scroll_top, scroll_height, client_height)

        update = self._unchanged(assignment, records, module)
        if result.completed:
            update = await self._complete_module(assignment, course, records, module)

        return ReadingProgressOutcome(
            **update.model_dump(),
            progress_percentage=result.progress_percentage,
        )

    async def submit_quiz(
        self,
        employee_id: Optional[str],
        assignment_id: str,
        module_id: str,
        answers: Mapping[int, int],
    ) -> QuizSubmissionOutcome:
        """
        Grade a submission and store it. Every submission counts as an attempt;
        only the latest score is kept. A pass completes the module, a fail
        leaves it open for another try. A completed quiz is never reopened.
        """
        assignment, course, records = await self._load(employee_id, assignment_id)
        module = self._module(course, module_id)
        if not isinstance(module, QuizModule):
            raise ValidationError(f"Module '{module_id}' is not a quiz module")
        self._check_access(course, records, module)

        grade = QuizGrader.grade(answers, module)
        track_quiz_submission(grade.passed)

        existing = self._record(records, module.id)
        already_completed = bool(existing and existing.completed)
        now = self.clock()
        completed = already_completed or grade.passed

        progress = self._base_record(assignment, module, existing).model_copy(update={
            "quiz_score": grade.score_percentage,
            "quiz_passed": grade.passed,
            "quiz_attempts": (existing.quiz_attempts if existing else 0) + 1,
            "completed": completed,
            "progress_percentage": 100 if completed else 0,
            "completed_date": existing.completed_date if already_completed else (now if grade.passed else None),
        })

        update = await self._persist(
            assignment, course, records, module, progress,
            newly_completed=completed and not already_completed,
        )
        logger.info(
            f"Quiz '{module.id}' attempt {progress.quiz_attempts} on assignment '{assignment.id}': "
            f"{grade.score_percentage:.1f}% ({'passed' if grade.passed else 'failed'})"
        )

        return QuizSubmissionOutcome(
            **update.model_dump(),
            score_percentage=grade.score_percentage,
            passed=grade.passed,
            correct_count=grade.correct_count,
            total_questions=grade.total_questions,
            attempts=progress.quiz_attempts,
            review=grade.review,
        )

    # =========================================================================
    # COMPLETION HANDLING
    # =========================================================================

    def _unchanged(
        self, assignment: CourseAssignment, records: List[ModuleProgress], module: Module
    ) -> ProgressUpdate:
        record = self._record(records, module.id)
        return ProgressUpdate(
            assignment=assignment,
            progress=record,
            module_completed=bool(record and record.completed),
            course_completed=assignment.status == AssignmentStatus.COMPLETED,
        )

    def _base_record(
        self, assignment: CourseAssignment, module: Module, existing: Optional[ModuleProgress]
    ) -> ModuleProgress:
        if existing is not None:
            return existing
        return ModuleProgress(
            assignment_id=assignment.id,
            module_id=module.id,
            module_type=ModuleType(module.type),
            employee_id=assignment.employee_id,
            course_id=assignment.course_id,
        )

    async def _complete_module(
        self,
        assignment: CourseAssignment,
        course: Course,
        records: List[ModuleProgress],
        module: Module,
    ) -> ProgressUpdate:
        """Completion signal from a gate. Repeated signals only reconcile the assignment."""
        existing = self._record(records, module.id)
        if existing is not None and existing.completed:
            return await self._persist(assignment, course, records, module, None, newly_completed=False)

        progress = self._base_record(assignment, module, existing).model_copy(update={
            "completed": True,
            "progress_percentage": 100,
            "completed_date": self.clock(),
        })
        return await self._persist(assignment, course, records, module, progress, newly_completed=True)

    async def _persist(
        self,
        assignment: CourseAssignment,
        course: Course,
        records: List[ModuleProgress],
        module: Module,
        progress: Optional[ModuleProgress],
        newly_completed: bool,
    ) -> ProgressUpdate:
        after = ModuleSequencer.with_record(records, progress) if progress is not None else records
        percentage = ModuleSequencer.compute_course_percentage(course.modules, after)
        record_after = self._record(after, module.id)
        module_done = bool(record_after and record_after.completed)
        finishing = (
            assignment.status != AssignmentStatus.COMPLETED
            and module_done
            and percentage == 100
        )

        # Resolve before writing anything so a failed lookup leaves no partial state
        certificate_url = await self.certificate_resolver.resolve(course) if finishing else None

        stored = progress
        if progress is not None:
            stored = await self.store.upsert_module_progress(progress)
            if newly_completed:
                track_module_completion(module.type)
                logger.info(f"Module '{module.id}' completed on assignment '{assignment.id}'")
        else:
            stored = self._record(records, module.id)

        if assignment.status == AssignmentStatus.COMPLETED:
            return ProgressUpdate(
                assignment=assignment, progress=stored, module_completed=module_done, course_completed=True
            )

        changes = {}
        if assignment.status == AssignmentStatus.NOT_STARTED:
            changes["status"] = AssignmentStatus.IN_PROGRESS
        if module_done and (newly_completed or assignment.progress_percentage != percentage):
            changes["progress_percentage"] = percentage
            changes["current_module_id"] = module.id
        if finishing:
            changes["status"] = AssignmentStatus.COMPLETED
            changes["completed_date"] = self.clock()
            changes["certificate_url"] = certificate_url

        if changes:
            assignment = await self.store.update_assignment(assignment.model_copy(update=changes))
            if finishing:
                track_course_completion()
                logger.info(
                    f"Assignment '{assignment.id}' completed "
                    f"(certificate: {assignment.certificate_url or 'none'})"
                )

        return ProgressUpdate(
            assignment=assignment,
            progress=stored,
            module_completed=module_done,
            course_completed=assignment.status == AssignmentStatus.COMPLETED,
        )
