from typing import Mapping, Optional

from onboarding.core.exceptions import PersistenceError
from onboarding.core.schemas.training import (
    CourseState,
    ModuleAccess,
    QuizSubmissionOutcome,
    ReadingProgressOutcome,
    VideoProgressOutcome,
)
from onboarding.modules.training.engine import CourseProgressionEngine
from onboarding.modules.training.gate_sessions import Gate, GateSessionCache


class TrainingSessionService:
    """
    Glue between the stateless HTTP layer and the engine: loads the gate of
    the current viewing session, lets the engine act on it, and keeps or
    drops it afterwards.
    """

    def __init__(self, engine: CourseProgressionEngine, sessions: GateSessionCache):
        self.engine = engine
        self.sessions = sessions

    async def get_course_state(self, employee_id: str, assignment_id: str) -> CourseState:
        return await self.engine.get_course_state(employee_id, assignment_id)

    async def open_module(self, employee_id: str, assignment_id: str, module_id: str) -> ModuleAccess:
        access = await self.engine.open_module(employee_id, assignment_id, module_id)
        if access.progress is None or not access.progress.completed:
            self.sessions.start(assignment_id, access.module)
        return access

    async def report_video(
        self,
        employee_id: str,
        assignment_id: str,
        module_id: str,
        played_seconds: float,
        duration_seconds: float,
    ) -> VideoProgressOutcome:
        gate = self.sessions.load_video(assignment_id, module_id)
        try:
            outcome = await self.engine.report_video_progress(
                employee_id, assignment_id, module_id, gate, played_seconds, duration_seconds
            )
        except PersistenceError:
            # Keep the watched position so the retry does not need a re-watch
            self.sessions.save(assignment_id, module_id, gate)
            raise
        self._keep_or_drop(assignment_id, module_id, gate, outcome.module_completed)
        return outcome

    async def report_reading(
        self,
        employee_id: str,
        assignment_id: str,
        module_id: str,
        scroll_top: float,
        scroll_height: float,
        client_height: float,
    ) -> ReadingProgressOutcome:
        gate = self.sessions.load_reading(assignment_id, module_id)
        try:
            outcome = await self.engine.report_reading_progress(
                employee_id, assignment_id, module_id, gate, scroll_top, scroll_height, client_height
            )
        except PersistenceError:
            self.sessions.save(assignment_id, module_id, gate)
            raise
        self._keep_or_drop(assignment_id, module_id, gate, outcome.module_completed)
        return outcome

    async def submit_quiz(
        self,
        employee_id: str,
        assignment_id: str,
        module_id: str,
        answers: Mapping[int, int],
    ) -> QuizSubmissionOutcome:
        return await self.engine.submit_quiz(employee_id, assignment_id, module_id, answers)

    def _keep_or_drop(self, assignment_id: str, module_id: str, gate: Optional[Gate], completed: bool) -> None:
        if completed:
            self.sessions.discard(assignment_id, module_id)
        else:
            self.sessions.save(assignment_id, module_id, gate)
