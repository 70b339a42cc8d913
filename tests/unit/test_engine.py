"""Unit tests for CourseProgressionEngine against the in-memory store."""
import pytest

from onboarding.core.exceptions import (
    LockedAccessError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from onboarding.core.models.course import CertificateTemplateRef, DocumentTemplate
from onboarding.core.models.progress import AssignmentStatus, UnlockState
from onboarding.modules.training.reading_gate import ReadingGate
from onboarding.modules.training.video_gate import VideoGate

from fakes import FIXED_NOW

EMP = "EMP_001"
ASG = "asg-1"


async def _watch_video(engine):
    return await engine.report_video_progress(EMP, ASG, "m1-video", VideoGate(), 96.0, 100.0)


async def _read_handbook(engine):
    return await engine.report_reading_progress(EMP, ASG, "m2-reading", ReadingGate(), 3200, 4000, 800)


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenModule:
    async def test_first_open_starts_assignment(self, engine, store):
        access = await engine.open_module(EMP, ASG, "m1-video")
        assert access.state == UnlockState.UNLOCKED
        assert access.progress is None
        assert access.assignment.status == AssignmentStatus.IN_PROGRESS
        assert store.assignments[ASG].status == AssignmentStatus.IN_PROGRESS

    async def test_second_open_does_not_write(self, engine, store):
        await engine.open_module(EMP, ASG, "m1-video")
        store.calls.clear()
        await engine.open_module(EMP, ASG, "m1-video")
        assert "update_assignment" not in store.calls

    async def test_locked_module_names_redirect(self, engine, store):
        with pytest.raises(LockedAccessError) as exc:
            await engine.open_module(EMP, ASG, "m3-quiz")
        assert exc.value.module_id == "m3-quiz"
        assert exc.value.redirect_module_id == "m1-video"
        assert exc.value.to_payload()["redirect_module_id"] == "m1-video"
        # a rejected access never starts the course
        assert store.assignments[ASG].status == AssignmentStatus.NOT_STARTED

    async def test_other_employees_assignment_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            await engine.open_module("EMP_999", ASG, "m1-video")

    async def test_unknown_module(self, engine):
        with pytest.raises(NotFoundError):
            await engine.open_module(EMP, ASG, "nope")

    async def test_unknown_assignment(self, engine):
        with pytest.raises(NotFoundError):
            await engine.get_course_state(EMP, "missing")


@pytest.mark.unit
@pytest.mark.asyncio
class TestVideoProgress:
    async def test_partial_watch_writes_nothing(self, engine, store):
        await engine.open_module(EMP, ASG, "m1-video")
        store.calls.clear()
        outcome = await engine.report_video_progress(EMP, ASG, "m1-video", VideoGate(), 30.0, 100.0)
        assert outcome.module_completed is False
        assert outcome.watched_percentage == pytest.approx(30.0)
        assert "upsert_module_progress" not in store.calls
        assert "update_assignment" not in store.calls

    async def test_first_report_without_open_starts_assignment(self, engine, store):
        outcome = await engine.report_video_progress(EMP, ASG, "m1-video", VideoGate(), 30.0, 100.0)
        assert outcome.module_completed is False
        assert outcome.assignment.status == AssignmentStatus.IN_PROGRESS
        assert store.assignments[ASG].status == AssignmentStatus.IN_PROGRESS
        assert "upsert_module_progress" not in store.calls

    async def test_seek_rejection_is_reported(self, engine):
        gate = VideoGate(max_watched_seconds=10.0)
        outcome = await engine.report_video_progress(EMP, ASG, "m1-video", gate, 80.0, 100.0)
        assert outcome.seek_to == 10.0
        assert outcome.module_completed is False

    async def test_completion_persists_record_and_percentage(self, engine, store):
        outcome = await _watch_video(engine)
        assert outcome.module_completed is True
        assert outcome.course_completed is False

        record = store.progress[(ASG, "m1-video")]
        assert record.completed is True
        assert record.progress_percentage == 100
        assert record.completed_date == FIXED_NOW

        assignment = store.assignments[ASG]
        assert assignment.progress_percentage == 33
        assert assignment.current_module_id == "m1-video"
        assert assignment.status == AssignmentStatus.IN_PROGRESS

    async def test_record_written_before_assignment(self, engine, store):
        await engine.open_module(EMP, ASG, "m1-video")
        store.calls.clear()
        await _watch_video(engine)
        writes = [c for c in store.calls if c in ("upsert_module_progress", "update_assignment")]
        assert writes == ["upsert_module_progress", "update_assignment"]

    async def test_failed_write_then_retry_completes_without_rewatch(self, engine, store):
        gate = VideoGate()
        store.fail_on = {"upsert_module_progress"}
        with pytest.raises(PersistenceError):
            await engine.report_video_progress(EMP, ASG, "m1-video", gate, 96.0, 100.0)
        assert (ASG, "m1-video") not in store.progress
        assert gate.max_watched_seconds == 96.0

        store.fail_on = set()
        outcome = await engine.report_video_progress(EMP, ASG, "m1-video", gate, 96.0, 100.0)
        assert outcome.module_completed is True
        assert store.assignments[ASG].progress_percentage == 33

    async def test_assignment_write_failure_is_reconciled_on_retry(self, engine, store):
        await engine.open_module(EMP, ASG, "m1-video")
        store.fail_on = {"update_assignment"}
        with pytest.raises(PersistenceError):
            await _watch_video(engine)
        assert store.progress[(ASG, "m1-video")].completed is True
        assert store.assignments[ASG].progress_percentage == 0

        store.fail_on = set()
        outcome = await _watch_video(engine)
        assert outcome.assignment.progress_percentage == 33
        assert store.assignments[ASG].progress_percentage == 33

    async def test_repeated_completion_is_idempotent(self, engine, store):
        await _watch_video(engine)
        first = store.progress[(ASG, "m1-video")]
        store.calls.clear()

        outcome = await _watch_video(engine)
        assert outcome.module_completed is True
        assert "upsert_module_progress" not in store.calls
        assert "update_assignment" not in store.calls
        assert store.progress[(ASG, "m1-video")] == first

    async def test_wrong_module_type(self, engine):
        with pytest.raises(ValidationError):
            await engine.report_video_progress(EMP, ASG, "m2-reading", VideoGate(), 1.0, 10.0)

    async def test_locked_video_is_rejected(self, engine, course, store):
        store.courses[course.id] = course.model_copy(update={"modules": list(reversed(course.modules))})
        with pytest.raises(LockedAccessError):
            await _watch_video(engine)


@pytest.mark.unit
@pytest.mark.asyncio
class TestReadingProgress:
    async def test_reading_locked_until_video_done(self, engine):
        with pytest.raises(LockedAccessError) as exc:
            await _read_handbook(engine)
        assert exc.value.redirect_module_id == "m1-video"

    async def test_reading_completion(self, engine, store):
        await _watch_video(engine)
        outcome = await _read_handbook(engine)
        assert outcome.module_completed is True
        assert outcome.progress_percentage == 100.0
        assert store.assignments[ASG].progress_percentage == 67
        assert store.assignments[ASG].current_module_id == "m2-reading"

    async def test_partial_scroll(self, engine, store):
        await _watch_video(engine)
        outcome = await engine.report_reading_progress(EMP, ASG, "m2-reading", ReadingGate(), 1600, 4000, 800)
        assert outcome.module_completed is False
        assert outcome.progress_percentage == pytest.approx(50.0)
        assert (ASG, "m2-reading") not in store.progress


@pytest.mark.unit
@pytest.mark.asyncio
class TestQuizAndCompletion:
    async def _unlock_quiz(self, engine):
        await _watch_video(engine)
        await _read_handbook(engine)

    async def test_failed_attempts_are_counted(self, engine, store):
        await self._unlock_quiz(engine)
        wrong = {0: 1, 1: 2, 2: 0, 3: 2}

        first = await engine.submit_quiz(EMP, ASG, "m3-quiz", wrong)
        assert first.passed is False
        assert first.attempts == 1
        assert first.module_completed is False

        second = await engine.submit_quiz(EMP, ASG, "m3-quiz", wrong)
        assert second.attempts == 2
        record = store.progress[(ASG, "m3-quiz")]
        assert record.quiz_attempts == 2
        assert record.completed is False
        assert store.assignments[ASG].status == AssignmentStatus.IN_PROGRESS

    async def test_passing_completes_course_with_certificate(self, engine, store, correct_answers):
        await self._unlock_quiz(engine)
        outcome = await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)

        assert outcome.passed is True
        assert outcome.score_percentage == 100.0
        assert outcome.course_completed is True
        assignment = store.assignments[ASG]
        assert assignment.status == AssignmentStatus.COMPLETED
        assert assignment.progress_percentage == 100
        assert assignment.completed_date == FIXED_NOW
        assert assignment.certificate_url == "/static/uploads/certificates/safety.pdf"

    async def test_resubmission_after_completion_never_reopens(self, engine, store, correct_answers):
        await self._unlock_quiz(engine)
        await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        completed = store.assignments[ASG]

        outcome = await engine.submit_quiz(EMP, ASG, "m3-quiz", {})
        record = store.progress[(ASG, "m3-quiz")]
        assert outcome.passed is False
        assert record.completed is True
        assert record.quiz_attempts == 2
        assert record.quiz_score == 0.0
        assert store.assignments[ASG] == completed

    async def test_review_is_returned(self, engine, correct_answers):
        await self._unlock_quiz(engine)
        outcome = await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        assert len(outcome.review) == 4
        assert all(item.is_correct for item in outcome.review)

    async def test_template_certificate(self, engine, store, course, correct_answers):
        store.templates["tpl-1"] = DocumentTemplate(id="tpl-1", name="Cert", file_url="/static/uploads/tpl-1.pdf")
        store.courses[course.id] = course.model_copy(
            update={"certificate_source": CertificateTemplateRef(template_id="tpl-1")}
        )
        await self._unlock_quiz(engine)
        await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        assert store.assignments[ASG].certificate_url == "/static/uploads/tpl-1.pdf"

    async def test_missing_template_completes_without_certificate(self, engine, store, course, correct_answers):
        store.courses[course.id] = course.model_copy(
            update={"certificate_source": CertificateTemplateRef(template_id="gone")}
        )
        await self._unlock_quiz(engine)
        outcome = await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        assert outcome.course_completed is True
        assert store.assignments[ASG].certificate_url is None

    async def test_certificates_disabled(self, engine, store, course, correct_answers):
        store.courses[course.id] = course.model_copy(update={"certificate_enabled": False})
        await self._unlock_quiz(engine)
        await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        assignment = store.assignments[ASG]
        assert assignment.status == AssignmentStatus.COMPLETED
        assert assignment.certificate_url is None

    async def test_course_state_after_completion(self, engine, correct_answers):
        await self._unlock_quiz(engine)
        await engine.submit_quiz(EMP, ASG, "m3-quiz", correct_answers)
        state = await engine.get_course_state(EMP, ASG)
        assert state.progress_percentage == 100
        assert state.next_module_id is None
        assert [m.state for m in state.modules] == [UnlockState.COMPLETED] * 3


@pytest.mark.unit
@pytest.mark.asyncio
class TestReadingStartsAssignment:
    async def test_first_scroll_report_starts_assignment(self, engine, store, course):
        store.courses[course.id] = course.model_copy(update={"modules": [course.modules[1]]})
        outcome = await engine.report_reading_progress(EMP, ASG, "m2-reading", ReadingGate(), 100, 4000, 800)
        assert outcome.module_completed is False
        assert store.assignments[ASG].status == AssignmentStatus.IN_PROGRESS
