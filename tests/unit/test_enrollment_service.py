"""Unit tests for enrollment, dashboard and course statistics."""
from datetime import date, timedelta
from unittest.mock import patch

import pytest

from onboarding.core.exceptions import NotFoundError, ValidationError
from onboarding.core.models.progress import AssignmentStatus, CourseAssignment
from onboarding.modules.training.enrollment_service import EnrollmentService, is_overdue

TODAY = date(2026, 3, 2)


@pytest.fixture
def service(store):
    with patch("onboarding.modules.training.enrollment_service.get_local_today", return_value=TODAY):
        yield EnrollmentService(store)


@pytest.mark.unit
class TestIsOverdue:
    def test_past_due_and_open(self):
        a = CourseAssignment(employee_id="E", course_id="c", due_date=TODAY - timedelta(days=1))
        assert is_overdue(a, TODAY) is True

    def test_due_today_is_not_overdue(self):
        a = CourseAssignment(employee_id="E", course_id="c", due_date=TODAY)
        assert is_overdue(a, TODAY) is False

    def test_completed_is_never_overdue(self):
        a = CourseAssignment(
            employee_id="E", course_id="c", due_date=TODAY - timedelta(days=5),
            status=AssignmentStatus.COMPLETED,
        )
        assert is_overdue(a, TODAY) is False

    def test_no_due_date(self):
        assert is_overdue(CourseAssignment(employee_id="E", course_id="c"), TODAY) is False


@pytest.mark.unit
@pytest.mark.asyncio
class TestAssignCourse:
    async def test_creates_one_per_new_employee(self, service, store):
        result = await service.assign_course("safety-101", ["EMP_002", "EMP_003", "EMP_002"], assigned_by="HR_1")
        assert [a.employee_id for a in result.created] == ["EMP_002", "EMP_003"]
        assert result.skipped_employee_ids == []
        created = result.created[0]
        assert created.status == AssignmentStatus.NOT_STARTED
        assert created.course_title == "Workplace Safety"
        assert created.assigned_by == "HR_1"
        assert created.due_date == TODAY + timedelta(days=30)
        assert len(store.assignments) == 3

    async def test_already_enrolled_are_skipped(self, service):
        result = await service.assign_course("safety-101", ["EMP_001", "EMP_004"])
        assert result.skipped_employee_ids == ["EMP_001"]
        assert [a.employee_id for a in result.created] == ["EMP_004"]

    async def test_explicit_due_date(self, service):
        due = date(2026, 6, 30)
        result = await service.assign_course("safety-101", ["EMP_005"], due_date=due)
        assert result.created[0].due_date == due

    async def test_unknown_course(self, service):
        with pytest.raises(NotFoundError):
            await service.assign_course("missing", ["EMP_002"])

    async def test_inactive_course(self, service, store, course):
        store.courses[course.id] = course.model_copy(update={"is_active": False})
        with pytest.raises(ValidationError):
            await service.assign_course(course.id, ["EMP_002"])

    async def test_self_enroll_twice(self, service):
        created = await service.self_enroll("EMP_007", "safety-101")
        assert created.assigned_by == "EMP_007"
        with pytest.raises(ValidationError):
            await service.self_enroll("EMP_007", "safety-101")


@pytest.mark.unit
@pytest.mark.asyncio
class TestDashboardAndStats:
    async def test_dashboard_splits_active_and_completed(self, service, store):
        store.assignments["asg-1"] = store.assignments["asg-1"].model_copy(
            update={"due_date": TODAY - timedelta(days=1)}
        )
        store.add_assignment(CourseAssignment(
            id="asg-2", employee_id="EMP_001", course_id="other",
            status=AssignmentStatus.COMPLETED, progress_percentage=100,
        ))
        dashboard = await service.list_for_employee("EMP_001")
        assert [s.assignment.id for s in dashboard.active] == ["asg-1"]
        assert dashboard.active[0].is_overdue is True
        assert [s.assignment.id for s in dashboard.completed] == ["asg-2"]

    async def test_stats(self, service, store):
        store.add_assignment(CourseAssignment(
            id="asg-2", employee_id="EMP_002", course_id="safety-101",
            status=AssignmentStatus.IN_PROGRESS, progress_percentage=67,
            due_date=TODAY - timedelta(days=3),
        ))
        store.add_assignment(CourseAssignment(
            id="asg-3", employee_id="EMP_003", course_id="safety-101",
            status=AssignmentStatus.COMPLETED, progress_percentage=100,
        ))
        stats = await service.course_stats("safety-101")
        assert stats.total_assigned == 3
        assert (stats.not_started, stats.in_progress, stats.completed) == (1, 1, 1)
        assert stats.overdue == 1
        assert stats.average_progress == pytest.approx(55.7)

    async def test_stats_unknown_course(self, service):
        with pytest.raises(NotFoundError):
            await service.course_stats("missing")
