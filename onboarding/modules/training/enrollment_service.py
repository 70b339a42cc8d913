import logging
from datetime import date, timedelta
from typing import List, Optional

from onboarding.core.exceptions import NotFoundError, ValidationError
from onboarding.core.models.course import Course
from onboarding.core.models.progress import AssignmentStatus, CourseAssignment
from onboarding.core.schemas.training import (
    AssignCourseResponse,
    AssignmentSummary,
    CourseStats,
    EmployeeDashboard,
)
from onboarding.core.setting import config
from onboarding.modules.training.training_store import TrainingStore
from onboarding.shared.timezone import get_local_now, get_local_today

logger = logging.getLogger(__name__)


def is_overdue(assignment: CourseAssignment, today: date) -> bool:
    return (
        assignment.due_date is not None
        and assignment.due_date < today
        and assignment.status != AssignmentStatus.COMPLETED
    )


class EnrollmentService:
    """Creates course assignments and summarises them for learners and HR."""

    def __init__(self, store: TrainingStore):
        self.store = store

    async def _active_course(self, course_id: str) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError(f"Course '{course_id}' not found")
        if not course.is_active:
            raise ValidationError(f"Course '{course_id}' is not active")
        return course

    async def assign_course(
        self,
        course_id: str,
        employee_ids: List[str],
        assigned_by: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> AssignCourseResponse:
        """
        Enroll each employee once. Employees already holding an assignment for
        this course are skipped, not duplicated.
        """
        course = await self._active_course(course_id)
        existing = await self.store.list_assignments(course_id=course_id)
        enrolled = {a.employee_id for a in existing}

        if due_date is None:
            due_date = get_local_today() + timedelta(days=config.DEFAULT_DUE_DAYS)

        response = AssignCourseResponse()
        # dict.fromkeys keeps request order while dropping repeats
        for employee_id in dict.fromkeys(employee_ids):
            if employee_id in enrolled:
                response.skipped_employee_ids.append(employee_id)
                continue
            created = await self.store.create_assignment(CourseAssignment(
                employee_id=employee_id,
                course_id=course.id,
                course_title=course.title,
                assigned_by=assigned_by,
                assigned_date=get_local_now(),
                due_date=due_date,
            ))
            response.created.append(created)

        logger.info(
            f"Course '{course_id}' assigned to {len(response.created)} employees "
            f"({len(response.skipped_employee_ids)} already enrolled)"
        )
        return response

    async def self_enroll(self, employee_id: str, course_id: str) -> CourseAssignment:
        result = await self.assign_course(course_id, [employee_id], assigned_by=employee_id)
        if not result.created:
            raise ValidationError(f"Already enrolled in course '{course_id}'")
        return result.created[0]

    async def list_for_employee(self, employee_id: str) -> EmployeeDashboard:
        today = get_local_today()
        dashboard = EmployeeDashboard()
        for assignment in await self.store.list_assignments(employee_id=employee_id):
            summary = AssignmentSummary(assignment=assignment, is_overdue=is_overdue(assignment, today))
            if assignment.status == AssignmentStatus.COMPLETED:
                dashboard.completed.append(summary)
            else:
                dashboard.active.append(summary)
        return dashboard

    async def course_stats(self, course_id: str) -> CourseStats:
        if await self.store.get_course(course_id) is None:
            raise NotFoundError(f"Course '{course_id}' not found")

        today = get_local_today()
        assignments = await self.store.list_assignments(course_id=course_id)
        stats = CourseStats(course_id=course_id, total_assigned=len(assignments))
        for a in assignments:
            if a.status == AssignmentStatus.NOT_STARTED:
                stats.not_started += 1
            elif a.status == AssignmentStatus.IN_PROGRESS:
                stats.in_progress += 1
            else:
                stats.completed += 1
            if is_overdue(a, today):
                stats.overdue += 1
        if assignments:
            stats.average_progress = round(
                sum(a.progress_percentage for a in assignments) / len(assignments), 1
            )
        return stats
