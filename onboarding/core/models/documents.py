from typing import List, Optional, Annotated
from datetime import datetime, time
from beanie import Document, Indexed
from pymongo import IndexModel, ASCENDING
from pydantic import Field

from onboarding.core.models.course import (
    Course, Module, CertificateSource, DocumentTemplate, ModuleType
)
from onboarding.core.models.progress import (
    AssignmentStatus, CourseAssignment, ModuleProgress
)

# =========================================================================
# A. COURSE CATALOGUE (authored elsewhere, read here)
# =========================================================================

class CourseDocument(Document):
    """Published course with its ordered module list."""
    course_id: Annotated[str, Indexed(unique=True)]
    title: str = ""
    description: Optional[str] = None
    is_active: bool = True
    modules: List[Module] = Field(default_factory=list)
    certificate_enabled: bool = False
    certificate_source: Optional[CertificateSource] = None

    class Settings:
        name = "courses"

    def to_domain(self) -> Course:
        return Course(
            id=self.course_id,
            title=self.title,
            description=self.description,
            is_active=self.is_active,
            modules=self.modules,
            certificate_enabled=self.certificate_enabled,
            certificate_source=self.certificate_source,
        )

class DocumentTemplateDocument(Document):
    template_id: Annotated[str, Indexed(unique=True)]
    name: str
    file_url: Optional[str] = None

    class Settings:
        name = "document_templates"

    def to_domain(self) -> DocumentTemplate:
        return DocumentTemplate(id=self.template_id, name=self.name, file_url=self.file_url)

# =========================================================================
# B. EMPLOYEE PROGRESS (State Data)
# =========================================================================

class CourseAssignmentDocument(Document):
    assignment_id: Annotated[str, Indexed(unique=True)]
    employee_id: Annotated[str, Indexed()]
    course_id: Annotated[str, Indexed()]
    course_title: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.NOT_STARTED
    progress_percentage: int = 0
    current_module_id: Optional[str] = None
    certificate_url: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    # BSON has no date type, stored as midnight
    due_date: Optional[datetime] = None

    class Settings:
        name = "course_assignments"

    @classmethod
    def field_values(cls, assignment: CourseAssignment) -> dict:
        values = assignment.model_dump(exclude={"id", "due_date"})
        values["assignment_id"] = assignment.id
        values["due_date"] = datetime.combine(assignment.due_date, time.min) if assignment.due_date else None
        return values

    def to_domain(self) -> CourseAssignment:
        return CourseAssignment(
            id=self.assignment_id,
            employee_id=self.employee_id,
            course_id=self.course_id,
            course_title=self.course_title,
            status=self.status,
            progress_percentage=self.progress_percentage,
            current_module_id=self.current_module_id,
            certificate_url=self.certificate_url,
            assigned_by=self.assigned_by,
            assigned_date=self.assigned_date,
            completed_date=self.completed_date,
            due_date=self.due_date.date() if self.due_date else None,
        )

class ModuleProgressDocument(Document):
    """One row per (assignment, module). The compound index forbids duplicates."""
    progress_id: Annotated[str, Indexed(unique=True)]
    assignment_id: str
    module_id: str
    module_type: ModuleType
    employee_id: Optional[str] = None
    course_id: Optional[str] = None
    completed: bool = False
    progress_percentage: int = 0
    completed_date: Optional[datetime] = None
    quiz_score: Optional[float] = None
    quiz_passed: Optional[bool] = None
    quiz_attempts: int = 0

    class Settings:
        name = "module_progress"
        indexes = [
            IndexModel([("assignment_id", ASCENDING), ("module_id", ASCENDING)], unique=True),
        ]

    @classmethod
    def field_values(cls, progress: ModuleProgress) -> dict:
        values = progress.model_dump(exclude={"id"})
        values["progress_id"] = progress.id
        return values

    def to_domain(self) -> ModuleProgress:
        return ModuleProgress(
            id=self.progress_id,
            assignment_id=self.assignment_id,
            module_id=self.module_id,
            module_type=self.module_type,
            employee_id=self.employee_id,
            course_id=self.course_id,
            completed=self.completed,
            progress_percentage=self.progress_percentage,
            completed_date=self.completed_date,
            quiz_score=self.quiz_score,
            quiz_passed=self.quiz_passed,
            quiz_attempts=self.quiz_attempts,
        )
