"""
Entity store contract used by the progression engine, and its MongoDB
implementation.

The engine only talks to `TrainingStore`. Every method may fail with
`PersistenceError`; callers must treat that as "nothing changed".
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import List, Optional

from pymongo.errors import PyMongoError

from onboarding.core.exceptions import PersistenceError
from onboarding.core.models.course import Course, DocumentTemplate
from onboarding.core.models.progress import CourseAssignment, ModuleProgress
from onboarding.core.models.documents import (
    CourseDocument,
    CourseAssignmentDocument,
    ModuleProgressDocument,
    DocumentTemplateDocument,
)
from onboarding.core.monitoring.prometheus_middleware import track_db_operation

logger = logging.getLogger(__name__)


class TrainingStore(ABC):

    @abstractmethod
    async def get_course(self, course_id: str) -> Optional[Course]: ...

    @abstractmethod
    async def get_document_template(self, template_id: str) -> Optional[DocumentTemplate]: ...

    @abstractmethod
    async def get_assignment(self, assignment_id: str) -> Optional[CourseAssignment]: ...

    @abstractmethod
    async def list_assignments(
        self, employee_id: Optional[str] = None, course_id: Optional[str] = None
    ) -> List[CourseAssignment]: ...

    @abstractmethod
    async def create_assignment(self, assignment: CourseAssignment) -> CourseAssignment: ...

    @abstractmethod
    async def update_assignment(self, assignment: CourseAssignment) -> CourseAssignment: ...

    @abstractmethod
    async def list_module_progress(self, assignment_id: str) -> List[ModuleProgress]: ...

    @abstractmethod
    async def upsert_module_progress(self, progress: ModuleProgress) -> ModuleProgress:
        """Insert or replace the record keyed by (assignment_id, module_id)."""


@asynccontextmanager
async def _db_call(operation_type: str, collection: str):
    start = time.time()
    try:
        yield
    except PyMongoError as e:
        track_db_operation(operation_type, collection, time.time() - start, success=False)
        logger.error(f"{operation_type} on {collection} failed: {e}")
        raise PersistenceError(f"Could not {operation_type} {collection}, please retry") from e
    track_db_operation(operation_type, collection, time.time() - start, success=True)


class BeanieTrainingStore(TrainingStore):
    """TrainingStore backed by the Beanie documents registered in mongodb.py."""

    async def get_course(self, course_id: str) -> Optional[Course]:
        async with _db_call("find", "courses"):
            doc = await CourseDocument.find_one(CourseDocument.course_id == course_id)
        return doc.to_domain() if doc else None

    async def get_document_template(self, template_id: str) -> Optional[DocumentTemplate]:
        async with _db_call("find", "document_templates"):
            doc = await DocumentTemplateDocument.find_one(
                DocumentTemplateDocument.template_id == template_id
            )
        return doc.to_domain() if doc else None

    async def get_assignment(self, assignment_id: str) -> Optional[CourseAssignment]:
        async with _db_call("find", "course_assignments"):
            doc = await CourseAssignmentDocument.find_one(
                CourseAssignmentDocument.assignment_id == assignment_id
            )
        return doc.to_domain() if doc else None

    async def list_assignments(
        self, employee_id: Optional[str] = None, course_id: Optional[str] = None
    ) -> List[CourseAssignment]:
        query = {}
        if employee_id is not None:
            query["employee_id"] = employee_id
        if course_id is not None:
            query["course_id"] = course_id
        async with _db_call("find", "course_assignments"):
            docs = await CourseAssignmentDocument.find(query).sort("+assigned_date").to_list()
        return [d.to_domain() for d in docs]

    async def create_assignment(self, assignment: CourseAssignment) -> CourseAssignment:
        doc = CourseAssignmentDocument(**CourseAssignmentDocument.field_values(assignment))
        async with _db_call("insert", "course_assignments"):
            await doc.insert()
        return doc.to_domain()

    async def update_assignment(self, assignment: CourseAssignment) -> CourseAssignment:
        async with _db_call("update", "course_assignments"):
            doc = await CourseAssignmentDocument.find_one(
                CourseAssignmentDocument.assignment_id == assignment.id
            )
            if doc is None:
                raise PersistenceError(f"Assignment '{assignment.id}' disappeared before it could be updated")
            await doc.set(CourseAssignmentDocument.field_values(assignment))
        return doc.to_domain()

    async def list_module_progress(self, assignment_id: str) -> List[ModuleProgress]:
        async with _db_call("find", "module_progress"):
            docs = await ModuleProgressDocument.find(
                ModuleProgressDocument.assignment_id == assignment_id
            ).to_list()
        return [d.to_domain() for d in docs]

    async def upsert_module_progress(self, progress: ModuleProgress) -> ModuleProgress:
        values = ModuleProgressDocument.field_values(progress)
        async with _db_call("upsert", "module_progress"):
            doc = await ModuleProgressDocument.find_one(
                ModuleProgressDocument.assignment_id == progress.assignment_id,
                ModuleProgressDocument.module_id == progress.module_id,
            )
            if doc is None:
                doc = ModuleProgressDocument(**values)
                await doc.insert()
            else:
                # Keep the id of the stored row
                values["progress_id"] = doc.progress_id
                await doc.set(values)
        return doc.to_domain()
