import logging
from typing import Optional

from onboarding.core.models.course import (
    Course, CertificateFileRef, CertificateTemplateRef
)
from onboarding.modules.training.training_store import TrainingStore

logger = logging.getLogger(__name__)


class CertificateResolver:
    """
    Turns a course's certificate source into the URL stored on a completed
    assignment. The URL is stored verbatim and never opened here.
    """

    def __init__(self, store: TrainingStore):
        self.store = store

    async def resolve(self, course: Course) -> Optional[str]:
        if not course.certificate_enabled:
            return None

        source = course.certificate_source
        if source is None:
            logger.warning(f"Course '{course.id}' has certificates enabled but no certificate source")
            return None

        if isinstance(source, CertificateFileRef):
            return source.file_url

        if isinstance(source, CertificateTemplateRef):
            template = await self.store.get_document_template(source.template_id)
            if template is None or not template.file_url:
                logger.warning(
                    f"Certificate template '{source.template_id}' for course '{course.id}' "
                    f"is missing or has no file, completing without certificate"
                )
                return None
            return template.file_url

        raise TypeError(f"Unhandled certificate source {type(source).__name__}")
