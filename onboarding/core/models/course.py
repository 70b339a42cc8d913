from typing import List, Optional, Union, Literal, Annotated
from pydantic import BaseModel, Field, model_validator
from enum import Enum

# =========================================================================
# ENUMS (Restricted Values)
# =========================================================================

class ModuleType(str, Enum):
    """Closed set of learning unit kinds."""
    VIDEO = "video"
    READING = "reading"
    QUIZ = "quiz"

# =========================================================================
# A. QUIZ CONTENT
# =========================================================================

class Question(BaseModel):
    """One multiple-choice question. Options are addressed by index."""
    question_text: str = Field(..., min_length=1, description="Question shown to the learner")
    options: List[str] = Field(..., min_length=2, description="Answer choices, at least two")
    correct_index: int = Field(..., ge=0, description="Index into options of the right answer")
    explanation: Optional[str] = Field(None, description="Shown after grading")

    @model_validator(mode="after")
    def check_correct_index(self):
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} is out of range for {len(self.options)} options"
            )
        return self

# =========================================================================
# B. MODULES (tagged union on `type`)
# =========================================================================

class BaseModule(BaseModel):
    id: str = Field(..., min_length=1, description="Unique within the course")
    title: str = Field(..., min_length=1)

class VideoModule(BaseModule):
    type: Literal["video"] = "video"
    url: str = Field(..., description="Playable video URL")

class ReadingModule(BaseModule):
    """Either an external page (url) or inline HTML content."""
    type: Literal["reading"] = "reading"
    url: Optional[str] = None
    html: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self):
        if not self.url and not self.html:
            raise ValueError("Reading module needs either a url or html content")
        return self

class QuizModule(BaseModule):
    type: Literal["quiz"] = "quiz"
    passing_score: float = Field(..., ge=0, le=100, description="Minimum score percentage to pass")
    questions: List[Question] = Field(default_factory=list)

Module = Annotated[Union[VideoModule, ReadingModule, QuizModule], Field(discriminator="type")]

# =========================================================================
# C. CERTIFICATE SOURCE (tagged union on `kind`)
# =========================================================================

class CertificateTemplateRef(BaseModel):
    """Certificate generated from a document template."""
    kind: Literal["template"] = "template"
    template_id: str = Field(..., min_length=1)

class CertificateFileRef(BaseModel):
    """Certificate served as an uploaded static file."""
    kind: Literal["file"] = "file"
    file_url: str = Field(..., min_length=1)

CertificateSource = Annotated[Union[CertificateTemplateRef, CertificateFileRef], Field(discriminator="kind")]

# =========================================================================
# D. COURSE
# =========================================================================

class Course(BaseModel):
    """
    A published course. Module order in `modules` is the only unlock order.
    """
    id: str
    title: str = ""
    description: Optional[str] = None
    is_active: bool = True
    modules: List[Module] = Field(default_factory=list)
    certificate_enabled: bool = False
    certificate_source: Optional[CertificateSource] = None

    @model_validator(mode="after")
    def check_unique_module_ids(self):
        seen = set()
        for module in self.modules:
            if module.id in seen:
                raise ValueError(f"Duplicate module id '{module.id}' in course '{self.id}'")
            seen.add(module.id)
        return self

    def find_module(self, module_id: str) -> Optional[Module]:
        return next((m for m in self.modules if m.id == module_id), None)

class DocumentTemplate(BaseModel):
    """Read-only view of a document template used for certificates."""
    id: str
    name: str
    file_url: Optional[str] = None
