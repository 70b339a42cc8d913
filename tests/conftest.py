"""
Pytest configuration and shared fixtures for the test suite.
Settings are required at import time, so test defaults are put in the
environment before anything from the package is imported.
"""
import os
import sys
from pathlib import Path
from typing import Dict

os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("DATABASE_NAME", "onboarding_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

# Make tests/fakes.py importable from unit and integration tests
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

import pytest

from onboarding.core.models.course import (
    Course,
    CertificateFileRef,
    ReadingModule,
    VideoModule,
)
from onboarding.core.models.progress import CourseAssignment
from onboarding.modules.training.engine import CourseProgressionEngine

from fakes import FIXED_NOW, InMemoryTrainingStore, make_quiz


@pytest.fixture
def course() -> Course:
    return Course(
        id="safety-101",
        title="Workplace Safety",
        modules=[
            VideoModule(id="m1-video", title="Intro Video", url="https://videos.example.com/intro.mp4"),
            ReadingModule(id="m2-reading", title="Handbook", html="<p>Read me</p>"),
            make_quiz(),
        ],
        certificate_enabled=True,
        certificate_source=CertificateFileRef(file_url="/static/uploads/certificates/safety.pdf"),
    )


@pytest.fixture
def store(course) -> InMemoryTrainingStore:
    store = InMemoryTrainingStore()
    store.add_course(course)
    store.add_assignment(CourseAssignment(
        id="asg-1",
        employee_id="EMP_001",
        course_id=course.id,
        course_title=course.title,
    ))
    return store


@pytest.fixture
def engine(store) -> CourseProgressionEngine:
    return CourseProgressionEngine(store, clock=lambda: FIXED_NOW)


@pytest.fixture
def correct_answers() -> Dict[int, int]:
    return {i: i % 3 for i in range(4)}
