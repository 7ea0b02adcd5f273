import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("TESTING", "true")

import asyncio

import pytest
from fastapi.testclient import TestClient

from cbt.core.cache import autosave_storage
from cbt.crud.audit_log import audit_log as crud_audit_log
from cbt.crud.exam import exam as crud_exam
from cbt.crud.submission import submission as crud_submission
from cbt.services.exam_attempt import ExamAttemptService, exam_attempt_service
from cbt.services.grading import GradingService, grading_service
from cbt.services import audit_log  # noqa: F401
from tests.helpers.fakes import FakeClock, FakeGradingProvider, make_exam


@pytest.fixture(autouse=True)
def clean_state():
    crud_exam.clear()
    crud_submission.clear()
    crud_audit_log.clear()
    asyncio.run(autosave_storage.clear())
    exam_attempt_service.reset()
    grading_service.reset_sessions()
    yield
    exam_attempt_service.reset()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def exam():
    return make_exam()


@pytest.fixture
def attempt_service(fake_clock):
    service = ExamAttemptService(clock=fake_clock)
    yield service
    service.reset()


@pytest.fixture
def fake_provider():
    return FakeGradingProvider()


@pytest.fixture
def grader(fake_provider, fake_clock):
    return GradingService(provider=fake_provider, clock=fake_clock)


@pytest.fixture
def client():
    import main
    with TestClient(main.app) as test_client:
        yield test_client
