import json
import os
import tempfile
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="skillspark-uploads-"))
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("SMTP_HOST", "")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.cache import question_cache
from app.db.base import Base
from app.db.session import get_db
from app.repositories.user_repository import UserRepository
from app.services.auth_service import hash_password
from app.services.openai_service import OpenAIService, get_openai_service
from app.session.api import InterviewApiClient
from main import app

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_question_cache():
    question_cache.clear()
    yield
    question_cache.clear()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db, name: str, email: str, role: str = "user"):
    repo = UserRepository(db)
    user = repo.create(name=name, email=email, password_hash=hash_password("secret123"), role=role)
    token = repo.issue_token(user)
    return SimpleNamespace(user=user, id=user.id, headers={"Authorization": f"Bearer {token}"})


@pytest.fixture
def admin(db):
    return _make_user(db, "Admin", "admin@example.com", role="admin")


@pytest.fixture
def candidate(db):
    return _make_user(db, "Sam Candidate", "sam@example.com")


@pytest.fixture
def other_candidate(db):
    return _make_user(db, "Alex Other", "alex@example.com")


@pytest.fixture
def tech_stack(client, admin):
    response = client.post(
        "/api/v1/techstacks",
        json={"name": "React", "description": "Frontend library"},
        headers=admin.headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def questions(client, admin, tech_stack):
    created = []
    for text in ("Explain React hooks", "What is the virtual DOM?"):
        response = client.post(
            "/api/v1/questions",
            json={"techStack": tech_stack["id"], "text": text, "difficulty": "medium"},
            headers=admin.headers,
        )
        assert response.status_code == 201
        created.append(response.json())
    return created


@pytest.fixture
def interview(client, admin, candidate, tech_stack):
    response = client.post(
        "/api/v1/interviews",
        json={
            "candidate": candidate.id,
            "techStacks": [tech_stack["id"]],
            "scheduledDate": "2024-01-01",
            "scheduledTime": "10:00",
            "duration": 30,
        },
        headers=admin.headers,
    )
    assert response.status_code == 201
    return response.json()


class FakeCompletions:
    def __init__(self, owner):
        self.owner = owner

    def create(self, **kwargs):
        self.owner.chat_calls.append(kwargs)
        if self.owner.error is not None:
            raise self.owner.error
        message = SimpleNamespace(content=self.owner.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeTranscriptions:
    def __init__(self, owner):
        self.owner = owner

    def create(self, **kwargs):
        self.owner.transcribe_calls.append(kwargs)
        if self.owner.error is not None:
            raise self.owner.error
        return SimpleNamespace(text=self.owner.transcript)


class FakeOpenAIClient:
    """Stands in for ``openai.OpenAI`` with canned replies."""

    def __init__(self):
        self.reply = ""
        self.transcript = ""
        self.error = None
        self.chat_calls = []
        self.transcribe_calls = []
        self.chat = SimpleNamespace(completions=FakeCompletions(self))
        self.audio = SimpleNamespace(transcriptions=FakeTranscriptions(self))


@pytest.fixture
def fake_openai(client):
    fake = FakeOpenAIClient()
    app.dependency_overrides[get_openai_service] = lambda: OpenAIService(client=fake)
    return fake


class FakeApi:
    """httpx ``MockTransport`` handler routing by (method, path) and recording calls."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method: str, path: str, status: int = 200, body=None, handler=None):
        self.routes[(method, path)] = handler or (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        self.calls.append((request.method, path, request))
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1] == path)

    def bodies(self, method: str, path: str):
        return [json.loads(call[2].content) for call in self.calls if call[0] == method and call[1] == path]

    def client(self) -> InterviewApiClient:
        return InterviewApiClient("http://test/api/v1", token="token", transport=httpx.MockTransport(self))


def echo_answer(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(201, json={**body, "id": f"srv-{body['question']}", "createdAt": "2024-01-01T10:05:00"})


def echo_batch(request: httpx.Request) -> httpx.Response:
    items = json.loads(request.content)
    return httpx.Response(
        201,
        json=[{**item, "id": f"srv-{item['question']}", "createdAt": "2024-01-01T10:05:00"} for item in items],
    )


EVALUATION = {
    "score": 7.5,
    "feedback": "Solid explanation of hooks.",
    "criteria": {"technicalAccuracy": 8, "completeness": 7, "clarity": 7, "examples": 6},
    "evaluationMethod": "openai",
}

INTERVIEW = {
    "id": "iv1",
    "candidate": {"id": "u1", "name": "Sam"},
    "role": None,
    "techStacks": [{"id": "ts1", "name": "React"}],
    "status": "scheduled",
    "scheduledDate": "2024-01-01",
    "scheduledTime": "10:00",
    "duration": 30,
}

QUESTIONS = [
    {"id": "q1", "techStack": "ts1", "text": "Explain React hooks", "difficulty": "easy"},
    {"id": "q2", "techStack": "ts1", "text": "What is the virtual DOM in React?", "difficulty": "medium"},
    {"id": "q3", "techStack": {"id": "ts1", "name": "React"}, "text": "How does React render?", "difficulty": "hard"},
]


@pytest.fixture
def fake_api():
    api = FakeApi()
    api.on("GET", "/interviews/iv1", body=INTERVIEW)
    api.on("GET", "/interviews/iv1/questions", body=QUESTIONS)
    api.on("GET", "/techstacks", body=[{"id": "ts1", "name": "React", "description": "Frontend"}])
    api.on("POST", "/interviews/iv1/start", body={**INTERVIEW, "status": "in-progress"})
    api.on("PUT", "/interviews/iv1", body={**INTERVIEW, "status": "completed"})
    api.on("GET", "/answers", body=[])
    api.on("POST", "/uploads", body={"fileName": "1-2.webm", "fileUrl": "/uploads/1-2.webm"})
    api.on("POST", "/ai/transcribe", body={"text": "hosted transcript of the answer about hooks"})
    api.on("POST", "/ai/evaluate", body=EVALUATION)
    api.on("POST", "/answers", handler=echo_answer)
    api.on("POST", "/answers/batch", handler=echo_batch)
    return api
