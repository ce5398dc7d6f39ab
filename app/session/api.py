"""
Async client for the interview REST API used by the candidate session.

Payloads come back in camelCase and some references arrive either as a bare id or as an
embedded object. Both are normalised here, once, into the small dataclasses below.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.message = message


def resolve_ref(ref: Any) -> Optional[str]:
    """Turn an id-or-embedded-object reference into its id."""
    if ref is None or ref == "":
        return None
    if isinstance(ref, str):
        return ref
    if isinstance(ref, dict):
        ref_id = ref.get("id") or ref.get("_id")
        return str(ref_id) if ref_id else None
    raise TypeError(f"Unsupported reference: {ref!r}")


@dataclass
class InterviewInfo:
    id: str
    candidate_id: Optional[str]
    role_id: Optional[str]
    tech_stack_ids: List[str]
    status: str
    scheduled_date: date
    scheduled_time: str
    duration: int = 30

    @property
    def scheduled_start(self) -> datetime:
        hour, minute = (int(part) for part in self.scheduled_time.split(":")[:2])
        return datetime.combine(self.scheduled_date, datetime.min.time()).replace(hour=hour, minute=minute)


@dataclass
class QuestionInfo:
    id: str
    text: str
    tech_stack_id: Optional[str] = None
    difficulty: str = "medium"


@dataclass
class TechStackInfo:
    id: str
    name: str
    description: str = field(default="")


def normalize_interview(payload: Dict[str, Any]) -> InterviewInfo:
    stack_ids = [resolve_ref(ref) for ref in payload.get("techStacks") or []]
    # older interviews carry a single techStack instead of the list
    legacy = resolve_ref(payload.get("techStack"))
    if legacy and legacy not in stack_ids:
        stack_ids.append(legacy)

    scheduled_date = payload["scheduledDate"]
    if isinstance(scheduled_date, str):
        scheduled_date = date.fromisoformat(scheduled_date[:10])

    return InterviewInfo(
        id=resolve_ref(payload),
        candidate_id=resolve_ref(payload.get("candidate")),
        role_id=resolve_ref(payload.get("role")),
        tech_stack_ids=[stack_id for stack_id in stack_ids if stack_id],
        status=payload.get("status", "scheduled"),
        scheduled_date=scheduled_date,
        scheduled_time=payload.get("scheduledTime", "00:00"),
        duration=int(payload.get("duration") or 30),
    )


def normalize_question(payload: Dict[str, Any]) -> QuestionInfo:
    return QuestionInfo(
        id=resolve_ref(payload),
        text=payload.get("text", ""),
        tech_stack_id=resolve_ref(payload.get("techStack")),
        difficulty=payload.get("difficulty", "medium"),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    if detail:
        return str(detail)
    return response.reason_phrase


class InterviewApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "InterviewApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, f"Network error: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message)
        if not response.content:
            return None
        return response.json()

    # Interviews

    async def get_interview(self, interview_id: str) -> InterviewInfo:
        return normalize_interview(await self._request("GET", f"/interviews/{interview_id}"))

    async def list_questions(self, interview_id: str) -> List[QuestionInfo]:
        payload = await self._request("GET", f"/interviews/{interview_id}/questions")
        return [normalize_question(item) for item in payload or []]

    async def list_tech_stacks(self) -> List[TechStackInfo]:
        payload = await self._request("GET", "/techstacks")
        return [
            TechStackInfo(id=resolve_ref(item), name=item.get("name", ""), description=item.get("description") or "")
            for item in payload or []
        ]

    async def start_interview(self, interview_id: str) -> InterviewInfo:
        return normalize_interview(await self._request("POST", f"/interviews/{interview_id}/start"))

    async def update_status(self, interview_id: str, status: str) -> InterviewInfo:
        payload = await self._request("PUT", f"/interviews/{interview_id}", json={"status": status})
        return normalize_interview(payload)

    # Answers

    async def list_answers(self, interview_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", "/answers", params={"interview": interview_id}) or []

    async def create_answer(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/answers", json=payload)

    async def update_answer(self, answer_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/answers/{answer_id}", json=payload)

    async def batch_answers(self, payloads: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await self._request("POST", "/answers/batch", json=payloads) or []

    # Audio and AI

    async def upload_audio(self, filename: str, data: bytes, content_type: str) -> str:
        payload = await self._request("POST", "/uploads", files={"audio": (filename, data, content_type)})
        return payload["fileUrl"]

    async def transcribe(self, filename: str, data: bytes, content_type: str) -> str:
        payload = await self._request("POST", "/ai/transcribe", files={"audio": (filename, data, content_type)})
        return payload.get("text", "")

    async def evaluate(
        self,
        question: str,
        transcript: Optional[str],
        tech_stack: Optional[str] = None,
        code: Optional[str] = None,
        code_language: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "question": question,
            "transcript": transcript,
            "techStack": tech_stack,
            "code": code,
            "codeLanguage": code_language,
        }
        return await self._request("POST", "/ai/evaluate", json=body)
