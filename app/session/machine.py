"""
Candidate-side interview session.

``InterviewSession`` walks the candidate through the question list one question at a
time::

    NotStarted -> QuestionPending -> Answering -> Saved -> QuestionPending ... -> Complete
                                         |
                                      TimedOut -> QuestionPending (same question)

Only ``save_response()`` reaches ``Saved``. ``next()`` and ``skip()`` move forward and
never back. Position and the answered set are written to the progress store on every
change so that reopening the session resumes where it left off.
"""

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from app.core.errors import InterviewWindowError
from app.services.interview_service import check_window
from app.session.api import ApiError, InterviewApiClient, InterviewInfo, QuestionInfo
from app.session.assembler import AnswerAssembler, LocalAnswer
from app.session.config import SessionSettings
from app.session.evaluator import EvaluationRequestor
from app.session.finalizer import BatchFinalizer, FinalizeReport
from app.session.notifications import Notifier
from app.session.progress import ProgressStore, SessionProgress
from app.session.recording import CapturedAudio, LiveTranscriber, MediaSource, MicrophoneLock, RecordingCapture
from app.session.relay import TranscriptionFallback, UploadRelay
from app.session.results import Degraded, Failed, Ok, Outcome
from app.session.timers import QuestionTimer, TimerEvent

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NOT_STARTED = "NotStarted"
    QUESTION_PENDING = "QuestionPending"
    ANSWERING = "Answering"
    TIMED_OUT = "TimedOut"
    SAVED = "Saved"
    COMPLETE = "Complete"


class InterviewAccessError(Exception):
    """The candidate may not take this interview now (ownership or window)."""


class InterviewNotFoundError(Exception):
    pass


class SessionStateError(RuntimeError):
    pass


class InterviewSession:
    def __init__(
        self,
        interview_id: str,
        api: InterviewApiClient,
        assembler: AnswerAssembler,
        finalizer: BatchFinalizer,
        progress_store: ProgressStore,
        notifier: Notifier,
        capture: Optional[RecordingCapture] = None,
        settings: Optional[SessionSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.interview_id = interview_id
        self.api = api
        self.assembler = assembler
        self.finalizer = finalizer
        self.progress_store = progress_store
        self.notifier = notifier
        self.capture = capture
        self.settings = settings or SessionSettings()
        self.now = now
        self.timer = QuestionTimer(
            seconds=self.settings.question_seconds,
            warning_at=self.settings.warning_at_seconds,
            grace=self.settings.grace_seconds,
            clock=clock,
        )

        self.state = SessionState.NOT_STARTED
        self.history: List[SessionState] = [self.state]
        self.interview: Optional[InterviewInfo] = None
        self.questions: List[QuestionInfo] = []
        self.tech_stack_names: Dict[str, str] = {}
        self.index = 0
        self.answered: Set[str] = set()
        self.answers: Dict[str, LocalAnswer] = {}
        self.remaining: Dict[str, int] = {}

        self.pending_audio: Optional[CapturedAudio] = None
        self.code: Optional[str] = None
        self.code_language: Optional[str] = None

    async def __aenter__(self) -> "InterviewSession":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.timer.cancel()
        if self.capture is not None:
            self.capture.release()
        await self.api.aclose()

    # Opening

    async def open(self):
        try:
            self.interview = await self.api.get_interview(self.interview_id)
            self.questions = await self.api.list_questions(self.interview_id)
        except ApiError as exc:
            if exc.status_code == 404:
                raise InterviewNotFoundError("Interview not found") from exc
            if exc.status_code in (401, 403):
                raise InterviewAccessError(exc.message) from exc
            raise

        if not self.questions:
            raise InterviewNotFoundError("No questions found for this interview")
        if self.interview.status in ("completed", "cancelled"):
            raise InterviewAccessError(f"This interview is {self.interview.status}")

        if self.interview.status == "scheduled":
            # advisory only, the server enforces the window on start
            try:
                check_window(self.interview.scheduled_start, self.interview.duration, self.now())
            except InterviewWindowError as exc:
                raise InterviewAccessError(exc.message) from exc
            try:
                self.interview = await self.api.start_interview(self.interview_id)
            except ApiError as exc:
                if exc.status_code in (400, 401, 403):
                    raise InterviewAccessError(exc.message) from exc
                raise

        await self._load_tech_stacks()
        await self._load_existing_answers()
        self._restore_progress()
        self._save_progress()
        logger.info("Opened interview %s at question %d/%d", self.interview_id, self.index + 1, len(self.questions))

    async def _load_tech_stacks(self):
        try:
            stacks = await self.api.list_tech_stacks()
        except ApiError as exc:
            logger.warning("Tech stack names unavailable: %s", exc)
            return
        self.tech_stack_names = {stack.id: stack.name for stack in stacks}

    async def _load_existing_answers(self):
        try:
            payloads = await self.api.list_answers(self.interview_id)
        except ApiError as exc:
            logger.warning("Existing answers unavailable: %s", exc)
            return

        question_ids = {question.id for question in self.questions}
        for payload in payloads:
            answer = LocalAnswer.from_server(payload)
            if answer.question_id not in question_ids:
                continue
            self.answers[answer.question_id] = answer
            if answer.complete:
                self.answered.add(answer.question_id)

    def _restore_progress(self):
        progress = self.progress_store.load(self.interview_id)
        if progress is not None:
            question_ids = {question.id for question in self.questions}
            self.index = max(0, progress.current_index)
            self.answered |= {qid for qid in progress.answered if qid in question_ids}
            self.remaining = {qid: secs for qid, secs in progress.remaining.items() if qid in question_ids}

        if self.index >= len(self.questions):
            self.index = len(self.questions)
            self._set_state(SessionState.COMPLETE)
        else:
            self._set_state(SessionState.QUESTION_PENDING)

    def _save_progress(self):
        self.progress_store.save(
            SessionProgress(
                interview_id=self.interview_id,
                current_index=self.index,
                answered=sorted(self.answered),
                remaining=self.remaining,
            )
        )

    def _set_state(self, state: SessionState):
        if state != self.state:
            logger.debug("Session %s: %s -> %s", self.interview_id, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    # Answering

    @property
    def current_question(self) -> Optional[QuestionInfo]:
        if 0 <= self.index < len(self.questions):
            return self.questions[self.index]
        return None

    def _require(self, *states: SessionState):
        if self.state not in states:
            raise SessionStateError(f"Not allowed while {self.state.value}")

    def begin_answer(self, record: bool = True):
        """Enter ``Answering`` for the current question and start its countdown."""
        self._require(SessionState.QUESTION_PENDING, SessionState.SAVED)
        question = self.current_question
        if record and self.capture is not None:
            self.capture.start()
        self.timer.start(self.remaining.get(question.id))
        self._set_state(SessionState.ANSWERING)

    def stop_recording(self) -> CapturedAudio:
        """Keep the recording in memory. Nothing is stored until ``save_response()``."""
        self._require(SessionState.ANSWERING)
        if self.capture is None or not self.capture.recording:
            return self.pending_audio or CapturedAudio()
        self.pending_audio = self.capture.stop()
        return self.pending_audio

    def set_code(self, code: Optional[str], language: Optional[str] = None):
        self.code = code
        if language:
            self.code_language = language

    def tick(self) -> List[TimerEvent]:
        events = self.timer.poll()
        question = self.current_question
        for event in events:
            if event == TimerEvent.WARNING:
                self.notifier.warning(f"{self.settings.warning_at_seconds} seconds remaining for this question")
            elif event == TimerEvent.EXPIRED:
                self.notifier.warning(f"Time is up! Save your answer within {self.settings.grace_seconds} seconds")
            elif event == TimerEvent.GRACE_EXPIRED:
                self._time_out()
        if self.timer.running and question is not None:
            self.remaining[question.id] = self.timer.remaining
        return events

    def _time_out(self):
        question = self.current_question
        self.timer.cancel()
        self._discard_capture()
        if question is not None:
            self.remaining.pop(question.id, None)
        self._set_state(SessionState.TIMED_OUT)
        self.notifier.error("Time expired. Your answer for this question was not recorded.")
        self._set_state(SessionState.QUESTION_PENDING)

    def _discard_capture(self):
        if self.capture is not None:
            self.capture.discard()
        self.pending_audio = None
        self.code = None

    async def save_response(self) -> Outcome[LocalAnswer]:
        self._require(SessionState.ANSWERING)
        question = self.current_question
        if self.capture is not None and self.capture.recording:
            self.pending_audio = self.capture.stop()

        checkpoint = self.timer.pause()
        audio = self.pending_audio

        outcome = await self.assembler.assemble(
            self.interview_id,
            question,
            audio=audio,
            transcript=audio.transcript if audio else None,
            code=self.code,
            code_language=self.code_language,
            tech_stack=self.tech_stack_names.get(question.tech_stack_id or ""),
            existing=self.answers.get(question.id),
        )
        if isinstance(outcome, Failed):
            if self.current_question is question and self.state == SessionState.ANSWERING:
                self.timer.resume(checkpoint)
            return outcome

        answer = outcome.value
        self.answers[question.id] = answer
        if answer.complete:
            self.answered.add(question.id)

        # the candidate may have moved on while the answer was being stored
        if self.current_question is question and self.state == SessionState.ANSWERING:
            self.pending_audio = None
            self.code = None
            self.remaining.pop(question.id, None)
            self._set_state(SessionState.SAVED)
        self._save_progress()

        if isinstance(outcome, Ok):
            self.notifier.success("Answer saved")
        return outcome

    async def retry_persist(self, question_id: str) -> Outcome[LocalAnswer]:
        answer = self.answers.get(question_id)
        if answer is None:
            return Failed(KeyError(question_id))
        outcome = await self.assembler.persist(self.interview_id, answer)
        if isinstance(outcome, Degraded):
            self.notifier.warning(outcome.warning)
        else:
            self.notifier.success("Answer saved")
        return outcome

    # Navigation

    def next(self):
        self._advance()

    def skip(self):
        question = self.current_question
        self._advance()
        if question is not None:
            logger.info("Question %s skipped", question.id)

    def _advance(self):
        self._require(SessionState.QUESTION_PENDING, SessionState.ANSWERING, SessionState.SAVED)
        self.timer.cancel()
        self._discard_capture()
        self.index += 1
        if self.index >= len(self.questions):
            self.index = len(self.questions)
            self._set_state(SessionState.COMPLETE)
        else:
            self._set_state(SessionState.QUESTION_PENDING)
        self._save_progress()

    # Finishing

    async def finalize(self) -> FinalizeReport:
        if self.state == SessionState.NOT_STARTED:
            raise SessionStateError("Interview has not been opened")
        self.timer.cancel()
        self._discard_capture()

        report = await self.finalizer.finalize(
            self.interview_id,
            list(self.answers.values()),
            {question.id: question for question in self.questions},
            self.tech_stack_names,
        )
        if report.ok:
            self.progress_store.discard(self.interview_id)
            self.index = len(self.questions)
            self._set_state(SessionState.COMPLETE)
            self.notifier.success("Interview completed")
        return report


def build_session(
    interview_id: str,
    settings: Optional[SessionSettings] = None,
    media_source: Optional[MediaSource] = None,
    live_transcriber: Optional[LiveTranscriber] = None,
    notifier: Optional[Notifier] = None,
    transport=None,
    clock: Callable[[], float] = time.monotonic,
    now: Callable[[], datetime] = datetime.now,
) -> InterviewSession:
    """Wire an ``InterviewSession`` and its collaborators from settings."""
    settings = settings or SessionSettings()
    notifier = notifier or Notifier()
    api = InterviewApiClient(
        settings.api_base_url,
        token=settings.api_token,
        timeout=settings.request_timeout_seconds,
        transport=transport,
    )
    uploader = UploadRelay(api)
    evaluator = EvaluationRequestor(api)
    assembler = AnswerAssembler(
        api,
        notifier,
        uploader,
        TranscriptionFallback(api),
        evaluator,
        hosted_transcription=settings.hosted_transcription_enabled,
    )
    capture = None
    if media_source is not None:
        capture = RecordingCapture(
            media_source,
            MicrophoneLock(),
            transcriber=live_transcriber,
            live_transcription=settings.live_transcription_enabled,
        )
    return InterviewSession(
        interview_id,
        api,
        assembler,
        BatchFinalizer(api, uploader, evaluator, notifier),
        ProgressStore(settings.progress_dir),
        notifier,
        capture=capture,
        settings=settings,
        clock=clock,
        now=now,
    )
