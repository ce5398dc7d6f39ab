import json
from datetime import datetime

import httpx
import pytest

from app.session.config import SessionSettings
from app.session.machine import (
    InterviewAccessError,
    InterviewNotFoundError,
    SessionState,
    SessionStateError,
    build_session,
)
from app.session.notifications import Notifier
from app.session.progress import ProgressStore, SessionProgress
from app.session.recording import MicrophoneBusyError, MicrophoneLock, RecordingCapture
from app.session.timers import QuestionTimer, TimerEvent

SPOKEN = "React hooks let function components keep state and run effects without classes"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeMic:
    content_type = "audio/webm"

    def __init__(self):
        self.started = 0
        self.released = 0

    def start(self):
        self.started += 1

    def stop(self):
        return b"webm-bytes"

    def release(self):
        self.released += 1


class FakeTranscriber:
    def __init__(self, text=SPOKEN):
        self.text = text

    def start(self):
        pass

    def stop(self):
        return self.text


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_session(fake_api, clock, tmp_path):
    def make(now=datetime(2024, 1, 1, 10, 5), mic=None, notifier=None):
        settings = SessionSettings(api_base_url="http://test/api/v1", api_token="token", progress_dir=str(tmp_path))
        return build_session(
            "iv1",
            settings=settings,
            media_source=mic or FakeMic(),
            live_transcriber=FakeTranscriber(),
            notifier=notifier or Notifier(),
            transport=httpx.MockTransport(fake_api),
            clock=clock,
            now=lambda: now,
        )

    return make


def test_timer_fires_each_event_once(clock):
    timer = QuestionTimer(seconds=120, warning_at=30, grace=5, clock=clock)
    timer.start()

    clock.advance(89)
    assert timer.poll() == []
    clock.advance(1)
    assert timer.poll() == [TimerEvent.WARNING]
    assert timer.poll() == []
    clock.advance(30)
    assert timer.poll() == [TimerEvent.EXPIRED]
    assert timer.in_grace
    clock.advance(4)
    assert timer.poll() == []
    clock.advance(1)
    assert timer.poll() == [TimerEvent.GRACE_EXPIRED]
    assert not timer.running


def test_timer_resumes_from_remaining_seconds(clock):
    timer = QuestionTimer(seconds=120, clock=clock)
    timer.start(45)
    clock.advance(0.5)

    assert timer.remaining == 45
    timer.cancel()
    assert timer.poll() == []


def test_resumed_timer_keeps_its_deadline(clock):
    timer = QuestionTimer(seconds=120, warning_at=30, grace=5, clock=clock)
    timer.start()
    clock.advance(121)
    assert timer.poll() == [TimerEvent.WARNING, TimerEvent.EXPIRED]

    checkpoint = timer.pause()
    assert not timer.running
    clock.advance(2)
    timer.resume(checkpoint)

    assert timer.in_grace
    assert timer.remaining == 0
    clock.advance(2)
    assert timer.poll() == [TimerEvent.GRACE_EXPIRED]


def test_resuming_an_idle_timer_does_nothing(clock):
    timer = QuestionTimer(clock=clock)

    timer.resume(timer.pause())

    assert not timer.running


def test_microphone_is_exclusive():
    lock = MicrophoneLock()
    first = RecordingCapture(FakeMic(), lock)
    second = RecordingCapture(FakeMic(), lock)

    first.start()
    with pytest.raises(MicrophoneBusyError):
        second.start()

    audio = first.stop()
    assert audio.data == b"webm-bytes"
    assert not lock.locked
    second.start()
    assert lock.owner is second


def test_capture_releases_tracks_on_exit():
    mic = FakeMic()
    lock = MicrophoneLock()
    with RecordingCapture(mic, lock, transcriber=FakeTranscriber(), live_transcription=False) as capture:
        capture.start()

    assert mic.released == 1
    assert not lock.locked


def test_progress_falls_back_to_backup_copy(tmp_path):
    store = ProgressStore(tmp_path)
    store.save(SessionProgress(interview_id="iv1", current_index=2, answered=["q1"]))
    (tmp_path / "session" / "interview-progress-iv1.json").write_text("{not json", encoding="utf-8")

    progress = store.load("iv1")

    assert progress.current_index == 2
    assert progress.answered == ["q1"]

    store.discard("iv1")
    assert store.load("iv1") is None


@pytest.mark.anyio
async def test_open_starts_interview_and_writes_progress(make_session, fake_api, tmp_path):
    session = make_session()
    await session.open()

    assert session.state == SessionState.QUESTION_PENDING
    assert session.interview.status == "in-progress"
    assert [q.id for q in session.questions] == ["q1", "q2", "q3"]
    assert session.questions[2].tech_stack_id == "ts1"
    assert session.tech_stack_names == {"ts1": "React"}
    assert fake_api.count("POST", "/interviews/iv1/start") == 1
    for copy in ("session", "local"):
        saved = json.loads((tmp_path / copy / "interview-progress-iv1.json").read_text(encoding="utf-8"))
        assert saved["current_index"] == 0


@pytest.mark.anyio
async def test_open_outside_window_is_refused(make_session, fake_api):
    session = make_session(now=datetime(2024, 1, 1, 9, 0))

    with pytest.raises(InterviewAccessError):
        await session.open()
    assert fake_api.count("POST", "/interviews/iv1/start") == 0


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status, error",
    [(404, InterviewNotFoundError), (403, InterviewAccessError), (401, InterviewAccessError)],
)
async def test_open_maps_api_errors(make_session, fake_api, status, error):
    fake_api.on("GET", "/interviews/iv1", status=status, body={"detail": "nope"})

    with pytest.raises(error):
        await make_session().open()


@pytest.mark.anyio
async def test_open_rejects_finished_and_empty_interviews(make_session, fake_api):
    fake_api.on("GET", "/interviews/iv1/questions", body=[])
    with pytest.raises(InterviewNotFoundError):
        await make_session().open()

    fake_api.on("GET", "/interviews/iv1/questions", body=[{"id": "q1", "techStack": "ts1", "text": "Explain hooks"}])
    _, interview = fake_api.routes[("GET", "/interviews/iv1")]
    fake_api.on("GET", "/interviews/iv1", body={**interview, "status": "completed"})
    with pytest.raises(InterviewAccessError):
        await make_session().open()


@pytest.mark.anyio
async def test_grace_expiry_times_out_without_saving(make_session, clock, fake_api):
    notifier = Notifier()
    session = make_session(notifier=notifier)
    await session.open()

    session.begin_answer(record=False)
    clock.advance(125)
    events = session.tick()

    assert events == [TimerEvent.WARNING, TimerEvent.EXPIRED, TimerEvent.GRACE_EXPIRED]
    assert SessionState.TIMED_OUT in session.history
    assert session.state == SessionState.QUESTION_PENDING
    assert session.index == 0
    assert session.answered == set()
    assert len(notifier.of_level("warning")) == 2
    assert notifier.of_level("error") == ["Time expired. Your answer for this question was not recorded."]
    assert fake_api.count("POST", "/answers") == 0


@pytest.mark.anyio
async def test_recorded_answer_is_saved(make_session, clock, fake_api):
    notifier = Notifier()
    mic = FakeMic()
    session = make_session(mic=mic, notifier=notifier)
    await session.open()

    session.begin_answer()
    clock.advance(20)
    session.tick()
    assert session.remaining["q1"] == 100
    session.stop_recording()
    session.set_code("const [n, setN] = useState(0);", "javascript")
    outcome = await session.save_response()

    assert outcome.value.id == "srv-q1"
    assert session.state == SessionState.SAVED
    assert session.answered == {"q1"}
    assert "q1" not in session.remaining
    assert not session.timer.running
    assert mic.released == 1
    stored = fake_api.bodies("POST", "/answers")[0]
    assert stored["transcript"] == SPOKEN
    assert stored["audioUrl"] == "/uploads/1-2.webm"
    assert stored["code"].startswith("const")
    assert fake_api.bodies("POST", "/ai/evaluate")[0]["techStack"] == "React"
    assert notifier.of_level("success") == ["Answer saved"]


@pytest.mark.anyio
async def test_saving_nothing_keeps_answering(make_session):
    session = make_session()
    await session.open()
    session.begin_answer(record=False)

    await session.save_response()

    assert session.state == SessionState.ANSWERING
    assert session.timer.running


@pytest.mark.anyio
async def test_failed_save_during_grace_still_times_out(make_session, clock, fake_api):
    session = make_session()
    await session.open()
    session.begin_answer(record=False)
    clock.advance(121)
    assert session.tick() == [TimerEvent.WARNING, TimerEvent.EXPIRED]

    await session.save_response()
    assert session.state == SessionState.ANSWERING
    assert session.timer.remaining == 0

    clock.advance(4)
    assert session.tick() == [TimerEvent.GRACE_EXPIRED]
    assert session.state == SessionState.QUESTION_PENDING
    assert session.index == 0
    assert fake_api.count("POST", "/answers") == 0


@pytest.mark.anyio
async def test_navigation_only_moves_forward(make_session):
    session = make_session()
    await session.open()

    session.skip()
    session.begin_answer(record=False)
    session.next()
    assert session.index == 2
    assert session.answered == set()

    session.next()
    assert session.state == SessionState.COMPLETE
    assert session.index == 3
    with pytest.raises(SessionStateError):
        session.next()
    with pytest.raises(SessionStateError):
        session.begin_answer()


@pytest.mark.anyio
async def test_reopening_resumes_saved_progress(make_session, fake_api):
    fake_api.on(
        "GET",
        "/answers",
        body=[{"id": "a2", "question": "q2", "transcript": "The virtual DOM is a copy", "audioUrl": "/uploads/x.webm"}],
    )
    first = make_session()
    await first.open()
    first.next()

    second = make_session()
    await second.open()

    assert second.index == 1
    assert second.answered == {"q2"}
    assert second.answers["q2"].persisted


@pytest.mark.anyio
async def test_finalize_batches_unsaved_answers(make_session, fake_api, tmp_path):
    fake_api.on("POST", "/answers", status=500, body={"detail": "db down"})
    session = make_session()
    await session.open()
    session.begin_answer()
    await session.save_response()
    assert not session.answers["q1"].persisted

    report = await session.finalize()

    assert report.ok
    assert report.used_batch
    assert [answer.id for answer in report.persisted] == ["srv-q1"]
    assert fake_api.bodies("PUT", "/interviews/iv1") == [{"status": "completed"}]
    assert session.state == SessionState.COMPLETE
    assert not (tmp_path / "session" / "interview-progress-iv1.json").exists()


@pytest.mark.anyio
async def test_finalize_falls_back_to_individual_saves(make_session, fake_api):
    echo_answer = fake_api.routes[("POST", "/answers")]
    attempts = {"q1": 0}

    def flaky_create(request):
        body = json.loads(request.content)
        attempts[body["question"]] = attempts.get(body["question"], 0) + 1
        if body["question"] == "q1" and attempts["q1"] <= 2:
            return httpx.Response(500, json={"detail": "db down"})
        return echo_answer(request)

    fake_api.on("POST", "/answers", handler=flaky_create)
    fake_api.on("POST", "/answers/batch", status=500, body={"detail": "batch unavailable"})
    session = make_session()
    await session.open()

    session.begin_answer()
    await session.save_response()
    session.next()
    session.begin_answer()
    await session.save_response()
    assert session.answers["q2"].persisted
    session.answers["q2"].persisted = False

    report = await session.finalize()

    assert not report.used_batch
    assert [answer.question_id for answer in report.persisted] == ["q2"]
    assert [answer.question_id for answer, _ in report.failed] == ["q1"]
    assert report.ok

    retried = await session.finalizer.retry("iv1", report.failed[0][0])
    assert retried.value.id == "srv-q1"


@pytest.mark.anyio
async def test_finalize_reuploads_held_audio(make_session, fake_api):
    fake_api.on("POST", "/uploads", status=500, body={"detail": "network"})
    fake_api.on("POST", "/answers", status=500, body={"detail": "db down"})
    session = make_session()
    await session.open()
    session.begin_answer()
    await session.save_response()
    assert session.answers["q1"].audio is not None

    fake_api.on("POST", "/uploads", body={"fileName": "9.webm", "fileUrl": "/uploads/9.webm"})
    await session.finalize()

    assert fake_api.bodies("POST", "/answers/batch")[0][0]["audioUrl"] == "/uploads/9.webm"
    assert session.answers["q1"].audio is None
