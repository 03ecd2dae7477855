import asyncio
from flowbot.engine.timers import PeriodicTicker
from flowbot.engine.video import COUNTDOWN_SECONDS, VideoInterviewRecorder, format_clock
from flowbot.models.flow import VideoInterviewConfig


def test_format_clock():
    assert format_clock(75) == "01:15"
    assert format_clock(0) == "00:00"
    assert format_clock(-5) == "-00:05"


def test_countdown_then_recording():
    recorder = VideoInterviewRecorder()
    assert recorder.tick() is False

    recorder.start()
    assert recorder.is_counting_down
    for _ in range(COUNTDOWN_SECONDS - 1):
        assert recorder.tick()
    assert not recorder.is_recording

    recorder.tick()
    assert recorder.is_recording
    assert recorder.remaining_seconds == 90

    for _ in range(95):
        recorder.tick()
    assert recorder.remaining_seconds == -5


def test_start_while_ticking_is_ignored():
    recorder = VideoInterviewRecorder()
    recorder.start()
    recorder.tick()
    recorder.start()
    assert recorder.countdown_seconds == COUNTDOWN_SECONDS - 1


def test_stop_marks_answer_only_when_recording():
    recorder = VideoInterviewRecorder()
    recorder.start()
    recorder.stop()
    assert not recorder.is_answered()

    recorder.start()
    for _ in range(COUNTDOWN_SECONDS + 3):
        recorder.tick()
    recorder.stop()
    assert recorder.is_answered("q1")
    assert not recorder.is_ticking


def test_next_and_previous_questions():
    recorder = VideoInterviewRecorder()
    assert recorder.progress_label() == "Question 1 of 2"
    recorder.previous_question()
    assert recorder.current_index == 0

    recorder.start()
    assert recorder.next_question() is False
    assert recorder.current_question.id == "q2"
    assert not recorder.is_ticking

    assert recorder.next_question() is True
    assert recorder.completed
    assert recorder.to_data() == {"completed": True, "answered": [], "questions": 2}


def test_custom_config():
    config = VideoInterviewConfig.model_validate({
        "steps": [{"id": "only", "content": {"question": "Why us?", "timeLimit": 30}}],
    })
    recorder = VideoInterviewRecorder(config)
    assert recorder.current_question.content.question == "Why us?"
    assert recorder.current_question.content.time_limit == 30
    assert recorder.next_question() is True


async def test_ticker_stops_when_tick_reports_idle():
    ticks = []
    refreshed = []

    def tick():
        ticks.append(1)
        return len(ticks) < 3

    async def refresh():
        refreshed.append(1)

    ticker = PeriodicTicker(0.001, tick, on_tick=refresh)
    ticker.start()
    assert ticker.running
    await asyncio.wait_for(ticker._task, timeout=1)

    assert len(ticks) == 3
    assert len(refreshed) == 2
    assert not ticker.running


async def test_ticker_survives_failing_callback_and_cancels():
    async def broken():
        raise RuntimeError("message deleted")

    ticker = PeriodicTicker(0.001, lambda: True, on_tick=broken)
    ticker.start()
    await asyncio.sleep(0.02)
    assert ticker.running

    ticker.cancel()
    assert not ticker.running


def test_restore_keeps_recorded_answers():
    recorder = VideoInterviewRecorder()
    recorder.restore({"completed": True, "answered": ["q2", "gone"], "questions": 2})
    assert recorder.current_index == 0
    assert recorder.completed
    assert recorder.is_answered("q2")
    assert recorder.to_data() == {"completed": True, "answered": ["q2"], "questions": 2}
