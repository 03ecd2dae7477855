import logging
from typing import Any, Dict, List, Optional, Set
from flowbot.models.flow import VideoInterviewConfig, VideoInterviewStep, VideoStepContent

logger = logging.getLogger(__name__)

COUNTDOWN_SECONDS = 15

DEFAULT_VIDEO_CONFIG = VideoInterviewConfig(steps=[
    VideoInterviewStep(
        id="q1",
        title="Question 1",
        content=VideoStepContent(
            question=(
                "What role do you believe technology (e.g., CRM systems, analytics) "
                "plays in modern sales management?"
            ),
            time_limit=90,
            attempts=3,
        ),
    ),
    VideoInterviewStep(
        id="q2",
        title="Question 2",
        content=VideoStepContent(
            question="Describe a time when you had to overcome a significant challenge in your previous role.",
            time_limit=120,
            attempts=3,
        ),
    ),
])


def format_clock(seconds: int) -> str:
    """Формат MM:SS; отрицательное время показывается со знаком минус."""
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    return f"{sign}{seconds // 60:02d}:{seconds % 60:02d}"


class VideoInterviewRecorder:
    """Вопросы видеоинтервью: обратный отсчёт, запись, переходы."""

    def __init__(self, config: Optional[VideoInterviewConfig] = None):
        steps = config.steps if config and config.steps else DEFAULT_VIDEO_CONFIG.steps
        self.questions: List[VideoInterviewStep] = list(steps)
        self.current_index = 0
        self.countdown_seconds = 0
        self.is_recording = False
        self.elapsed_seconds = 0
        self.answered: Set[str] = set()
        self.completed = False

    @property
    def current_question(self) -> VideoInterviewStep:
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= len(self.questions) - 1

    @property
    def is_counting_down(self) -> bool:
        return self.countdown_seconds > 0

    @property
    def is_ticking(self) -> bool:
        return self.is_counting_down or self.is_recording

    @property
    def remaining_seconds(self) -> int:
        return self.current_question.content.time_limit - self.elapsed_seconds

    def progress_label(self) -> str:
        return f"Question {self.current_index + 1} of {len(self.questions)}"

    def start(self) -> None:
        if self.is_ticking:
            return
        self.countdown_seconds = COUNTDOWN_SECONDS
        self.elapsed_seconds = 0
        logger.debug(f"Countdown started for video question {self.current_question.id}")

    def tick(self) -> bool:
        """Одна секунда таймера; False, если тикать нечему."""
        if self.is_counting_down:
            self.countdown_seconds -= 1
            if self.countdown_seconds == 0:
                self.is_recording = True
                self.elapsed_seconds = 0
            return True
        if self.is_recording:
            self.elapsed_seconds += 1
            return True
        return False

    def stop(self) -> None:
        if self.is_recording:
            self.answered.add(self.current_question.id)
            logger.info(f"Video question {self.current_question.id} recorded in {self.elapsed_seconds}s")
        self._reset()

    def next_question(self) -> bool:
        """Следующий вопрос; True после последнего, родитель продолжает сам."""
        self._reset()
        if self.is_last_question:
            self.completed = True
            return True
        self.current_index += 1
        return False

    def previous_question(self) -> None:
        self._reset()
        self.current_index = max(0, self.current_index - 1)

    def is_answered(self, question_id: Optional[str] = None) -> bool:
        return (question_id or self.current_question.id) in self.answered

    def _reset(self) -> None:
        self.countdown_seconds = 0
        self.is_recording = False
        self.elapsed_seconds = 0

    def to_data(self) -> Dict[str, Any]:
        return {
            "completed": self.completed,
            "answered": [q.id for q in self.questions if q.id in self.answered],
            "questions": len(self.questions),
        }

    def restore(self, data: Dict[str, Any]) -> None:
        known = {q.id for q in self.questions}
        self.answered = {qid for qid in data.get("answered", []) if qid in known}
        self.completed = bool(data.get("completed"))
