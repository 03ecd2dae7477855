import logging
import time
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple
from flowbot.engine.assessment import AssessmentSequencer
from flowbot.engine.interpreter import answerable_questions, coerce_answer, find_embedded, validate_answers
from flowbot.engine.navigation import Completion, FlowNavigator, NavigationResult, Outcome
from flowbot.engine.resolver import resolve_module
from flowbot.engine.scheduler import InterviewScheduler
from flowbot.engine.timers import PeriodicTicker
from flowbot.engine.video import VideoInterviewRecorder
from flowbot.models.application import ApplicationData, Feedback
from flowbot.models.flow import ComponentKind, Content, Flow, Module, Question, QuestionType, Template

logger = logging.getLogger(__name__)


class WizardSession:
    """Прохождение флоу одним пользователем."""

    def __init__(self, flow: Flow, templates: Mapping[str, Template], today: Optional[date] = None):
        self.flow = flow
        self.templates = templates
        self.today = today
        self.navigator = FlowNavigator(flow)
        self.data = ApplicationData(flow_id=flow.id)
        self.answers: Dict[str, Dict[str, Any]] = {}
        self.errors: Dict[str, str] = {}
        self.assessment: Optional[AssessmentSequencer] = None
        self.scheduler: Optional[InterviewScheduler] = None
        self.video: Optional[VideoInterviewRecorder] = None
        self.ticker: Optional[PeriodicTicker] = None
        self.completion: Optional[Completion] = None
        self.auto_result: Optional[NavigationResult] = None
        self.last_activity = time.monotonic()
        self._mounted_at: Optional[Tuple[int, int]] = None
        self.mount()

    @property
    def module(self) -> Optional[Module]:
        return self.navigator.current_module

    @property
    def kind(self) -> Optional[ComponentKind]:
        module = self.module
        return module.kind if module else None

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def effective_content(self) -> Content:
        """Содержимое текущего модуля, всегда заново из живого кэша шаблонов."""
        module = self.module
        if module is None:
            return Content()
        return resolve_module(module, self.templates)

    def questions(self) -> List[Question]:
        return self.effective_content().questions or []

    def module_answers(self) -> Dict[str, Any]:
        module = self.module
        if module is None:
            return {}
        return self.answers.setdefault(module.id, {})

    def mount(self, force: bool = False) -> None:
        """Подключение под-движка и валидатора текущей позиции."""
        position = self.navigator.position.as_tuple()
        if position == self._mounted_at and not force:
            return
        self._mounted_at = position
        self.assessment = None
        self.scheduler = None
        self.video = None
        self.errors = {}
        self.navigator.register_controller(None)

        module = self.module
        if module is None:
            return
        kind = module.kind
        embedded = find_embedded(self.questions())
        embedded_type = embedded.type if embedded else None

        if kind == ComponentKind.ASSESSMENT or embedded_type == QuestionType.ASSESSMENT:
            config = embedded.assessment_config if embedded else None
            self.assessment = AssessmentSequencer(config, on_request_advance=self._auto_advance)
            if self.data.assessment:
                self.assessment.restore(self.data.assessment)
            self.navigator.register_controller(self.assessment)
        elif kind == ComponentKind.INTERVIEW_SCHEDULING or embedded_type == QuestionType.INTERVIEW_SCHEDULER:
            self.scheduler = InterviewScheduler(self.today)
            if self.data.interview_scheduling:
                self.scheduler.restore(self.data.interview_scheduling)
        elif kind == ComponentKind.VIDEO_INTERVIEW or embedded_type == QuestionType.VIDEO_INTERVIEW:
            config = embedded.video_interview_config if embedded else None
            self.video = VideoInterviewRecorder(config)
            if self.data.video_interview:
                self.video.restore(self.data.video_interview)

        self.navigator.register_validator(position[0], self._validate_current)
        self.navigator.register_cleanup(self._stop_timers)
        logger.debug(f"Mounted module {module.id} ({kind.value}) at {position}")

    def _validate_current(self) -> bool:
        module = self.module
        if module is None:
            return True
        answers = self.module_answers()
        errors = validate_answers(answerable_questions(self.questions()), answers)
        if self.scheduler is not None:
            errors.update(self.scheduler.validate())
        self.errors = errors
        if errors:
            return False

        if answers:
            self.data.update_module(module.id, answers)
        self._snapshot()
        return True

    def _snapshot(self) -> None:
        if self.assessment is not None:
            self.data.assessment = self.assessment.to_data()
        if self.scheduler is not None:
            self.data.interview_scheduling = self.scheduler.to_data()
        if self.video is not None:
            self.data.video_interview = self.video.to_data()

    def _stop_timers(self) -> None:
        if self.ticker is not None:
            self.ticker.cancel()
            self.ticker = None

    def _auto_advance(self) -> None:
        self.auto_result = self.navigator.advance()
        self._after_move(self.auto_result)

    def take_auto_result(self) -> Optional[NavigationResult]:
        result, self.auto_result = self.auto_result, None
        return result

    def _after_move(self, result: NavigationResult) -> NavigationResult:
        if result.outcome == Outcome.COMPLETED:
            self.completion = result.completion
        if result.outcome != Outcome.BLOCKED and self.assessment is not None:
            self.data.assessment = self.assessment.to_data()
        self.mount()
        self.touch()
        return result

    def answer(self, question_id: str, raw: Any) -> Any:
        """Сохранение ответа на вопрос текущего модуля."""
        question = next((q for q in self.questions() if q.id == question_id), None)
        if question is None:
            raise ValueError(f"Unknown question: {question_id}")
        answers = self.module_answers()
        value = coerce_answer(question, raw, answers.get(question_id))
        answers[question_id] = value
        self.errors.pop(question_id, None)
        self.touch()
        return value

    def advance(self) -> NavigationResult:
        self.mount()
        return self._after_move(self.navigator.advance())

    def retreat(self) -> NavigationResult:
        self.mount()
        return self._after_move(self.navigator.retreat())

    def assessment_back(self) -> NavigationResult:
        """Назад внутри оценки; с первого экрана уходит на предыдущий модуль."""
        if self.assessment is not None and self.assessment.current_index > 0:
            self.assessment.handle_previous()
            self.touch()
            return NavigationResult(Outcome.DELEGATED, self.navigator.position)
        return self.retreat()

    def video_next(self) -> NavigationResult:
        if self.video is None:
            return self.advance()
        self._stop_timers()
        if self.video.next_question():
            return self.advance()
        self.touch()
        return NavigationResult(Outcome.DELEGATED, self.navigator.position)

    def video_previous(self) -> NavigationResult:
        if self.video is not None and self.video.current_index > 0:
            self._stop_timers()
            self.video.previous_question()
            self.touch()
            return NavigationResult(Outcome.DELEGATED, self.navigator.position)
        return self.retreat()

    def press_button(self, index: int) -> NavigationResult:
        """Нажатие кастомной кнопки модуля."""
        buttons = self.effective_content().custom_buttons or []
        if not 0 <= index < len(buttons):
            raise ValueError(f"Button index {index} is out of range")
        target = buttons[index].target()
        if target is None:
            return self.advance()
        return self._after_move(self.navigator.navigate_custom(target))

    def leave_feedback(self, rating: int, comment: str = "") -> Feedback:
        self.data.feedback = Feedback(rating=rating, comment=comment)
        self.touch()
        return self.data.feedback

    def submit(self) -> Dict[str, Any]:
        summary = self.data.summary()
        logger.info(f"Application submitted for flow {self.flow.slug}: {summary}")
        self.close()
        return summary

    def start_new(self) -> None:
        """Новая попытка: позиция в начало, данные с нуля."""
        self.navigator.restart()
        self.data = ApplicationData(flow_id=self.flow.id)
        self.answers = {}
        self.completion = None
        self.auto_result = None
        self.mount(force=True)
        self.touch()

    def replace_flow(self, flow: Flow) -> None:
        """Подмена флоу после правки авторами; позиция сохраняется, если она ещё есть."""
        if flow.id != self.flow.id:
            return
        shown = self.module
        self.flow = flow
        self.navigator.replace_flow(flow)
        changed = self.module != shown
        if changed:
            self._snapshot()
        self.mount(force=changed)

    def close(self) -> None:
        self.navigator.close()
        self._stop_timers()


class SessionRegistry:
    """Сессии по telegram id."""

    def __init__(self):
        self._sessions: Dict[int, WizardSession] = {}

    def get(self, user_id: int) -> Optional[WizardSession]:
        return self._sessions.get(user_id)

    def start(self, user_id: int, flow: Flow, templates: Mapping[str, Template]) -> WizardSession:
        self.drop(user_id)
        session = WizardSession(flow, templates)
        self._sessions[user_id] = session
        logger.info(f"User {user_id} started flow {flow.slug}")
        return session

    def drop(self, user_id: int) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.close()

    def replace_flow(self, flow: Flow) -> int:
        updated = 0
        for session in self._sessions.values():
            if session.flow.id == flow.id:
                session.replace_flow(flow)
                updated += 1
        return updated

    def expire(self, idle_seconds: float) -> List[int]:
        now = time.monotonic()
        expired = [uid for uid, s in self._sessions.items() if now - s.last_activity > idle_seconds]
        for user_id in expired:
            self.drop(user_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle sessions")
        return expired

    def __len__(self) -> int:
        return len(self._sessions)


sessions = SessionRegistry()
