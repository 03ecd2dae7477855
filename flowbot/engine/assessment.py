"""
Assessment sequencer.

Screens are driven by an ``AssessmentConfig``; the classic four-screen
assessment (welcome, best/worst scenario, agreement scale, single select)
is simply the default configuration.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from flowbot.models.flow import (
    AssessmentConfig,
    AssessmentScreen,
    AssessmentScreenContent,
    AssessmentScreenType,
    ScaleLabels,
)

logger = logging.getLogger(__name__)

BEST = "best"
WORST = "worst"
RATINGS = (1, 2, 3, 4, 5)

DEFAULT_ASSESSMENT_CONFIG = AssessmentConfig(screens=[
    AssessmentScreen(
        id="welcome",
        type=AssessmentScreenType.WELCOME,
        title="Introduction",
        content=AssessmentScreenContent(
            welcome_title="Welcome to the assessment!",
            welcome_description=(
                "You will choose the most suitable and least suitable response for each scenario.\n\n"
                "In the upcoming section, you'll see different scenarios that you may experience while "
                "on the job. Each scenario will have a set of responses listed below it.\n\n"
                "After that section, you'll see a series of statements. You will choose how strongly "
                "you agree or disagree with each statement.\n\n"
                "This will only take about 10 minutes to complete. Let's begin!"
            ),
        ),
    ),
    AssessmentScreen(
        id="scenario1",
        type=AssessmentScreenType.BEST_WORST,
        title="1. What do you do?",
        content=AssessmentScreenContent(
            scenario_title="1. What do you do?",
            scenario_description=(
                "You are waiting for a colleague to take over at the end of your shift, "
                "but they don't show up and you have plans. What do you do?"
            ),
            scenario_responses=[
                "You contact your store manager with a situation update. You decide to delay "
                "meeting your friends until the situation is solved.",
                "You check if someone else is available by calling other colleagues in other stores.",
                "You contact your store manager and tell them that you have to leave as it's the end "
                "of your shift and you will have to close the store.",
            ],
            instruction_text=(
                "Select ✔ next to the response you feel is the best response. Then, select ✘ next to "
                "the response you feel is the worst response. You must select one ✔ and one ✘ to "
                "advance to the next question."
            ),
        ),
    ),
    AssessmentScreen(
        id="agreement1",
        type=AssessmentScreenType.AGREE_SCALE,
        title="2. Do you agree with the statement below?",
        content=AssessmentScreenContent(
            agreement_title="2. Do you agree with the statement below?",
            agreement_statement=(
                "When faced with challenges in store management, I tend to stick to the strategies "
                "I already know, rather than seeking new approaches."
            ),
            scale_labels=ScaleLabels(),
        ),
    ),
    AssessmentScreen(
        id="math1",
        type=AssessmentScreenType.SINGLE_SELECT,
        title="3. Read the text",
        content=AssessmentScreenContent(
            single_select_title="3. Read the text",
            single_select_question="What are the total monthly earnings of Sarah?",
            single_select_description=(
                "Sarah, a Store Associate, earned a base salary of $1,500 per month and a commission "
                "of 5% on her total monthly sales. If she made $3,800 in sales this month, what is "
                "her total monthly earnings?"
            ),
            single_select_options=["$1,700", "$1,850", "$1,950", "$2,000"],
        ),
    ),
])

CHOICE_SCREENS = frozenset({
    AssessmentScreenType.SINGLE_SELECT,
    AssessmentScreenType.LANGUAGE_READING,
    AssessmentScreenType.LANGUAGE_LISTENING,
})


@dataclass
class ScenarioAnswer:
    best: str = ""
    worst: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.best) and bool(self.worst) and self.best != self.worst


def screen_options(screen: AssessmentScreen) -> List[str]:
    content = screen.content
    if screen.type == AssessmentScreenType.BEST_WORST:
        return content.scenario_responses or []
    if screen.type == AssessmentScreenType.SINGLE_SELECT:
        return content.single_select_options or []
    if screen.type == AssessmentScreenType.LANGUAGE_READING:
        return content.language_reading_options or []
    if screen.type == AssessmentScreenType.LANGUAGE_LISTENING:
        return content.language_listening_options or []
    return []


class AssessmentSequencer:
    """Последовательность экранов оценки."""

    def __init__(self, config: Optional[AssessmentConfig] = None,
                 on_request_advance: Optional[Callable[[], Any]] = None):
        screens = config.screens if config and config.screens else DEFAULT_ASSESSMENT_CONFIG.screens
        self.screens: List[AssessmentScreen] = list(screens)
        self.on_request_advance = on_request_advance
        self.current_index = 0
        self.scenario_answers: Dict[str, ScenarioAnswer] = {}
        self.agreement_answers: Dict[str, int] = {}
        self.math_answers: Dict[str, str] = {}
        self.intro_completed = False
        self.completed = False

    @property
    def current_screen(self) -> AssessmentScreen:
        return self.screens[self.current_index]

    @property
    def is_last_screen(self) -> bool:
        return self.current_index >= len(self.screens) - 1

    @property
    def question_count(self) -> int:
        return sum(1 for s in self.screens if s.type != AssessmentScreenType.WELCOME)

    def progress_label(self) -> str:
        screen = self.current_screen
        if screen.type == AssessmentScreenType.WELCOME:
            return "Introduction"
        number = sum(1 for s in self.screens[:self.current_index + 1] if s.type != AssessmentScreenType.WELCOME)
        return f"Question {number} of {self.question_count}"

    def next_label(self) -> str:
        if self.current_screen.type == AssessmentScreenType.WELCOME and self.current_index == 0:
            return "Start"
        return "Complete" if self.is_last_screen else "Next"

    def _screen(self, screen_id: str, *types: AssessmentScreenType) -> AssessmentScreen:
        for screen in self.screens:
            if screen.id == screen_id:
                if types and screen.type not in types:
                    raise ValueError(f"Screen {screen_id} is not of type {', '.join(t.value for t in types)}")
                return screen
        raise ValueError(f"Unknown assessment screen: {screen_id}")

    def select_response(self, screen_id: str, mark: str, response_index: int) -> ScenarioAnswer:
        """Отметка лучшего/худшего ответа с правилом переключения."""
        if mark not in (BEST, WORST):
            raise ValueError(f"Unknown mark: {mark}")
        screen = self._screen(screen_id, AssessmentScreenType.BEST_WORST)
        if not 0 <= response_index < len(screen_options(screen)):
            raise ValueError(f"Response index {response_index} is out of range")

        value = str(response_index)
        answer = self.scenario_answers.get(screen_id)
        if answer is None:
            answer = ScenarioAnswer(
                best=value if mark == BEST else "",
                worst=value if mark == WORST else "",
            )
            self.scenario_answers[screen_id] = answer
        elif mark == BEST and answer.best == value:
            answer.best = ""
        elif mark == WORST and answer.worst == value:
            answer.worst = ""
        elif mark == BEST:
            if answer.worst == value:
                answer.worst = ""
            answer.best = value
        else:
            if answer.best == value:
                answer.best = ""
            answer.worst = value

        if answer.is_complete and self.on_request_advance is not None:
            logger.debug(f"Scenario {screen_id} answered, requesting advance")
            self.on_request_advance()
        return answer

    def rate(self, screen_id: str, rating: int) -> None:
        self._screen(screen_id, AssessmentScreenType.AGREE_SCALE)
        if rating not in RATINGS:
            raise ValueError(f"Rating must be between {RATINGS[0]} and {RATINGS[-1]}")
        self.agreement_answers[screen_id] = rating

    def choose(self, screen_id: str, answer: str) -> None:
        screen = self._screen(screen_id, *CHOICE_SCREENS)
        if answer not in screen_options(screen):
            raise ValueError(f"'{answer}' is not one of the options")
        self.math_answers[screen_id] = answer

    def type_text(self, screen_id: str, text: str) -> None:
        self._screen(screen_id, AssessmentScreenType.LANGUAGE_TYPING)
        self.math_answers[screen_id] = text.strip()

    def can_advance(self) -> bool:
        screen = self.current_screen
        if screen.type == AssessmentScreenType.WELCOME:
            return True
        if screen.type == AssessmentScreenType.BEST_WORST:
            answer = self.scenario_answers.get(screen.id)
            return bool(answer and answer.is_complete)
        if screen.type == AssessmentScreenType.AGREE_SCALE:
            return screen.id in self.agreement_answers
        return bool(self.math_answers.get(screen.id))

    def handle_next(self) -> bool:
        """Переход к следующему экрану; True, когда оценка завершена."""
        if self.current_screen.type == AssessmentScreenType.WELCOME:
            self.intro_completed = True
        if not self.is_last_screen:
            self.current_index += 1
            return False
        self.completed = True
        logger.info("Assessment completed")
        return True

    def handle_previous(self) -> None:
        self.current_index = max(0, self.current_index - 1)

    def to_data(self) -> Dict[str, Any]:
        return {
            "intro_completed": self.intro_completed,
            "completed": self.completed,
            "scenario_answers": [
                {"question_id": qid, "best_response": a.best, "worst_response": a.worst}
                for qid, a in self.scenario_answers.items()
            ],
            "agreement_answers": [
                {"question_id": qid, "rating": rating} for qid, rating in self.agreement_answers.items()
            ],
            "math_answers": [
                {"question_id": qid, "answer": answer} for qid, answer in self.math_answers.items()
            ],
        }

    def restore(self, data: Dict[str, Any]) -> None:
        """Восстановление из сохранённого снимка; приветствие повторно не показывается."""
        self.intro_completed = bool(data.get("intro_completed"))
        self.completed = bool(data.get("completed"))
        self.scenario_answers = {
            a["question_id"]: ScenarioAnswer(a.get("best_response", ""), a.get("worst_response", ""))
            for a in data.get("scenario_answers", [])
        }
        self.agreement_answers = {a["question_id"]: a["rating"] for a in data.get("agreement_answers", [])}
        self.math_answers = {a["question_id"]: a["answer"] for a in data.get("math_answers", [])}
        skip_welcome = (self.intro_completed and len(self.screens) > 1
                        and self.screens[0].type == AssessmentScreenType.WELCOME)
        self.current_index = 1 if skip_welcome else 0
