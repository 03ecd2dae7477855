from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_PRIMARY_COLOR = "#6366F1"


class CamelModel(BaseModel):
    """Базовая модель: camelCase в хранилище, snake_case в коде."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class QuestionType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    PHONE = "phone"
    FILE = "file"
    IMAGE = "image"
    MESSAGE = "message"
    INTERVIEW_SCHEDULER = "interview-scheduler"
    ASSESSMENT = "assessment"
    VIDEO_INTERVIEW = "video-interview"


# Типы, которые отдают управление под-движку и не хранят значение в форме
EMBEDDED_TYPES = frozenset({
    QuestionType.INTERVIEW_SCHEDULER,
    QuestionType.ASSESSMENT,
    QuestionType.VIDEO_INTERVIEW,
})
PAIRABLE_TYPES = frozenset({QuestionType.TEXT, QuestionType.SELECT})


class ComponentKind(str, Enum):
    GENERIC = "CustomStep"
    CONTACT_INFO = "ContactInfoStep"
    PRE_SCREENING = "PreScreeningStep"
    SCREENING = "ScreeningStep"
    RESUME = "ResumeStep"
    INTERVIEW_SCHEDULING = "InterviewSchedulingStep"
    ASSESSMENT = "AssessmentStep"
    VIDEO_INTERVIEW = "VideoInterviewStep"
    THANK_YOU = "ThankYouStep"
    MULTI_BUTTON = "MultibuttonModule"

    @classmethod
    def from_component(cls, component: Optional[str], module_id: str = "") -> "ComponentKind":
        """Сопоставление строки компонента с закрытым перечислением."""
        if component:
            for kind in cls:
                if kind.value == component:
                    return kind
        return BUILTIN_MODULE_KINDS.get(module_id, cls.GENERIC)


BUILTIN_MODULE_KINDS = {
    "interview-scheduling": ComponentKind.INTERVIEW_SCHEDULING,
    "assessment": ComponentKind.ASSESSMENT,
    "video-interview": ComponentKind.VIDEO_INTERVIEW,
    "thank-you": ComponentKind.THANK_YOU,
}


class AssessmentScreenType(str, Enum):
    WELCOME = "welcome"
    BEST_WORST = "best-worst"
    AGREE_SCALE = "agree-scale"
    SINGLE_SELECT = "single-select"
    LANGUAGE_READING = "language-reading"
    LANGUAGE_LISTENING = "language-listening"
    LANGUAGE_TYPING = "language-typing"


class ScaleLabels(CamelModel):
    left: str = "Strongly disagree"
    right: str = "Strongly agree"


class AssessmentScreenContent(CamelModel):
    welcome_title: Optional[str] = None
    welcome_description: Optional[str] = None
    welcome_image: Optional[str] = None
    scenario_title: Optional[str] = None
    scenario_description: Optional[str] = None
    scenario_image: Optional[str] = None
    scenario_responses: Optional[List[str]] = None
    instruction_text: Optional[str] = None
    agreement_title: Optional[str] = None
    agreement_statement: Optional[str] = None
    scale_labels: Optional[ScaleLabels] = None
    single_select_title: Optional[str] = None
    single_select_question: Optional[str] = None
    single_select_description: Optional[str] = None
    single_select_options: Optional[List[str]] = None
    language_reading_title: Optional[str] = None
    language_reading_question: Optional[str] = None
    language_reading_description: Optional[str] = None
    language_reading_options: Optional[List[str]] = None
    language_listening_title: Optional[str] = None
    language_listening_question: Optional[str] = None
    language_listening_description: Optional[str] = None
    language_listening_options: Optional[List[str]] = None
    language_typing_title: Optional[str] = None
    language_typing_question: Optional[str] = None
    language_typing_text: Optional[str] = None


class AssessmentScreen(CamelModel):
    id: str
    type: AssessmentScreenType
    title: str = ""
    content: AssessmentScreenContent = Field(default_factory=AssessmentScreenContent)


class AssessmentConfig(CamelModel):
    screens: List[AssessmentScreen] = Field(default_factory=list)


class VideoStepContent(CamelModel):
    question: str = "Enter your interview question here..."
    time_limit: int = Field(default=90, ge=1)
    attempts: int = Field(default=3, ge=1)


class VideoInterviewStep(CamelModel):
    id: str
    type: Literal["question"] = "question"
    title: str = ""
    content: VideoStepContent = Field(default_factory=VideoStepContent)


class VideoInterviewConfig(CamelModel):
    steps: List[VideoInterviewStep] = Field(default_factory=list)


class Question(CamelModel):
    """Типизированный вопрос модуля."""
    id: str
    text: str = ""
    type: QuestionType
    options: Optional[List[str]] = None
    required: bool = False
    half_width: bool = False
    layout: Optional[Literal["vertical", "horizontal"]] = None
    content: Optional[str] = None
    assessment_config: Optional[AssessmentConfig] = None
    video_interview_config: Optional[VideoInterviewConfig] = None

    @property
    def is_embedded(self) -> bool:
        return self.type in EMBEDDED_TYPES

    @property
    def is_pairable(self) -> bool:
        return self.half_width and self.type in PAIRABLE_TYPES


class NavigationTarget(BaseModel):
    """Цель нелинейного перехода."""
    model_config = ConfigDict(frozen=True)

    step: Optional[int] = None
    sub_step: Optional[int] = None
    module: Optional[str] = None
    flow: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.step is None and not self.module and not self.flow


class CustomButton(CamelModel):
    id: str
    label: str = ""
    is_primary: bool = False
    target_module: Optional[str] = None
    target_step: Optional[int] = None
    target_sub_step: Optional[int] = None
    target_flow: Optional[str] = None

    def target(self) -> Optional[NavigationTarget]:
        target = NavigationTarget(
            step=self.target_step,
            sub_step=self.target_sub_step,
            module=self.target_module or None,
            flow=self.target_flow or None,
        )
        return None if target.is_empty else target


class Content(CamelModel):
    """Содержимое модуля: общее для шаблона и переопределений."""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    center_title: Optional[bool] = None
    instructions: Optional[str] = None
    questions: Optional[List[Question]] = None
    custom_buttons: Optional[List[CustomButton]] = None
    split_screen_with_image: Optional[bool] = None
    split_screen_image: Optional[str] = None
    split_screen_image_position: Optional[Literal["left", "right"]] = None
    image_side_title: Optional[str] = None
    image_side_subtitle: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    comments: Optional[str] = None

    @field_validator("questions")
    @classmethod
    def unique_question_ids(cls, v):
        if v:
            seen = set()
            for question in v:
                if question.id in seen:
                    raise ValueError(f"Duplicate question id: {question.id}")
                seen.add(question.id)
        return v

    def present_fields(self) -> Dict[str, Any]:
        """Только явно заданные поля (включая пустые строки и None)."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Module(CamelModel):
    id: str
    name: str = ""
    description: str = ""
    component_kind: str = Field(
        default="",
        validation_alias=AliasChoices("component", "componentKind", "component_kind"),
        serialization_alias="component",
    )
    template_overrides: Optional[Content] = None

    @property
    def kind(self) -> ComponentKind:
        return ComponentKind.from_component(self.component_kind, self.id)


class Step(CamelModel):
    id: str
    name: str = ""
    modules: List[Module] = Field(default_factory=list)


class Flow(CamelModel):
    id: str
    slug: str
    name: str = ""
    description: str = ""
    steps: List[Step] = Field(default_factory=list)
    primary_color: str = DEFAULT_PRIMARY_COLOR
    logo_url: str = ""
    collect_feedback: bool = False
    is_active: bool = True

    @field_validator("primary_color", mode="before")
    @classmethod
    def default_color(cls, v):
        return v or DEFAULT_PRIMARY_COLOR

    @field_validator("logo_url", "description", mode="before")
    @classmethod
    def empty_string(cls, v):
        return v or ""

    def find_module(self, module_id: str) -> Optional[Tuple[int, int]]:
        """Первая позиция модуля во всех шагах."""
        for step_index, step in enumerate(self.steps):
            for sub_step_index, module in enumerate(step.modules):
                if module.id == module_id:
                    return step_index, sub_step_index
        return None

    def module_at(self, step_index: int, sub_step_index: int) -> Optional[Module]:
        if 0 <= step_index < len(self.steps):
            modules = self.steps[step_index].modules
            if 0 <= sub_step_index < len(modules):
                return modules[sub_step_index]
        return None


class Template(CamelModel):
    id: str
    name: str = ""
    description: str = ""
    component_kind: str = Field(
        default="",
        validation_alias=AliasChoices("component", "componentKind", "component_kind"),
        serialization_alias="component",
    )
    content: Content = Field(default_factory=Content)
    is_default: bool = False

    @property
    def kind(self) -> ComponentKind:
        return ComponentKind.from_component(self.component_kind, self.id)
