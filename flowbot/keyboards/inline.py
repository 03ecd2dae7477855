from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.filters.callback_data import CallbackData
from typing import Any, Dict, List, Literal, Optional, Sequence
from flowbot.core.messages import Messages
from flowbot.engine.assessment import BEST, WORST, RATINGS, AssessmentSequencer, screen_options
from flowbot.engine.interpreter import LayoutRow, RowKind, display_value, plan_layout
from flowbot.engine.navigation import NavigationPosition
from flowbot.engine.scheduler import DAY_LABELS, TIME_SLOTS, TIMEZONES, InterviewScheduler
from flowbot.engine.video import VideoInterviewRecorder
from flowbot.models.flow import AssessmentScreenType, Content, CustomButton, Flow, Question, QuestionType

OPEN_INPUT = -1
TIMEZONE_KEYS = list(TIMEZONES)

class FlowCallback(CallbackData, prefix="flow"):
    """Callback для выбора флоу."""
    slug: str

class NavCallback(CallbackData, prefix="nav"):
    """Callback для навигации Назад/Далее."""
    action: Literal["next", "back"]
    step: int
    sub: int

class QuestionCallback(CallbackData, prefix="q"):
    """Callback для ответа на вопрос (индекс вопроса и варианта)."""
    step: int
    sub: int
    q: int
    opt: int = OPEN_INPUT

class ButtonCallback(CallbackData, prefix="btn"):
    """Callback для кастомных кнопок модуля."""
    step: int
    sub: int
    index: int

class AssessmentCallback(CallbackData, prefix="as"):
    """Callback для экранов оценки."""
    action: Literal["next", "back", "mark", "rate", "choose", "type"]
    screen: int
    index: int = 0
    mark: str = ""

class CalendarCallback(CallbackData, prefix="cal"):
    """Callback для календаря интервью."""
    action: Literal["prev", "next", "day", "time", "tz", "noop"]
    value: int = 0

class VideoCallback(CallbackData, prefix="vid"):
    """Callback для видеоинтервью."""
    action: Literal["start", "stop", "next", "prev"]
    question: int

class FeedbackCallback(CallbackData, prefix="fb"):
    """Callback для оценки опыта (0 = пропустить комментарий)."""
    rating: int

class CompletionCallback(CallbackData, prefix="done"):
    action: Literal["new"]

def _nav_row(position: NavigationPosition, is_first: bool, is_last: bool, show_next: bool = True,
             next_label: Optional[str] = None) -> List[InlineKeyboardButton]:
    step, sub = position.as_tuple()
    row = []
    if not is_first:
        row.append(InlineKeyboardButton(
            text=Messages.Wizard.BACK,
            callback_data=NavCallback(action="back", step=step, sub=sub).pack(),
        ))
    if show_next:
        row.append(InlineKeyboardButton(
            text=next_label or (Messages.Wizard.SUBMIT if is_last else Messages.Wizard.NEXT),
            callback_data=NavCallback(action="next", step=step, sub=sub).pack(),
        ))
    return row

def get_flow_list_keyboard(flows: Sequence[Flow]) -> InlineKeyboardMarkup:
    """Клавиатура выбора флоу."""
    keyboard = [
        [InlineKeyboardButton(text=flow.name or flow.slug, callback_data=FlowCallback(slug=flow.slug).pack())]
        for flow in flows
    ]
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def _input_button(question: Question, index: int, value: Any, position: NavigationPosition) -> InlineKeyboardButton:
    icon = "📎" if question.type in (QuestionType.FILE, QuestionType.IMAGE) else "✏️"
    if question.type == QuestionType.SELECT:
        icon = "🔽"
    label = question.text or question.id
    if value not in (None, "", []):
        label = f"{label}: {display_value(value)}"
    elif question.required:
        label = f"{label} *"
    step, sub = position.as_tuple()
    return InlineKeyboardButton(
        text=f"{icon} {label}",
        callback_data=QuestionCallback(step=step, sub=sub, q=index).pack(),
    )

def _option_rows(question: Question, index: int, value: Any, position: NavigationPosition) -> List[List[InlineKeyboardButton]]:
    step, sub = position.as_tuple()
    if question.type == QuestionType.CHECKBOX and not question.options:
        mark = "☑️" if value else "⬜"
        return [[InlineKeyboardButton(
            text=f"{mark} {question.text}",
            callback_data=QuestionCallback(step=step, sub=sub, q=index, opt=0).pack(),
        )]]
    selected = value if isinstance(value, list) else [value]
    buttons = []
    for opt_index, option in enumerate(question.options or []):
        if question.type == QuestionType.CHECKBOX:
            mark = "☑️" if option in selected else "⬜"
        else:
            mark = "🔘" if option in selected else "⚪"
        buttons.append(InlineKeyboardButton(
            text=f"{mark} {option}",
            callback_data=QuestionCallback(step=step, sub=sub, q=index, opt=opt_index).pack(),
        ))
    if question.layout == "horizontal":
        return [buttons]
    return [[button] for button in buttons]

def _question_rows(row: LayoutRow, indexes: Dict[str, int], answers: Dict[str, Any],
                   position: NavigationPosition) -> List[List[InlineKeyboardButton]]:
    if row.kind == RowKind.EMBEDDED:
        return []
    if row.kind == RowKind.PAIR:
        return [[_input_button(q, indexes[q.id], answers.get(q.id), position) for q in row.questions]]
    question = row.questions[0]
    index = indexes[question.id]
    value = answers.get(question.id)
    if question.type in (QuestionType.RADIO, QuestionType.CHECKBOX):
        return _option_rows(question, index, value, position)
    if question.type == QuestionType.MESSAGE or (question.type == QuestionType.IMAGE and question.content):
        return []
    return [[_input_button(question, index, value, position)]]

def get_module_keyboard(content: Content, answers: Dict[str, Any], position: NavigationPosition,
                        is_first: bool, is_last: bool, multi_button: bool = False) -> InlineKeyboardMarkup:
    """Клавиатура модуля: строки вопросов по раскладке, кнопки, навигация."""
    questions = content.questions or []
    indexes = {q.id: i for i, q in enumerate(questions)}
    keyboard: List[List[InlineKeyboardButton]] = []
    for row in plan_layout(questions):
        keyboard.extend(_question_rows(row, indexes, answers, position))
    keyboard.extend(_custom_button_rows(content.custom_buttons or [], position))
    nav = _nav_row(position, is_first, is_last, show_next=not multi_button)
    if nav:
        keyboard.append(nav)
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def _custom_button_rows(buttons: Sequence[CustomButton], position: NavigationPosition) -> List[List[InlineKeyboardButton]]:
    step, sub = position.as_tuple()
    return [
        [InlineKeyboardButton(
            text=f"⭐ {button.label}" if button.is_primary else button.label or button.id,
            callback_data=ButtonCallback(step=step, sub=sub, index=i).pack(),
        )]
        for i, button in enumerate(buttons)
    ]

def get_options_keyboard(question: Question, index: int, value: Any, position: NavigationPosition) -> InlineKeyboardMarkup:
    """Список вариантов для select."""
    step, sub = position.as_tuple()
    keyboard = _option_rows(question.model_copy(update={"layout": "vertical"}), index, value, position)
    keyboard.append([InlineKeyboardButton(
        text=Messages.Wizard.BACK,
        callback_data=QuestionCallback(step=step, sub=sub, q=index, opt=-2).pack(),
    )])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_thank_you_keyboard(position: NavigationPosition, is_last: bool) -> InlineKeyboardMarkup:
    """Экран благодарности: только кнопка вперёд."""
    return InlineKeyboardMarkup(inline_keyboard=[_nav_row(position, True, is_last)])

def get_assessment_keyboard(sequencer: AssessmentSequencer, can_go_back: bool) -> InlineKeyboardMarkup:
    """Клавиатура текущего экрана оценки."""
    screen = sequencer.current_screen
    idx = sequencer.current_index
    keyboard: List[List[InlineKeyboardButton]] = []
    options = screen_options(screen)

    if screen.type == AssessmentScreenType.BEST_WORST:
        answer = sequencer.scenario_answers.get(screen.id)
        for i in range(len(options)):
            best = answer is not None and answer.best == str(i)
            worst = answer is not None and answer.worst == str(i)
            keyboard.append([
                InlineKeyboardButton(
                    text=f"{'🟢' if best else ''}{Messages.Assessment.BEST} {i + 1}",
                    callback_data=AssessmentCallback(action="mark", screen=idx, index=i, mark=BEST).pack(),
                ),
                InlineKeyboardButton(
                    text=f"{'🔴' if worst else ''}{Messages.Assessment.WORST} {i + 1}",
                    callback_data=AssessmentCallback(action="mark", screen=idx, index=i, mark=WORST).pack(),
                ),
            ])
    elif screen.type == AssessmentScreenType.AGREE_SCALE:
        rating = sequencer.agreement_answers.get(screen.id)
        keyboard.append([
            InlineKeyboardButton(
                text=f"[{r}]" if r == rating else str(r),
                callback_data=AssessmentCallback(action="rate", screen=idx, index=r).pack(),
            )
            for r in RATINGS
        ])
    elif screen.type == AssessmentScreenType.LANGUAGE_TYPING:
        keyboard.append([InlineKeyboardButton(
            text="✏️ " + (screen.content.language_typing_title or "Type"),
            callback_data=AssessmentCallback(action="type", screen=idx).pack(),
        )])
    elif options:
        chosen = sequencer.math_answers.get(screen.id)
        for i, option in enumerate(options):
            keyboard.append([InlineKeyboardButton(
                text=f"{'🔘' if option == chosen else '⚪'} {option}",
                callback_data=AssessmentCallback(action="choose", screen=idx, index=i).pack(),
            )])

    footer = []
    if can_go_back:
        footer.append(InlineKeyboardButton(
            text=Messages.Wizard.BACK,
            callback_data=AssessmentCallback(action="back", screen=idx).pack(),
        ))
    footer.append(InlineKeyboardButton(
        text=sequencer.next_label(),
        callback_data=AssessmentCallback(action="next", screen=idx).pack(),
    ))
    keyboard.append(footer)
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def _noop(text: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=CalendarCallback(action="noop").pack())

def get_scheduler_keyboard(scheduler: InterviewScheduler, position: NavigationPosition,
                           is_first: bool, is_last: bool) -> InlineKeyboardMarkup:
    """Календарь, слоты времени и часовые пояса."""
    keyboard = [
        [
            InlineKeyboardButton(text="«", callback_data=CalendarCallback(action="prev").pack()),
            _noop(scheduler.month_title),
            InlineKeyboardButton(text="»", callback_data=CalendarCallback(action="next").pack()),
        ],
        [_noop(label) for label in DAY_LABELS],
    ]
    for week in scheduler.calendar_weeks():
        row = []
        for day in week:
            if day == 0:
                row.append(_noop(" "))
            elif not scheduler.is_available(day):
                row.append(_noop("·"))
            else:
                text = f"•{day}•" if scheduler.is_selected(day) else str(day)
                row.append(InlineKeyboardButton(text=text, callback_data=CalendarCallback(action="day", value=day).pack()))
        keyboard.append(row)

    slots = [
        InlineKeyboardButton(
            text=f"✅ {slot}" if slot == scheduler.selected_time else slot,
            callback_data=CalendarCallback(action="time", value=i).pack(),
        )
        for i, slot in enumerate(TIME_SLOTS)
    ]
    keyboard.extend(slots[i:i + 3] for i in range(0, len(slots), 3))

    zones = [
        InlineKeyboardButton(
            text=f"✅ {tz}" if tz == scheduler.timezone else tz,
            callback_data=CalendarCallback(action="tz", value=i).pack(),
        )
        for i, tz in enumerate(TIMEZONE_KEYS)
    ]
    keyboard.extend(zones[i:i + 2] for i in range(0, len(zones), 2))
    keyboard.append(_nav_row(position, is_first, is_last))
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_video_keyboard(recorder: VideoInterviewRecorder, can_go_back: bool) -> InlineKeyboardMarkup:
    """Управление записью видеоответа."""
    idx = recorder.current_index
    if recorder.is_ticking:
        main = InlineKeyboardButton(text=Messages.Video.STOP, callback_data=VideoCallback(action="stop", question=idx).pack())
    else:
        text = Messages.Video.RETRY if recorder.is_answered() else Messages.Video.START
        main = InlineKeyboardButton(text=text, callback_data=VideoCallback(action="start", question=idx).pack())
    footer = []
    if can_go_back:
        footer.append(InlineKeyboardButton(text=Messages.Video.PREVIOUS, callback_data=VideoCallback(action="prev", question=idx).pack()))
    footer.append(InlineKeyboardButton(
        text=Messages.Video.FINISH if recorder.is_last_question else Messages.Video.NEXT,
        callback_data=VideoCallback(action="next", question=idx).pack(),
    ))
    return InlineKeyboardMarkup(inline_keyboard=[[main], footer])

def get_feedback_keyboard() -> InlineKeyboardMarkup:
    keyboard = [[
        InlineKeyboardButton(text="⭐" * r, callback_data=FeedbackCallback(rating=r).pack())
        for r in RATINGS
    ]]
    return InlineKeyboardMarkup(inline_keyboard=keyboard)

def get_feedback_skip_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text=Messages.Completion.FEEDBACK_SKIP, callback_data=FeedbackCallback(rating=0).pack())
    ]])

def get_completion_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text=Messages.Completion.START_NEW, callback_data=CompletionCallback(action="new").pack())
    ]])
