import html
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
import phonenumbers
from flowbot.models.application import FileAnswer, PhoneAnswer
from flowbot.models.flow import Question, QuestionType
from flowbot.utils.validators import EMAIL_RE

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY_CODE = "+1"


class RowKind(str, Enum):
    PAIR = "pair"
    SINGLE = "single"
    EMBEDDED = "embedded"


@dataclass(frozen=True)
class LayoutRow:
    kind: RowKind
    questions: Tuple[Question, ...]
    half_width: bool = False

    @property
    def question_ids(self) -> Tuple[str, ...]:
        return tuple(question.id for question in self.questions)


def plan_layout(questions: Optional[Sequence[Question]]) -> List[LayoutRow]:
    """Раскладка вопросов по строкам.

    Два соседних вопроса объединяются в одну строку, только если оба
    half_width и оба типа text/select. Порядок сохраняется, заглядываем
    вперёд не больше чем на один элемент.
    """
    rows: List[LayoutRow] = []
    items = list(questions or [])
    i = 0
    while i < len(items):
        question = items[i]
        next_question = items[i + 1] if i + 1 < len(items) else None
        if question.is_pairable and next_question is not None and next_question.is_pairable:
            rows.append(LayoutRow(RowKind.PAIR, (question, next_question), half_width=True))
            i += 2
            continue
        kind = RowKind.EMBEDDED if question.is_embedded else RowKind.SINGLE
        rows.append(LayoutRow(kind, (question,), half_width=question.half_width))
        i += 1
    return rows


def answerable_questions(questions: Optional[Sequence[Question]]) -> List[Question]:
    return [q for q in questions or [] if holds_value(q)]


def holds_value(question: Question) -> bool:
    if question.is_embedded or question.type == QuestionType.MESSAGE:
        return False
    if question.type == QuestionType.IMAGE and question.content:
        return False
    return True


def find_embedded(questions: Optional[Sequence[Question]]) -> Optional[Question]:
    for question in questions or []:
        if question.is_embedded:
            return question
    return None


def _pick_option(question: Question, raw: Any) -> str:
    options = question.options or []
    if isinstance(raw, int) and not isinstance(raw, bool):
        if 0 <= raw < len(options):
            return options[raw]
        raise ValueError(f"Option index {raw} is out of range")
    value = str(raw).strip()
    if value not in options:
        raise ValueError(f"'{value}' is not one of the options")
    return value


def parse_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> PhoneAnswer:
    """Разбор номера телефона в пару код страны / номер."""
    text = raw.strip()
    if not text:
        raise ValueError("Phone number is empty")
    candidate = text if text.startswith("+") else f"{country_code}{text}"
    try:
        parsed = phonenumbers.parse(candidate, None)
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"Invalid phone number: {e}")
    return PhoneAnswer(
        country_code=f"+{parsed.country_code}",
        number=phonenumbers.national_significant_number(parsed),
    )


def coerce_answer(question: Question, raw: Any, current: Any = None) -> Any:
    """Приведение ввода пользователя к значению вопроса по его типу."""
    qtype = question.type
    if qtype in (QuestionType.TEXT, QuestionType.TEXTAREA):
        return str(raw).strip()
    if qtype in (QuestionType.SELECT, QuestionType.RADIO):
        return _pick_option(question, raw)
    if qtype == QuestionType.CHECKBOX:
        if question.options:
            option = _pick_option(question, raw)
            selected = list(current) if isinstance(current, list) else []
            if option in selected:
                selected.remove(option)
            else:
                selected.append(option)
            return selected
        return not bool(current)
    if qtype == QuestionType.PHONE:
        if isinstance(raw, PhoneAnswer):
            return raw
        country_code = current.country_code if isinstance(current, PhoneAnswer) else DEFAULT_COUNTRY_CODE
        return parse_phone(str(raw), country_code)
    if qtype in (QuestionType.FILE, QuestionType.IMAGE) and holds_value(question):
        if isinstance(raw, FileAnswer):
            return raw
        if isinstance(raw, dict):
            return FileAnswer(**raw)
        return FileAnswer(file_id=str(raw))
    raise ValueError(f"Question {question.id} of type {qtype.value} does not hold a value")


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) == 0
    if isinstance(value, PhoneAnswer):
        return not value.number
    return False


def validate_answers(questions: Optional[Sequence[Question]], answers: Dict[str, Any]) -> Dict[str, str]:
    """Проверка ответов модуля: обязательность и формат."""
    errors: Dict[str, str] = {}
    for question in answerable_questions(questions):
        value = answers.get(question.id)
        if is_empty(value):
            if question.required:
                errors[question.id] = f"{question.text or 'This field'} is required"
            continue
        if question.type == QuestionType.PHONE and isinstance(value, PhoneAnswer):
            try:
                parsed = phonenumbers.parse(f"{value.country_code}{value.number}", None)
                if not phonenumbers.is_valid_number(parsed):
                    errors[question.id] = "Please enter a valid phone number"
            except phonenumbers.NumberParseException:
                errors[question.id] = "Please enter a valid phone number"
        elif question.type == QuestionType.TEXT and "email" in question.id.lower():
            if not EMAIL_RE.fullmatch(str(value)):
                errors[question.id] = "Please enter a valid email address"
    return errors


def display_value(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


_BOLD_RE = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)
_ITALIC_RE = re.compile(r"\*(.*?)\*", re.DOTALL)
_ALIGN_RE = re.compile(r"&lt;(left|center)&gt;(.*?)&lt;/\1&gt;", re.DOTALL)


def format_message(text: Optional[str]) -> str:
    """Ограниченная разметка сообщений: **жирный**, *курсив*, <left>, <center>.

    Это подстановка подстрок, а не парсер. Выравнивания в чате нет,
    поэтому теги выравнивания снимаются, а содержимое остаётся.
    """
    escaped = html.escape(text or "", quote=False)
    escaped = _BOLD_RE.sub(r"<b>\1</b>", escaped)
    escaped = _ITALIC_RE.sub(r"<i>\1</i>", escaped)
    return _ALIGN_RE.sub(r"\2", escaped)
