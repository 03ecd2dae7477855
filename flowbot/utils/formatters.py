import html
from typing import Any, Dict, List, Optional
from flowbot.engine.assessment import AssessmentSequencer
from flowbot.engine.interpreter import display_value, format_message, holds_value
from flowbot.engine.navigation import active_dot, group_for_sub_step_indicator
from flowbot.engine.resolver import thank_you_contact, thank_you_text
from flowbot.engine.scheduler import MEETING_DURATION_MINUTES, TIMEZONES, InterviewScheduler
from flowbot.engine.video import VideoInterviewRecorder, format_clock
from flowbot.models.flow import AssessmentScreenType, Content, QuestionType, Step
from flowbot.core.messages import Messages


def format_header(flow_name: str, steps: List[Step], step_index: int, sub_step_index: int) -> str:
    """Заголовок: название флоу, шаг i/n и точки подшагов."""
    text = f"<b>{html.escape(flow_name)}</b>\n"
    if not steps:
        return text
    step = steps[step_index]
    text += f"<i>Step {step_index + 1}/{len(steps)}: {html.escape(step.name)}</i>"
    if len(step.modules) > 1:
        dots = group_for_sub_step_indicator(step.modules)
        current = active_dot(step.modules, sub_step_index)
        text += "  " + "".join("●" if i == current else "○" for i in range(len(dots)))
    return text + "\n\n"


def format_module_content(content: Content, answers: Dict[str, Any], errors: Dict[str, str]) -> str:
    """Текст модуля: заголовки, инструкции, сообщения и ошибки вопросов."""
    text = ""
    if content.title:
        text += f"<b>{format_message(content.title)}</b>\n"
    if content.subtitle:
        text += f"{format_message(content.subtitle)}\n"
    if content.split_screen_with_image and (content.image_side_title or content.image_side_subtitle):
        text += f"\n<i>{format_message(content.image_side_title)}</i> {format_message(content.image_side_subtitle)}\n"
    if content.instructions:
        text += f"\n{format_message(content.instructions)}\n"

    for question in content.questions or []:
        if question.type == QuestionType.MESSAGE:
            text += f"\n{format_message(question.content or question.text)}\n"
        elif question.type == QuestionType.IMAGE and question.content:
            caption = f" {html.escape(question.text)}" if question.text else ""
            text += f"\n🖼️<a href='{html.escape(question.content)}'>{caption or ' Image'}</a>\n"
        elif holds_value(question) and question.type in (QuestionType.TEXTAREA, QuestionType.PHONE):
            value = answers.get(question.id)
            if value:
                text += f"\n<b>{html.escape(question.text)}:</b> {html.escape(display_value(value))}"
        if question.id in errors:
            text += f"\n⚠️ <i>{html.escape(errors[question.id])}</i>"
    return text.rstrip() + "\n" if text else ""


def format_errors(errors: Dict[str, str]) -> str:
    if not errors:
        return ""
    return "\n".join(f"⚠️ {html.escape(error)}" for error in errors.values())


def format_thank_you(content: Content) -> str:
    title, subtitle = thank_you_text(content)
    text = f"<b>{html.escape(title)}</b>\n\n{html.escape(subtitle)}"
    contact = thank_you_contact(content)
    if contact:
        name, email = contact
        text += f"\n\nContact: {html.escape(name)} ({html.escape(email)})"
    return text


def format_assessment_screen(sequencer: AssessmentSequencer) -> str:
    """Текст текущего экрана оценки."""
    screen = sequencer.current_screen
    c = screen.content
    text = f"<i>{sequencer.progress_label()}</i>\n\n"

    if screen.type == AssessmentScreenType.WELCOME:
        text += f"<b>{format_message(c.welcome_title or screen.title)}</b>\n\n{format_message(c.welcome_description)}"
    elif screen.type == AssessmentScreenType.BEST_WORST:
        text += f"<b>{format_message(c.scenario_title or screen.title)}</b>\n\n{format_message(c.scenario_description)}\n\n"
        text += "\n".join(f"{i + 1}. {html.escape(r)}" for i, r in enumerate(c.scenario_responses or []))
        if c.instruction_text:
            text += f"\n\n<i>{format_message(c.instruction_text)}</i>"
    elif screen.type == AssessmentScreenType.AGREE_SCALE:
        labels = c.scale_labels
        text += f"<b>{format_message(c.agreement_title or screen.title)}</b>\n\n{format_message(c.agreement_statement)}"
        if labels:
            text += f"\n\n1 = {html.escape(labels.left)} … 5 = {html.escape(labels.right)}"
    elif screen.type == AssessmentScreenType.SINGLE_SELECT:
        text += f"<b>{format_message(c.single_select_title or screen.title)}</b>\n\n"
        text += f"{format_message(c.single_select_description)}\n\n<b>{format_message(c.single_select_question)}</b>"
    elif screen.type == AssessmentScreenType.LANGUAGE_READING:
        text += f"<b>{format_message(c.language_reading_title or screen.title)}</b>\n\n"
        text += f"{format_message(c.language_reading_description)}\n\n<b>{format_message(c.language_reading_question)}</b>"
    elif screen.type == AssessmentScreenType.LANGUAGE_LISTENING:
        text += f"<b>{format_message(c.language_listening_title or screen.title)}</b>\n\n"
        text += f"{format_message(c.language_listening_description)}\n\n<b>{format_message(c.language_listening_question)}</b>"
    elif screen.type == AssessmentScreenType.LANGUAGE_TYPING:
        text += f"<b>{format_message(c.language_typing_title or screen.title)}</b>\n\n"
        text += f"{format_message(c.language_typing_question)}\n\n<code>{html.escape(c.language_typing_text or '')}</code>"
        typed = sequencer.math_answers.get(screen.id)
        if typed:
            text += f"\n\n✏️ {html.escape(typed)}"
    return text


def format_scheduler(scheduler: InterviewScheduler, errors: Optional[Dict[str, str]] = None) -> str:
    text = f"<b>{Messages.Scheduler.TITLE}</b>\n{Messages.Scheduler.PICK_DATE}\n"
    text += Messages.Scheduler.DURATION.format(minutes=MEETING_DURATION_MINUTES) + "\n"
    text += f"🌍 {scheduler.timezone} ({TIMEZONES[scheduler.timezone]})\n"
    if scheduler.selected_date and scheduler.selected_time:
        text += "\n" + Messages.Scheduler.CONFIRMED.format(
            date=scheduler.selected_date.strftime("%A, %B %d, %Y"),
            time=scheduler.selected_time,
            timezone=scheduler.timezone,
        )
    elif scheduler.selected_date:
        text += f"\n📅 {scheduler.selected_date.strftime('%A, %B %d, %Y')}"
    if errors:
        text += "\n\n" + format_errors(errors)
    return text


def format_video_status(recorder: VideoInterviewRecorder) -> str:
    """Вопрос видеоинтервью и состояние таймера."""
    question = recorder.current_question
    text = (
        f"<i>{recorder.progress_label()}</i>\n\n"
        f"<b>{html.escape(question.content.question)}</b>\n"
        f"⏱ Time limit: {format_clock(question.content.time_limit)} · Attempts: {question.content.attempts}\n\n"
    )
    if recorder.is_counting_down:
        text += Messages.Video.COUNTDOWN.format(seconds=recorder.countdown_seconds)
    elif recorder.is_recording:
        text += Messages.Video.RECORDING.format(
            elapsed=format_clock(recorder.elapsed_seconds),
            remaining=format_clock(recorder.remaining_seconds),
        )
    elif recorder.is_answered():
        text += Messages.Video.RECORDED
    return text


def format_summary(summary: Dict[str, Any]) -> str:
    text = f"{Messages.Completion.SUBMITTED}\n"
    interview = summary.get("interview") or {}
    if interview.get("date"):
        text += f"\n📅 {interview['date']} {interview.get('time') or ''}"
    if summary.get("feedback"):
        text += f"\n⭐ {summary['feedback']}/5"
    return text
