from typing import Callable, Dict, Optional, Tuple
from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message
from flowbot.core.messages import Messages
from flowbot.engine.navigation import Completion, NavigationResult, Outcome
from flowbot.keyboards.inline import (
    ButtonCallback, CompletionCallback, FeedbackCallback, NavCallback, QuestionCallback,
    get_assessment_keyboard, get_completion_keyboard, get_feedback_keyboard, get_feedback_skip_keyboard,
    get_flow_list_keyboard, get_module_keyboard, get_options_keyboard, get_scheduler_keyboard,
    get_thank_you_keyboard, get_video_keyboard,
)
from flowbot.models.application import FileAnswer
from flowbot.models.flow import ComponentKind, QuestionType
from flowbot.services.api_client import APIRequestError
from flowbot.services.catalog import flow_catalog, template_catalog
from flowbot.services.session import WizardSession, sessions
from flowbot.states.wizard import WizardFSM
from flowbot.utils.formatters import (
    format_assessment_screen, format_header, format_module_content, format_scheduler,
    format_summary, format_thank_you, format_video_status,
)
from flowbot.utils.validators import (
    IMAGE_MAX_BYTES, UploadRejected, is_valid_slug, validate_document_upload, validate_feedback_comment,
    validate_image_upload,
)
import logging

router = Router()
logger = logging.getLogger(__name__)

Rendered = Tuple[str, InlineKeyboardMarkup]

def _render_generic(session: WizardSession) -> Rendered:
    content = session.effective_content()
    nav = session.navigator
    text = format_module_content(content, session.module_answers(), session.errors)
    keyboard = get_module_keyboard(
        content, session.module_answers(), nav.position,
        is_first=nav.is_first_position, is_last=nav.is_last_position,
        multi_button=session.kind == ComponentKind.MULTI_BUTTON,
    )
    return text, keyboard

def _render_thank_you(session: WizardSession) -> Rendered:
    nav = session.navigator
    return format_thank_you(session.effective_content()), get_thank_you_keyboard(nav.position, nav.is_last_position)

def _render_assessment(session: WizardSession) -> Rendered:
    can_go_back = session.assessment.current_index > 0 or not session.navigator.is_first_position
    return format_assessment_screen(session.assessment), get_assessment_keyboard(session.assessment, can_go_back)

def _render_scheduler(session: WizardSession) -> Rendered:
    nav = session.navigator
    content = session.effective_content()
    text = format_module_content(content, session.module_answers(), {})
    text += "\n" + format_scheduler(session.scheduler, session.errors)
    keyboard = get_scheduler_keyboard(session.scheduler, nav.position, nav.is_first_position, nav.is_last_position)
    return text, keyboard

def _render_video(session: WizardSession) -> Rendered:
    can_go_back = session.video.current_index > 0 or not session.navigator.is_first_position
    return format_video_status(session.video), get_video_keyboard(session.video, can_go_back)

RENDERERS: Dict[ComponentKind, Callable[[WizardSession], Rendered]] = {
    ComponentKind.THANK_YOU: _render_thank_you,
}

def render(session: WizardSession) -> Rendered:
    """Текст и клавиатура текущего модуля."""
    session.mount()
    nav = session.navigator
    header = format_header(session.flow.name, nav.steps, *nav.position.as_tuple())
    if session.module is None:
        return header + Messages.Wizard.EMPTY_FLOW, InlineKeyboardMarkup(inline_keyboard=[])
    if session.assessment is not None:
        renderer = _render_assessment
    elif session.scheduler is not None:
        renderer = _render_scheduler
    elif session.video is not None:
        renderer = _render_video
    else:
        renderer = RENDERERS.get(session.kind, _render_generic)
    text, keyboard = renderer(session)
    return header + text, keyboard

async def show(message: Message, session: WizardSession, edit: bool = True) -> None:
    """Отрисовка модуля: правка сообщения или новое сообщение."""
    text, keyboard = render(session)
    if edit:
        try:
            await message.edit_text(text, reply_markup=keyboard)
            return
        except TelegramBadRequest as e:
            if "message is not modified" in str(e):
                return
            logger.warning(f"Could not edit wizard message: {e}")
    await message.answer(text, reply_markup=keyboard)

async def start_flow(message: Message, user_id: int, slug: str, state: FSMContext, edit: bool = False) -> Optional[WizardSession]:
    """Запуск флоу по slug; неизвестный slug ведёт к списку флоу."""
    try:
        flow = await flow_catalog.get_by_slug(slug) if is_valid_slug(slug) else None
    except APIRequestError as e:
        logger.error(f"Error loading flow {slug} for user {user_id}: {e}")
        await message.answer(Messages.Common.SERVICE_UNAVAILABLE)
        return None
    if flow is None:
        logger.info(f"User {user_id} requested unknown flow {slug}")
        await message.answer(Messages.Common.FLOW_NOT_FOUND, reply_markup=get_flow_list_keyboard(flow_catalog.list_active()))
        return None
    await state.clear()
    await state.update_data(flow_slug=flow.slug)
    session = sessions.start(user_id, flow, template_catalog.mapping())
    await show(message, session, edit=edit)
    return session

async def apply_result(callback: CallbackQuery, session: WizardSession, result: NavigationResult, state: FSMContext) -> None:
    """Реакция бота на результат навигации."""
    message = callback.message
    if result.outcome == Outcome.BLOCKED:
        await callback.answer(Messages.Wizard.FIX_ERRORS, show_alert=True)
        await show(message, session)
        return
    await callback.answer()
    if result.outcome == Outcome.SWITCH_FLOW:
        await start_flow(message, callback.from_user.id, result.flow_slug, state, edit=True)
        return
    if result.outcome == Outcome.COMPLETED:
        if result.completion == Completion.FEEDBACK:
            await message.edit_text(Messages.Completion.FEEDBACK_ASK, reply_markup=get_feedback_keyboard())
        else:
            await submit(message, callback.from_user.id, session, state)
        return
    await show(message, session)

async def submit(message: Message, user_id: int, session: WizardSession, state: FSMContext) -> None:
    summary = session.submit()
    sessions.drop(user_id)
    await state.clear()
    await state.update_data(flow_slug=session.flow.slug)
    await message.answer(format_summary(summary), reply_markup=get_completion_keyboard())

async def current_session(callback: CallbackQuery) -> Optional[WizardSession]:
    session = sessions.get(callback.from_user.id)
    if session is None:
        await callback.answer(Messages.Common.NO_SESSION, show_alert=True)
    return session

def _is_actual(session: WizardSession, step: int, sub: int) -> bool:
    return session.navigator.position.as_tuple() == (step, sub)

@router.callback_query(NavCallback.filter())
async def cq_navigate(callback: CallbackQuery, callback_data: NavCallback, state: FSMContext) -> None:
    """Назад / Далее / Отправить."""
    session = await current_session(callback)
    if session is None:
        return
    if not _is_actual(session, callback_data.step, callback_data.sub):
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return
    await state.set_state(None)
    if callback_data.action == "next":
        result = session.advance()
    else:
        result = session.retreat()
    logger.info(f"User {callback.from_user.id} {callback_data.action}: {result.outcome.value} at {result.position.as_tuple()}")
    await apply_result(callback, session, result, state)

@router.callback_query(ButtonCallback.filter())
async def cq_custom_button(callback: CallbackQuery, callback_data: ButtonCallback, state: FSMContext) -> None:
    """Кастомная кнопка модуля."""
    session = await current_session(callback)
    if session is None:
        return
    if not _is_actual(session, callback_data.step, callback_data.sub):
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return
    try:
        result = session.press_button(callback_data.index)
    except ValueError as e:
        logger.warning(f"User {callback.from_user.id} pressed a missing button: {e}")
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        return
    await apply_result(callback, session, result, state)

@router.callback_query(QuestionCallback.filter())
async def cq_question(callback: CallbackQuery, callback_data: QuestionCallback, state: FSMContext) -> None:
    """Выбор варианта или запрос ввода для вопроса."""
    session = await current_session(callback)
    if session is None:
        return
    questions = session.questions()
    if not _is_actual(session, callback_data.step, callback_data.sub) or callback_data.q >= len(questions):
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return
    question = questions[callback_data.q]
    value = session.module_answers().get(question.id)

    if callback_data.opt == -2:
        await callback.answer()
        await show(callback.message, session)
        return

    if callback_data.opt < 0:
        await callback.answer()
        if question.type == QuestionType.SELECT:
            await callback.message.edit_reply_markup(
                reply_markup=get_options_keyboard(question, callback_data.q, value, session.navigator.position)
            )
            return
        if question.type in (QuestionType.FILE, QuestionType.IMAGE):
            prompt = Messages.Wizard.UPLOAD_IMAGE if question.type == QuestionType.IMAGE else Messages.Wizard.UPLOAD_FILE
            await state.set_state(WizardFSM.uploading_file)
        else:
            prompt = Messages.Wizard.ENTER_PHONE if question.type == QuestionType.PHONE else Messages.Wizard.ENTER_ANSWER
            await state.set_state(WizardFSM.answering_text)
        await state.update_data(question_id=question.id)
        await callback.message.answer(prompt.format(question=question.text or question.id))
        return

    try:
        session.answer(question.id, callback_data.opt)
    except ValueError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()
    await show(callback.message, session)

@router.message(StateFilter(WizardFSM.answering_text), F.text)
async def handle_text_answer(message: Message, state: FSMContext) -> None:
    """Ответ текстом на вопрос text/textarea/phone."""
    session = sessions.get(message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(Messages.Common.NO_SESSION)
        return
    data = await state.get_data()
    try:
        session.answer(data.get("question_id"), message.text)
    except ValueError as e:
        logger.info(f"User {message.from_user.id} invalid answer: {e}")
        await message.answer(f"{Messages.Common.INVALID_INPUT}\n<i>{e}</i>")
        return
    await state.set_state(None)
    await show(message, session, edit=False)

@router.message(StateFilter(WizardFSM.uploading_file), F.document | F.photo)
async def handle_file_answer(message: Message, state: FSMContext) -> None:
    """Загрузка файла или изображения в ответ на вопрос."""
    session = sessions.get(message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(Messages.Common.NO_SESSION)
        return
    data = await state.get_data()
    question = next((q for q in session.questions() if q.id == data.get("question_id")), None)
    if question is None:
        await state.set_state(None)
        await message.answer(Messages.Wizard.NOT_ACTUAL)
        return
    try:
        if message.photo:
            photo = message.photo[-1]
            validate_image_upload("image/jpeg", photo.file_size, IMAGE_MAX_BYTES)
            answer = FileAnswer(file_id=photo.file_id, file_name=f"{photo.file_unique_id}.jpg",
                                content_type="image/jpeg", size=photo.file_size)
        else:
            document = message.document
            if question.type == QuestionType.IMAGE:
                validate_image_upload(document.mime_type, document.file_size, IMAGE_MAX_BYTES)
            else:
                validate_document_upload(document.mime_type, document.file_size)
            answer = FileAnswer(file_id=document.file_id, file_name=document.file_name,
                                content_type=document.mime_type, size=document.file_size)
        session.answer(question.id, answer)
    except UploadRejected as e:
        await message.answer(f"❌ {e}")
        return
    except ValueError as e:
        await message.answer(f"{Messages.Common.INVALID_INPUT}\n<i>{e}</i>")
        return
    await state.set_state(None)
    await message.answer(Messages.Wizard.ANSWER_SAVED)
    await show(message, session, edit=False)

@router.message(StateFilter(WizardFSM.uploading_file))
async def handle_file_expected(message: Message) -> None:
    await message.answer(Messages.Wizard.FILE_EXPECTED)

@router.callback_query(FeedbackCallback.filter())
async def cq_feedback(callback: CallbackQuery, callback_data: FeedbackCallback, state: FSMContext) -> None:
    """Оценка опыта перед отправкой."""
    session = await current_session(callback)
    if session is None:
        return
    await callback.answer()
    if callback_data.rating == 0:
        data = await state.get_data()
        session.leave_feedback(data.get("rating", 5))
        await submit(callback.message, callback.from_user.id, session, state)
        return
    await state.set_state(WizardFSM.leaving_feedback)
    await state.update_data(rating=callback_data.rating)
    await callback.message.edit_text(Messages.Completion.FEEDBACK_COMMENT, reply_markup=get_feedback_skip_keyboard())

@router.message(StateFilter(WizardFSM.leaving_feedback), F.text)
async def handle_feedback_comment(message: Message, state: FSMContext) -> None:
    session = sessions.get(message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(Messages.Common.NO_SESSION)
        return
    try:
        comment = validate_feedback_comment(message.text)
    except ValueError as e:
        await message.answer(f"{Messages.Common.INVALID_INPUT}\n<i>{e}</i>")
        return
    data = await state.get_data()
    session.leave_feedback(data.get("rating", 5), comment)
    await submit(message, message.from_user.id, session, state)

@router.callback_query(CompletionCallback.filter(F.action == "new"))
async def cq_start_new(callback: CallbackQuery, state: FSMContext) -> None:
    """Новая заявка по тому же флоу."""
    await callback.answer()
    data = await state.get_data()
    slug = data.get("flow_slug")
    if not slug:
        await callback.message.answer(Messages.Common.NO_SESSION)
        return
    await start_flow(callback.message, callback.from_user.id, slug, state)
