from aiogram import Router, F
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from flowbot.core.messages import Messages
from flowbot.engine.assessment import screen_options
from flowbot.engine.navigation import Outcome
from flowbot.handlers.wizard import apply_result, current_session, show
from flowbot.keyboards.inline import AssessmentCallback
from flowbot.models.flow import AssessmentScreenType
from flowbot.services.session import sessions
from flowbot.states.wizard import WizardFSM
import logging

router = Router()
logger = logging.getLogger(__name__)

@router.callback_query(AssessmentCallback.filter())
async def cq_assessment(callback: CallbackQuery, callback_data: AssessmentCallback, state: FSMContext) -> None:
    """Действия на экранах оценки."""
    session = await current_session(callback)
    if session is None:
        return
    sequencer = session.assessment
    if sequencer is None or sequencer.current_index != callback_data.screen:
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return
    screen = sequencer.current_screen
    action = callback_data.action

    if action == "next":
        result = session.advance()
        if result.outcome == Outcome.BLOCKED and screen.type == AssessmentScreenType.BEST_WORST:
            await callback.answer(Messages.Assessment.PICK_BOTH, show_alert=True)
            return
        await apply_result(callback, session, result, state)
        return
    if action == "back":
        await apply_result(callback, session, session.assessment_back(), state)
        return
    if action == "type":
        await callback.answer()
        await state.set_state(WizardFSM.typing_assessment)
        await state.update_data(screen_id=screen.id)
        await callback.message.answer(Messages.Assessment.TYPE_ANSWER)
        return

    try:
        if action == "mark":
            sequencer.select_response(screen.id, callback_data.mark, callback_data.index)
            auto = session.take_auto_result()
            if auto is not None:
                logger.info(f"User {callback.from_user.id} finished scenario {screen.id}: {auto.outcome.value}")
                await apply_result(callback, session, auto, state)
                return
        elif action == "rate":
            sequencer.rate(screen.id, callback_data.index)
        elif action == "choose":
            options = screen_options(screen)
            if not 0 <= callback_data.index < len(options):
                raise ValueError(f"Option index {callback_data.index} is out of range")
            sequencer.choose(screen.id, options[callback_data.index])
    except ValueError as e:
        await callback.answer(str(e), show_alert=True)
        return
    session.touch()
    await callback.answer()
    await show(callback.message, session)

@router.message(StateFilter(WizardFSM.typing_assessment), F.text)
async def handle_typed_answer(message: Message, state: FSMContext) -> None:
    """Ответ на экран language-typing."""
    session = sessions.get(message.from_user.id)
    if session is None or session.assessment is None:
        await state.clear()
        await message.answer(Messages.Common.NO_SESSION)
        return
    data = await state.get_data()
    try:
        session.assessment.type_text(data.get("screen_id"), message.text)
    except ValueError as e:
        await message.answer(f"{Messages.Common.INVALID_INPUT}\n<i>{e}</i>")
        return
    await state.set_state(None)
    await show(message, session, edit=False)
