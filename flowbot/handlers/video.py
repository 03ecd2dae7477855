from aiogram import Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery
from flowbot.core.messages import Messages
from flowbot.engine.timers import PeriodicTicker
from flowbot.handlers.wizard import apply_result, current_session, show
from flowbot.keyboards.inline import VideoCallback
import logging

router = Router()
logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0

@router.callback_query(VideoCallback.filter())
async def cq_video(callback: CallbackQuery, callback_data: VideoCallback, state: FSMContext) -> None:
    """Управление видеоинтервью."""
    session = await current_session(callback)
    if session is None:
        return
    recorder = session.video
    if recorder is None or recorder.current_index != callback_data.question:
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return

    action = callback_data.action
    if action == "next":
        await apply_result(callback, session, session.video_next(), state)
        return
    if action == "prev":
        await apply_result(callback, session, session.video_previous(), state)
        return

    message = callback.message
    if action == "start":
        recorder.start()

        async def refresh() -> None:
            await show(message, session)

        if session.ticker is not None:
            session.ticker.cancel()
        session.ticker = PeriodicTicker(TICK_SECONDS, recorder.tick, on_tick=refresh)
        session.ticker.start()
        logger.info(f"User {callback.from_user.id} started video question {recorder.current_question.id}")
    elif action == "stop":
        if session.ticker is not None:
            session.ticker.cancel()
            session.ticker = None
        recorder.stop()
    session.touch()
    await callback.answer()
    await show(message, session)
