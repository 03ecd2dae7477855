from aiogram import Router
from aiogram.types import CallbackQuery
from flowbot.core.messages import Messages
from flowbot.engine.scheduler import TIME_SLOTS
from flowbot.handlers.wizard import current_session, show
from flowbot.keyboards.inline import TIMEZONE_KEYS, CalendarCallback
import logging

router = Router()
logger = logging.getLogger(__name__)

@router.callback_query(CalendarCallback.filter())
async def cq_calendar(callback: CallbackQuery, callback_data: CalendarCallback) -> None:
    """Календарь интервью: месяцы, дни, слоты, часовые пояса."""
    if callback_data.action == "noop":
        await callback.answer()
        return
    session = await current_session(callback)
    if session is None:
        return
    scheduler = session.scheduler
    if scheduler is None:
        await callback.answer(Messages.Wizard.NOT_ACTUAL)
        await show(callback.message, session)
        return

    action, value = callback_data.action, callback_data.value
    if action == "prev":
        scheduler.previous_month()
    elif action == "next":
        scheduler.next_month()
    elif action == "day":
        if not scheduler.select_date(value):
            await callback.answer(Messages.Scheduler.UNAVAILABLE)
            return
        session.errors.pop("date", None)
    elif action == "time" and 0 <= value < len(TIME_SLOTS):
        scheduler.select_time(TIME_SLOTS[value])
        session.errors.pop("time", None)
    elif action == "tz" and 0 <= value < len(TIMEZONE_KEYS):
        scheduler.set_timezone(TIMEZONE_KEYS[value])
    logger.debug(f"User {callback.from_user.id} calendar {action} {value}")
    session.touch()
    await callback.answer()
    await show(callback.message, session)
