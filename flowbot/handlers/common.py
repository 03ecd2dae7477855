from aiogram import Router
from aiogram.types import Message, CallbackQuery
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from flowbot.core.config import DEFAULT_FLOW_SLUG
from flowbot.core.messages import Messages
from flowbot.handlers.wizard import show, start_flow
from flowbot.keyboards.inline import FlowCallback, get_flow_list_keyboard
from flowbot.services.catalog import flow_catalog
from flowbot.services.session import sessions
import logging

router = Router()
logger = logging.getLogger(__name__)

async def _show_flow_list(message: Message) -> None:
    flows = flow_catalog.list_active()
    if not flows:
        await message.answer(Messages.Common.NO_FLOWS)
        return
    await message.answer(Messages.Common.START, reply_markup=get_flow_list_keyboard(flows))

@router.message(Command("start"))
async def cmd_start(message: Message, command: CommandObject, state: FSMContext) -> None:
    """Обработка команды /start [slug]."""
    await state.clear()
    slug = (command.args or "").strip() or DEFAULT_FLOW_SLUG
    logger.info(f"User {message.from_user.id} started /start {slug or ''}")
    if slug:
        await start_flow(message, message.from_user.id, slug, state)
        return
    await _show_flow_list(message)

@router.callback_query(FlowCallback.filter())
async def cq_select_flow(callback: CallbackQuery, callback_data: FlowCallback, state: FSMContext) -> None:
    """Выбор флоу из списка."""
    await callback.answer()
    await start_flow(callback.message, callback.from_user.id, callback_data.slug, state, edit=True)

@router.message(Command("restart"))
async def cmd_restart(message: Message, state: FSMContext) -> None:
    """Начать текущий флоу заново."""
    session = sessions.get(message.from_user.id)
    if session is None:
        await message.answer(Messages.Common.NO_SESSION)
        return
    await state.set_state(None)
    session.start_new()
    logger.info(f"User {message.from_user.id} restarted flow {session.flow.slug}")
    await message.answer(Messages.Common.RESTARTED)
    await show(message, session, edit=False)

@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext) -> None:
    """Отмена заявки."""
    sessions.drop(message.from_user.id)
    await state.clear()
    logger.info(f"User {message.from_user.id} cancelled the application")
    await message.answer(Messages.Common.CANCELLED)
