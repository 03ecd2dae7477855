import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery
from aiogram.fsm.context import FSMContext
from flowbot.core.messages import Messages
from flowbot.services.session import SessionRegistry, sessions
from flowbot.states.wizard import WizardFSM

logger = logging.getLogger(__name__)

# Ответы кандидата в этих состояниях не пишем в лог целиком
PRIVATE_STATES = {WizardFSM.answering_text.state, WizardFSM.leaving_feedback.state}

class CustomFormatter(logging.Formatter):
    """Formatter с user_id и текущим флоу в каждой записи."""
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'user_id'):
            record.user_id = 'system'
        if not hasattr(record, 'flow'):
            record.flow = '-'
        return super().format(record)

class LoggingMiddleware(BaseMiddleware):
    """Логирование апдейтов с позицией пользователя во флоу."""
    def __init__(self, registry: SessionRegistry = sessions):
        self.registry = registry

    def _flow_context(self, user_id: Any) -> str:
        session = self.registry.get(user_id) if isinstance(user_id, int) else None
        if session is None:
            return '-'
        step, sub = session.navigator.position.as_tuple()
        return f"{session.flow.slug}@{step}.{sub}"

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        user = getattr(event, 'from_user', None)
        user_id = user.id if user else 'unknown'
        data['user_id'] = user_id
        extra = {'user_id': user_id, 'flow': self._flow_context(user_id)}

        state: Optional[FSMContext] = data.get('state')
        current_state = None
        if state:
            try:
                current_state = await state.get_state()
            except Exception as e:
                logger.error(f"FSM state error for user {user_id}: {e}", extra=extra)
                await state.clear()
                self.registry.drop(user_id)
                if hasattr(event, 'answer'):
                    await event.answer(Messages.Common.SESSION_TIMEOUT)
                return

        try:
            if isinstance(event, Message):
                if current_state in PRIVATE_STATES and event.text:
                    text = f"<answer, {len(event.text)} chars>"
                elif event.photo or event.document:
                    text = "<file>"
                else:
                    text = event.text or event.caption or "Non-text message"
                logger.info(f"Message from user {user_id} [{extra['flow']}]: {text}", extra=extra)
            elif isinstance(event, CallbackQuery):
                logger.info(f"Callback from user {user_id} [{extra['flow']}]: {event.data}", extra=extra)
            else:
                logger.info(f"Event from user {user_id}: {type(event).__name__}", extra=extra)

            return await handler(event, data)
        except Exception as e:
            logger.error(f"Error handling event for user {user_id}: {e}", exc_info=True, extra=extra)
            if hasattr(event, 'answer'):
                await event.answer(Messages.Common.INTERNAL_ERROR)
            raise
