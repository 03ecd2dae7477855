import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject
from aiogram.fsm.context import FSMContext
from flowbot.core.config import SESSION_TIMEOUT_MINUTES
from flowbot.core.messages import Messages
from flowbot.services.session import SessionRegistry, sessions

logger = logging.getLogger(__name__)

class FSMTimeoutMiddleware(BaseMiddleware):
    """Middleware для очистки FSM и сессии мастера после таймаута."""
    def __init__(self, timeout_minutes: int = SESSION_TIMEOUT_MINUTES, registry: SessionRegistry = sessions):
        self.timeout = timedelta(minutes=timeout_minutes)
        self.registry = registry

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        state: Optional[FSMContext] = data.get('state')
        user = getattr(event, 'from_user', None)
        if state:
            state_data: Dict[str, Any] = await state.get_data()
            last_activity: Optional[str] = state_data.get('last_activity')
            if last_activity and datetime.now() - datetime.fromisoformat(last_activity) > self.timeout:
                await state.clear()
                if user:
                    self.registry.drop(user.id)
                logger.info(f"Cleared FSM state for user {user.id if user else 'unknown'} due to timeout")
                await event.answer(Messages.Common.SESSION_TIMEOUT)
            await state.update_data(last_activity=datetime.now().isoformat())
        self.registry.expire(self.timeout.total_seconds())
        return await handler(event, data)
