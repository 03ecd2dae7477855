import html
import io
from aiogram import Router, F
from aiogram.filters import Command, CommandObject, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from flowbot.core.config import ADMIN_IDS
from flowbot.core.messages import Messages
from flowbot.services.api_client import APIRequestError
from flowbot.services.catalog import flow_catalog, template_catalog
from flowbot.services.session import sessions
from flowbot.states.wizard import AuthoringFSM
from flowbot.utils.validators import UploadRejected, is_valid_url, parse_overrides_text
import logging

router = Router()
router.message.filter(F.from_user.id.in_(ADMIN_IDS))
logger = logging.getLogger(__name__)

@router.message(Command("flows"))
async def cmd_flows(message: Message) -> None:
    """Список всех флоу для администратора."""
    try:
        flows = await flow_catalog.refresh()
    except APIRequestError as e:
        logger.error(f"Error refreshing flows: {e}")
        await message.answer(Messages.Common.SERVICE_UNAVAILABLE)
        return
    lines = [Messages.Authoring.FLOWS_HEADER]
    for flow in flows:
        lines.append(Messages.Authoring.FLOW_LINE.format(
            status="🟢" if flow.is_active else "⚪",
            slug=flow.slug,
            name=html.escape(flow.name),
            steps=len(flow.steps),
        ))
    await message.answer("\n".join(lines))

@router.message(Command("override"))
async def cmd_override(message: Message, command: CommandObject) -> None:
    """Правка переопределений модуля: /override <slug> <module_id> <json>."""
    parts = (command.args or "").split(maxsplit=2)
    if len(parts) < 3:
        await message.answer(Messages.Authoring.OVERRIDE_USAGE)
        return
    slug, module_id, raw = parts
    try:
        overrides = parse_overrides_text(raw)
        flow = await flow_catalog.get_by_slug(slug, include_inactive=True)
        if flow is None:
            await message.answer(Messages.Authoring.FLOW_NOT_FOUND.format(slug=slug))
            return
        updated = await flow_catalog.save_module_overrides(flow.id, module_id, overrides)
    except (ValueError, APIRequestError) as e:
        logger.error(f"Failed to save overrides for {slug}/{module_id}: {e}")
        await message.answer(Messages.Authoring.OVERRIDE_FAILED.format(error=str(e)[:300]), parse_mode=None)
        return
    live = sessions.replace_flow(updated)
    logger.info(f"Admin {message.from_user.id} updated overrides of {slug}/{module_id}, {live} live sessions")
    await message.answer(Messages.Authoring.OVERRIDE_SAVED.format(module=module_id))

@router.message(Command("logo"))
async def cmd_logo(message: Message, command: CommandObject, state: FSMContext) -> None:
    """Логотип флоу: по URL или загрузкой изображения."""
    parts = (command.args or "").split()
    if not parts:
        await message.answer(Messages.Authoring.LOGO_USAGE)
        return
    slug = parts[0]
    try:
        flow = await flow_catalog.get_by_slug(slug, include_inactive=True)
    except APIRequestError as e:
        logger.error(f"Error loading flow {slug}: {e}")
        await message.answer(Messages.Common.SERVICE_UNAVAILABLE)
        return
    if flow is None:
        await message.answer(Messages.Authoring.FLOW_NOT_FOUND.format(slug=slug))
        return
    if len(parts) > 1:
        url = parts[1]
        if not is_valid_url(url):
            await message.answer(Messages.Authoring.LOGO_FAILED.format(error="invalid URL"))
            return
        try:
            updated = await flow_catalog.update(flow.model_copy(update={"logo_url": url}))
        except APIRequestError as e:
            await message.answer(Messages.Authoring.LOGO_FAILED.format(error=str(e)[:300]), parse_mode=None)
            return
        sessions.replace_flow(updated)
        await message.answer(Messages.Authoring.LOGO_SAVED)
        return
    await state.set_state(AuthoringFSM.uploading_logo)
    await state.update_data(flow_id=flow.id)
    await message.answer(Messages.Authoring.LOGO_SEND.format(slug=slug))

@router.message(StateFilter(AuthoringFSM.uploading_logo), F.photo | F.document)
async def handle_logo_upload(message: Message, state: FSMContext) -> None:
    """Загрузка логотипа в файловый сервис."""
    data = await state.get_data()
    if message.photo:
        photo = message.photo[-1]
        file_id, filename, content_type, size = photo.file_id, f"{photo.file_unique_id}.jpg", "image/jpeg", photo.file_size
    else:
        document = message.document
        file_id, filename, content_type, size = document.file_id, document.file_name, document.mime_type, document.file_size
    try:
        buffer = io.BytesIO()
        await message.bot.download(file_id, destination=buffer)
        updated = await flow_catalog.set_logo(data.get("flow_id"), filename, buffer.getvalue(), content_type)
    except UploadRejected as e:
        await message.answer(Messages.Authoring.LOGO_FAILED.format(error=str(e)))
        return
    except (ValueError, APIRequestError) as e:
        logger.error(f"Logo upload failed: {e}")
        await message.answer(Messages.Authoring.LOGO_FAILED.format(error=str(e)[:300]), parse_mode=None)
        await state.clear()
        return
    await state.clear()
    sessions.replace_flow(updated)
    logger.info(f"Admin {message.from_user.id} uploaded logo ({size} bytes) for flow {updated.slug}")
    await message.answer(Messages.Authoring.LOGO_SAVED)

@router.message(Command("newtemplate"))
async def cmd_new_template(message: Message, command: CommandObject) -> None:
    """Создание шаблона модуля с производным именем компонента."""
    name = (command.args or "").strip()
    if not name:
        await message.answer(Messages.Authoring.TEMPLATE_USAGE)
        return
    try:
        template = await template_catalog.create(name)
    except APIRequestError as e:
        logger.error(f"Failed to create template {name}: {e}")
        await message.answer(Messages.Authoring.TEMPLATE_FAILED.format(error=str(e)[:300]), parse_mode=None)
        return
    await message.answer(Messages.Authoring.TEMPLATE_CREATED.format(name=html.escape(template.name), component=template.component_kind))

@router.message(Command("duplicate"))
async def cmd_duplicate(message: Message, command: CommandObject) -> None:
    """Копия флоу (неактивная) для правок без влияния на кандидатов."""
    slug = (command.args or "").strip()
    if not slug:
        await message.answer(Messages.Authoring.DUPLICATE_USAGE)
        return
    try:
        flow = await flow_catalog.get_by_slug(slug, include_inactive=True)
        if flow is None:
            await message.answer(Messages.Authoring.FLOW_NOT_FOUND.format(slug=slug))
            return
        copy = await flow_catalog.duplicate(flow)
    except APIRequestError as e:
        logger.error(f"Failed to duplicate flow {slug}: {e}")
        await message.answer(Messages.Authoring.DUPLICATE_FAILED.format(error=str(e)[:300]), parse_mode=None)
        return
    logger.info(f"Admin {message.from_user.id} duplicated flow {slug} as {copy.slug}")
    await message.answer(Messages.Authoring.DUPLICATED.format(slug=copy.slug))
