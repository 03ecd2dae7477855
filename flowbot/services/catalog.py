"""
In-memory caches of flows and module templates over the remote stores.

Caches are replaced only after the remote call succeeds; any
``APIRequestError`` propagates to the caller untouched.
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional
from pydantic import ValidationError
from flowbot.models.flow import ComponentKind, Content, Flow, Step, Template
from flowbot.services.api_client import (
    FileAPIClient,
    FlowAPIClient,
    TemplateAPIClient,
    file_api_client,
    flow_api_client,
    template_api_client,
)
from flowbot.utils.validators import LOGO_MAX_BYTES, validate_image_upload

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")
_SLUG_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")


def derive_component_kind(name: str, existing: Iterable[str]) -> str:
    """Имя компонента из названия шаблона, уникальное среди существующих."""
    base = _NON_ALNUM_RE.sub("", name or "") or ComponentKind.GENERIC.value
    taken = set(existing)
    if base not in taken:
        return base
    suffix = 1
    while f"{base}{suffix}" in taken:
        suffix += 1
    return f"{base}{suffix}"


def slugify(name: str) -> str:
    return _SLUG_SEPARATOR_RE.sub("-", (name or "").lower()).strip("-") or "flow"


def generate_unique_slug(name: str, existing: Iterable[str]) -> str:
    base = slugify(name)
    taken = set(existing)
    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


class TemplateCatalog:
    """Кэш шаблонов модулей."""

    def __init__(self, client: Optional[TemplateAPIClient] = None):
        self.client = client or template_api_client
        self._templates: Dict[str, Template] = {}

    def load(self, templates: Iterable[Template]) -> None:
        # Словарь обновляется на месте: mapping() остаётся живым
        self._templates.clear()
        for template in templates:
            self._templates[template.id] = template

    async def refresh(self) -> List[Template]:
        raw_templates = await self.client.list_templates()
        templates = []
        for raw in raw_templates:
            try:
                templates.append(Template.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid template {raw.get('id')}: {e}")
        self.load(templates)
        logger.info(f"Loaded {len(templates)} templates")
        return templates

    def get(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def mapping(self) -> Mapping[str, Template]:
        return MappingProxyType(self._templates)

    def all(self) -> List[Template]:
        return list(self._templates.values())

    async def create(self, name: str, description: str = "", content: Optional[Content] = None,
                     component: Optional[str] = None) -> Template:
        component = component or derive_component_kind(name, (t.component_kind for t in self._templates.values()))
        payload = {
            "name": name,
            "description": description,
            "component": component,
            "content": (content or Content()).to_payload(),
            "isDefault": False,
        }
        template = Template.model_validate(await self.client.create_template(payload))
        self._templates[template.id] = template
        return template

    async def update(self, template: Template) -> Template:
        payload = template.to_payload()
        payload["component"] = template.component_kind or ComponentKind.GENERIC.value
        updated = Template.model_validate(await self.client.update_template(template.id, payload))
        self._templates[updated.id] = updated
        return updated

    async def delete(self, template_id: str) -> None:
        template = self._templates.get(template_id)
        if template is not None and template.is_default:
            raise ValueError("Default templates cannot be deleted")
        await self.client.delete_template(template_id)
        self._templates.pop(template_id, None)


class FlowCatalog:
    """Кэш флоу с заменой целиком при сохранении."""

    def __init__(self, client: Optional[FlowAPIClient] = None, file_client: Optional[FileAPIClient] = None):
        self.client = client or flow_api_client
        self.file_client = file_client or file_api_client
        self._flows: Dict[str, Flow] = {}

    def _parse(self, raw: Dict[str, Any]) -> Flow:
        if not raw.get("slug"):
            raw = {**raw, "slug": generate_unique_slug(raw.get("name", ""), self.slugs())}
            logger.warning(f"Flow {raw.get('id')} has no slug, using {raw['slug']}")
        return Flow.model_validate(raw)

    def slugs(self) -> List[str]:
        return [flow.slug for flow in self._flows.values()]

    async def refresh(self) -> List[Flow]:
        raw_flows = await self.client.list_flows()
        self._flows = {}
        for raw in raw_flows:
            try:
                flow = self._parse(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid flow {raw.get('id')}: {e}")
                continue
            self._flows[flow.id] = flow
        logger.info(f"Loaded {len(self._flows)} flows")
        return list(self._flows.values())

    def get(self, flow_id: str) -> Optional[Flow]:
        return self._flows.get(flow_id)

    def list_active(self) -> List[Flow]:
        return [flow for flow in self._flows.values() if flow.is_active]

    def all(self) -> List[Flow]:
        return list(self._flows.values())

    async def get_by_slug(self, slug: str, include_inactive: bool = False) -> Optional[Flow]:
        """Флоу по slug; неактивные видны только авторам."""
        flow = next((f for f in self._flows.values() if f.slug == slug), None)
        if flow is None:
            raw = await self.client.get_flow_by_slug(slug)
            if raw is None:
                return None
            flow = self._parse(raw)
            self._flows[flow.id] = flow
        if not flow.is_active and not include_inactive:
            logger.info(f"Flow {slug} is inactive")
            return None
        return flow

    async def create(self, name: str, description: str = "", steps: Optional[List[Step]] = None,
                     **fields: Any) -> Flow:
        payload = {
            "name": name,
            "description": description,
            "slug": generate_unique_slug(name, self.slugs()),
            "steps": [step.to_payload() for step in steps or []],
            **fields,
        }
        flow = self._parse(await self.client.create_flow(payload))
        self._flows[flow.id] = flow
        return flow

    async def update(self, flow: Flow) -> Flow:
        updated = self._parse(await self.client.update_flow(flow.id, flow.to_payload()))
        self._flows[updated.id] = updated
        return updated

    async def duplicate(self, flow: Flow) -> Flow:
        name = f"{flow.name} (copy)"
        return await self.create(
            name,
            description=flow.description,
            steps=flow.steps,
            isActive=False,
            primaryColor=flow.primary_color,
            logoUrl=flow.logo_url,
            collectFeedback=flow.collect_feedback,
        )

    async def save_module_overrides(self, flow_id: str, module_id: str, overrides: Content) -> Flow:
        """Сохранение переопределений модуля; кэш меняется только при успехе."""
        flow = self._flows.get(flow_id)
        if flow is None:
            raise ValueError(f"Flow {flow_id} is not loaded")
        position = flow.find_module(module_id)
        if position is None:
            raise ValueError(f"Module {module_id} not found in flow {flow.slug}")
        edited = flow.model_copy(deep=True)
        edited.module_at(*position).template_overrides = overrides
        return await self.update(edited)

    async def set_logo(self, flow_id: str, filename: str, data: bytes, content_type: Optional[str]) -> Flow:
        flow = self._flows.get(flow_id)
        if flow is None:
            raise ValueError(f"Flow {flow_id} is not loaded")
        validate_image_upload(content_type, len(data), LOGO_MAX_BYTES)
        url = await self.file_client.upload(filename, data, content_type)
        edited = flow.model_copy(update={"logo_url": url})
        return await self.update(edited)


template_catalog = TemplateCatalog()
flow_catalog = FlowCatalog()
