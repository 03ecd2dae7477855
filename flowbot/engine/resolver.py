from typing import Mapping, Optional, Tuple
from flowbot.models.flow import Content, Module, Template

THANK_YOU_TITLE = "Thank you! 🎉"
THANK_YOU_SUBTITLE = "We received your submission and will get back to you as soon as possible. Good luck!"


def resolve(template: Optional[Template], overrides: Optional[Content]) -> Content:
    """Поверхностное слияние контента шаблона с переопределениями модуля.

    Поле переопределения побеждает, если оно явно задано, даже пустой
    строкой. Без глобального шаблона используется только переопределение.
    """
    merged = {}
    if template is not None:
        merged.update(template.content.present_fields())
    if overrides is not None:
        merged.update(overrides.present_fields())
    return Content.model_validate(merged)


def resolve_module(module: Module, templates: Mapping[str, Template]) -> Content:
    return resolve(templates.get(module.id), module.template_overrides)


def thank_you_text(content: Content) -> Tuple[str, str]:
    return content.title or THANK_YOU_TITLE, content.subtitle or THANK_YOU_SUBTITLE


def thank_you_contact(content: Content) -> Optional[Tuple[str, str]]:
    """Контакт рекрутера на экране благодарности, если задан."""
    contact = (content.custom_fields or {}).get("contactInfo")
    if not contact:
        return None
    return contact.get("name") or "John Doe", contact.get("email") or "johndoe@company.com"
