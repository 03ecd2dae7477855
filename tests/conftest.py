import os

os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("FLOW_SERVICE_URL", "http://flows.test")
os.environ.setdefault("TEMPLATE_SERVICE_URL", "http://templates.test")
os.environ.setdefault("FILE_SERVICE_URL", "http://files.test")

import pytest
from flowbot.models.flow import Flow, Template


def build_flow(*steps, collect_feedback=False, slug="test-flow", is_active=True):
    """Флоу из списков модулей: строка это id модуля, dict задаёт модуль целиком."""
    return Flow.model_validate({
        "id": f"{slug}-id",
        "slug": slug,
        "name": "Test flow",
        "collectFeedback": collect_feedback,
        "isActive": is_active,
        "steps": [
            {
                "id": f"step-{i}",
                "name": f"Step {i + 1}",
                "modules": [m if isinstance(m, dict) else {"id": m, "name": m} for m in modules],
            }
            for i, modules in enumerate(steps)
        ],
    })


@pytest.fixture
def flow_factory():
    return build_flow


@pytest.fixture
def contact_template():
    return Template.model_validate({
        "id": "contact-info",
        "name": "Contact info",
        "component": "ContactInfoStep",
        "isDefault": True,
        "content": {
            "title": "Contact information",
            "subtitle": "Tell us how to reach you",
            "questions": [
                {"id": "firstName", "text": "First name", "type": "text", "required": True, "halfWidth": True},
                {"id": "lastName", "text": "Last name", "type": "text", "required": True, "halfWidth": True},
                {"id": "email", "text": "Email", "type": "text", "required": True},
                {"id": "phone", "text": "Phone", "type": "phone"},
            ],
        },
    })


@pytest.fixture
def templates(contact_template):
    return {contact_template.id: contact_template}
