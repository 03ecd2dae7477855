import pytest
from pydantic import ValidationError
from flowbot.engine.resolver import (
    THANK_YOU_SUBTITLE,
    THANK_YOU_TITLE,
    resolve,
    resolve_module,
    thank_you_contact,
    thank_you_text,
)
from flowbot.models.flow import Content, Module


def test_empty_overrides_keep_template_content(contact_template):
    resolved = resolve(contact_template, Content())
    assert resolved.model_dump() == contact_template.content.model_dump()


def test_present_override_keys_win(contact_template):
    overrides = Content.model_validate({"title": "Your details", "questions": []})
    resolved = resolve(contact_template, overrides)

    assert resolved.title == "Your details"
    assert resolved.questions == []
    assert resolved.subtitle == contact_template.content.subtitle


def test_empty_string_override_still_wins(contact_template):
    resolved = resolve(contact_template, Content.model_validate({"subtitle": ""}))
    assert resolved.subtitle == ""
    assert resolved.title == "Contact information"


def test_no_template_uses_overrides_alone():
    overrides = Content.model_validate({"title": "Pick a path", "customButtons": [{"id": "b1", "label": "Go"}]})
    resolved = resolve(None, overrides)
    assert resolved.title == "Pick a path"
    assert resolved.custom_buttons[0].label == "Go"
    assert resolved.subtitle is None


def test_nothing_resolves_to_empty_content():
    assert resolve(None, None).model_dump() == Content().model_dump()


def test_resolve_module_looks_template_up_by_module_id(templates):
    module = Module.model_validate({
        "id": "contact-info",
        "templateOverrides": {"title": "Contact"},
    })
    resolved = resolve_module(module, templates)
    assert resolved.title == "Contact"
    assert [q.id for q in resolved.questions] == ["firstName", "lastName", "email", "phone"]

    orphan = Module(id="custom-1", template_overrides=Content(title="Only mine"))
    assert resolve_module(orphan, templates).title == "Only mine"


def test_resolution_sees_template_edits(templates, contact_template):
    module = Module(id="contact-info")
    assert resolve_module(module, templates).title == "Contact information"

    templates["contact-info"] = contact_template.model_copy(
        update={"content": Content(title="Edited")}
    )
    assert resolve_module(module, templates).title == "Edited"


def test_thank_you_fallbacks():
    assert thank_you_text(Content()) == (THANK_YOU_TITLE, THANK_YOU_SUBTITLE)
    assert thank_you_text(Content(title="Done!")) == ("Done!", THANK_YOU_SUBTITLE)


def test_thank_you_contact():
    assert thank_you_contact(Content()) is None
    content = Content(custom_fields={"contactInfo": {"email": "hr@example.com"}})
    assert thank_you_contact(content) == ("John Doe", "hr@example.com")


def test_duplicate_question_ids_are_rejected():
    with pytest.raises(ValidationError):
        Content.model_validate({
            "questions": [
                {"id": "q1", "type": "text"},
                {"id": "q1", "type": "select", "options": ["a"]},
            ],
        })


def test_content_round_trips_camel_case_keys():
    content = Content.model_validate({"centerTitle": True, "splitScreenImagePosition": "left"})
    payload = content.to_payload()
    assert payload == {"centerTitle": True, "splitScreenImagePosition": "left"}
