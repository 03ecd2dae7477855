from datetime import date
from flowbot.engine.assessment import AssessmentSequencer
from flowbot.engine.navigation import NavigationPosition
from flowbot.engine.scheduler import InterviewScheduler
from flowbot.keyboards.inline import (
    AssessmentCallback,
    NavCallback,
    QuestionCallback,
    get_assessment_keyboard,
    get_module_keyboard,
    get_scheduler_keyboard,
)
from flowbot.models.flow import Content


def all_buttons(markup):
    return [button for row in markup.inline_keyboard for button in row]


def test_half_width_pair_shares_a_row(contact_template):
    markup = get_module_keyboard(
        contact_template.content, {"firstName": "Ada"}, NavigationPosition(0, 0), is_first=True, is_last=False,
    )
    rows = markup.inline_keyboard

    assert len(rows[0]) == 2
    assert rows[0][0].text == "✏️ First name: Ada"
    assert rows[0][1].text == "✏️ Last name *"
    assert QuestionCallback.unpack(rows[0][1].callback_data) == QuestionCallback(step=0, sub=0, q=1)

    nav = NavCallback.unpack(rows[-1][0].callback_data)
    assert len(rows[-1]) == 1
    assert nav.action == "next"


def test_radio_options_and_multi_button_navigation():
    content = Content.model_validate({
        "questions": [{"id": "level", "type": "radio", "options": ["Junior", "Senior"], "layout": "horizontal"}],
        "customButtons": [{"id": "b1", "label": "Go", "isPrimary": True}],
    })
    markup = get_module_keyboard(
        content, {"level": "Senior"}, NavigationPosition(1, 2), is_first=False, is_last=False, multi_button=True,
    )
    rows = markup.inline_keyboard

    assert [b.text for b in rows[0]] == ["⚪ Junior", "🔘 Senior"]
    assert rows[1][0].text == "⭐ Go"
    assert [NavCallback.unpack(b.callback_data).action for b in rows[2]] == ["back"]


def test_assessment_keyboard_marks_choices():
    seq = AssessmentSequencer()
    seq.handle_next()
    seq.select_response("scenario1", "best", 1)
    markup = get_assessment_keyboard(seq, can_go_back=True)

    assert markup.inline_keyboard[1][0].text.startswith("🟢")
    footer = [AssessmentCallback.unpack(b.callback_data).action for b in markup.inline_keyboard[-1]]
    assert footer == ["back", "next"]


def test_callback_data_fits_telegram_limit():
    scheduler = InterviewScheduler(today=date(2025, 9, 1))
    markup = get_scheduler_keyboard(scheduler, NavigationPosition(12, 30), is_first=False, is_last=True)
    assert all(len(b.callback_data.encode()) <= 64 for b in all_buttons(markup))
