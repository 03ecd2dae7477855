import pytest
from flowbot.engine.interpreter import (
    RowKind,
    answerable_questions,
    coerce_answer,
    find_embedded,
    format_message,
    parse_phone,
    plan_layout,
    validate_answers,
)
from flowbot.models.application import FileAnswer, PhoneAnswer
from flowbot.models.flow import Question, QuestionType


def q(qid, qtype, **kwargs):
    return Question(id=qid, type=qtype, **kwargs)


def test_pairing_law():
    a = q("a", QuestionType.TEXT, half_width=True)
    b = q("b", QuestionType.SELECT, half_width=True, options=["x"])
    c = q("c", QuestionType.TEXT)
    rows = plan_layout([a, b, c])

    assert [row.kind for row in rows] == [RowKind.PAIR, RowKind.SINGLE]
    assert [row.question_ids for row in rows] == [("a", "b"), ("c",)]


def test_pairing_looks_ahead_one_element_only():
    a = q("a", QuestionType.TEXT, half_width=True)
    b = q("b", QuestionType.TEXT)
    c = q("c", QuestionType.TEXT, half_width=True)
    d = q("d", QuestionType.SELECT, half_width=True, options=["x"])
    e = q("e", QuestionType.TEXT, half_width=True)
    rows = plan_layout([a, b, c, d, e])

    assert [row.question_ids for row in rows] == [("a",), ("b",), ("c", "d"), ("e",)]
    assert rows[0].half_width
    assert not rows[1].half_width


def test_half_width_of_other_types_never_pairs():
    a = q("a", QuestionType.RADIO, half_width=True, options=["x"])
    b = q("b", QuestionType.TEXT, half_width=True)
    rows = plan_layout([a, b])
    assert [row.question_ids for row in rows] == [("a",), ("b",)]


def test_embedded_questions_get_their_own_row():
    rows = plan_layout([q("intro", QuestionType.MESSAGE), q("slot", QuestionType.INTERVIEW_SCHEDULER)])
    assert [row.kind for row in rows] == [RowKind.SINGLE, RowKind.EMBEDDED]
    assert plan_layout(None) == []


def test_find_embedded_and_answerable():
    questions = [
        q("intro", QuestionType.MESSAGE, content="Hi"),
        q("logo", QuestionType.IMAGE, content="https://img.example/logo.png"),
        q("photo", QuestionType.IMAGE),
        q("video", QuestionType.VIDEO_INTERVIEW),
        q("name", QuestionType.TEXT),
    ]
    assert find_embedded(questions).id == "video"
    assert [x.id for x in answerable_questions(questions)] == ["photo", "name"]


def test_coerce_text_and_choices():
    assert coerce_answer(q("t", QuestionType.TEXTAREA), "  hello \n") == "hello"

    select = q("s", QuestionType.SELECT, options=["Junior", "Senior"])
    assert coerce_answer(select, "Senior") == "Senior"
    assert coerce_answer(select, 0) == "Junior"
    with pytest.raises(ValueError):
        coerce_answer(select, "Lead")
    with pytest.raises(ValueError):
        coerce_answer(select, 5)


def test_checkbox_with_options_toggles_membership():
    box = q("c", QuestionType.CHECKBOX, options=["Mon", "Tue", "Wed"])
    value = coerce_answer(box, "Tue")
    value = coerce_answer(box, 0, value)
    assert value == ["Tue", "Mon"]
    assert coerce_answer(box, "Tue", value) == ["Mon"]


def test_checkbox_without_options_toggles_bool():
    consent = q("consent", QuestionType.CHECKBOX, text="I agree")
    assert coerce_answer(consent, 0) is True
    assert coerce_answer(consent, 0, True) is False


def test_phone_is_split_into_country_code_and_number():
    answer = coerce_answer(q("p", QuestionType.PHONE), "+1 650 253 0000")
    assert answer == PhoneAnswer(country_code="+1", number="6502530000")

    local = parse_phone("650 253 0000", "+1")
    assert local.country_code == "+1"
    assert str(local) == "+1 6502530000"

    with pytest.raises(ValueError):
        parse_phone("   ")


def test_file_answers():
    file_q = q("cv", QuestionType.FILE)
    answer = coerce_answer(file_q, {"file_id": "abc", "file_name": "cv.pdf", "size": 10})
    assert isinstance(answer, FileAnswer)
    assert answer.file_name == "cv.pdf"
    assert coerce_answer(file_q, "xyz").file_id == "xyz"


@pytest.mark.parametrize("qtype", [QuestionType.MESSAGE, QuestionType.ASSESSMENT, QuestionType.INTERVIEW_SCHEDULER])
def test_non_value_types_reject_answers(qtype):
    with pytest.raises(ValueError):
        coerce_answer(q("x", qtype), "anything")


def test_validate_required_and_formats():
    questions = [
        q("name", QuestionType.TEXT, text="Name", required=True),
        q("email", QuestionType.TEXT, text="Email"),
        q("phone", QuestionType.PHONE, text="Phone"),
        q("skills", QuestionType.CHECKBOX, options=["a"], required=True),
        q("note", QuestionType.MESSAGE, required=True),
    ]
    errors = validate_answers(questions, {
        "email": "not-an-email",
        "phone": PhoneAnswer(country_code="+1", number="123"),
        "skills": [],
    })
    assert set(errors) == {"name", "email", "phone", "skills"}
    assert errors["name"] == "Name is required"

    assert validate_answers(questions, {
        "name": "Ada",
        "email": "ada@example.com",
        "phone": PhoneAnswer(country_code="+1", number="6502530000"),
        "skills": ["a"],
    }) == {}


def test_optional_empty_email_is_not_checked():
    assert validate_answers([q("email", QuestionType.TEXT)], {"email": ""}) == {}


def test_format_message_markup():
    text = "**Hi** *there* <center>x</center> & <b>"
    assert format_message(text) == "<b>Hi</b> <i>there</i> x &amp; &lt;b&gt;"


def test_format_message_keeps_newlines_and_none():
    assert format_message("line one\n<left>line two</left>") == "line one\nline two"
    assert format_message(None) == ""
