import pytest
from flowbot.utils.validators import (
    FILE_MAX_BYTES,
    UploadRejected,
    is_valid_slug,
    is_valid_url,
    parse_overrides_text,
    validate_document_upload,
    validate_feedback_comment,
    validate_image_upload,
)


def test_urls_and_slugs():
    assert is_valid_url("https://example.com/logo.png")
    assert not is_valid_url("example.com")
    assert is_valid_slug("sales-team-2")
    assert not is_valid_slug("Sales Team")
    assert not is_valid_slug("-sales")


def test_uploads():
    validate_image_upload("image/jpeg", 1024)
    validate_document_upload("application/pdf", FILE_MAX_BYTES)
    with pytest.raises(UploadRejected):
        validate_image_upload(None, 10)
    with pytest.raises(UploadRejected):
        validate_document_upload("application/zip", 10)
    with pytest.raises(UploadRejected):
        validate_document_upload("application/pdf", FILE_MAX_BYTES + 1)


def test_parse_overrides_text():
    content = parse_overrides_text('{"title": "Hi", "centerTitle": true}')
    assert content.title == "Hi"
    assert content.model_fields_set == {"title", "center_title"}

    with pytest.raises(ValueError):
        parse_overrides_text("{oops")
    with pytest.raises(ValueError):
        parse_overrides_text("[1, 2]")
    with pytest.raises(ValueError):
        parse_overrides_text('{"questions": [{"id": "q"}]}')


def test_feedback_comment_limit():
    assert validate_feedback_comment("  great  ") == "great"
    with pytest.raises(ValueError):
        validate_feedback_comment("x" * 1001)
