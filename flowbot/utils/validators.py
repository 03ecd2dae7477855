import json
import logging
import re
from typing import Iterable, Optional
from urllib.parse import urlparse
from pydantic import ValidationError
from flowbot.models.flow import Content

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

MB = 1024 * 1024
LOGO_MAX_BYTES = 2 * MB
IMAGE_MAX_BYTES = 5 * MB
FILE_MAX_BYTES = 10 * MB

DOCUMENT_CONTENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "application/rtf",
    "text/html",
    "image/png",
    "image/jpeg",
})
MAX_FEEDBACK_LENGTH = 1000


class UploadRejected(ValueError):
    """Файл не прошёл проверку перед загрузкой."""
    pass


def is_valid_url(url: str) -> bool:
    """Проверка валидности URL."""
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except ValueError:
        return False


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_RE.match(slug or ""))


def validate_image_upload(content_type: Optional[str], size: Optional[int], max_bytes: int = IMAGE_MAX_BYTES) -> None:
    """Только изображения и не больше лимита вызывающей стороны."""
    if not content_type or not content_type.startswith("image/"):
        raise UploadRejected("Please upload an image file")
    _check_size(size, max_bytes)


def validate_document_upload(content_type: Optional[str], size: Optional[int],
                             allowed: Iterable[str] = DOCUMENT_CONTENT_TYPES,
                             max_bytes: int = FILE_MAX_BYTES) -> None:
    if content_type not in set(allowed):
        raise UploadRejected("Please upload a valid file format (.pdf, .doc, .docx, .txt, .rtf, .html, .png, .jpg)")
    _check_size(size, max_bytes)


def _check_size(size: Optional[int], max_bytes: int) -> None:
    if size is not None and size > max_bytes:
        raise UploadRejected(f"File size must be less than {max_bytes // MB}MB")


def parse_overrides_text(text: str) -> Content:
    """Парсинг JSON переопределений модуля."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        raise ValueError("Overrides must be a JSON object")
    try:
        return Content.model_validate(data)
    except ValidationError as e:
        logger.error(f"Validation error in overrides: {e}")
        raise ValueError(str(e))


def validate_feedback_comment(comment: str) -> str:
    comment = comment.strip()
    if len(comment) > MAX_FEEDBACK_LENGTH:
        raise ValueError(f"Maximum {MAX_FEEDBACK_LENGTH} characters.")
    return comment
