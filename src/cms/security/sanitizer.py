"""Field-level normalization for usernames, filenames and markup."""
import re
from pathlib import PurePosixPath

import structlog

from cms.errors import InvalidArgumentError
from cms.logging import emit

logger = structlog.get_logger()

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]{3,30}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
RESERVED_NAMES = re.compile(r"(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\..*)?", re.IGNORECASE)
PATH_TRAVERSAL_PATTERN = re.compile(r"\.\.[\\/]|[\\/]\.\.[\\/]|[\\/]\.\.$")
SQL_INJECTION_PATTERN = re.compile(
    r"(union|select|insert|update|delete|drop|create|alter|exec|execute)\s+",
    re.IGNORECASE,
)

MARKUP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<object[^>]*>.*?</object>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<embed[^>]*>.*?</embed>", re.IGNORECASE | re.DOTALL),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

ALLOWED_FILE_EXTENSIONS: frozenset[str] = frozenset({
    "jpg", "jpeg", "png", "gif", "pdf", "doc", "docx", "txt", "csv", "xml", "json",
})

MAX_USERNAME_LENGTH = 30
MAX_EMAIL_LENGTH = 100
MAX_FILENAME_LENGTH = 255
MAX_TITLE_LENGTH = 200
MAX_SEARCH_LENGTH = 100


def sanitize_username(username: str | None) -> str:
    """Trim and validate a username.

    Args:
        username: Raw username.

    Returns:
        The trimmed username.

    Raises:
        InvalidArgumentError: If the username is blank, too long, or has
            characters outside letters, digits, underscore and hyphen.
    """
    if username is None or not username.strip():
        raise InvalidArgumentError("Username cannot be empty")

    cleaned = username.strip()
    if len(cleaned) > MAX_USERNAME_LENGTH:
        raise InvalidArgumentError("Username too long")

    if not USERNAME_PATTERN.fullmatch(cleaned):
        raise InvalidArgumentError(
            "Username must contain only letters, numbers, underscores, "
            "and hyphens (3-30 characters)"
        )
    return cleaned


def sanitize_filename(filename: str | None) -> str:
    """Reduce an uploaded filename to a safe basename.

    Directory components and forbidden characters are stripped, reserved
    device names get a ``file_`` prefix, and overlong names are shortened
    while keeping the extension.

    Args:
        filename: Raw client-supplied filename.

    Returns:
        Safe filename.

    Raises:
        InvalidArgumentError: If nothing usable remains.
    """
    if filename is None or not filename.strip():
        raise InvalidArgumentError("Filename cannot be empty")

    cleaned = re.sub(r".*[\\/]", "", filename)
    cleaned = INVALID_FILENAME_CHARS.sub("", cleaned)

    if RESERVED_NAMES.fullmatch(cleaned):
        cleaned = f"file_{cleaned}"

    if len(cleaned) > MAX_FILENAME_LENGTH:
        extension = file_extension(cleaned)
        keep = MAX_FILENAME_LENGTH - len(extension) - 1
        cleaned = f"{cleaned[:keep]}.{extension}"

    if not cleaned.strip() or cleaned in (".", ".."):
        raise InvalidArgumentError(f"Invalid filename: {filename}")

    emit(logger, "debug", "filename_sanitized", original=filename, sanitized=cleaned)
    return cleaned


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or an empty string."""
    return PurePosixPath(filename).suffix.lower().lstrip(".")


def is_allowed_file_type(filename: str | None) -> bool:
    """Check a filename against the upload extension allow-list.

    Args:
        filename: Filename, already sanitized.

    Returns:
        True if the extension may be uploaded.
    """
    if not filename or not filename.strip():
        return False
    return file_extension(filename) in ALLOWED_FILE_EXTENSIONS


def sanitize_html(text: str) -> str:
    """Strip script-capable markup and URL schemes from text.

    Args:
        text: Raw markup.

    Returns:
        Text with dangerous constructs removed.
    """
    cleaned = text
    for pattern in MARKUP_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned


def sanitize_text(text: str | None, max_length: int) -> str:
    """Drop control characters, trim, and truncate plain text."""
    if text is None:
        return ""

    cleaned = CONTROL_CHARS.sub("", text).strip()
    if len(cleaned) > max_length:
        emit(logger, "warning", "text_truncated", max_length=max_length)
        cleaned = cleaned[:max_length]
    return cleaned


def sanitize_title(title: str | None) -> str:
    return sanitize_text(title, MAX_TITLE_LENGTH)


def sanitize_email(email: str | None) -> str:
    """Normalize and validate an email address.

    Raises:
        InvalidArgumentError: If the address is blank, too long or malformed.
    """
    if email is None or not email.strip():
        raise InvalidArgumentError("Email cannot be empty")

    cleaned = email.strip().lower()
    if len(cleaned) > MAX_EMAIL_LENGTH:
        raise InvalidArgumentError("Email address too long")
    if not EMAIL_PATTERN.fullmatch(cleaned):
        raise InvalidArgumentError("Invalid email format")
    return cleaned


def sanitize_search_query(query: str | None) -> str:
    """Clean a search query, blanking it on injection or traversal markers."""
    cleaned = sanitize_text(query, MAX_SEARCH_LENGTH)

    if SQL_INJECTION_PATTERN.search(cleaned):
        emit(logger, "warning", "search_query_rejected", reason="sql_injection")
        return ""

    if PATH_TRAVERSAL_PATTERN.search(cleaned):
        emit(logger, "warning", "search_query_rejected", reason="path_traversal")
        return ""

    return cleaned
