"""Validation gate tests."""

from datetime import datetime, timedelta, timezone

import pytest

from cms.config import Settings
from cms.errors import ForbiddenError, InvalidArgumentError, UnauthenticatedError
from cms.models import ContentRecord, Operation, Principal, Role
from cms.security import validator

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
TOKEN = "aB3+" * 10


# === Credentials ===


def test_weak_password_rejected() -> None:
    """Common passwords fail regardless of case."""
    for password in ("password", "PASSWORD", "letmein"):
        with pytest.raises(InvalidArgumentError, match="too weak"):
            validator.validate_credentials("jane_doe", password)


def test_strong_password_accepted() -> None:
    """Mixed-case, digit and symbol passwords pass."""
    validator.validate_credentials("jane_doe", "Tr0ub4dor&3")


@pytest.mark.parametrize(
    "password",
    ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSymbols123",
     "Tr0ub4dor&3\n"],
)
def test_password_strength_rules(password: str) -> None:
    """Each missing character class fails the strength rule."""
    with pytest.raises(InvalidArgumentError, match="at least 8 characters"):
        validator.validate_credentials("jane_doe", password)


def test_credentials_username_checked_first() -> None:
    """An empty username is reported before the password."""
    with pytest.raises(InvalidArgumentError, match="Username cannot be empty"):
        validator.validate_credentials("  ", "")


def test_credentials_username_format() -> None:
    """Usernames must pass the sanitizer's format rule."""
    with pytest.raises(InvalidArgumentError, match="Invalid username format"):
        validator.validate_credentials("a b", "Tr0ub4dor&3")


def test_credentials_empty_password() -> None:
    """Passwords are required."""
    with pytest.raises(InvalidArgumentError, match="Password cannot be empty"):
        validator.validate_credentials("jane_doe", None)


def test_check_returns_result_instead_of_raising() -> None:
    """check_* functions report failures as values."""
    bad = validator.check_credentials("jane_doe", "password")
    good = validator.check_credentials("jane_doe", "Tr0ub4dor&3")

    assert not bad.ok
    assert isinstance(bad.error, InvalidArgumentError)
    assert good.ok
    assert validator.first_failure(good, bad) is bad
    assert validator.first_failure(good) is None


# === Authorization ===


def test_guest_can_view_but_not_create(guest: Principal) -> None:
    """Guests are read-only."""
    validator.validate_authorization(guest, "VIEW_CONTENT")
    with pytest.raises(ForbiddenError, match="Insufficient permissions"):
        validator.validate_authorization(guest, "CREATE_CONTENT")


@pytest.mark.parametrize(
    ("role", "operation", "allowed"),
    [
        (Role.ADMINISTRATOR, Operation.DELETE_USER, True),
        (Role.ADMINISTRATOR, "ANYTHING_AT_ALL", True),
        (Role.EDITOR, Operation.PUBLISH_CONTENT, True),
        (Role.EDITOR, Operation.DELETE_USER, False),
        (Role.EDITOR, Operation.SYSTEM_CONFIG, False),
        (Role.AUTHOR, Operation.CREATE_CONTENT, True),
        (Role.AUTHOR, Operation.EDIT_OWN_CONTENT, True),
        (Role.AUTHOR, Operation.VIEW_CONTENT, True),
        (Role.AUTHOR, Operation.PUBLISH_CONTENT, False),
        (Role.GUEST, Operation.VIEW_CONTENT, True),
        (Role.GUEST, Operation.EDIT_OWN_CONTENT, False),
        ("PUBLISHER", Operation.VIEW_CONTENT, False),
        (None, Operation.VIEW_CONTENT, False),
    ],
)
def test_role_matrix(role, operation, allowed: bool) -> None:
    """The role matrix denies by default."""
    assert validator.is_operation_allowed(role, operation) is allowed


def test_role_given_as_string() -> None:
    """Plain string roles resolve to the same permissions."""
    principal = Principal(username="visitor", role="GUEST")
    assert validator.check_authorization(principal, "VIEW_CONTENT").ok
    assert not validator.check_authorization(principal, "CREATE_CONTENT").ok


def test_missing_principal_reported_first() -> None:
    """No principal beats an empty operation."""
    with pytest.raises(UnauthenticatedError, match="Authentication required"):
        validator.validate_authorization(None, "")


def test_inactive_principal_unauthenticated() -> None:
    """Inactive accounts cannot act even as administrators."""
    principal = Principal(username="admin", role=Role.ADMINISTRATOR, active=False)
    with pytest.raises(UnauthenticatedError):
        validator.validate_authorization(principal, "VIEW_CONTENT")


def test_empty_operation_rejected(admin: Principal) -> None:
    """Operation names are required."""
    for operation in (None, "", "   "):
        with pytest.raises(InvalidArgumentError):
            validator.validate_authorization(admin, operation)


def test_role_checked_before_resource(guest: Principal) -> None:
    """Role denial is reported even when resource access would also fail."""
    with pytest.raises(ForbiddenError, match="Insufficient permissions"):
        validator.validate_authorization(
            guest, "EDIT_OWN_CONTENT", resource_id="c-1", resource_owner="someone"
        )


def test_author_resource_ownership(author: Principal) -> None:
    """Authors reach only their own resources."""
    validator.validate_authorization(
        author, "EDIT_OWN_CONTENT", resource_id="c-1", resource_owner="jane_doe"
    )
    with pytest.raises(ForbiddenError, match="Access denied"):
        validator.validate_authorization(
            author, "EDIT_OWN_CONTENT", resource_id="c-1", resource_owner="other"
        )


def test_editor_reaches_any_resource(editor: Principal) -> None:
    """Editors are not limited by ownership."""
    validator.validate_authorization(
        editor, "EDIT_OWN_CONTENT", resource_id="c-1", resource_owner="other"
    )


def test_blank_resource_id_rejected(admin: Principal) -> None:
    """A supplied resource id must not be blank."""
    with pytest.raises(InvalidArgumentError):
        validator.validate_authorization(admin, "VIEW_CONTENT", resource_id=" ")


def test_log_failure_does_not_change_outcome(
    guest: Principal,
    settings: Settings,
    broken_log_sink: None,
) -> None:
    """A broken log sink neither masks failures nor invents them."""
    with pytest.raises(ForbiddenError):
        validator.validate_authorization(guest, "CREATE_CONTENT")
    validator.validate_authorization(guest, "VIEW_CONTENT")

    validator.validate_file_upload("photo.png", 100, settings=settings)
    with pytest.raises(ForbiddenError):
        validator.validate_file_upload("setup.exe", 100, settings=settings)
    with pytest.raises(InvalidArgumentError):
        validator.validate_file_upload("photo.png", 0, settings=settings)
    assert validator.check_ip_address("10.0.0.1").ok


# === Content safety ===


@pytest.mark.parametrize(
    "marker",
    ["<script>alert(1)</script>", "<?php echo 1; ?>", "<% code %>", "javascript:void(0)",
     "VBScript:run", "data:text/html;base64,AAAA"],
)
def test_suspicious_body_rejected(marker: str, settings: Settings) -> None:
    """Script and markup injection markers are refused."""
    record = ContentRecord(title="Post", body=f"hello {marker}", created_by="jane_doe")
    with pytest.raises(ForbiddenError) as excinfo:
        validator.validate_content_security(record, settings)
    assert excinfo.value.category == "rejected"


def test_suspicious_title_rejected(settings: Settings) -> None:
    """Titles are scanned too."""
    record = ContentRecord(title="Click javascript:go()", created_by="jane_doe")
    with pytest.raises(ForbiddenError, match="title"):
        validator.validate_content_security(record, settings)


def test_body_length_cap() -> None:
    """Bodies over the configured cap are refused."""
    capped = Settings(max_body_length=10)
    record = ContentRecord(title="Post", body="x" * 11, created_by="jane_doe")

    with pytest.raises(ForbiddenError, match="maximum allowed size"):
        validator.validate_content_security(record, capped)
    validator.validate_content_security(
        ContentRecord(title="Post", body="x" * 10, created_by="jane_doe"), capped
    )


def test_clean_content_accepted(settings: Settings) -> None:
    """Ordinary prose passes."""
    record = ContentRecord(title="Release notes", body="Bug fixes & tweaks.", created_by="jane_doe")
    validator.validate_content_security(record, settings)


def test_content_required(settings: Settings) -> None:
    with pytest.raises(InvalidArgumentError):
        validator.validate_content_security(None, settings)


# === Uploads ===


def test_upload_accepted(settings: Settings) -> None:
    """Allowed type, sane size, benign bytes."""
    validator.validate_file_upload("report.pdf", 1024, b"%PDF-1.7 ...", settings)


def test_upload_path_components_dropped(settings: Settings) -> None:
    """Directory parts are stripped before the extension check."""
    validator.validate_file_upload("../../etc/notes.txt", 10, None, settings)


def test_upload_filename_required(settings: Settings) -> None:
    with pytest.raises(InvalidArgumentError):
        validator.validate_file_upload("  ", 10, None, settings)


def test_upload_extension_not_allowed(settings: Settings) -> None:
    with pytest.raises(ForbiddenError, match="File type not allowed"):
        validator.validate_file_upload("setup.exe", 10, None, settings)


@pytest.mark.parametrize("size", [0, -5])
def test_upload_size_must_be_positive(size: int, settings: Settings) -> None:
    with pytest.raises(InvalidArgumentError, match="Invalid file size"):
        validator.validate_file_upload("photo.png", size, None, settings)


def test_upload_size_limit(settings: Settings) -> None:
    """The limit itself is accepted; one byte more is not."""
    validator.validate_file_upload("photo.png", settings.max_upload_bytes, None, settings)
    with pytest.raises(ForbiddenError, match="10MB"):
        validator.validate_file_upload("photo.png", settings.max_upload_bytes + 1, None, settings)


@pytest.mark.parametrize("data", [b"MZ\x90\x00", b"\x7fELF\x02\x01"])
def test_upload_executable_signature(data: bytes, settings: Settings) -> None:
    with pytest.raises(ForbiddenError, match="Executable"):
        validator.validate_file_upload("image.jpg", len(data), data, settings)


def test_upload_embedded_script(settings: Settings) -> None:
    data = b"name,value\n<SCRIPT>alert(1)</SCRIPT>\n"
    with pytest.raises(ForbiddenError, match="Suspicious"):
        validator.validate_file_upload("table.csv", len(data), data, settings)


# === Sessions ===


def test_session_expiry_boundary(settings: Settings) -> None:
    """29 idle minutes pass, 31 expire."""
    validator.validate_session(TOKEN, NOW - timedelta(minutes=29), now=NOW, settings=settings)

    with pytest.raises(ForbiddenError) as excinfo:
        validator.validate_session(TOKEN, NOW - timedelta(minutes=31), now=NOW, settings=settings)
    assert excinfo.value.category == "expired"


def test_session_timeout_configurable() -> None:
    short = Settings(session_timeout_minutes=5)
    with pytest.raises(ForbiddenError, match="expired"):
        validator.validate_session(TOKEN, NOW - timedelta(minutes=6), now=NOW, settings=short)


def test_session_accepts_naive_and_epoch_times(settings: Settings) -> None:
    """Naive datetimes read as UTC, numbers as epoch seconds."""
    naive_now = NOW.replace(tzinfo=None)
    validator.validate_session(
        TOKEN, naive_now - timedelta(minutes=1), now=naive_now, settings=settings
    )
    validator.validate_session(
        TOKEN, NOW.timestamp() - 60, now=NOW.timestamp(), settings=settings
    )


@pytest.mark.parametrize(
    "token",
    [None, "", "short", "a" * 31, "a" * 129, "has spaces in it but is long enough....", ("a" * 40) + "==="],
)
def test_session_token_shape(token, settings: Settings) -> None:
    with pytest.raises(ForbiddenError, match="Invalid session token"):
        validator.validate_session(token, NOW, now=NOW, settings=settings)


def test_session_token_trailing_newline_rejected(settings: Settings) -> None:
    """The token shape covers the whole string, line endings included."""
    result = validator.check_session(("A" * 40) + "\n", NOW, now=NOW, settings=settings)

    assert not result.ok
    assert isinstance(result.error, ForbiddenError)


def test_session_padding_allowed(settings: Settings) -> None:
    validator.validate_session(("a" * 40) + "==", NOW, now=NOW, settings=settings)


def test_session_last_activity_required(settings: Settings) -> None:
    with pytest.raises(InvalidArgumentError):
        validator.validate_session(TOKEN, None, now=NOW, settings=settings)


# === Network ===


def test_ip_address_validation() -> None:
    validator.validate_ip_address("192.168.1.10")
    validator.validate_ip_address("8.8.8.8")
    with pytest.raises(InvalidArgumentError):
        validator.validate_ip_address("")


@pytest.mark.parametrize(
    "address",
    ["300.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "10.0.0.1\n", "::1", "010.0.0.1"],
)
def test_ip_address_format_rejected(address: str) -> None:
    """Only dotted-quad IPv4 addresses are accepted."""
    with pytest.raises(ForbiddenError, match="Invalid IP address format"):
        validator.validate_ip_address(address)


@pytest.mark.parametrize(
    ("address", "private"),
    [
        ("10.0.0.1", True),
        ("172.20.1.1", True),
        ("192.168.0.5", True),
        ("127.0.0.1", True),
        ("169.254.1.1", True),
        ("100.64.0.1", True),
        ("0.0.0.0", True),
        ("172.32.1.1", False),
        ("8.8.8.8", False),
    ],
)
def test_private_address_detection(address: str, private: bool) -> None:
    """Loopback, link-local and shared ranges count as non-public too."""
    assert validator.is_private_address(address) is private


def test_private_address_requires_valid_input() -> None:
    with pytest.raises(ValueError):
        validator.is_private_address("not-an-address")
