"""Validation gate for mutating and authorization-sensitive operations.

Every check comes in two forms. ``check_*`` returns a ``ValidationResult``
holding either nothing or the typed failure, which makes checks easy to
compose and test. ``validate_*`` runs the same check and raises the
failure, so callers on the mutation path cannot ignore it.

Each decision is logged through structlog with ``cms.logging.emit``, which
is fire-and-forget: an exception raised while emitting a log event never
changes the result.
"""

import ipaddress
import re
from datetime import datetime, timedelta, timezone

import structlog
from pydantic import BaseModel, ConfigDict

from cms.config import Settings, get_settings
from cms.errors import (
    CMSError,
    ForbiddenError,
    InvalidArgumentError,
    UnauthenticatedError,
)
from cms.logging import emit
from cms.models import ContentRecord, Operation, Principal, Role
from cms.security.sanitizer import (
    file_extension,
    is_allowed_file_type,
    sanitize_filename,
    sanitize_username,
)

logger = structlog.get_logger()

WEAK_PASSWORD_PATTERN = re.compile(
    r"password|123456|qwerty|admin|letmein|welcome",
    re.IGNORECASE,
)
PASSWORD_STRENGTH_PATTERN = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z0-9\s])\S{8,}"
)
SUSPICIOUS_CONTENT_PATTERN = re.compile(
    r"(<script|<\?php|<%|javascript:|vbscript:|data:text/html)",
    re.IGNORECASE,
)
SESSION_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9+/]{32,128}={0,2}")

EXECUTABLE_SIGNATURES: tuple[bytes, ...] = (b"MZ", b"\x7fE")
EMBEDDED_SCRIPT_MARKERS: tuple[bytes, ...] = (b"<script", b"<?php")
SCRIPT_EXTENSIONS: frozenset[str] = frozenset({"js", "php"})

EDITOR_DENIED: frozenset[str] = frozenset({
    Operation.DELETE_USER.value,
    Operation.SYSTEM_CONFIG.value,
})
AUTHOR_ALLOWED: frozenset[str] = frozenset({
    Operation.CREATE_CONTENT.value,
    Operation.EDIT_OWN_CONTENT.value,
    Operation.VIEW_CONTENT.value,
})
GUEST_ALLOWED: frozenset[str] = frozenset({Operation.VIEW_CONTENT.value})


class ValidationResult(BaseModel):
    """Outcome of a single gate check.

    Attributes:
        check: Name of the check that produced the result.
        error: The typed failure, or None when the check passed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    check: str
    error: CMSError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_failure(self) -> None:
        """Raise the stored failure, if any."""
        if self.error is not None:
            raise self.error


def _passed(check: str) -> ValidationResult:
    emit(logger, "debug", "validation_passed", check=check)
    return ValidationResult(check=check)


def _failed(
    check: str,
    error: CMSError,
    level: str = "warning",
    **fields: object,
) -> ValidationResult:
    emit(logger, level, "validation_failed", check=check, error=str(error), **fields)
    return ValidationResult(check=check, error=error)


def first_failure(*results: ValidationResult) -> ValidationResult | None:
    """Return the first failed result, or None if all passed."""
    return next((result for result in results if not result.ok), None)


# === Credentials ===


def check_credentials(username: str | None, password: str | None) -> ValidationResult:
    """Check a username and password pair for format and strength.

    Args:
        username: Login name, validated through the sanitizer.
        password: Candidate password.

    Returns:
        ValidationResult; failures are InvalidArgumentError.
    """
    check = "credentials"

    if username is None or not username.strip():
        return _failed(check, InvalidArgumentError("Username cannot be empty"))

    try:
        sanitize_username(username)
    except InvalidArgumentError:
        return _failed(
            check,
            InvalidArgumentError("Invalid username format"),
            username=username,
        )

    if not password:
        return _failed(
            check,
            InvalidArgumentError("Password cannot be empty"),
            username=username,
        )

    if WEAK_PASSWORD_PATTERN.fullmatch(password):
        return _failed(
            check,
            InvalidArgumentError(
                "Password is too weak. Please choose a stronger password"
            ),
            username=username,
            reason="weak_password",
        )

    if not PASSWORD_STRENGTH_PATTERN.fullmatch(password):
        return _failed(
            check,
            InvalidArgumentError(
                "Password must be at least 8 characters and contain uppercase, "
                "lowercase, numbers, and special characters"
            ),
            username=username,
            reason="strength",
        )

    return _passed(check)


def validate_credentials(username: str | None, password: str | None) -> None:
    """Raise InvalidArgumentError unless the credentials are acceptable."""
    check_credentials(username, password).raise_for_failure()


# === Authorization ===


def coerce_role(role: Role | str | None) -> Role | None:
    """Map a raw role value onto the closed role set.

    Args:
        role: Role member or its string value.

    Returns:
        The matching Role, or None for anything unknown.
    """
    if isinstance(role, Role):
        return role
    if isinstance(role, str):
        try:
            return Role(role.strip())
        except ValueError:
            return None
    return None


def is_operation_allowed(role: Role | str | None, operation: Operation | str) -> bool:
    """Look up the role matrix.

    Administrators may do anything, editors anything except account
    deletion and system configuration, authors may create, edit their own
    and view content, guests may only view. Unknown roles get nothing.

    Args:
        role: Principal role.
        operation: Operation name.

    Returns:
        True if the role permits the operation.
    """
    op = operation.value if isinstance(operation, Operation) else operation
    resolved = coerce_role(role)

    if resolved is Role.ADMINISTRATOR:
        return True
    if resolved is Role.EDITOR:
        return op not in EDITOR_DENIED
    if resolved is Role.AUTHOR:
        return op in AUTHOR_ALLOWED
    if resolved is Role.GUEST:
        return op in GUEST_ALLOWED
    return False


def can_access_resource(
    principal: Principal,
    resource_id: str,
    resource_owner: str | None = None,
) -> bool:
    """Check resource-level access after the role check has passed.

    Administrators and editors reach every resource. Other roles reach a
    resource only when no owner is known or they own it.
    """
    if coerce_role(principal.role) in (Role.ADMINISTRATOR, Role.EDITOR):
        return True
    if resource_owner is None:
        return True
    return resource_owner == principal.username


def check_authorization(
    principal: Principal | None,
    operation: Operation | str | None,
    resource_id: str | None = None,
    resource_owner: str | None = None,
) -> ValidationResult:
    """Check that a principal may perform an operation.

    Conditions are evaluated in a fixed order and stop at the first
    violation: principal present, principal active, operation named,
    role permits operation, resource access.

    Args:
        principal: Acting principal, or None when unauthenticated.
        operation: Operation name from the role matrix.
        resource_id: Optional target resource identifier.
        resource_owner: Optional username owning the resource.

    Returns:
        ValidationResult with UnauthenticatedError, InvalidArgumentError
        or ForbiddenError on failure.
    """
    check = "authorization"
    op = operation.value if isinstance(operation, Operation) else operation

    if principal is None:
        return _failed(
            check,
            UnauthenticatedError("Authentication required"),
            operation=op,
        )

    if not principal.active:
        return _failed(
            check,
            UnauthenticatedError("User account is inactive"),
            username=principal.username,
        )

    if op is None or not op.strip():
        return _failed(
            check,
            InvalidArgumentError("Operation cannot be empty"),
            level="error",
            username=principal.username,
        )

    op = op.strip()
    if not is_operation_allowed(principal.role, op):
        return _failed(
            check,
            ForbiddenError("Insufficient permissions for this operation"),
            username=principal.username,
            role=str(getattr(principal.role, "value", principal.role)),
            operation=op,
        )

    if resource_id is not None:
        if not resource_id.strip():
            return _failed(
                check,
                InvalidArgumentError("Resource id cannot be empty"),
                username=principal.username,
            )
        if not can_access_resource(principal, resource_id, resource_owner):
            return _failed(
                check,
                ForbiddenError("Access denied to requested resource"),
                username=principal.username,
                resource_id=resource_id,
            )

    return _passed(check)


def validate_authorization(
    principal: Principal | None,
    operation: Operation | str | None,
    resource_id: str | None = None,
    resource_owner: str | None = None,
) -> None:
    """Raise unless the principal may perform the operation."""
    check_authorization(
        principal, operation, resource_id, resource_owner
    ).raise_for_failure()


# === Content safety ===


def check_content_security(
    record: ContentRecord | None,
    settings: Settings | None = None,
) -> ValidationResult:
    """Scan a content record for injection markers and oversize bodies.

    Args:
        record: Content to inspect.
        settings: Optional settings override for the body length cap.

    Returns:
        ValidationResult with ForbiddenError when content is rejected.
    """
    check = "content_security"
    settings = settings or get_settings()

    if record is None:
        return _failed(check, InvalidArgumentError("Content cannot be empty"))

    if SUSPICIOUS_CONTENT_PATTERN.search(record.title):
        return _failed(
            check,
            ForbiddenError(
                "Content title contains potentially dangerous elements",
                category="rejected",
                user_message="Content rejected.",
            ),
            content_id=record.id,
            field="title",
        )

    if SUSPICIOUS_CONTENT_PATTERN.search(record.body):
        return _failed(
            check,
            ForbiddenError(
                "Content body contains potentially dangerous elements",
                category="rejected",
                user_message="Content rejected.",
            ),
            content_id=record.id,
            field="body",
        )

    if len(record.body) > settings.max_body_length:
        return _failed(
            check,
            ForbiddenError(
                "Content exceeds maximum allowed size",
                category="rejected",
                user_message="Content rejected.",
            ),
            content_id=record.id,
            length=len(record.body),
        )

    return _passed(check)


def validate_content_security(
    record: ContentRecord | None,
    settings: Settings | None = None,
) -> None:
    """Raise ForbiddenError if the content record is unsafe."""
    check_content_security(record, settings).raise_for_failure()


# === Uploads ===


def check_file_upload(
    filename: str | None,
    size: int,
    data: bytes | None = None,
    settings: Settings | None = None,
) -> ValidationResult:
    """Check an upload's name, size and, optionally, its bytes.

    Args:
        filename: Client-supplied filename.
        size: Declared size in bytes.
        data: Optional file content to scan.
        settings: Optional settings override for the size limit.

    Returns:
        ValidationResult with InvalidArgumentError for missing or
        nonsensical input and ForbiddenError for rejected files.
    """
    check = "file_upload"
    settings = settings or get_settings()

    if filename is None or not filename.strip():
        return _failed(check, InvalidArgumentError("Filename cannot be empty"))

    try:
        safe_name = sanitize_filename(filename)
    except InvalidArgumentError:
        return _failed(
            check,
            ForbiddenError("Invalid filename format", category="rejected"),
            filename=filename,
        )

    if not is_allowed_file_type(safe_name):
        return _failed(
            check,
            ForbiddenError("File type not allowed for upload", category="rejected"),
            filename=filename,
        )

    if size <= 0:
        return _failed(
            check,
            InvalidArgumentError("Invalid file size"),
            filename=filename,
            size=size,
        )

    if size > settings.max_upload_bytes:
        return _failed(
            check,
            ForbiddenError(
                f"File size exceeds maximum allowed limit of {settings.max_upload_mb}MB",
                category="rejected",
            ),
            filename=filename,
            size=size,
            limit=settings.max_upload_bytes,
        )

    if data is not None:
        if data.startswith(EXECUTABLE_SIGNATURES):
            return _failed(
                check,
                ForbiddenError("Executable files are not allowed", category="rejected"),
                filename=filename,
            )

        if file_extension(safe_name) not in SCRIPT_EXTENSIONS:
            lowered = data.lower()
            if any(marker in lowered for marker in EMBEDDED_SCRIPT_MARKERS):
                return _failed(
                    check,
                    ForbiddenError("Suspicious file content detected", category="rejected"),
                    filename=filename,
                )

    return _passed(check)


def validate_file_upload(
    filename: str | None,
    size: int,
    data: bytes | None = None,
    settings: Settings | None = None,
) -> None:
    """Raise unless the upload is acceptable."""
    check_file_upload(filename, size, data, settings).raise_for_failure()


# === Sessions ===


def _as_utc(value: datetime | float) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(value, tz=timezone.utc)


def check_session(
    token: str | None,
    last_activity: datetime | float | None,
    now: datetime | float | None = None,
    settings: Settings | None = None,
) -> ValidationResult:
    """Check a session token's shape and idle time.

    Naive datetimes are read as UTC; numbers are epoch seconds.

    Args:
        token: Opaque session token.
        last_activity: Time of the session's last activity.
        now: Reference time; defaults to the current UTC time.
        settings: Optional settings override for the idle timeout.

    Returns:
        ValidationResult with ForbiddenError for a malformed or expired
        session.
    """
    check = "session"
    settings = settings or get_settings()

    if token is None or not token.strip():
        return _failed(
            check,
            ForbiddenError("Invalid session token", category="rejected"),
        )

    if not SESSION_TOKEN_PATTERN.fullmatch(token):
        return _failed(
            check,
            ForbiddenError("Invalid session token format", category="rejected"),
        )

    if last_activity is None:
        return _failed(check, InvalidArgumentError("Last activity time is required"))

    reference = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    idle = reference - _as_utc(last_activity)
    timeout = timedelta(minutes=settings.session_timeout_minutes)

    if idle > timeout:
        return _failed(
            check,
            ForbiddenError(
                "Session has expired. Please log in again.",
                category="expired",
                user_message="Session expired.",
            ),
            idle_seconds=int(idle.total_seconds()),
        )

    return _passed(check)


def validate_session(
    token: str | None,
    last_activity: datetime | float | None,
    now: datetime | float | None = None,
    settings: Settings | None = None,
) -> None:
    """Raise ForbiddenError unless the session is well-formed and live."""
    check_session(token, last_activity, now, settings).raise_for_failure()


# === Network ===


def is_private_address(address: str) -> bool:
    """Check whether an IPv4 address lies outside the public internet.

    Private, loopback, link-local, shared (carrier-grade NAT) and other
    reserved ranges all count as non-public.

    Raises:
        ValueError: If ``address`` is not a dotted-quad IPv4 address.
    """
    return not ipaddress.IPv4Address(address).is_global


def check_ip_address(address: str | None) -> ValidationResult:
    """Check that a client address is a well-formed IPv4 address."""
    check = "ip_address"

    if address is None or not address.strip():
        return _failed(check, InvalidArgumentError("IP address cannot be empty"))

    try:
        parsed = ipaddress.IPv4Address(address)
    except ipaddress.AddressValueError:
        return _failed(
            check,
            ForbiddenError("Invalid IP address format", category="rejected"),
            address=address,
        )

    if not parsed.is_global:
        emit(logger, "debug", "private_address_detected", address=address)

    return _passed(check)


def validate_ip_address(address: str | None) -> None:
    check_ip_address(address).raise_for_failure()
