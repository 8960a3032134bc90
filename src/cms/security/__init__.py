"""Validation gate and field sanitizers."""

from cms.security.sanitizer import (
    is_allowed_file_type,
    sanitize_email,
    sanitize_filename,
    sanitize_html,
    sanitize_search_query,
    sanitize_title,
    sanitize_username,
)
from cms.security.validator import (
    ValidationResult,
    check_authorization,
    check_content_security,
    check_credentials,
    check_file_upload,
    check_ip_address,
    check_session,
    first_failure,
    is_operation_allowed,
    validate_authorization,
    validate_content_security,
    validate_credentials,
    validate_file_upload,
    validate_ip_address,
    validate_session,
)

__all__ = [
    "ValidationResult",
    "check_authorization",
    "check_content_security",
    "check_credentials",
    "check_file_upload",
    "check_ip_address",
    "check_session",
    "first_failure",
    "is_allowed_file_type",
    "is_operation_allowed",
    "sanitize_email",
    "sanitize_filename",
    "sanitize_html",
    "sanitize_search_query",
    "sanitize_title",
    "sanitize_username",
    "validate_authorization",
    "validate_content_security",
    "validate_credentials",
    "validate_file_upload",
    "validate_ip_address",
    "validate_session",
]
