"""Typed failures raised by the tree and the validation gate."""


class CMSError(Exception):
    """Base class for every failure raised by the content hierarchy.

    Attributes:
        user_message: Short text that is safe to show to an end user.
    """

    default_user_message = "The request could not be completed."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Detailed description for logs and developers.
            user_message: Optional end-user text; falls back to the class default.
        """
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class InvalidArgumentError(CMSError, ValueError):
    """Raised for malformed or missing caller input."""

    default_user_message = "The request contained invalid input."


class UnauthenticatedError(CMSError):
    """Raised when no valid principal is present."""

    default_user_message = "Authentication required."


class ForbiddenError(CMSError):
    """Raised when an authenticated principal or its input is refused.

    Attributes:
        category: Coarse reason bucket (permissions, expired, rejected).
    """

    default_user_message = "Insufficient permissions."

    def __init__(
        self,
        message: str,
        category: str = "permissions",
        user_message: str | None = None,
    ) -> None:
        """Initialize forbidden error.

        Args:
            message: Error description.
            category: One of "permissions", "expired" or "rejected".
            user_message: Optional end-user text.
        """
        super().__init__(message, user_message)
        self.category = category


class UnsupportedOperationError(CMSError):
    """Raised when a container-only operation is invoked on a leaf."""

    default_user_message = "This item cannot contain other items."


class IndexOutOfRangeError(CMSError, IndexError):
    """Raised when a child lookup uses an invalid position.

    Attributes:
        index: The requested position.
        size: Number of children at the time of the lookup.
    """

    def __init__(self, message: str, index: int, size: int) -> None:
        """Initialize index error.

        Args:
            message: Error description.
            index: The requested position.
            size: Number of children available.
        """
        super().__init__(message)
        self.index = index
        self.size = size
