"""Pydantic models for principals and content records."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from cms.errors import InvalidArgumentError


class Role(str, Enum):
    """Closed set of principal roles."""

    ADMINISTRATOR = "ADMINISTRATOR"
    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"
    GUEST = "GUEST"


class Operation(str, Enum):
    """Operation names understood by the role matrix."""

    VIEW_CONTENT = "VIEW_CONTENT"
    CREATE_CONTENT = "CREATE_CONTENT"
    EDIT_OWN_CONTENT = "EDIT_OWN_CONTENT"
    EDIT_CONTENT = "EDIT_CONTENT"
    DELETE_CONTENT = "DELETE_CONTENT"
    PUBLISH_CONTENT = "PUBLISH_CONTENT"
    MANAGE_CATEGORIES = "MANAGE_CATEGORIES"
    DELETE_USER = "DELETE_USER"
    SYSTEM_CONFIG = "SYSTEM_CONFIG"


class ContentType(str, Enum):
    """Kind of content a record holds."""

    ARTICLE = "article"
    PAGE = "page"
    IMAGE = "image"
    VIDEO = "video"


class ContentStatus(str, Enum):
    """Publication lifecycle of a content record."""

    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    REJECTED = "REJECTED"

    def next_states(self) -> frozenset["ContentStatus"]:
        """Statuses this one may move to."""
        return _TRANSITIONS[self]

    def can_transition_to(self, target: "ContentStatus | None") -> bool:
        """Check whether a move to ``target`` is allowed.

        Args:
            target: Requested status.

        Returns:
            True if the transition is part of the lifecycle.
        """
        if target is None:
            return False
        return target in _TRANSITIONS[self]

    @property
    def is_publicly_visible(self) -> bool:
        return self is ContentStatus.PUBLISHED

    @property
    def is_editable(self) -> bool:
        return self in (ContentStatus.DRAFT, ContentStatus.REVIEW, ContentStatus.REJECTED)


_TRANSITIONS: dict[ContentStatus, frozenset[ContentStatus]] = {
    ContentStatus.DRAFT: frozenset(
        {ContentStatus.REVIEW, ContentStatus.PUBLISHED, ContentStatus.ARCHIVED}
    ),
    ContentStatus.REVIEW: frozenset(
        {ContentStatus.PUBLISHED, ContentStatus.REJECTED, ContentStatus.DRAFT}
    ),
    ContentStatus.PUBLISHED: frozenset({ContentStatus.ARCHIVED, ContentStatus.DRAFT}),
    ContentStatus.REJECTED: frozenset({ContentStatus.DRAFT, ContentStatus.REVIEW}),
    ContentStatus.ARCHIVED: frozenset({ContentStatus.DRAFT}),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Principal(BaseModel):
    """Authenticated actor consumed by the validation gate.

    Attributes:
        username: Login name.
        role: Role drawn from the closed role set, or any unknown string.
        active: Whether the account may act at all.
    """

    username: str
    role: Role | str
    active: bool = True


class ContentRecord(BaseModel):
    """Content wrapped by a leaf node."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = Field(min_length=1)
    body: str = ""
    content_type: ContentType = ContentType.ARTICLE
    status: ContentStatus = ContentStatus.DRAFT
    created_by: str = Field(min_length=1)
    modified_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        """Reject whitespace-only titles."""
        if not value.strip():
            raise ValueError("Content title cannot be blank")
        return value.strip()

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        """Lower-case and trim tags, dropping empty ones."""
        return [tag.strip().lower() for tag in value if tag.strip()]

    def transition(self, target: ContentStatus, modified_by: str) -> None:
        """Move the record to a new status.

        Args:
            target: Requested status.
            modified_by: Username performing the change.

        Raises:
            InvalidArgumentError: If the lifecycle does not allow the move.
        """
        if not self.status.can_transition_to(target):
            raise InvalidArgumentError(
                f"Cannot move content from {self.status.value} to {target.value}"
            )
        self.status = target
        self.modified_by = modified_by
        self.modified_at = _utcnow()


class SessionInfo(BaseModel):
    """Session token presented alongside a principal.

    Attributes:
        token: Opaque base64-style token.
        last_activity: Time of the session's last recorded activity.
    """

    token: str
    last_activity: datetime
