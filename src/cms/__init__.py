"""Site content hierarchy with a validation gate for every mutation."""

from cms.errors import (
    CMSError,
    ForbiddenError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    UnauthenticatedError,
    UnsupportedOperationError,
)
from cms.models import (
    ContentRecord,
    ContentStatus,
    ContentType,
    Operation,
    Principal,
    Role,
    SessionInfo,
)
from cms.service import SiteService
from cms.tree import ComponentType, Container, Leaf, Node

__all__ = [
    "CMSError",
    "ComponentType",
    "Container",
    "ContentRecord",
    "ContentStatus",
    "ContentType",
    "ForbiddenError",
    "IndexOutOfRangeError",
    "InvalidArgumentError",
    "Leaf",
    "Node",
    "Operation",
    "Principal",
    "Role",
    "SessionInfo",
    "SiteService",
    "UnauthenticatedError",
    "UnsupportedOperationError",
]
