"""Site hierarchy nodes: containers (site, category) and content leaves.

Both kinds satisfy the ``Node`` protocol, so callers can traverse, count
and mutate the tree without checking which kind they hold. Leaves refuse
every container-only operation with ``UnsupportedOperationError``.

The tree is not thread-safe. Callers that mutate and read the same tree
from several threads must hold one lock for the whole tree.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from cms.errors import (
    IndexOutOfRangeError,
    InvalidArgumentError,
    UnsupportedOperationError,
)
from cms.logging import emit
from cms.models import ContentRecord, ContentStatus
from cms.security.sanitizer import sanitize_html, sanitize_title
from cms.tree import operations

logger = structlog.get_logger()


class ComponentType(str, Enum):
    """Kind tag carried by every node."""

    SITE = "site"
    CATEGORY = "category"
    CONTENT = "content"


@runtime_checkable
class Node(Protocol):
    """Capability set shared by containers and leaves."""

    @property
    def name(self) -> str: ...

    @property
    def component_type(self) -> ComponentType: ...

    @property
    def parent(self) -> Container | None: ...

    @property
    def is_leaf(self) -> bool: ...

    def add(self, child: Node) -> None: ...

    def remove(self, child: Node) -> None: ...

    def get_child(self, index: int) -> Node: ...

    def get_children(self) -> list[Node]: ...

    def get_item_count(self) -> int: ...

    def describe(self) -> str: ...

    def display(self) -> str: ...


class Container:
    """A site or category owning an ordered list of child nodes.

    Attributes:
        id: Unique identifier (UUID).
        description: Free-text description, markup stripped.
        created_by: Username that created the container.
        created_at: Creation time in UTC.
    """

    def __init__(
        self,
        name: str,
        component_type: ComponentType = ComponentType.CATEGORY,
        description: str = "",
        created_by: str = "system",
    ) -> None:
        """Initialize an empty container.

        Args:
            name: Display name; must not be blank.
            component_type: Either SITE or CATEGORY.
            description: Optional description.
            created_by: Username that created the container.

        Raises:
            InvalidArgumentError: If the name is blank or the kind is CONTENT.
        """
        if name is None or not name.strip():
            raise InvalidArgumentError("Container name cannot be empty")
        if component_type is ComponentType.CONTENT:
            raise InvalidArgumentError("Containers must be of kind site or category")

        cleaned = sanitize_title(sanitize_html(name))
        if not cleaned:
            raise InvalidArgumentError(f"Container name is empty after sanitizing: {name!r}")

        self.id = str(uuid.uuid4())
        self.description = sanitize_html(description).strip() if description else ""
        self.created_by = created_by
        self.created_at = datetime.now(timezone.utc)
        self._name = cleaned
        self._component_type = component_type
        self._children: list[Node] = []
        self._parent: Container | None = None

    @classmethod
    def site(cls, name: str, description: str = "", created_by: str = "system") -> Container:
        """Create a site root container."""
        return cls(name, ComponentType.SITE, description, created_by)

    @classmethod
    def category(cls, name: str, description: str = "", created_by: str = "system") -> Container:
        """Create a category container."""
        return cls(name, ComponentType.CATEGORY, description, created_by)

    @property
    def name(self) -> str:
        return self._name

    @property
    def component_type(self) -> ComponentType:
        return self._component_type

    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def is_leaf(self) -> bool:
        return False

    def __len__(self) -> int:
        return len(self._children)

    def __repr__(self) -> str:
        return (
            f"Container(kind={self._component_type.value!r}, name={self._name!r}, "
            f"children={len(self._children)})"
        )

    def _reject(self, message: str, child: Node | None) -> InvalidArgumentError:
        emit(
            logger,
            "warning",
            "node_add_rejected",
            container=self._name,
            child=getattr(child, "name", None),
            reason=message,
        )
        return InvalidArgumentError(message)

    def add(self, child: Node) -> None:
        """Append a child node.

        Args:
            child: Node to attach. It must not already have a parent.

        Raises:
            InvalidArgumentError: If the child is None, is a site, already
                belongs to a container, would create a cycle, duplicates a
                sibling name, or would push the tree past MAX_TREE_DEPTH.
        """
        if child is None:
            raise self._reject("Component cannot be None", child)

        if child is self or operations.is_ancestor(child, self):
            raise self._reject(
                f"Adding {child.name!r} to {self._name!r} would create a circular reference",
                child,
            )

        if child.component_type is ComponentType.SITE:
            raise self._reject("A site cannot be nested inside another container", child)

        if child.parent is not None:
            raise self._reject(
                f"{child.name!r} already belongs to {child.parent.name!r}; remove it first",
                child,
            )

        if self.find_child(child.name) is not None:
            raise self._reject(
                f"A component named {child.name!r} already exists in {self._name!r}",
                child,
            )

        depth = operations.depth_of(self) + 1 + operations.subtree_height(child)
        if depth > operations.MAX_TREE_DEPTH:
            raise self._reject(
                f"Tree depth {depth} would exceed the limit of {operations.MAX_TREE_DEPTH}",
                child,
            )

        self._children.append(child)
        child._parent = self  # type: ignore[union-attr]
        emit(
            logger,
            "debug",
            "node_added",
            container=self._name,
            child=child.name,
            kind=child.component_type.value,
        )

    def remove(self, child: Node) -> None:
        """Detach the first child that is ``child`` itself.

        Removing a container takes its whole subtree with it. Removing a
        node that is not a child is a no-op.

        Raises:
            InvalidArgumentError: If ``child`` is None.
        """
        if child is None:
            emit(logger, "warning", "node_remove_rejected", container=self._name, reason="none")
            raise InvalidArgumentError("Component cannot be None")

        for position, existing in enumerate(self._children):
            if existing is child:
                del self._children[position]
                child._parent = None  # type: ignore[union-attr]
                emit(logger, "debug", "node_removed", container=self._name, child=child.name)
                return

        emit(logger, "debug", "node_remove_noop", container=self._name, child=child.name)

    def get_child(self, index: int) -> Node:
        """Return the child at ``index``.

        Raises:
            IndexOutOfRangeError: If ``index`` is negative or past the end.
        """
        size = len(self._children)
        if index < 0 or index >= size:
            emit(
                logger,
                "warning",
                "child_index_out_of_range",
                container=self._name,
                index=index,
                size=size,
            )
            raise IndexOutOfRangeError(
                f"Index {index} is out of bounds. {self._name!r} has {size} children.",
                index,
                size,
            )
        return self._children[index]

    def get_children(self) -> list[Node]:
        """Return a fresh copy of the child list."""
        return list(self._children)

    def get_item_count(self) -> int:
        """Count this container plus every descendant."""
        return operations.count_items(self)

    def describe(self) -> str:
        kind = self._component_type.value.capitalize()
        return f"{kind}: {self._name} ({self.get_item_count() - 1} items)"

    def display(self) -> str:
        """Render this container and its subtree as indented text."""
        return operations.render(self)

    def find_child(self, name: str) -> Node | None:
        """Find a direct child by case-insensitive name."""
        if not name or not name.strip():
            return None
        wanted = name.strip().lower()
        return next(
            (child for child in self._children if child.name.lower() == wanted),
            None,
        )

    def subcategories(self) -> list[Container]:
        """Direct children that are containers."""
        return [child for child in self._children if isinstance(child, Container)]

    def content_items(self) -> list[Leaf]:
        """Direct children that are content leaves."""
        return [child for child in self._children if isinstance(child, Leaf)]


class Leaf:
    """A content item; terminal node wrapping a ``ContentRecord``."""

    def __init__(self, content: ContentRecord) -> None:
        """Wrap a content record.

        Raises:
            InvalidArgumentError: If ``content`` is None.
        """
        if content is None:
            raise InvalidArgumentError("Content cannot be None")
        self.content = content
        self._parent: Container | None = None

    @property
    def name(self) -> str:
        return self.content.title

    @property
    def component_type(self) -> ComponentType:
        return ComponentType.CONTENT

    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def is_leaf(self) -> bool:
        return True

    @property
    def is_published(self) -> bool:
        return self.content.status is ContentStatus.PUBLISHED

    @property
    def is_draft(self) -> bool:
        return self.content.status is ContentStatus.DRAFT

    def __repr__(self) -> str:
        return (
            f"Leaf(title={self.content.title!r}, type={self.content.content_type.value!r}, "
            f"status={self.content.status.value!r})"
        )

    def _unsupported(self, action: str) -> UnsupportedOperationError:
        emit(logger, "warning", "leaf_operation_rejected", title=self.content.title, action=action)
        return UnsupportedOperationError(
            f"Cannot {action} on content item {self.content.title!r}: "
            "content items are leaf nodes and hold no children"
        )

    def add(self, child: Node) -> None:
        raise self._unsupported("add components")

    def remove(self, child: Node) -> None:
        raise self._unsupported("remove components")

    def get_child(self, index: int) -> Node:
        raise self._unsupported(f"get child {index}")

    def get_children(self) -> list[Node]:
        return []

    def get_item_count(self) -> int:
        return 1

    def describe(self) -> str:
        return (
            f'Content: "{self.content.title}" '
            f"[{self.content.status.value}] ({self.content.content_type.value.upper()})"
        )

    def display(self) -> str:
        return operations.render(self)
