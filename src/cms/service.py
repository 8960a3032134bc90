"""Gate-checked mutations over a single site tree.

``SiteService`` owns the lock that serializes access to one tree. Every
mutation rejects missing arguments first, then runs the validation gate
(session, then authorization, then content safety) and only touches the
tree when all checks pass.
Reads take the lock but never consult the gate.
"""

import threading
from datetime import datetime, timezone

import structlog
from pydantic import ValidationError

from cms.config import Settings, get_settings
from cms.errors import InvalidArgumentError
from cms.logging import emit
from cms.models import ContentRecord, ContentStatus, Operation, Principal, SessionInfo
from cms.security.validator import (
    validate_authorization,
    validate_content_security,
    validate_session,
)
from cms.tree import operations
from cms.tree.nodes import ComponentType, Container, Leaf, Node

logger = structlog.get_logger()


class SiteService:
    """Serialized, gate-checked access to one site hierarchy.

    Attributes:
        site: Root container of the managed tree.
    """

    def __init__(self, site: Container, settings: Settings | None = None) -> None:
        """Initialize the service around an existing site root.

        Args:
            site: Root container; must be of kind SITE.
            settings: Optional settings override for the gate.

        Raises:
            InvalidArgumentError: If ``site`` is not a site container.
        """
        if site is None or site.component_type is not ComponentType.SITE:
            raise InvalidArgumentError("SiteService requires a site container")
        self.site = site
        self._settings = settings or get_settings()
        self._lock = threading.RLock()

    def _authorize(
        self,
        principal: Principal | None,
        operation: Operation,
        session: SessionInfo | None,
        resource_id: str | None = None,
        resource_owner: str | None = None,
        now: datetime | None = None,
    ) -> None:
        if session is not None:
            validate_session(
                session.token,
                session.last_activity,
                now=now,
                settings=self._settings,
            )
        validate_authorization(principal, operation, resource_id, resource_owner)

    def _require_present(self, value: object, what: str) -> None:
        if value is None:
            raise InvalidArgumentError(f"{what} cannot be None")

    def _require_member(self, node: Node) -> None:
        if node is not self.site and not operations.is_ancestor(self.site, node):
            raise InvalidArgumentError(f"{node.name!r} is not part of site {self.site.name!r}")

    def add_category(
        self,
        principal: Principal | None,
        parent: Container,
        name: str,
        description: str = "",
        session: SessionInfo | None = None,
        now: datetime | None = None,
    ) -> Container:
        """Create a category under ``parent``.

        Returns:
            The new category.
        """
        self._require_present(parent, "Parent")
        self._authorize(principal, Operation.MANAGE_CATEGORIES, session, now=now)
        category = Container.category(name, description, created_by=principal.username)

        with self._lock:
            self._require_member(parent)
            parent.add(category)

        emit(
            logger,
            "info",
            "category_added",
            site=self.site.name,
            path="/".join(operations.path_of(category)),
            username=principal.username,
        )
        return category

    def add_content(
        self,
        principal: Principal | None,
        parent: Container,
        record: ContentRecord,
        session: SessionInfo | None = None,
        now: datetime | None = None,
    ) -> Leaf:
        """Wrap ``record`` in a leaf and attach it under ``parent``.

        Returns:
            The new leaf.
        """
        self._require_present(parent, "Parent")
        self._require_present(record, "Content")
        self._authorize(principal, Operation.CREATE_CONTENT, session, now=now)
        validate_content_security(record, self._settings)
        leaf = Leaf(record)

        with self._lock:
            self._require_member(parent)
            parent.add(leaf)

        emit(
            logger,
            "info",
            "content_added",
            site=self.site.name,
            path="/".join(operations.path_of(leaf)),
            content_id=record.id,
            username=principal.username,
        )
        return leaf

    def edit_content(
        self,
        principal: Principal | None,
        leaf: Leaf,
        title: str | None = None,
        body: str | None = None,
        session: SessionInfo | None = None,
        now: datetime | None = None,
    ) -> ContentRecord:
        """Replace a leaf's title and/or body.

        Authors may only edit content they created; editors and
        administrators may edit anything.

        Returns:
            The updated record now held by ``leaf``.
        """
        self._require_present(leaf, "Content item")
        self._authorize(
            principal,
            Operation.EDIT_OWN_CONTENT,
            session,
            resource_id=leaf.content.id,
            resource_owner=leaf.content.created_by,
            now=now,
        )

        changes: dict[str, object] = {
            "modified_by": principal.username,
            "modified_at": datetime.now(timezone.utc),
        }
        if title is not None:
            changes["title"] = title
        if body is not None:
            changes["body"] = body
        try:
            updated = ContentRecord.model_validate(leaf.content.model_dump() | changes)
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid content update: {e.error_count()} errors") from e
        validate_content_security(updated, self._settings)

        with self._lock:
            self._require_member(leaf)
            if title is not None and leaf.parent is not None:
                clash = leaf.parent.find_child(updated.title)
                if clash is not None and clash is not leaf:
                    raise InvalidArgumentError(
                        f"A component named {updated.title!r} already exists in "
                        f"{leaf.parent.name!r}"
                    )
            leaf.content = updated

        emit(logger, "info", "content_edited", content_id=updated.id, username=principal.username)
        return updated

    def publish(
        self,
        principal: Principal | None,
        leaf: Leaf,
        session: SessionInfo | None = None,
        now: datetime | None = None,
    ) -> None:
        """Move a leaf's content to PUBLISHED."""
        self._require_present(leaf, "Content item")
        self._authorize(
            principal,
            Operation.PUBLISH_CONTENT,
            session,
            resource_id=leaf.content.id,
            now=now,
        )
        with self._lock:
            self._require_member(leaf)
            leaf.content.transition(ContentStatus.PUBLISHED, principal.username)
        emit(
            logger,
            "info",
            "content_published",
            content_id=leaf.content.id,
            username=principal.username,
        )

    def remove(
        self,
        principal: Principal | None,
        node: Node,
        session: SessionInfo | None = None,
        now: datetime | None = None,
    ) -> None:
        """Detach ``node`` and its subtree from the site.

        Removing a node that is no longer attached is a no-op once the
        gate has passed.

        Raises:
            InvalidArgumentError: If ``node`` is None or the site root.
        """
        self._require_present(node, "Component")
        if isinstance(node, Leaf):
            self._authorize(
                principal,
                Operation.DELETE_CONTENT,
                session,
                resource_id=node.content.id,
                resource_owner=node.content.created_by,
                now=now,
            )
        else:
            self._authorize(principal, Operation.MANAGE_CATEGORIES, session, now=now)

        if node is self.site:
            raise InvalidArgumentError("The site root cannot be removed")

        with self._lock:
            parent = node.parent
            if parent is None:
                emit(logger, "debug", "site_remove_noop", node=node.name)
                return
            self._require_member(parent)
            removed = node.get_item_count()
            parent.remove(node)

        emit(
            logger,
            "info",
            "node_removed",
            site=self.site.name,
            node=node.name,
            removed_items=removed,
            username=principal.username,
        )

    def display(self) -> str:
        with self._lock:
            return self.site.display()

    def item_count(self) -> int:
        with self._lock:
            return self.site.get_item_count()

    def find(self, name: str) -> Node | None:
        """Find a node anywhere in the site by case-insensitive name."""
        with self._lock:
            return operations.find_by_name(self.site, name)
