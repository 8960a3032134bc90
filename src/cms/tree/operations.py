"""Traversal algorithms shared by every node kind.

Everything here is written against the ``Node`` protocol only and walks
the tree with an explicit stack, so deep hierarchies never hit the
interpreter recursion limit.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cms.tree.nodes import Container, Node

INDENT = "  "
MAX_TREE_DEPTH = 64


def walk(root: Node) -> Iterator[tuple[Node, int]]:
    """Yield every node of a subtree in depth-first pre-order.

    Args:
        root: Subtree root, yielded first at depth 0.

    Yields:
        Tuples of (node, depth relative to root). Siblings keep insertion order.
    """
    stack: list[tuple[Node, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        children = node.get_children()
        stack.extend((child, depth + 1) for child in reversed(children))


def count_items(root: Node) -> int:
    """Count a node plus all of its descendants.

    Re-walks the subtree on every call.
    """
    return sum(1 for _ in walk(root))


def subtree_height(root: Node) -> int:
    """Number of levels below ``root``; 0 for a leaf or an empty container."""
    return max(depth for _, depth in walk(root))


def ancestors(node: Node) -> Iterator[Container]:
    """Yield the parent chain of a node, nearest first."""
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def depth_of(node: Node) -> int:
    return sum(1 for _ in ancestors(node))


def is_ancestor(candidate: Node, node: Node) -> bool:
    """Check whether ``candidate`` sits on the parent chain of ``node``."""
    return any(parent is candidate for parent in ancestors(node))


def path_of(node: Node) -> list[str]:
    """Names from the tree root down to ``node``."""
    names = [parent.name for parent in ancestors(node)]
    names.reverse()
    names.append(node.name)
    return names


def render(root: Node) -> str:
    """Render a subtree as indented text, one line per node.

    Lines follow pre-order with two spaces of indentation per level below
    ``root``. Each node supplies its own line through ``describe()``.

    Args:
        root: Subtree to render.

    Returns:
        The rendering without a trailing newline.
    """
    return "\n".join(f"{INDENT * depth}{node.describe()}" for node, depth in walk(root))


def find(root: Node, predicate: Callable[[Node], bool]) -> Node | None:
    """Return the first node in pre-order that satisfies ``predicate``."""
    return next((node for node, _ in walk(root) if predicate(node)), None)


def find_by_name(root: Node, name: str) -> Node | None:
    """Case-insensitive pre-order lookup by node name."""
    if not name or not name.strip():
        return None
    wanted = name.strip().lower()
    return find(root, lambda node: node.name.lower() == wanted)


def iter_content(root: Node) -> Iterator[Node]:
    """Yield the content leaves of a subtree in pre-order."""
    for node, _ in walk(root):
        if node.is_leaf:
            yield node
