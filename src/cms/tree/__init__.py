"""Site hierarchy: node kinds and traversal algorithms."""

from cms.tree.nodes import ComponentType, Container, Leaf, Node
from cms.tree.operations import (
    MAX_TREE_DEPTH,
    count_items,
    find_by_name,
    iter_content,
    path_of,
    render,
    walk,
)

__all__ = [
    "MAX_TREE_DEPTH",
    "ComponentType",
    "Container",
    "Leaf",
    "Node",
    "count_items",
    "find_by_name",
    "iter_content",
    "path_of",
    "render",
    "walk",
]
