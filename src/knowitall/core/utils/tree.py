"""Path-based traversal and structural edits over the document tree.

A path is a tuple of child indices from the root. Edits rebuild every
container along the path, so schema validation re-runs on each of them.
"""

from typing import Callable, Iterator, Optional, Sequence

from knowitall.core.models import Node


NodePath = tuple[int, ...]


def iter_nodes(root: Node, path: NodePath = ()) -> Iterator[tuple[NodePath, Node]]:
    """Depth-first, pre-order walk yielding (path, node) for every descendant."""
    for i, child in enumerate(root.children):
        child_path = path + (i,)
        yield child_path, child
        yield from iter_nodes(child, child_path)


def textblocks(root: Node) -> list[tuple[NodePath, Node]]:
    """All text blocks in document order; a Point's `block` indexes this list."""
    return [(p, n) for p, n in iter_nodes(root) if n.is_textblock]


def node_at(root: Node, path: NodePath) -> Node:
    node = root
    for i in path:
        node = node.children[i]
    return node


def ancestors(root: Node, path: NodePath) -> list[tuple[NodePath, Node]]:
    """Nodes strictly between root and the node at `path`, outermost first."""
    return [(path[:depth], node_at(root, path[:depth])) for depth in range(1, len(path))]


def find_path(root: Node, predicate: Callable[[Node], bool]) -> Optional[NodePath]:
    return next((p for p, n in iter_nodes(root) if predicate(n)), None)


def splice(root: Node, path: NodePath, replacement: Sequence[Node]) -> Node:
    """Replace the node at `path` with zero or more nodes."""
    index, rest = path[0], path[1:]
    children = list(root.children)
    if rest:
        children[index] = splice(children[index], rest, replacement)
    else:
        children[index:index + 1] = replacement
    return root.with_children(children)


def replace(root: Node, path: NodePath, node: Node) -> Node:
    return splice(root, path, (node,))
