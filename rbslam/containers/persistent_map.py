"""Persistent (copy-on-write) ordered map for per-particle landmark estimates.

Every particle in the filter owns a landmark map, and after resampling many
particles descend from the same ancestor. Deep-copying the map on every
resample would cost O(particles × landmarks) per step. Instead the map is an
immutable, height-balanced binary search tree: ``insert`` copies only the
nodes on the path from the root to the changed key and re-links every other
subtree as-is. A handle (``PersistentMap``) is the only mutable part; it
points at a root, and ``copy()`` hands out another handle on the same root in
O(1).

Key operations:
    - get: Look up the value stored for a key (KeyError if absent)
    - insert: Add or replace a key, producing a new root
    - for_each: In-order traversal in ascending key order
    - copy: O(1) snapshot sharing the whole tree

Example:
    >>> a = PersistentMap()
    >>> a.insert(3, "c")
    True
    >>> b = a.copy()
    >>> b.insert(1, "a")
    True
    >>> len(a), len(b)
    (1, 2)
"""

from typing import Any, Callable, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class _Node:
    """Immutable tree node. Never modified after construction."""

    __slots__ = ("key", "value", "left", "right", "height")

    def __init__(self, key, value, left: Optional["_Node"], right: Optional["_Node"]):
        self.key = key
        self.value = value
        self.left = left
        self.right = right
        self.height = 1 + max(_height(left), _height(right))


def _height(node: Optional[_Node]) -> int:
    return node.height if node is not None else 0


def _rotate_right(key, value, left: _Node, right: Optional[_Node]) -> _Node:
    return _Node(left.key, left.value, left.left, _Node(key, value, left.right, right))


def _rotate_left(key, value, left: Optional[_Node], right: _Node) -> _Node:
    return _Node(right.key, right.value, _Node(key, value, left, right.left), right.right)


def _balanced(key, value, left: Optional[_Node], right: Optional[_Node]) -> _Node:
    """
    Build a node from two subtrees whose heights differ by at most two.

    Rotations allocate at most three new nodes; the grandchildren they move
    are re-linked, not copied.
    """
    balance = _height(left) - _height(right)

    if balance > 1:
        if _height(left.left) < _height(left.right):
            left = _rotate_left(left.key, left.value, left.left, left.right)
        return _rotate_right(key, value, left, right)

    if balance < -1:
        if _height(right.right) < _height(right.left):
            right = _rotate_right(right.key, right.value, right.left, right.right)
        return _rotate_left(key, value, left, right)

    return _Node(key, value, left, right)


class PersistentMap(Generic[K, V]):
    """
    Ordered map with structural sharing between snapshots.

    The tree under a given root never changes. ``insert`` replaces this
    handle's root with a new one; every other handle keeps seeing the tree it
    had, so values read through an older snapshot are the very same objects
    as before the insert.

    Attributes:
        key_func: Sort key applied to map keys (identity by default, which
            orders integer landmark ids numerically).
    """

    __slots__ = ("_root", "_size", "key_func")

    def __init__(self, key: Optional[Callable[[K], Any]] = None):
        """
        Create an empty map.

        Args:
            key: Optional function mapping a key to the value used for
                ordering, as in ``sorted(key=...)``. It must induce a
                total order.
        """
        self._root: Optional[_Node] = None
        self._size = 0
        self.key_func = key

    def _order(self, key: K) -> Any:
        return key if self.key_func is None else self.key_func(key)

    def _find(self, key: K) -> Optional[_Node]:
        target = self._order(key)
        node = self._root
        while node is not None:
            node_key = self._order(node.key)
            if target < node_key:
                node = node.left
            elif node_key < target:
                node = node.right
            else:
                return node
        return None

    def get(self, key: K) -> V:
        """
        Return the value stored under ``key``.

        Raises:
            KeyError: If the key has never been inserted.
        """
        node = self._find(key)
        if node is None:
            raise KeyError(key)
        return node.value

    def insert(self, key: K, value: V) -> bool:
        """
        Insert or replace ``key``.

        Returns:
            True if the key was not present before.
        """
        self._root, added = self._insert(self._root, key, self._order(key), value)
        if added:
            self._size += 1
        return added

    def _insert(self, node: Optional[_Node], key: K, target: Any, value: V) -> Tuple[_Node, bool]:
        if node is None:
            return _Node(key, value, None, None), True

        node_key = self._order(node.key)
        if target < node_key:
            left, added = self._insert(node.left, key, target, value)
            return _balanced(node.key, node.value, left, node.right), added
        if node_key < target:
            right, added = self._insert(node.right, key, target, value)
            return _balanced(node.key, node.value, node.left, right), added

        return _Node(node.key, value, node.left, node.right), False

    def for_each(self, visitor: Callable[[K, V], None]) -> None:
        """Call ``visitor(key, value)`` for every entry in ascending key order."""
        for key, value in self.items():
            visitor(key, value)

    def items(self) -> Iterator[Tuple[K, V]]:
        """Iterate over (key, value) pairs in ascending key order."""
        stack = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key, node.value
            node = node.right

    def keys(self) -> Iterator[K]:
        for key, _ in self.items():
            yield key

    def empty(self) -> bool:
        return self._root is None

    def clear(self) -> None:
        """Point this handle at the empty tree. Other snapshots are unaffected."""
        self._root = None
        self._size = 0

    def count(self, key: K) -> int:
        return 0 if self._find(key) is None else 1

    def copy(self) -> "PersistentMap[K, V]":
        """Return a new handle sharing this handle's current root."""
        other = PersistentMap(self.key_func)
        other._root = self._root
        other._size = self._size
        return other

    __copy__ = copy

    def height(self) -> int:
        """Height of the underlying tree (0 when empty)."""
        return _height(self._root)

    def __contains__(self, key: K) -> bool:
        return self._find(key) is not None

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[K]:
        return self.keys()

    def __repr__(self) -> str:
        return f"PersistentMap(size={self._size}, height={self.height()})"
