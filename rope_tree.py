import logging

import numpy as np

_logger = logging.getLogger(__name__)

DEFAULT_LEAF_CAPACITY = 1024
MAX_SKEW = 2                       # tolerated root height difference

UNIT_DTYPE = np.dtype('<u4')       # one fixed-width code unit per character

#------------------------------------------------------------------------------
# Errors
#------------------------------------------------------------------------------

class RopeError(Exception):
    """Base class for every error raised by the rope modules."""


class CapacityMismatch(RopeError, ValueError):
    """Two ropes with different leaf capacities were combined."""


class IndexOutOfRange(RopeError, IndexError):
    """A character index or range bound lies outside the rope."""


class InvalidCapacity(RopeError, ValueError):
    """A leaf capacity is not positive, or a leaf would exceed it."""


def check_capacity(capacity) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, (int, np.integer)):
        raise InvalidCapacity(f"leaf capacity must be an integer, got {capacity!r}")
    if capacity <= 0:
        raise InvalidCapacity(f"leaf capacity must be positive, got {capacity}")
    return int(capacity)

#------------------------------------------------------------------------------
# Code-unit buffers
#------------------------------------------------------------------------------

def to_units(text: str) -> np.ndarray:
    """
    Encode a str as a read-only uint32 array, one element per character.
    Lone surrogates are kept as-is (surrogatepass), nothing is normalised.
    """
    return np.frombuffer(text.encode('utf-32-le', 'surrogatepass'), dtype=UNIT_DTYPE)


def from_units(units: np.ndarray) -> str:
    if len(units) == 0:
        return ''
    return np.ascontiguousarray(units, dtype=UNIT_DTYPE).tobytes().decode(
        'utf-32-le', 'surrogatepass')

#------------------------------------------------------------------------------
# Nodes
#------------------------------------------------------------------------------
# Nodes are never modified once built.  Two rope handles may hold the same
# subtree, so every structural change (rotation, concatenation) allocates
# new Internal nodes and leaves the shared ones untouched.

class Leaf:
    __slots__ = ("units", "size", "height")

    def __init__(self, units: np.ndarray, capacity: int):
        if len(units) > capacity:
            raise InvalidCapacity(
                f"leaf of {len(units)} units exceeds capacity {capacity}")
        self.units = units
        self.size = len(units)
        self.height = 0

    def is_leaf(self) -> bool:
        return True

    def text(self) -> str:
        return from_units(self.units)

    def __repr__(self):
        return f"Leaf({self.text()!r})"


class Internal:
    __slots__ = ("left", "right", "size", "height")

    def __init__(self, left, right):
        self.left = left
        self.right = right
        self.size = left.size + right.size
        self.height = 1 + max(left.height, right.height)

    def is_leaf(self) -> bool:
        return False

    def __repr__(self):
        return f"Internal(size={self.size}, height={self.height})"


def concat(left, right):
    """
    Join two (possibly shared) subtrees under one new Internal node.
    A missing side is not wrapped: the other subtree is returned as-is.
    """
    if left is None:
        return right
    if right is None:
        return left
    return Internal(left, right)

#------------------------------------------------------------------------------
# Construction
#------------------------------------------------------------------------------

def build_tree(units: np.ndarray, begin: int, end: int, capacity: int):
    """
    Split units[begin:end] into a balanced tree of leaves of at most
    `capacity` units each.

      L <= C       one leaf
      L <= 2C      two leaves, the left one holding exactly C
      otherwise    split at the largest multiple of C not above L/2

    Returns None for an empty range.
    """
    length = end - begin
    if length <= 0:
        return None
    if length <= capacity:
        return Leaf(units[begin:end], capacity)
    if length <= 2 * capacity:
        mid = begin + capacity
    else:
        mid = begin + (length // (2 * capacity)) * capacity
    return Internal(build_tree(units, begin, mid, capacity),
                    build_tree(units, mid, end, capacity))

#------------------------------------------------------------------------------
# Rotations (copy-on-write)
#------------------------------------------------------------------------------

def rotate_right(node):
    """
        node              pivot'
        /  \\             /    \\
     pivot  c    ->     a     node'
     /  \\                    /  \\
    a    b                   b    c

    Returns the new subtree root; `node` and `pivot` are not modified.
    """
    pivot = node.left
    return Internal(pivot.left, Internal(pivot.right, node.right))


def rotate_left(node):
    """Mirror image of rotate_right: promotes node.right."""
    pivot = node.right
    return Internal(Internal(node.left, pivot.left), pivot.right)


def skew(node) -> int:
    if node is None or node.is_leaf():
        return 0
    return node.left.height - node.right.height


def rebalance_root(root):
    """
    Rotate at the root until its children's heights differ by at most
    MAX_SKEW.  Only the root is inspected; deeper skew is left alone.

    A pivot that leans inward is rotated outward first, otherwise the
    single rotation would just mirror the skew to the other side.  A step
    is only taken when it strictly shrinks |skew|, so the loop ends; it
    may stop above MAX_SKEW when no root rotation helps.
    """
    rotations = 0
    while root is not None and not root.is_leaf():
        d = skew(root)
        if d > MAX_SKEW:
            pivot = root.left
            if skew(pivot) < 0:
                pivot = rotate_left(pivot)
            candidate = rotate_right(Internal(pivot, root.right))
        elif d < -MAX_SKEW:
            pivot = root.right
            if skew(pivot) > 0:
                pivot = rotate_right(pivot)
            candidate = rotate_left(Internal(root.left, pivot))
        else:
            break

        if abs(skew(candidate)) >= abs(d):
            _logger.debug("rebalance stalled at skew %d after %d rotation(s)",
                          d, rotations)
            break
        root = candidate
        rotations += 1
        _logger.debug("root rotation %d: skew %d -> %d",
                      rotations, d, skew(root))
    return root

#------------------------------------------------------------------------------
# Traversal
#------------------------------------------------------------------------------

def unit_at(root, index: int) -> int:
    """
    Code unit at `index` (0 <= index < root.size), found by descending
    against the current node's left size at every level.
    """
    node = root
    while not node.is_leaf():
        left_size = node.left.size
        if index < left_size:
            node = node.left
        else:
            index -= left_size
            node = node.right
    return int(node.units[index])


def iter_leaves(root):
    """Yield leaves left to right.  Uses an explicit stack: unbalanced
    concatenation chains can be far deeper than the recursion limit."""
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        if node.is_leaf():
            yield node
        else:
            stack.append(node.right)
            stack.append(node.left)


def collect_units(root) -> np.ndarray:
    """All code units of the subtree, in order, as one array."""
    bufs = [leaf.units for leaf in iter_leaves(root)]
    if not bufs:
        return np.empty(0, dtype=UNIT_DTYPE)
    return np.concatenate(bufs)


def check_tree(root, capacity: int):
    """
    Walk the whole subtree and verify the cached fields and the leaf bound.
    Raises InvalidCapacity for an oversized leaf, AssertionError otherwise.
    """
    if root is None:
        return
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_leaf():
            if node.size != len(node.units):
                raise AssertionError(f"leaf size {node.size} != {len(node.units)} units")
            if node.size > capacity:
                raise InvalidCapacity(
                    f"leaf of {node.size} units exceeds capacity {capacity}")
            if node.height != 0:
                raise AssertionError(f"leaf height is {node.height}, expected 0")
            continue
        if node.size != node.left.size + node.right.size:
            raise AssertionError(f"internal size {node.size} != "
                                 f"{node.left.size} + {node.right.size}")
        expected = 1 + max(node.left.height, node.right.height)
        if node.height != expected:
            raise AssertionError(f"internal height {node.height}, expected {expected}")
        stack.append(node.right)
        stack.append(node.left)
