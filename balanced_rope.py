import logging
import operator

import numpy as np

from rope_tree import (
    DEFAULT_LEAF_CAPACITY,
    CapacityMismatch,
    IndexOutOfRange,
    build_tree,
    check_capacity,
    check_tree,
    collect_units,
    concat,
    from_units,
    iter_leaves,
    rebalance_root,
    to_units,
    unit_at,
)

_logger = logging.getLogger(__name__)


def _range_units(raw, begin: int, end):
    """Validate [begin, end) against raw and return its code units."""
    if not isinstance(raw, str):
        raise TypeError(f"expected str, got {type(raw).__name__}")
    n = len(raw)
    if end is None:
        end = n
    if not 0 <= begin <= end <= n:
        raise IndexOutOfRange(f"range [{begin}, {end}) outside string of length {n}")
    return to_units(raw[begin:end])

#------------------------------------------------------------------------------
# Rope
#------------------------------------------------------------------------------

class Rope:
    """
    Balanced binary tree over a character sequence.

    Leaves hold at most `max_leaf_capacity` characters; internal nodes cache
    the size and height of their subtree.  Concatenation shares subtrees
    between handles instead of copying them, and since nodes are immutable
    a rope never observes changes made through another handle.
    """
    def __init__(self, raw: str = "", begin: int = 0, end=None,
                 max_leaf_capacity: int = DEFAULT_LEAF_CAPACITY):
        self.max_leaf_capacity = check_capacity(max_leaf_capacity)
        units = _range_units(raw, begin, end)
        self._root = build_tree(units, 0, len(units), self.max_leaf_capacity)

    @classmethod
    def _from_root(cls, root, max_leaf_capacity: int) -> "Rope":
        rope = cls(max_leaf_capacity=max_leaf_capacity)
        rope._root = root
        return rope

    def _require_same_capacity(self, other: "Rope"):
        if self.max_leaf_capacity != other.max_leaf_capacity:
            raise CapacityMismatch(
                f"leaf capacities differ: {self.max_leaf_capacity} "
                f"!= {other.max_leaf_capacity}")

    # ------------------------------------------------------------
    # size / shape
    # ------------------------------------------------------------
    def size(self) -> int:
        return self._root.size if self._root is not None else 0

    def __len__(self) -> int:
        return self.size()

    def height(self) -> int:
        """Height of the root node (0 for a single leaf or an empty rope)."""
        return self._root.height if self._root is not None else 0

    def leaves(self):
        """Yield the leaf runs, left to right, as strings."""
        for leaf in iter_leaves(self._root):
            yield leaf.text()

    def leaf_sizes(self) -> np.ndarray:
        return np.array([leaf.size for leaf in iter_leaves(self._root)],
                        dtype=np.int64)

    def validate(self):
        """Check size, height and leaf-capacity invariants over the whole tree."""
        check_tree(self._root, self.max_leaf_capacity)

    # ------------------------------------------------------------
    # indexed access
    # ------------------------------------------------------------
    def char_at(self, index: int) -> str:
        index = operator.index(index)
        n = self.size()
        if not 0 <= index < n:
            raise IndexOutOfRange(f"index {index} out of range for rope of size {n}")
        return chr(unit_at(self._root, index))

    def __getitem__(self, index):
        if isinstance(index, slice):
            raise TypeError("rope does not support slicing")
        index = operator.index(index)
        if index < 0:
            index += self.size()
        return self.char_at(index)

    # ------------------------------------------------------------
    # materialization
    # ------------------------------------------------------------
    def materialize(self) -> str:
        return from_units(collect_units(self._root))

    def __str__(self):
        return self.materialize()

    def __iter__(self):
        for leaf in iter_leaves(self._root):
            yield from leaf.text()

    def __repr__(self):
        return (f"Rope(size={self.size()}, height={self.height()}, "
                f"max_leaf_capacity={self.max_leaf_capacity})")

    # ------------------------------------------------------------
    # concatenation
    # ------------------------------------------------------------
    def append_rope(self, other: "Rope"):
        """
        Append `other` in place.  Its root is shared, not copied, and no
        rebalancing is done.
        """
        self._require_same_capacity(other)
        self._root = concat(self._root, other._root)

    def append_range(self, raw: str, begin: int = 0, end=None):
        """
        Append raw[begin:end] in place as a freshly split subtree, then
        rebalance at the root.
        """
        units = _range_units(raw, begin, end)
        if len(units) == 0:
            return
        tail = build_tree(units, 0, len(units), self.max_leaf_capacity)
        self._root = rebalance_root(concat(self._root, tail))
        _logger.debug("appended %d units, size=%d height=%d",
                      len(units), self.size(), self.height())

    def __add__(self, other):
        if not isinstance(other, Rope):
            return NotImplemented
        return merge(self, other)


def merge(a: Rope, b: Rope) -> Rope:
    """
    New rope holding a followed by b.  Both roots are shared by reference;
    neither input is modified and nothing is rebalanced.
    """
    a._require_same_capacity(b)
    return Rope._from_root(concat(a._root, b._root), a.max_leaf_capacity)
