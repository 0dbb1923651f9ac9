# src/rankmint/index/rank_tree.py
from __future__ import annotations

"""Order-statistics index over wealth values.

An AVL tree kept in an arena of parallel lists. Nodes are addressed by stable
integer indices; slot 0 is the NIL sentinel (height 0, empty counters) so child
and parent lookups never need a None check.

Per node we store:
  - key              wealth value (non-negative int), unique per node
  - elements         identifiers attached to this key (multiplicity)
  - left/right/parent
  - height           AVL height (leaf = 1)
  - size             elements in the subtree (sum of multiplicities)
  - distinct         nodes in the subtree

`size` answers count(); `distinct` answers rank(). Both are recomputed on
every node touched by an insertion, including the nodes moved by rotations.
There is no delete: the population only grows.
"""

from typing import Any, Iterator, List

from rankmint.issuance.errors import InvariantViolation

NIL = 0


class RankIndex:
    def __init__(self) -> None:
        self._key: List[int] = [0]
        self._elements: List[List[Any]] = [[]]
        self._left: List[int] = [NIL]
        self._right: List[int] = [NIL]
        self._parent: List[int] = [NIL]
        self._height: List[int] = [0]
        self._size: List[int] = [0]
        self._distinct: List[int] = [0]
        self._root: int = NIL

    # ----------------------------
    # Queries
    # ----------------------------

    def _find(self, key: int) -> int:
        n = self._root
        while n != NIL:
            k = self._key[n]
            if key < k:
                n = self._left[n]
            elif key > k:
                n = self._right[n]
            else:
                return n
        return NIL

    def exists(self, key: int) -> bool:
        return self._find(_check_key(key)) != NIL

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, int) or isinstance(key, bool) or key < 0:
            return False
        return self._find(key) != NIL

    def count(self) -> int:
        """Total number of elements across all keys."""
        return self._size[self._root]

    def __len__(self) -> int:
        return self.count()

    def distinct_count(self) -> int:
        return self._distinct[self._root]

    def height(self) -> int:
        return self._height[self._root]

    def rank(self, key: int) -> int:
        """1-based position of `key` among distinct keys (keys <= key are counted).

        For a key that is not present this returns the number of distinct keys
        strictly below it, which is the same "keys <= key" definition.
        """
        key = _check_key(key)
        r = 0
        n = self._root
        while n != NIL:
            k = self._key[n]
            if key < k:
                n = self._left[n]
            elif key > k:
                r += self._distinct[self._left[n]] + 1
                n = self._right[n]
            else:
                return r + self._distinct[self._left[n]] + 1
        return r

    def elements(self, key: int) -> List[Any]:
        n = self._find(_check_key(key))
        if n == NIL:
            return []
        return list(self._elements[n])

    def keys(self) -> Iterator[int]:
        """In-order traversal of distinct keys."""
        stack: List[int] = []
        n = self._root
        while stack or n != NIL:
            while n != NIL:
                stack.append(n)
                n = self._left[n]
            n = stack.pop()
            yield self._key[n]
            n = self._right[n]

    # ----------------------------
    # Mutation
    # ----------------------------

    def insert(self, element: Any, key: int) -> None:
        key = _check_key(key)

        parent = NIL
        n = self._root
        while n != NIL:
            parent = n
            k = self._key[n]
            if key < k:
                n = self._left[n]
            elif key > k:
                n = self._right[n]
            else:
                # Shared node: only the element counters on the path change.
                self._elements[n].append(element)
                while n != NIL:
                    self._size[n] += 1
                    n = self._parent[n]
                return

        node = self._alloc(element, key, parent)
        if parent == NIL:
            self._root = node
            return
        if key < self._key[parent]:
            self._left[parent] = node
        else:
            self._right[parent] = node

        n = parent
        while n != NIL:
            self._update(n)
            n = self._rebalance(n)
            n = self._parent[n]

    def _alloc(self, element: Any, key: int, parent: int) -> int:
        self._key.append(key)
        self._elements.append([element])
        self._left.append(NIL)
        self._right.append(NIL)
        self._parent.append(parent)
        self._height.append(1)
        self._size.append(1)
        self._distinct.append(1)
        return len(self._key) - 1

    def _update(self, n: int) -> None:
        l, r = self._left[n], self._right[n]
        self._height[n] = 1 + max(self._height[l], self._height[r])
        self._size[n] = len(self._elements[n]) + self._size[l] + self._size[r]
        self._distinct[n] = 1 + self._distinct[l] + self._distinct[r]

    def _balance(self, n: int) -> int:
        return self._height[self._left[n]] - self._height[self._right[n]]

    def _replace_child(self, parent: int, old: int, new: int) -> None:
        if parent == NIL:
            self._root = new
        elif self._left[parent] == old:
            self._left[parent] = new
        else:
            self._right[parent] = new

    def _rotate_left(self, x: int) -> int:
        y = self._right[x]
        b = self._left[y]

        self._right[x] = b
        if b != NIL:
            self._parent[b] = x

        p = self._parent[x]
        self._parent[y] = p
        self._replace_child(p, x, y)

        self._left[y] = x
        self._parent[x] = y

        self._update(x)
        self._update(y)
        return y

    def _rotate_right(self, x: int) -> int:
        y = self._left[x]
        b = self._right[y]

        self._left[x] = b
        if b != NIL:
            self._parent[b] = x

        p = self._parent[x]
        self._parent[y] = p
        self._replace_child(p, x, y)

        self._right[y] = x
        self._parent[x] = y

        self._update(x)
        self._update(y)
        return y

    def _rebalance(self, n: int) -> int:
        """Restore the AVL property at `n`; returns the subtree's new root."""
        bf = self._balance(n)
        if bf > 1:
            if self._balance(self._left[n]) < 0:
                self._rotate_left(self._left[n])
            return self._rotate_right(n)
        if bf < -1:
            if self._balance(self._right[n]) > 0:
                self._rotate_right(self._right[n])
            return self._rotate_left(n)
        return n

    # ----------------------------
    # Invariants
    # ----------------------------

    def verify(self) -> None:
        """Walk the whole tree and check every structural invariant.

        O(n); intended for tests and offline audits, never for the issuance path.
        """
        if self._parent[self._root] != NIL:
            raise InvariantViolation("rank_index", "root_has_parent", {"root": self._root})

        stack: List[tuple[int, int, int]] = []
        if self._root != NIL:
            stack.append((self._root, -1, -1))

        # Post-order: children checked before their parent's counters.
        order: List[int] = []
        while stack:
            n, lo, hi = stack.pop()
            k = self._key[n]
            if (lo >= 0 and k <= lo) or (hi >= 0 and k >= hi):
                raise InvariantViolation("rank_index", "order_violated", {"key": k})
            if not self._elements[n]:
                raise InvariantViolation("rank_index", "empty_node", {"key": k})
            order.append(n)
            for child, clo, chi in ((self._left[n], lo, k), (self._right[n], k, hi)):
                if child == NIL:
                    continue
                if self._parent[child] != n:
                    raise InvariantViolation("rank_index", "parent_link_broken", {"key": self._key[child]})
                stack.append((child, clo, chi))

        for n in reversed(order):
            l, r = self._left[n], self._right[n]
            if self._height[n] != 1 + max(self._height[l], self._height[r]):
                raise InvariantViolation("rank_index", "height_stale", {"key": self._key[n]})
            if abs(self._balance(n)) > 1:
                raise InvariantViolation("rank_index", "unbalanced", {"key": self._key[n]})
            if self._size[n] != len(self._elements[n]) + self._size[l] + self._size[r]:
                raise InvariantViolation("rank_index", "size_stale", {"key": self._key[n]})
            if self._distinct[n] != 1 + self._distinct[l] + self._distinct[r]:
                raise InvariantViolation("rank_index", "distinct_stale", {"key": self._key[n]})


def _check_key(key: Any) -> int:
    if isinstance(key, bool) or not isinstance(key, int):
        raise ValueError(f"rank index keys must be int, got {type(key).__name__}")
    if key < 0:
        raise ValueError(f"rank index keys must be non-negative, got {key}")
    return key


__all__ = ["RankIndex", "NIL"]
