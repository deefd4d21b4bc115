import heapq
from typing import List, Tuple

from errors import CapacityError, FormatError


class BoundedOrderedQueue:
    """Fixed-capacity min-priority queue of Huffman nodes.

    Nodes are ordered by ``weight``. Nodes of equal weight leave the queue
    in the order they were inserted, so the same frequencies always
    produce the same tree.

    :ivar capacity: Maximum number of nodes held at once.
    :type capacity: int
    """

    def __init__(self, capacity: int):
        """Create an empty queue.

        :param capacity: Maximum number of queued nodes, must be positive.
        :type capacity: int
        :raises ValueError: If ``capacity`` is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive: {capacity}")
        self.capacity = capacity
        self._heap: List[Tuple[int, int, object]] = []
        self._seq = 0

    def insert(self, node) -> None:
        """Insert ``node`` keeping the ordering invariant.

        :param node: Node with a ``weight`` attribute.
        :type node: huffman.HuffmanNode
        :returns: None
        :rtype: None
        :raises ValueError: If ``node`` is ``None``.
        :raises CapacityError: If the queue is already full.
        """
        if node is None:
            raise ValueError("Cannot insert a missing node")
        if self.is_full():
            raise CapacityError(
                f"Queue is full (capacity {self.capacity})"
            )
        heapq.heappush(self._heap, (node.weight, self._seq, node))
        self._seq += 1

    def extract_min(self):
        """Remove and return the lowest-weight node.

        :returns: The node with the smallest weight; the earliest inserted
            one among equal weights.
        :rtype: huffman.HuffmanNode
        :raises ValueError: If the queue is empty.
        """
        if not self._heap:
            raise ValueError("Cannot extract from an empty queue")
        return heapq.heappop(self._heap)[2]

    def is_empty(self) -> bool:
        return not self._heap

    def is_full(self) -> bool:
        return len(self._heap) >= self.capacity

    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)


class NodeStack:
    """Fixed-capacity LIFO stack used to rebuild a tree from its dump.

    :ivar capacity: Maximum number of nodes held at once.
    :type capacity: int
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Stack capacity must be positive: {capacity}")
        self.capacity = capacity
        self._items: list = []

    def push(self, node) -> None:
        """Push ``node`` on top of the stack.

        :raises CapacityError: If the stack is already full.
        """
        if self.is_full():
            raise CapacityError(
                f"Stack is full (capacity {self.capacity})"
            )
        self._items.append(node)

    def pop(self):
        """Pop the top node.

        :raises FormatError: If the stack is empty.
        """
        if not self._items:
            raise FormatError("Stack underflow while rebuilding tree")
        return self._items.pop()

    def is_empty(self) -> bool:
        return not self._items

    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)
