from typing import Dict, List, Optional, Tuple

from errors import CapacityError, FormatError
from pqueue import BoundedOrderedQueue, NodeStack

ALPHABET = 256  #: Number of distinct byte symbols
MAX_CODE_LENGTH = ALPHABET - 1  #: Deepest possible leaf in a 256-leaf tree

LEAF_TAG = ord("L")  #: Tree dump tag for a leaf (followed by its symbol)
INTERNAL_TAG = ord("I")  #: Tree dump tag for an internal node


class HuffmanNode:
    """Node for a binary Huffman tree.

    :ivar symbol: Byte value stored at a leaf; ``None`` for internal nodes.
    :type symbol: int | None
    :ivar weight: Frequency (weight) of the subtree rooted at this node.
    :type weight: int
    :ivar left: Left child node (bit 0).
    :type left: HuffmanNode | None
    :ivar right: Right child node (bit 1).
    :type right: HuffmanNode | None
    """

    __slots__ = ("symbol", "weight", "left", "right")

    def __init__(self, symbol=None, weight=0, left=None, right=None):
        """Create a Huffman node.

        :param symbol: Symbol value for leaf nodes; ``None`` for internal
            nodes.
        :type symbol: int | None
        :param int weight: Weight associated with this node.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        """
        self.symbol = symbol
        self.weight = weight
        self.left = left
        self.right = right

    @classmethod
    def join(cls, left: "HuffmanNode", right: "HuffmanNode") -> "HuffmanNode":
        """Create the parent of ``left`` and ``right``.

        :returns: Internal node weighing as much as both children together.
        :rtype: HuffmanNode
        """
        return cls(weight=left.weight + right.weight, left=left, right=right)

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol!r}, weight={self.weight})"
        return f"HuffmanNode(weight={self.weight})"


class Code:
    """Bounded stack of bits describing a root-to-leaf path.

    :ivar bits: Bits pushed so far, root first.
    :type bits: List[int]
    """

    def __init__(self, limit: int = MAX_CODE_LENGTH):
        self.limit = limit
        self.bits: List[int] = []

    def push_bit(self, bit: int) -> None:
        """Append ``bit`` to the path.

        :raises CapacityError: If the code already holds ``limit`` bits.
        """
        if len(self.bits) >= self.limit:
            raise CapacityError(
                f"Code longer than {self.limit} bits"
            )
        self.bits.append(bit & 1)

    def pop_bit(self) -> int:
        return self.bits.pop()

    def freeze(self) -> Tuple[int, ...]:
        return tuple(self.bits)

    def __len__(self):
        return len(self.bits)


def pad_histogram(hist: List[int]) -> List[int]:
    """Make sure at least two symbols have a non-zero count.

    Symbol 0 and then symbol 1 are raised to a count of 1, only as many
    as needed, so a tree with at least one internal node can be built.

    :param hist: Symbol counts indexed by byte value; updated in place.
    :type hist: List[int]
    :returns: The same ``hist`` list.
    :rtype: List[int]
    """
    for symbol in (0, 1):
        if sum(1 for count in hist if count > 0) >= 2:
            break
        if hist[symbol] == 0:
            hist[symbol] = 1
    return hist


def build_tree(hist: List[int]) -> HuffmanNode:
    """Build a Huffman tree from a histogram of byte counts.

    Leaves enter the queue in ascending symbol order. The two lightest
    nodes are joined as ``left`` (first extracted) and ``right`` until
    only the root is left.

    :param hist: Counts indexed by symbol (``ALPHABET`` entries).
    :type hist: List[int]
    :returns: Root of the tree.
    :rtype: HuffmanNode
    :raises ValueError: If fewer than two symbols have a non-zero count.
    """
    leaves = [
        HuffmanNode(symbol=symbol, weight=count)
        for symbol, count in enumerate(hist)
        if count > 0
    ]
    if len(leaves) < 2:
        raise ValueError(
            "At least two symbols with a non-zero count are required"
        )

    queue = BoundedOrderedQueue(len(leaves))
    for leaf in leaves:
        queue.insert(leaf)

    while queue.size() > 1:
        left = queue.extract_min()
        right = queue.extract_min()
        queue.insert(HuffmanNode.join(left, right))

    return queue.extract_min()


def build_codes(root: HuffmanNode) -> Dict[int, Tuple[int, ...]]:
    """Derive the code table of a tree.

    :param root: Root of the Huffman tree.
    :type root: HuffmanNode
    :returns: Mapping from symbol to its bits (0 = left, 1 = right).
    :rtype: Dict[int, Tuple[int, ...]]
    :raises CapacityError: If a leaf is deeper than ``MAX_CODE_LENGTH``.
    """
    table: Dict[int, Tuple[int, ...]] = {}
    _walk_codes(root, Code(), table)
    return table


def _walk_codes(node: HuffmanNode, path: Code, table: Dict) -> None:
    if node.is_leaf:
        table[node.symbol] = path.freeze()
        return
    path.push_bit(0)
    _walk_codes(node.left, path, table)
    path.pop_bit()
    path.push_bit(1)
    _walk_codes(node.right, path, table)
    path.pop_bit()


def dump_tree(root: HuffmanNode) -> bytes:
    """Serialize a tree in post-order.

    A leaf becomes ``b"L"`` plus its symbol byte, an internal node a single
    ``b"I"``. Weights are not stored. For ``n`` leaves the dump is
    ``3 * n - 1`` bytes long.

    :param root: Root of the tree to serialize.
    :type root: HuffmanNode
    :returns: Tree dump.
    :rtype: bytes
    """
    out = bytearray()
    for node in _post_order(root):
        if node.is_leaf:
            out.append(LEAF_TAG)
            out.append(node.symbol)
        else:
            out.append(INTERNAL_TAG)
    return bytes(out)


def rebuild_tree(data: bytes) -> HuffmanNode:
    """Rebuild a tree from a dump produced by :func:`dump_tree`.

    :param data: Tree dump.
    :type data: bytes
    :returns: Root of the rebuilt tree. Leaf weights are zero.
    :rtype: HuffmanNode
    :raises FormatError: If ``data`` is empty, contains an unknown tag,
        ends inside a leaf unit, pops from an empty stack or leaves more
        than one node behind.
    """
    if not data:
        raise FormatError("Empty tree dump")

    stack = NodeStack(len(data))
    pos = 0
    while pos < len(data):
        tag = data[pos]
        if tag == LEAF_TAG:
            if pos + 1 >= len(data):
                raise FormatError("Tree dump ends inside a leaf")
            stack.push(HuffmanNode(symbol=data[pos + 1]))
            pos += 2
        elif tag == INTERNAL_TAG:
            right = stack.pop()
            left = stack.pop()
            stack.push(HuffmanNode.join(left, right))
            pos += 1
        else:
            raise FormatError(f"Unknown tree tag 0x{tag:02x} at {pos}")

    if stack.size() != 1:
        raise FormatError(
            f"Tree dump leaves {stack.size()} nodes instead of one"
        )
    return stack.pop()


def delete_tree(root: Optional[HuffmanNode]) -> int:
    """Release every node of a tree, children before parents.

    :param root: Root of the tree; ``None`` releases nothing.
    :type root: HuffmanNode | None
    :returns: Number of nodes released.
    :rtype: int
    """
    if root is None:
        return 0
    released = 0
    for node in _post_order(root):
        node.left = None
        node.right = None
        released += 1
    return released


def _post_order(root: HuffmanNode):
    """Yield nodes left, right, parent without recursion."""
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded or node.is_leaf:
            yield node
            continue
        stack.append((node, True))
        stack.append((node.right, False))
        stack.append((node.left, False))
