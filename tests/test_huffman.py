import pytest

from errors import CapacityError, FormatError
from huffman import (
    ALPHABET,
    Code,
    HuffmanNode,
    MAX_CODE_LENGTH,
    build_codes,
    build_tree,
    delete_tree,
    dump_tree,
    pad_histogram,
    rebuild_tree,
)


def _shape(node):
    if node.is_leaf:
        return node.symbol
    return (_shape(node.left), _shape(node.right))


def _hist(counts):
    hist = [0] * ALPHABET
    for sym, count in counts.items():
        hist[sym] = count
    return hist


def test_pad_histogram_single_symbol():
    hist = pad_histogram(_hist({ord('a'): 1000}))
    nonzero = [s for s, c in enumerate(hist) if c]
    assert nonzero == [0, ord('a')]
    assert hist[0] == 1


def test_pad_histogram_empty_and_zero_only():
    assert [s for s, c in enumerate(pad_histogram([0] * ALPHABET)) if c] \
        == [0, 1]
    assert [s for s, c in enumerate(pad_histogram(_hist({0: 5}))) if c] \
        == [0, 1]


def test_pad_histogram_leaves_two_symbols_alone():
    hist = _hist({5: 1, 6: 2})
    assert pad_histogram(list(hist)) == hist


def test_build_tree_known_shape(sample_hist):
    root = build_tree(sample_hist)
    a, b, c, d, e, f = (ord(ch) for ch in "abcdef")
    assert _shape(root) == (((a, f), b), (e, (c, d)))
    assert root.weight == 14


def test_build_codes_known_table(sample_hist):
    table = build_codes(build_tree(sample_hist))
    assert table == {
        ord('a'): (0, 0, 0),
        ord('f'): (0, 0, 1),
        ord('b'): (0, 1),
        ord('e'): (1, 0),
        ord('c'): (1, 1, 0),
        ord('d'): (1, 1, 1),
    }
    assert len(table[ord('b')]) <= len(table[ord('a')])
    assert len(table[ord('e')]) <= len(table[ord('f')])


def test_single_symbol_gets_one_bit_code():
    root = build_tree(pad_histogram(_hist({ord('a'): 1000})))
    table = build_codes(root)
    assert set(table) == {0, ord('a')}
    assert table[ord('a')] == (1,)


def test_build_tree_requires_two_symbols():
    with pytest.raises(ValueError):
        build_tree(_hist({65: 3}))


def test_build_is_deterministic():
    hist = _hist({s: (s * 7) % 5 + 1 for s in range(40)})
    assert _shape(build_tree(hist)) == _shape(build_tree(hist))
    assert build_codes(build_tree(hist)) == build_codes(build_tree(hist))


def test_codes_are_prefix_free_for_full_alphabet():
    hist = [(s * 31) % 17 + 1 for s in range(ALPHABET)]
    table = build_codes(build_tree(hist))
    assert len(table) == ALPHABET
    codes = sorted(table.values())
    for shorter, longer in zip(codes, codes[1:]):
        assert longer[:len(shorter)] != shorter


def test_fibonacci_weights_reach_max_code_length():
    hist = [0] * ALPHABET
    a, b = 1, 1
    for s in range(60):
        hist[s] = a
        a, b = b, a + b
    table = build_codes(build_tree(hist))
    assert max(len(code) for code in table.values()) == 59


def test_code_push_beyond_limit_raises():
    code = Code()
    for _ in range(MAX_CODE_LENGTH):
        code.push_bit(1)
    assert len(code) == MAX_CODE_LENGTH
    with pytest.raises(CapacityError):
        code.push_bit(0)


def test_build_codes_rejects_too_deep_tree():
    node = HuffmanNode(symbol=0)
    for sym in range(1, MAX_CODE_LENGTH + 2):
        node = HuffmanNode.join(node, HuffmanNode(symbol=sym % ALPHABET))
    with pytest.raises(CapacityError):
        build_codes(node)


def test_dump_tree_layout(sample_hist):
    dump = dump_tree(build_tree(sample_hist))
    assert dump == b"LaLfILbILeLcLdIII"
    assert len(dump) == 3 * 6 - 1


def test_tree_roundtrip_preserves_shape():
    hist = [(s * 13) % 29 for s in range(ALPHABET)]
    root = build_tree(pad_histogram(hist))
    rebuilt = rebuild_tree(dump_tree(root))
    assert _shape(rebuilt) == _shape(root)
    assert rebuilt is not root


@pytest.mark.parametrize(
    "dump",
    [
        b"",
        b"LaI",
        b"I",
        b"LaLb",
        b"LaLbIX",
        b"LaL",
    ],
)
def test_rebuild_tree_malformed_raises(dump):
    with pytest.raises(FormatError):
        rebuild_tree(dump)


def test_rebuild_single_leaf_is_allowed():
    root = rebuild_tree(b"La")
    assert root.is_leaf and root.symbol == ord('a')


def test_delete_tree_releases_every_node_once(sample_hist):
    root = build_tree(sample_hist)
    left = root.left
    assert delete_tree(root) == 2 * 6 - 1
    assert root.left is None and root.right is None
    assert left.left is None and left.right is None
    assert delete_tree(None) == 0
