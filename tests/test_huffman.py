import pytest

from bitstream import BitStringSource
from errors import EmptyAlphabetError, HuffmanError, InvalidTreeError
from huffman import (
    HuffmanInternal,
    HuffmanLeaf,
    build_huffman_tree,
    frequency_table,
    generate_huffman_codes,
    huffman_encode,
    serialize_tree,
    weighted_code_length,
)


CLASSIC = {ord('a'): 5, ord('b'): 9, ord('c'): 12, ord('d'): 13, ord('e'): 16, ord('f'): 45}


def test_classic_example_weighted_length_is_optimal():
    root = build_huffman_tree(CLASSIC)
    codes = generate_huffman_codes(root)
    assert weighted_code_length(CLASSIC, codes) == 224
    assert root.weight == 100


def test_classic_example_exact_codes_with_fifo_ties():
    codes = generate_huffman_codes(build_huffman_tree(CLASSIC))
    assert codes == {
        ord('f'): "0",
        ord('c'): "100",
        ord('d'): "101",
        ord('a'): "1100",
        ord('b'): "1101",
        ord('e'): "111",
    }


def test_codes_are_prefix_free():
    ft = frequency_table(b"the quick brown fox jumps over the lazy dog, again and again")
    codes = list(generate_huffman_codes(build_huffman_tree(ft)).values())
    assert len(codes) == len(ft)
    for i, c1 in enumerate(codes):
        for j, c2 in enumerate(codes):
            if i != j:
                assert not c2.startswith(c1)


def test_single_symbol_alphabet_is_a_lone_leaf():
    root = build_huffman_tree({120: 7})
    assert isinstance(root, HuffmanLeaf)
    assert root.is_leaf
    assert root.symbol == 120
    assert serialize_tree(root) == [(120, "")]


def test_zero_counts_are_ignored():
    root = build_huffman_tree({1: 0, 2: 3, 3: 0})
    assert serialize_tree(root) == [(2, "")]


@pytest.mark.parametrize("ft", [{}, {65: 0, 66: 0}])
def test_empty_alphabet_raises(ft):
    with pytest.raises(EmptyAlphabetError):
        build_huffman_tree(ft)


def test_negative_frequency_or_symbol_rejected():
    with pytest.raises(ValueError):
        build_huffman_tree({65: -1, 66: 2})
    with pytest.raises(ValueError):
        build_huffman_tree({-1: 4, 66: 2})


def test_tie_breaking_does_not_depend_on_mapping_order():
    forward = {s: 1 for s in range(10)}
    backward = {s: 1 for s in reversed(range(10))}
    assert serialize_tree(build_huffman_tree(forward)) == serialize_tree(build_huffman_tree(backward))


def test_equal_weights_pop_first_in_first_out():
    root = build_huffman_tree({7: 1, 3: 1})
    # ascending symbol order: 3 is enqueued first, so it becomes the left child
    assert serialize_tree(root) == [(3, "0"), (7, "1")]


def test_internal_nodes_always_have_two_children():
    root = build_huffman_tree(frequency_table(bytes(range(256)) * 3 + b"zzzz"))
    stack = [root]
    leaves = 0
    while stack:
        node = stack.pop()
        if node.is_leaf:
            leaves += 1
            assert node.symbol >= 0
        else:
            assert node.left is not None and node.right is not None
            stack += [node.left, node.right]
    assert leaves == 256


def test_serialize_order_is_left_before_right():
    tree = HuffmanInternal(HuffmanInternal(HuffmanLeaf(1), HuffmanLeaf(2)), HuffmanLeaf(3))
    assert serialize_tree(tree) == [(1, "00"), (2, "01"), (3, "1")]


def test_serialize_rejects_missing_tree():
    with pytest.raises(InvalidTreeError):
        serialize_tree(None)
    with pytest.raises(InvalidTreeError):
        serialize_tree("not a tree")


def test_serialize_rejects_incomplete_tree():
    with pytest.raises(InvalidTreeError):
        serialize_tree(HuffmanInternal(HuffmanLeaf(1), None))


def test_serialize_handles_deep_trees():
    # fibonacci-like counts produce a maximally skewed tree
    ft = {}
    a, b = 1, 1
    for sym in range(60):
        ft[sym] = a
        a, b = b, a + b
    codes = generate_huffman_codes(build_huffman_tree(ft))
    assert max(len(c) for c in codes.values()) == 59


def test_leaf_symbol_is_read_only():
    leaf = HuffmanLeaf(5)
    with pytest.raises(AttributeError):
        leaf.symbol = 6


def test_huffman_encode_concatenates_codes():
    codes = {1: "0", 2: "10", 3: "11"}
    assert huffman_encode([2, 1, 3, 1], codes) == "100110"
    with pytest.raises(KeyError):
        huffman_encode([4], codes)


def test_errors_are_value_errors():
    assert issubclass(EmptyAlphabetError, HuffmanError)
    assert issubclass(HuffmanError, ValueError)


def test_frequency_table_counts_bytes():
    assert frequency_table(b"abca") == {97: 2, 98: 1, 99: 1}
    assert frequency_table(b"") == {}


def test_bit_string_source_rejects_non_bits():
    with pytest.raises(ValueError):
        BitStringSource("012")
