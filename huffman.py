import heapq
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from bitstream import BitSource
from errors import EmptyAlphabetError, InvalidTreeError, MalformedCodeError, TruncatedStreamError


class HuffmanLeaf: # Leaf of the Huffman tree, holds one symbol
    def __init__(self, symbol: int, weight: int = 0):
        self._symbol = symbol
        self.weight = weight # frequency for built trees, 0 for loaded ones

    @property
    def symbol(self) -> int:
        return self._symbol

    @property
    def is_leaf(self) -> bool:
        return True

    def __repr__(self):
        return f"HuffmanLeaf({self._symbol!r})"


class HuffmanInternal: # Merge point, always two children once the tree is complete
    def __init__(self, left: Optional["Node"] = None, right: Optional["Node"] = None, weight: int = 0):
        self.left = left # None only while a code table is still being loaded
        self.right = right
        self.weight = weight

    @property
    def is_leaf(self) -> bool:
        return False

    def __repr__(self):
        return f"HuffmanInternal({self.left!r}, {self.right!r})"


Node = Union[HuffmanLeaf, HuffmanInternal]


def frequency_table(data: bytes) -> Dict[int, int]: # byte value -> number of occurrences
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def build_huffman_tree(frequency_table: Mapping[int, int]) -> Node:
    """
    Greedy Huffman construction. Leaves enter the queue in ascending symbol
    order and every entry carries an insertion counter, so equal weights
    leave the queue first-in first-out and the tree is the same for the same
    counts no matter how the mapping is ordered
    """
    priority_queue: List[Tuple[int, int, Node]] = []
    seq = 0
    for symbol in sorted(frequency_table):
        frequency = frequency_table[symbol]
        if symbol < 0:
            raise ValueError(f"Symbols must be non-negative, got {symbol}")
        if frequency < 0:
            raise ValueError(f"Negative frequency {frequency} for symbol {symbol}")
        if frequency == 0:
            continue
        priority_queue.append((frequency, seq, HuffmanLeaf(symbol, frequency)))
        seq += 1

    if not priority_queue:
        raise EmptyAlphabetError("Cannot build a Huffman tree without a symbol of positive frequency")

    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_weight, _, left = heapq.heappop(priority_queue)
        right_weight, _, right = heapq.heappop(priority_queue)
        weight = left_weight + right_weight
        heapq.heappush(priority_queue, (weight, seq, HuffmanInternal(left, right, weight)))
        seq += 1

    return priority_queue[0][2] # a lone leaf when the alphabet has one symbol


def _check_node(node, code: str = "") -> None:
    if not isinstance(node, (HuffmanLeaf, HuffmanInternal)):
        where = f" at path {code!r}" if code else ""
        raise InvalidTreeError(f"Expected a Huffman tree node{where}, got {type(node).__name__}")


def serialize_tree(root: Optional[Node]) -> List[Tuple[int, str]]:
    """
    Depth-first walk, left before right, returning one (symbol, code) pair per
    leaf in the order the leaves are reached. A tree that is a single leaf
    gives that symbol the empty code
    """
    _check_node(root)
    pairs: List[Tuple[int, str]] = []
    stack: List[Tuple[Node, str]] = [(root, "")]
    while stack:
        node, code = stack.pop()
        _check_node(node, code)
        if node.is_leaf:
            pairs.append((node.symbol, code))
            continue
        if node.left is None or node.right is None:
            raise InvalidTreeError(f"Internal node at path {code!r} is missing a child")
        stack.append((node.right, code + "1")) # pushed first so the left subtree comes out first
        stack.append((node.left, code + "0"))
    return pairs


def generate_huffman_codes(root: Optional[Node]) -> Dict[int, str]: # symbol -> code
    return dict(serialize_tree(root))


def weighted_code_length(frequency_table: Mapping[int, int], code_map: Mapping[int, str]) -> int:
    return sum(frequency * len(code_map[symbol]) for symbol, frequency in frequency_table.items() if frequency > 0)


def huffman_encode(symbols: Iterable[int], code_map: Mapping[int, str]) -> str:
    return "".join(code_map[symbol] for symbol in symbols)


def _decode_walk(root: Node, bits: BitSource, count: Optional[int]) -> Iterator[int]:
    if root.is_leaf:
        # no bits tell repetitions apart, only the caller's count does
        for _ in range(1 if count is None else count):
            yield root.symbol
        return

    produced = 0
    while count is None or produced < count:
        if not bits.has_next_bit():
            if count is None:
                return
            raise TruncatedStreamError(f"Bit source exhausted after {produced} of {count} symbols")
        node = root
        path = []
        while not node.is_leaf:
            if not bits.has_next_bit():
                raise TruncatedStreamError(
                    f"Bit source exhausted inside a code after {''.join(path)!r} ({produced} symbols decoded)")
            bit = bits.next_bit()
            if bit == 0:
                child = node.left
            elif bit == 1:
                child = node.right
            else:
                raise ValueError(f"Bit source returned {bit!r}")
            path.append(str(bit))
            if child is None:
                raise MalformedCodeError(f"No symbol is assigned to a code starting with {''.join(path)!r}")
            node = child
        yield node.symbol
        produced += 1


def huffman_decode(root: Optional[Node], bits: BitSource, count: Optional[int] = None) -> Iterator[int]:
    """
    Lazily decodes symbols by walking the tree, one bit per internal node.
    Without count it runs until the source is empty at a code boundary; with
    count it stops after that many symbols and ignores trailing bits
    """
    _check_node(root)
    if count is not None and count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    return _decode_walk(root, bits, count)


def decode_to_bytes(root: Optional[Node], bits: BitSource, count: Optional[int] = None) -> bytes:
    return bytes(huffman_decode(root, bits, count))
