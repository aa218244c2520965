"""
Code table persistence

A code table is plain text made of line pairs, one pair per leaf in the
order serialize_tree emits them:

    97        <- symbol, base-10
    010       <- its code, '0' = left, '1' = right (empty for a one-symbol tree)

There is no header, count or checksum; the table ends at end of input.
Loading rebuilds the tree one (symbol, code) pair at a time with insert().
"""

from typing import IO, Iterable, List, Optional, Tuple, Union

from errors import MalformedCodeError
from huffman import HuffmanInternal, HuffmanLeaf, Node, serialize_tree


CodePair = Tuple[int, str]


def _check_code(code: str, line_no: Optional[int] = None) -> None:
    where = f" (line {line_no})" if line_no is not None else ""
    if not isinstance(code, str):
        raise MalformedCodeError(f"Code must be a string of 0/1, got {type(code).__name__}{where}")
    for ch in code:
        if ch not in "01":
            raise MalformedCodeError(f"Illegal character {ch!r} in code {code!r}{where}")


def _check_symbol(symbol) -> None:
    if isinstance(symbol, bool) or not isinstance(symbol, int):
        raise MalformedCodeError(f"Symbol must be an integer, got {symbol!r}")
    if symbol < 0:
        raise MalformedCodeError(f"Symbol must be non-negative, got {symbol}")


def insert(root: Optional[Node], symbol: int, code: str) -> Node:
    """
    Adds one leaf to a tree that is being loaded and returns the (possibly new)
    root. Missing internal nodes on the way are created with no children.

    Codes must stay prefix-free and unique: a code that runs through an
    existing leaf, stops on an existing internal node or repeats an existing
    code raises MalformedCodeError and leaves the tree untouched.
    """
    _check_symbol(symbol)
    _check_code(code)
    leaf = HuffmanLeaf(symbol)

    if code == "":
        if root is not None:
            raise MalformedCodeError(f"Empty code for symbol {symbol} but the table already holds other codes")
        return leaf

    if root is None:
        root = HuffmanInternal()
    elif root.is_leaf:
        raise MalformedCodeError(
            f"Code {code!r} for symbol {symbol} cannot follow the empty code of symbol {root.symbol}")

    node = root
    for depth, ch in enumerate(code[:-1], start=1):
        child = node.left if ch == "0" else node.right
        if child is None:
            child = HuffmanInternal()
            if ch == "0":
                node.left = child
            else:
                node.right = child
        elif child.is_leaf:
            raise MalformedCodeError(
                f"Code {code!r} for symbol {symbol} has the code {code[:depth]!r} "
                f"of symbol {child.symbol} as a prefix")
        node = child

    existing = node.left if code[-1] == "0" else node.right
    if existing is not None:
        if existing.is_leaf:
            raise MalformedCodeError(f"Code {code!r} given to both symbol {existing.symbol} and symbol {symbol}")
        raise MalformedCodeError(f"Code {code!r} for symbol {symbol} is a prefix of codes already in the table")
    if code[-1] == "0":
        node.left = leaf
    else:
        node.right = leaf
    return root


def deserialize(pairs: Iterable[CodePair]) -> Node:
    root: Optional[Node] = None
    for pair in pairs:
        try:
            symbol, code = pair
        except (TypeError, ValueError):
            raise MalformedCodeError(f"Expected a (symbol, code) pair, got {pair!r}") from None
        root = insert(root, symbol, code)
    if root is None:
        raise MalformedCodeError("Code table is empty")
    return root


def parse_code_table(source: Union[str, Iterable[str]]) -> List[CodePair]:
    lines = source.splitlines() if isinstance(source, str) else source
    pairs: List[CodePair] = []
    symbol_line = None
    line_no = 0
    for line_no, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if symbol_line is None:
            # plain base-10 digits only, so no sign, underscores or spaces
            if not (line.isascii() and line.isdigit()):
                raise MalformedCodeError(f"Expected a non-negative symbol on line {line_no}, got {line!r}")
            symbol_line = int(line)
            continue
        _check_code(line, line_no)
        pairs.append((symbol_line, line))
        symbol_line = None
    if symbol_line is not None:
        raise MalformedCodeError(f"Symbol {symbol_line} on line {line_no} has no code line")
    return pairs


def read_code_table(stream: IO[str]) -> List[CodePair]:
    return parse_code_table(stream)


def dump_code_table(pairs: Iterable[CodePair]) -> str:
    return "".join(f"{symbol}\n{code}\n" for symbol, code in pairs)


def write_code_table(pairs: Iterable[CodePair], stream: IO[str]) -> None:
    for symbol, code in pairs:
        stream.write(f"{symbol}\n{code}\n")


def save_tree(root: Node, stream: IO[str]) -> None:
    write_code_table(serialize_tree(root), stream)


def load_tree(stream: IO[str]) -> Node:
    return deserialize(read_code_table(stream))
