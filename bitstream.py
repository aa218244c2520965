from typing import Iterable, Protocol, Tuple, Union


class BitSource(Protocol): # anything the decoder can pull bits from
    def has_next_bit(self) -> bool: ...

    def next_bit(self) -> int: ...


class BitStringSource:
    """
    Bit source over an in-memory sequence of bits, either a string of
    '0'/'1' characters or an iterable of 0/1 ints
    """
    def __init__(self, bits: Union[str, Iterable[int]]):
        values = []
        for b in bits:
            if b in ('0', 0):
                values.append(0)
            elif b in ('1', 1):
                values.append(1)
            else:
                raise ValueError(f"Not a bit: {b!r}")
        self.bits = values
        self.pos = 0

    def has_next_bit(self) -> bool:
        return self.pos < len(self.bits)

    def next_bit(self) -> int:
        if self.pos >= len(self.bits):
            raise EOFError("No more bits in source")
        bit = self.bits[self.pos]
        self.pos += 1
        return bit

    def remaining(self) -> int:
        return len(self.bits) - self.pos


class BitReader:
    """
    Reads bits MSB-first out of packed bytes. The last pad_bits bits of the
    buffer are padding written by BitWriter.finish and are never returned
    """
    def __init__(self, data: bytes, pad_bits: int = 0):
        if not 0 <= pad_bits <= 7:
            raise ValueError(f"pad_bits must be in 0..7, got {pad_bits}")
        if pad_bits and not data:
            raise ValueError("pad_bits given for an empty buffer")
        self.data = bytes(data)
        self.total_bits = len(self.data) * 8 - pad_bits
        self.bit_index = 0

    def has_next_bit(self) -> bool:
        return self.bit_index < self.total_bits

    def next_bit(self) -> int:
        if self.bit_index >= self.total_bits:
            raise EOFError("No more bits in buffer")
        byte = self.data[self.bit_index >> 3]
        bit = (byte >> (7 - (self.bit_index & 7))) & 1
        self.bit_index += 1
        return bit


class BitWriter:
    def __init__(self) -> None:
        self.buf = bytearray()
        self.acc = 0
        self.acc_bits = 0
        self.bit_count = 0 # bits written so far, padding excluded
        self.pad_bits = 0

    def write_bit(self, bit: int) -> None:
        self.acc = (self.acc << 1) | (bit & 1)
        self.acc_bits += 1
        self.bit_count += 1
        if self.acc_bits == 8:
            self.buf.append(self.acc & 0xFF)
            self.acc = 0
            self.acc_bits = 0

    def write(self, code: int, length: int) -> None: # integer code, most significant bit first
        for i in range(length - 1, -1, -1):
            self.write_bit((code >> i) & 1)

    def write_code(self, code: str) -> None: # code as a '0'/'1' string, as produced by the serializer
        for ch in code:
            if ch == '0':
                self.write_bit(0)
            elif ch == '1':
                self.write_bit(1)
            else:
                raise ValueError(f"Not a bit: {ch!r}")

    def finish(self) -> bytes:
        if self.acc_bits > 0:
            self.pad_bits = 8 - self.acc_bits
            self.buf.append((self.acc << self.pad_bits) & 0xFF)
            self.acc = 0
            self.acc_bits = 0
        return bytes(self.buf)


def pack_bits(bit_string: str) -> Tuple[bytes, int]:
    """
    Packs a '0'/'1' string into bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    writer = BitWriter()
    writer.write_code(bit_string)
    packed = writer.finish()
    return packed, writer.pad_bits
