from typing import BinaryIO, Iterable, Optional

BLOCK = 4096  #: Bytes exchanged with the source/sink per block


class BitWriter:
    """Block-buffered bit writer.

    Bits are packed least-significant-bit first into a block buffer which
    is written to ``sink`` whenever it fills up.

    :ivar sink: Binary stream receiving the packed blocks.
    :type sink: BinaryIO
    :ivar block_size: Size of the block buffer in bytes.
    :type block_size: int
    :ivar buffer: Block buffer.
    :type buffer: bytearray
    :ivar bit_index: Bit cursor inside ``buffer``.
    :type bit_index: int
    :ivar bits_written: Total bits passed to :meth:`write_code`.
    :type bits_written: int
    :ivar bytes_written: Bytes written to ``sink`` so far.
    :type bytes_written: int
    """

    def __init__(self, sink: BinaryIO, block_size: int = BLOCK):
        """Initialize an empty bit writer.

        :param sink: Binary stream to write to.
        :type sink: BinaryIO
        :param block_size: Block size in bytes.
        :type block_size: int
        :returns: None
        :rtype: None
        """
        if block_size <= 0:
            raise ValueError(f"Block size must be positive: {block_size}")
        self.sink = sink
        self.block_size = block_size
        self.buffer = bytearray(block_size)
        self.bit_index = 0
        self.bits_written = 0
        self.bytes_written = 0
        self._flushed = False

    def write_code(self, code: Iterable[int]):
        """Append the bits of ``code`` in order.

        :param code: Bits (0 or 1), first bit first.
        :type code: Iterable[int]
        :returns: None
        :rtype: None
        :raises ValueError: If the writer was already flushed.
        """
        if self._flushed:
            raise ValueError("Cannot write to a flushed BitWriter")
        block_bits = self.block_size * 8
        for bit in code:
            byte, offset = divmod(self.bit_index, 8)
            if bit:
                self.buffer[byte] |= 1 << offset
            else:
                self.buffer[byte] &= ~(1 << offset) & 0xFF
            self.bit_index += 1
            self.bits_written += 1
            if self.bit_index == block_bits:
                self._write(self.buffer)
                self.bit_index = 0

    def flush(self) -> int:
        """Write the partially filled block, zero-padding the last byte.

        Must be called exactly once, after the last :meth:`write_code`.

        :returns: Number of bytes written by this call.
        :rtype: int
        :raises ValueError: If called a second time.
        """
        if self._flushed:
            raise ValueError("BitWriter already flushed")
        nbytes = (self.bit_index + 7) // 8
        if self.bit_index % 8:
            last = nbytes - 1
            self.buffer[last] &= (1 << (self.bit_index % 8)) - 1
        if nbytes:
            self._write(self.buffer[:nbytes])
        self.bit_index = 0
        self._flushed = True
        return nbytes

    def _write(self, data):
        self.sink.write(bytes(data))
        self.bytes_written += len(data)


class BitReader:
    """Block-buffered bit reader.

    Reads whole blocks from ``source`` on demand and hands out their bits
    least-significant-bit first.

    :ivar source: Binary stream to read from.
    :type source: BinaryIO
    :ivar block_size: Bytes requested per read.
    :type block_size: int
    :ivar block: Most recently read block.
    :type block: bytes
    :ivar pos: Index of the current byte in ``block``.
    :type pos: int
    :ivar bit_pos: Index of the next bit in the current byte (0-7).
    :type bit_pos: int
    :ivar bytes_read: Bytes read from ``source`` so far.
    :type bytes_read: int
    """

    def __init__(self, source: BinaryIO, block_size: int = BLOCK):
        if block_size <= 0:
            raise ValueError(f"Block size must be positive: {block_size}")
        self.source = source
        self.block_size = block_size
        self.block = b""
        self.pos = 0
        self.bit_pos = 0
        self.bytes_read = 0

    def read_bit(self) -> Optional[int]:
        """Return the next bit of the stream.

        :returns: ``0`` or ``1``, or ``None`` once the source is exhausted.
        :rtype: int | None
        """
        if self.pos >= len(self.block):
            self.block = self.source.read(self.block_size)
            if not self.block:
                return None
            self.bytes_read += len(self.block)
            self.pos = 0
            self.bit_pos = 0
        bit = (self.block[self.pos] >> self.bit_pos) & 1
        self.bit_pos += 1
        if self.bit_pos == 8:
            self.bit_pos = 0
            self.pos += 1
        return bit
