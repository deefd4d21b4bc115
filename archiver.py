import logging
import struct
from typing import BinaryIO, Callable, NamedTuple, Optional

from bitops import BLOCK, BitReader, BitWriter
from errors import FormatError
from huffman import (
    ALPHABET,
    build_codes,
    build_tree,
    delete_tree,
    dump_tree,
    pad_histogram,
    rebuild_tree,
)

log = logging.getLogger(__name__)

MAGIC = 0xBEEFD00D  #: huffpack magic number
HEADER_FORMAT = "<IHHQ"  #: magic, permissions, tree_size, file_size
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


class Header:
    """Fixed-size record in front of every compressed stream.

    Layout (little-endian, 16 bytes):
    - Magic: uint32
    - Permissions: uint16 (POSIX mode bits of the source, informational)
    - Tree size: uint16 (length of the tree dump that follows)
    - File size: uint64 (number of symbols to decode)

    :ivar permissions: Mode bits of the source file.
    :type permissions: int
    :ivar tree_size: Length of the serialized tree in bytes.
    :type tree_size: int
    :ivar file_size: Number of bytes of the original input.
    :type file_size: int
    """

    def __init__(self, permissions: int, tree_size: int, file_size: int):
        self.permissions = permissions
        self.tree_size = tree_size
        self.file_size = file_size

    def pack(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT,
            MAGIC,
            self.permissions & 0xFFFF,
            self.tree_size,
            self.file_size,
        )

    @classmethod
    def unpack(cls, raw: bytes) -> "Header":
        """Parse a packed header.

        :param raw: Exactly ``HEADER_SIZE`` bytes.
        :type raw: bytes
        :returns: Parsed header.
        :rtype: Header
        :raises FormatError: If ``raw`` is short or the magic is wrong.
        """
        if len(raw) < HEADER_SIZE:
            raise FormatError(
                f"Truncated header ({len(raw)} of {HEADER_SIZE} bytes)"
            )
        magic, permissions, tree_size, file_size = struct.unpack(
            HEADER_FORMAT, raw[:HEADER_SIZE]
        )
        if magic != MAGIC:
            raise FormatError(f"Invalid magic number: 0x{magic:08x}")
        return cls(permissions, tree_size, file_size)

    def __eq__(self, other):
        if not isinstance(other, Header):
            return NotImplemented
        return (self.permissions, self.tree_size, self.file_size) == (
            other.permissions, other.tree_size, other.file_size
        )

    def __repr__(self):
        return (
            f"Header(permissions=0o{self.permissions:o}, "
            f"tree_size={self.tree_size}, file_size={self.file_size})"
        )


class Stats(NamedTuple):
    """Byte counts of one compression or decompression session."""

    file_size: int
    compressed_size: int
    bytes_read: int
    bytes_written: int

    @property
    def space_saving(self) -> float:
        """Percentage of space saved relative to the uncompressed size."""
        if self.file_size == 0:
            return 0.0
        return 100.0 * (1 - self.compressed_size / self.file_size)


class Compressor:
    """Huffman compressor writing header, tree dump and packed body.

    :ivar block_size: Block size used for scanning and for the body.
    :type block_size: int
    """

    def __init__(self, block_size: int = BLOCK):
        self.block_size = block_size

    def compress(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        permissions: int = 0,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> Stats:
        """Compress ``source`` into ``sink``.

        ``source`` is read twice: once to count symbols, once to encode
        them. It must therefore be seekable; both passes start at its
        current position.

        :param source: Seekable binary stream to compress.
        :type source: BinaryIO
        :param sink: Binary stream receiving the compressed data.
        :type sink: BinaryIO
        :param permissions: Mode bits stored in the header.
        :type permissions: int
        :param on_progress: Optional callback ``on_progress(done, total)``
            called after each encoded block with input bytes processed.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Session statistics.
        :rtype: Stats
        """
        start = source.tell()
        hist = self._histogram(source)
        file_size = sum(hist)
        pad_histogram(hist)

        root = build_tree(hist)
        try:
            table = build_codes(root)
            tree = dump_tree(root)
            header = Header(permissions, len(tree), file_size)
            log.debug("compressing: %r, %d leaves", header, len(table))

            sink.write(header.pack())
            sink.write(tree)

            source.seek(start)
            writer = BitWriter(sink, self.block_size)
            done = 0
            while True:
                chunk = source.read(self.block_size)
                if not chunk:
                    break
                done += len(chunk)
                if done > file_size:
                    raise FormatError(
                        f"Source grew between passes (over {file_size} bytes)"
                    )
                for byte in chunk:
                    code = table.get(byte)
                    if code is None:
                        raise FormatError(
                            f"Source changed between passes "
                            f"(byte 0x{byte:02x} was not counted)"
                        )
                    writer.write_code(code)
                if on_progress is not None:
                    on_progress(done, file_size)
            if done != file_size:
                raise FormatError(
                    f"Source shrank between passes ({done} != {file_size})"
                )
            writer.flush()
        finally:
            delete_tree(root)

        written = HEADER_SIZE + len(tree) + writer.bytes_written
        stats = Stats(
            file_size=file_size,
            compressed_size=written,
            bytes_read=file_size,
            bytes_written=written,
        )
        log.debug("compressed: %r", stats)
        return stats

    def _histogram(self, source: BinaryIO):
        hist = [0] * ALPHABET
        while True:
            chunk = source.read(self.block_size)
            if not chunk:
                break
            for byte in chunk:
                hist[byte] += 1
        return hist


class Decompressor:
    """Huffman decompressor for streams produced by :class:`Compressor`.

    :ivar block_size: Block size used to read the body.
    :type block_size: int
    :ivar header: Header of the last decompressed stream.
    :type header: Header | None
    """

    def __init__(self, block_size: int = BLOCK):
        self.block_size = block_size
        self.header: Optional[Header] = None

    def decompress(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> Stats:
        """Decompress ``source`` into ``sink``.

        :param source: Binary stream positioned at a huffpack header.
        :type source: BinaryIO
        :param sink: Binary stream receiving the original bytes.
        :type sink: BinaryIO
        :param on_progress: Optional callback ``on_progress(done, total)``
            called after each output block with bytes recovered so far.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Session statistics.
        :rtype: Stats
        :raises FormatError: If the header is invalid, the tree dump is
            malformed or truncated, or the body ends too early.
        """
        self.header = header = Header.unpack(source.read(HEADER_SIZE))
        log.debug("decompressing: %r", header)

        tree = source.read(header.tree_size)
        if len(tree) != header.tree_size:
            raise FormatError(
                f"Truncated tree ({len(tree)} of {header.tree_size} bytes)"
            )
        root = rebuild_tree(tree)
        try:
            if root.is_leaf:
                raise FormatError("Tree has no internal node")
            reader = BitReader(source, self.block_size)
            self._decode(reader, root, header.file_size, sink, on_progress)
        finally:
            delete_tree(root)

        read = HEADER_SIZE + len(tree) + reader.bytes_read
        stats = Stats(
            file_size=header.file_size,
            compressed_size=read,
            bytes_read=read,
            bytes_written=header.file_size,
        )
        log.debug("decompressed: %r", stats)
        return stats

    def _decode(self, reader, root, file_size, sink, on_progress):
        out = bytearray()
        emitted = 0
        node = root
        while emitted < file_size:
            bit = reader.read_bit()
            if bit is None:
                raise FormatError(
                    f"Body ends after {emitted} of {file_size} symbols"
                )
            node = node.right if bit else node.left
            if node.is_leaf:
                out.append(node.symbol)
                emitted += 1
                node = root
                if len(out) == self.block_size:
                    sink.write(out)
                    out = bytearray()
                    if on_progress is not None:
                        on_progress(emitted, file_size)
        if out:
            sink.write(out)
        if on_progress is not None:
            on_progress(emitted, file_size)
