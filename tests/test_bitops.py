import io

import pytest

from bitops import BitReader, BitWriter


class CountingSink(io.BytesIO):
    """BytesIO that remembers the size of every write call."""

    def __init__(self):
        super().__init__()
        self.writes = []

    def write(self, data):
        self.writes.append(len(data))
        return super().write(data)


def test_bitwriter_packs_lsb_first_and_pads():
    sink = io.BytesIO()
    bw = BitWriter(sink)
    bw.write_code((1, 0, 1))
    bw.write_code((1, 1, 1, 1, 0, 0, 0, 1))
    assert bw.flush() == 2
    assert sink.getvalue() == bytes([0b01111101, 0b00000100])
    assert bw.bits_written == 11
    assert bw.bytes_written == 2


def test_bitwriter_flushes_full_blocks_in_one_write():
    sink = CountingSink()
    bw = BitWriter(sink, block_size=2)
    bw.write_code([1] * 16)
    assert sink.writes == [2]
    assert bw.bit_index == 0
    bw.write_code([0, 1])
    bw.flush()
    assert sink.writes == [2, 1]
    assert sink.getvalue() == b"\xff\xff\x02"
    assert bw.bits_written == 18


def test_bitwriter_padding_clears_stale_bits():
    sink = io.BytesIO()
    bw = BitWriter(sink, block_size=1)
    bw.write_code([1] * 8)
    bw.write_code([1])
    bw.flush()
    assert sink.getvalue() == b"\xff\x01"


def test_bitwriter_empty_flush_writes_nothing():
    sink = CountingSink()
    bw = BitWriter(sink)
    assert bw.flush() == 0
    assert sink.writes == []


def test_bitwriter_flush_only_once():
    bw = BitWriter(io.BytesIO())
    bw.write_code((1,))
    bw.flush()
    with pytest.raises(ValueError):
        bw.flush()
    with pytest.raises(ValueError):
        bw.write_code((0,))


def test_bitreader_reads_lsb_first_then_signals_end():
    br = BitReader(io.BytesIO(bytes([0b00000101, 0b10000000])))
    bits = [br.read_bit() for _ in range(16)]
    assert bits == [1, 0, 1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1]
    assert br.read_bit() is None
    assert br.read_bit() is None
    assert br.bytes_read == 2


def test_bitreader_reads_blocks_lazily():
    src = io.BytesIO(b"\x01\x02\x03")
    br = BitReader(src, block_size=2)
    assert br.read_bit() == 1
    assert br.bytes_read == 2 and src.tell() == 2
    for _ in range(15):
        br.read_bit()
    assert br.bytes_read == 2
    assert br.read_bit() == 1
    assert br.bytes_read == 3


def test_writer_and_reader_agree():
    codes = [(1,), (0, 1, 1), (0,) * 9, (1, 0) * 7]
    sink = io.BytesIO()
    bw = BitWriter(sink, block_size=3)
    for code in codes:
        bw.write_code(code)
    bw.flush()
    br = BitReader(io.BytesIO(sink.getvalue()), block_size=3)
    expected = [bit for code in codes for bit in code]
    assert [br.read_bit() for _ in expected] == expected


def test_block_size_must_be_positive():
    with pytest.raises(ValueError):
        BitWriter(io.BytesIO(), block_size=0)
    with pytest.raises(ValueError):
        BitReader(io.BytesIO(), block_size=0)
