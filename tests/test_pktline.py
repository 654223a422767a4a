from __future__ import annotations

import io

import pytest

from rot13filter.constants import LARGE_PACKET_DATA_MAX
from rot13filter.pktline import (
    EndOfStream,
    Packet,
    PacketKind,
    PacketReader,
    PacketWriter,
    ProtocolError,
)


def test_data_packet_bytes():
    assert Packet.data(b"hello").to_bytes() == b"0009hello"
    assert Packet.flush().to_bytes() == b"0000"


def test_oversized_packet():
    with pytest.raises(ValueError):
        Packet.data(b"x" * (LARGE_PACKET_DATA_MAX + 1)).to_bytes()


def test_read_line_strips_one_newline():
    r = PacketReader(io.BytesIO(b"000ahello\n000bhello\n\n"))
    assert r.read_line() == "hello"
    assert r.read_line() == "hello\n"


def test_flush_is_not_eof():
    r = PacketReader(io.BytesIO(b"0000"))
    assert r.read_line() is None
    with pytest.raises(EndOfStream):
        r.read_line()
    assert r.read_packet().kind is PacketKind.EOF


def test_read_until_flush():
    r = PacketReader(io.BytesIO(b"0005a0005b00000005c"))
    assert r.read_until_flush() == ["a", "b"]
    assert r.read_line() == "c"


@pytest.mark.parametrize("raw", [b"0001", b"0003", b"zzzz", b"000\n", b"-001", b"fff1" + b"x" * 10])
def test_bad_length(raw):
    with pytest.raises(ProtocolError):
        PacketReader(io.BytesIO(raw)).read_packet()


@pytest.mark.parametrize("raw", [b"00", b"0009hel"])
def test_truncated_packet(raw):
    with pytest.raises(ProtocolError) as exc:
        PacketReader(io.BytesIO(raw)).read_packet()
    assert not isinstance(exc.value, EndOfStream)


def test_packetized_split():
    out = io.BytesIO()
    w = PacketWriter(out)
    data = b"a" * (LARGE_PACKET_DATA_MAX * 2 + 10)
    assert w.write_packetized(data) == 3
    w.write_flush()

    r = PacketReader(io.BytesIO(out.getvalue()))
    assert r.read_packetized() == data


def test_packetized_empty():
    out = io.BytesIO()
    assert PacketWriter(out).write_packetized(b"") == 0
    assert out.getvalue() == b""


def test_packetized_eof_is_fatal():
    with pytest.raises(ProtocolError):
        PacketReader(io.BytesIO(b"0008data")).read_packetized()


def test_write_error_is_protocol_error():
    class Broken(io.BytesIO):
        def write(self, b):
            raise BrokenPipeError("gone")

    with pytest.raises(ProtocolError):
        PacketWriter(Broken()).write_line("status=success")
