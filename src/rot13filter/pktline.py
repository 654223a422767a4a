"""pkt-line framing.

Every packet starts with four lowercase hex digits giving the packet length,
header included. ``0000`` is a flush packet and carries no payload.
"""
from __future__ import annotations

import enum
import logging
import string
from dataclasses import dataclass
from typing import BinaryIO

from .constants import FLUSH_PKT, LARGE_PACKET_DATA_MAX, LARGE_PACKET_MAX, PKT_HEADER_LEN

log = logging.getLogger(__name__)

_HEX_DIGITS = string.hexdigits.encode()


class ProtocolError(Exception):
    pass


class EndOfStream(ProtocolError):
    """The input ended cleanly on a packet boundary."""


class PacketKind(enum.IntEnum):
    DATA = 0
    FLUSH = 1
    EOF = 2


@dataclass(frozen=True, slots=True)
class Packet:
    kind: PacketKind
    payload: bytes = b""

    @property
    def is_flush(self) -> bool:
        return self.kind is PacketKind.FLUSH

    def to_bytes(self) -> bytes:
        if self.kind is PacketKind.FLUSH:
            return FLUSH_PKT
        if self.kind is not PacketKind.DATA:
            raise ValueError(f"cannot encode {self.kind.name} packet")
        size = len(self.payload) + PKT_HEADER_LEN
        if size > LARGE_PACKET_MAX:
            raise ValueError(f"packet too large: {size}")
        return b"%04x" % size + self.payload

    @staticmethod
    def data(payload: bytes) -> "Packet":
        return Packet(kind=PacketKind.DATA, payload=payload)

    @staticmethod
    def flush() -> "Packet":
        return Packet(kind=PacketKind.FLUSH)


def parse_length(header: bytes) -> int:
    if len(header) != PKT_HEADER_LEN or header.strip(_HEX_DIGITS):
        raise ProtocolError(f"protocol error: bad line length character: {header!r}")
    size = int(header, 16)
    if 0 < size < PKT_HEADER_LEN or size > LARGE_PACKET_MAX:
        raise ProtocolError(f"protocol error: bad line length {size}")
    return size


class PacketReader:
    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def _read_exact(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self.stream.read(n - len(buf))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def read_packet(self) -> Packet:
        header = self._read_exact(PKT_HEADER_LEN)
        if not header:
            return Packet(kind=PacketKind.EOF)
        if len(header) < PKT_HEADER_LEN:
            raise ProtocolError("the remote end hung up unexpectedly")

        size = parse_length(header)
        if size == 0:
            log.debug("packet: < 0000")
            return Packet.flush()

        payload = self._read_exact(size - PKT_HEADER_LEN)
        if len(payload) != size - PKT_HEADER_LEN:
            raise ProtocolError("the remote end hung up unexpectedly")
        log.debug("packet: < %r", payload)
        return Packet.data(payload)

    def read_line(self) -> str | None:
        """Read one text packet.

        Returns the line without its trailing newline, or ``None`` for a
        flush packet. Raises :class:`EndOfStream` when the input is
        exhausted, so callers that accept EOF must catch it explicitly.
        """
        pkt = self.read_packet()
        if pkt.kind is PacketKind.EOF:
            raise EndOfStream("unexpected end of input")
        if pkt.is_flush:
            return None
        line = pkt.payload
        if line.endswith(b"\n"):
            line = line[:-1]
        return line.decode("utf-8", errors="surrogateescape")

    def read_until_flush(self) -> list[str]:
        lines = []
        while True:
            line = self.read_line()
            if line is None:
                return lines
            lines.append(line)

    def read_packetized(self) -> bytes:
        buf = bytearray()
        while True:
            pkt = self.read_packet()
            if pkt.kind is PacketKind.EOF:
                raise ProtocolError("unexpected EOF while reading content")
            if pkt.is_flush:
                return bytes(buf)
            buf += pkt.payload


class PacketWriter:
    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def _write(self, raw: bytes) -> None:
        try:
            self.stream.write(raw)
        except OSError as e:
            raise ProtocolError(f"packet write failed: {e}") from e

    def write_packet(self, data: bytes) -> None:
        self._write(Packet.data(data).to_bytes())
        log.debug("packet: > %r", data)

    def write_line(self, text: str) -> None:
        self.write_packet(text.encode("utf-8", errors="surrogateescape"))

    def write_flush(self) -> None:
        self._write(FLUSH_PKT)
        log.debug("packet: > 0000")
        try:
            self.stream.flush()
        except OSError as e:
            raise ProtocolError(f"flush failed: {e}") from e

    def write_packetized(self, data: bytes) -> int:
        """Write *data* as consecutive data packets and return how many were
        written. The terminating flush is left to the caller."""
        count = 0
        for offset in range(0, len(data), LARGE_PACKET_DATA_MAX):
            self.write_packet(data[offset : offset + LARGE_PACKET_DATA_MAX])
            count += 1
        return count
