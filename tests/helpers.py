from __future__ import annotations

import io

from rot13filter.pktline import PacketKind, PacketReader, PacketWriter

FLUSH = None


def encode(*items: str | bytes | None) -> bytes:
    """Encode text lines, raw content and flushes (None) as pkt-lines.

    Bytes items are split across as many data packets as they need; empty
    bytes write no packet at all.
    """
    out = io.BytesIO()
    writer = PacketWriter(out)
    for item in items:
        if item is FLUSH:
            writer.write_flush()
        elif isinstance(item, str):
            writer.write_line(item)
        else:
            writer.write_packetized(item)
    return out.getvalue()


def decode(raw: bytes) -> list[bytes | None]:
    reader = PacketReader(io.BytesIO(raw))
    packets: list[bytes | None] = []
    while True:
        pkt = reader.read_packet()
        if pkt.kind is PacketKind.EOF:
            return packets
        packets.append(None if pkt.is_flush else pkt.payload)


def handshake(*caps: str) -> bytes:
    return encode(
        "git-filter-client",
        "version=2",
        FLUSH,
        *[f"capability={c}" for c in caps],
        FLUSH,
    )


def item(command: str, pathname: str, content: bytes, *meta: str) -> bytes:
    return encode(f"command={command}", f"pathname={pathname}", *meta, FLUSH, content, FLUSH)


def list_blobs() -> bytes:
    return encode("command=list_available_blobs", FLUSH)
