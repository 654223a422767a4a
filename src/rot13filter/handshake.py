"""Version and capability negotiation.

The driver speaks first: ``<name>-client``, ``version=<N>``, flush. We answer
``<name>-server``, ``version=<N>``, flush. Then the driver lists its
capabilities and we reply with the subset we were asked to use.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .constants import PROTOCOL_NAME, PROTOCOL_VERSION
from .pktline import EndOfStream, PacketReader, PacketWriter, ProtocolError

log = logging.getLogger(__name__)


class CapabilitySet:
    """Insertion-ordered set of capability tokens."""

    def __init__(self, tokens: Iterable[str] = ()):
        self._tokens: dict[str, None] = dict.fromkeys(tokens)

    def add(self, token: str) -> None:
        self._tokens.setdefault(token, None)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        return f"CapabilitySet({list(self)!r})"


def split_key_value(line: str | None, key: str) -> str:
    """Return the value of a ``key=value`` line, failing on anything else."""
    prefix = f"{key}="
    if line is None or not line.startswith(prefix) or len(line) == len(prefix):
        raise ProtocolError(f"bad {key}: '{line or ''}'")
    return line[len(prefix) :]


def _expect_line(reader: PacketReader, expected: str, what: str) -> None:
    try:
        line = reader.read_line()
    except EndOfStream:
        line = None
    if line != expected:
        raise ProtocolError(f"bad {what}: '{line or ''}'")


def initialize(
    reader: PacketReader,
    writer: PacketWriter,
    name: str = PROTOCOL_NAME,
    version: int = PROTOCOL_VERSION,
) -> None:
    _expect_line(reader, f"{name}-client", "initialize")
    _expect_line(reader, f"version={version}", "version")

    trailing = reader.read_line()
    if trailing is not None:
        raise ProtocolError(f"bad version end: '{trailing}'")

    writer.write_line(f"{name}-server")
    writer.write_line(f"version={version}")
    writer.write_flush()


def read_capabilities(reader: PacketReader) -> CapabilitySet:
    caps = CapabilitySet()
    for line in reader.read_until_flush():
        caps.add(split_key_value(line, "capability"))
    log.debug("remote capabilities: %s", ", ".join(caps))
    return caps


def check_required(remote: CapabilitySet, required: Iterable[str]) -> None:
    for cap in required:
        if cap not in remote:
            raise ProtocolError(f"required '{cap}' capability not available from remote")


def advertise(writer: PacketWriter, remote: CapabilitySet, ours: Iterable[str]) -> None:
    for cap in ours:
        if cap not in remote:
            raise ProtocolError(f"our capability '{cap}' is not available from remote")
        writer.write_line(f"capability={cap}\n")
    writer.write_flush()


def negotiate(
    reader: PacketReader,
    writer: PacketWriter,
    supported: Iterable[str],
    requested: Iterable[str],
) -> CapabilitySet:
    remote = read_capabilities(reader)
    check_required(remote, supported)
    advertise(writer, remote, requested)
    return remote
