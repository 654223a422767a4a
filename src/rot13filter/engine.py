"""Command loop for the filter side of the long-running filter protocol.

One request is read and answered completely before the next one is read.
Any :class:`ProtocolError` escapes the loop and ends the session.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from .constants import (
    ABORT_PATHNAME,
    ERROR_PATHNAME,
    INVALID_DELAY_PATHNAME,
    MISSING_DELAY_PATHNAME,
    UNFILTERED_PATHNAME,
    WRITE_FAIL_SUFFIX,
)
from .delay import DelayRegistry, DelayState
from .handshake import CapabilitySet, split_key_value
from .pktline import EndOfStream, PacketReader, PacketWriter, ProtocolError
from .rot13 import rot13

log = logging.getLogger(__name__)

INFO_KEYS = ("ref=", "treeish=", "blob=")


class Command(enum.Enum):
    CLEAN = "clean"
    SMUDGE = "smudge"
    LIST_AVAILABLE_BLOBS = "list_available_blobs"

    @classmethod
    def parse(cls, value: str) -> "Command":
        try:
            return cls(value)
        except ValueError:
            raise ProtocolError(f"bad command '{value}'") from None


class Status(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    ABORT = "abort"
    DELAYED = "delayed"


@dataclass(slots=True)
class Request:
    command: Command
    pathname: str
    can_delay: bool = False
    info: list[str] = field(default_factory=list)
    content: bytes = b""


@dataclass(slots=True)
class FilterEngine:
    reader: PacketReader
    writer: PacketWriter
    registry: DelayRegistry
    capabilities: CapabilitySet
    always_delay: bool = False

    def run(self) -> None:
        while True:
            try:
                line = self.reader.read_line()
            except EndOfStream:
                log.info("STOP")
                return
            command = Command.parse(split_key_value(line, "command"))
            if command is Command.LIST_AVAILABLE_BLOBS:
                self.list_available_blobs()
            else:
                self.handle_item(command)

    def _write_status(self, status: Status) -> None:
        self.writer.write_line(f"status={status.value}")
        self.writer.write_flush()

    def list_available_blobs(self) -> list[str]:
        if self.reader.read_line() is not None:
            raise ProtocolError("bad list_available_blobs end")

        available = []
        for name, entry in self.registry.requested_entries():
            entry.count -= 1
            if name == INVALID_DELAY_PATHNAME:
                # Announce a path that was never delayed.
                self.writer.write_line(f"pathname={UNFILTERED_PATHNAME}")
            if name == MISSING_DELAY_PATHNAME:
                continue
            if entry.count == 0:
                available.append(name)
                self.writer.write_line(f"pathname={name}")
        self.writer.write_flush()

        log.info("IN: %s [OK]", " ".join([Command.LIST_AVAILABLE_BLOBS.value, *sorted(available)]))
        self._write_status(Status.SUCCESS)
        return available

    def read_request(self, command: Command) -> Request:
        try:
            line = self.reader.read_line()
        except EndOfStream:
            raise ProtocolError("unexpected EOF while expecting pathname") from None
        request = Request(command=command, pathname=split_key_value(line, "pathname"))

        for meta in self.reader.read_until_flush():
            if meta == "can-delay=1":
                request.can_delay = True
                self.registry.request(request.pathname, always_delay=self.always_delay)
            elif meta.startswith(INFO_KEYS):
                request.info.append(meta)
            else:
                # Real filters must ignore unknown keys; this one is strict on purpose.
                raise ProtocolError(f"Unknown message '{meta}'")

        request.content = self.reader.read_packetized()
        return request

    def resolve_output(self, request: Request) -> bytes:
        entry = self.registry.get(request.pathname)
        if entry is not None and entry.output is not None:
            return entry.output
        if request.pathname in (ERROR_PATHNAME, ABORT_PATHNAME):
            return b""
        if request.command.value in self.capabilities:
            return rot13(request.content)
        raise ProtocolError(f"bad command '{request.command.value}'")

    def handle_item(self, command: Command) -> Status:
        request = self.read_request(command)
        trace = " ".join(["IN:", command.value, request.pathname, *request.info, str(len(request.content))])
        output = self.resolve_output(request)

        if request.pathname == ERROR_PATHNAME:
            log.info("%s [OK] -- [ERROR]", trace)
            self._write_status(Status.ERROR)
            return Status.ERROR

        if request.pathname == ABORT_PATHNAME:
            log.info("%s [OK] -- [ABORT]", trace)
            self._write_status(Status.ABORT)
            return Status.ABORT

        entry = self.registry.get(request.pathname)
        if command is Command.SMUDGE and entry is not None and entry.state is DelayState.PENDING:
            log.info("%s [OK] -- [DELAYED]", trace)
            self._write_status(Status.DELAYED)
            self.registry.mark_delivered(request.pathname, output)
            return Status.DELAYED

        self._write_status(Status.SUCCESS)
        if request.pathname == f"{command.value}{WRITE_FAIL_SUFFIX}":
            log.info("%s [OK] -- [WRITE FAIL]", trace)
            raise ProtocolError(f"{command.value} write error")

        packets = self.writer.write_packetized(output)
        self.writer.write_flush()
        log.info("%s [OK] -- OUT: %d %s [OK]", trace, len(output), "." * packets)
        # Empty trailer keeps status=success.
        self.writer.write_flush()
        return Status.SUCCESS
