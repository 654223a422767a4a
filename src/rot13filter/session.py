from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Tuple

from .constants import SUPPORTED_CAPABILITIES
from .delay import DelayRegistry
from .engine import FilterEngine
from .handshake import CapabilitySet, initialize, negotiate
from .pktline import PacketReader, PacketWriter, ProtocolError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterConfig:
    log_path: str
    capabilities: Tuple[str, ...]
    always_delay: bool = False
    log_level: str = "INFO"


def run_filter(config: FilterConfig, stdin: BinaryIO, stdout: BinaryIO) -> None:
    """Serve one driver until it closes our input.

    Raises :class:`ProtocolError` on the first malformed or unsupported
    message; nothing is retried.
    """
    reader = PacketReader(stdin)
    writer = PacketWriter(stdout)
    registry = DelayRegistry.with_fixtures()
    requested = CapabilitySet(config.capabilities)

    log.info("START")
    try:
        initialize(reader, writer)
        negotiate(reader, writer, SUPPORTED_CAPABILITIES, requested)
        log.info("init handshake complete")

        FilterEngine(
            reader=reader,
            writer=writer,
            registry=registry,
            capabilities=requested,
            always_delay=config.always_delay,
        ).run()
    except ProtocolError as e:
        log.error("fatal: %s", e)
        raise
    finally:
        registry.clear()
