from __future__ import annotations

import argparse
import logging
import sys
from typing import BinaryIO

from .constants import EXIT_FATAL
from .pktline import ProtocolError
from .session import FilterConfig, run_filter


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rot13-filter",
        description="rot13 filter process for the git long-running filter protocol (version 2).",
    )
    p.add_argument(
        "--always-delay",
        action="store_true",
        help="delay every path sent with can-delay=1, not just the built-in test paths",
    )
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("log_path", help="debug log, opened for appending")
    p.add_argument("capabilities", nargs="+", help="capabilities to request (clean, smudge, delay)")
    return p


def parse_config(argv: list[str] | None = None) -> FilterConfig:
    args = build_parser().parse_args(argv)
    return FilterConfig(
        log_path=args.log_path,
        capabilities=tuple(args.capabilities),
        always_delay=args.always_delay,
        log_level=args.log_level,
    )


def main(
    argv: list[str] | None = None,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    config = parse_config(argv)

    try:
        handler = logging.FileHandler(
            config.log_path, mode="a", encoding="utf-8", errors="surrogateescape"
        )
    except OSError as e:
        print(f"fatal: failed to open log file: {e}", file=sys.stderr)
        return EXIT_FATAL
    handler.setFormatter(logging.Formatter("%(message)s"))

    pkg_log = logging.getLogger(__package__)
    saved_level = pkg_log.level
    pkg_log.addHandler(handler)
    pkg_log.setLevel(getattr(logging, config.log_level))
    try:
        run_filter(config, stdin or sys.stdin.buffer, stdout or sys.stdout.buffer)
    except ProtocolError as e:
        print(f"fatal: {e}", file=sys.stderr)
        return EXIT_FATAL
    finally:
        pkg_log.removeHandler(handler)
        pkg_log.setLevel(saved_level)
        handler.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
