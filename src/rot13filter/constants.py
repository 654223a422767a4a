from __future__ import annotations

PKT_HEADER_LEN = 4
LARGE_PACKET_MAX = 65520
LARGE_PACKET_DATA_MAX = LARGE_PACKET_MAX - PKT_HEADER_LEN
FLUSH_PKT = b"0000"

PROTOCOL_NAME = "git-filter"
PROTOCOL_VERSION = 2

SUPPORTED_CAPABILITIES = ("clean", "smudge", "delay")

ERROR_PATHNAME = "error.r"
ABORT_PATHNAME = "abort.r"
WRITE_FAIL_SUFFIX = "-write-fail.r"

# Never reported by list_available_blobs.
MISSING_DELAY_PATHNAME = "missing-delay.a"
# Reports UNFILTERED_PATHNAME alongside itself.
INVALID_DELAY_PATHNAME = "invalid-delay.a"
UNFILTERED_PATHNAME = "unfiltered"

DELAY_FIXTURES = (
    ("test-delay10.a", 1),
    ("test-delay11.a", 1),
    ("test-delay20.a", 2),
    ("test-delay10.b", 1),
    (MISSING_DELAY_PATHNAME, 1),
    (INVALID_DELAY_PATHNAME, 1),
)

ALWAYS_DELAY_COUNT = 1
EXIT_FATAL = 128
