"""rot13 filter for the git long-running filter protocol (version 2)

The process git spawns as a long-running filter driver: a test double for
the filter side of the protocol. It is structured the way the real thing
would be:
- pkt-line framing kept apart from the command state machine
- one explicitly owned delay registry per session
- fixed pathnames that force error, abort, delay and write-failure paths

The content transform is rot13; the protocol handling is the point.
"""

__all__ = []
