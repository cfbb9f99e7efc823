"""
Manipulator protocol used by :func:`statefork.parser.process_state`.

A manipulator sees every data line of the exported state twice. During the
read pass it only observes (``process_read``), then ``prepare_write`` is
called once, then during the write pass ``process_write`` may return a
:class:`WriteDecision` to drop the line and/or add new lines.

Lines are reported with the last known JSON key, so array elements repeat
the key of their array::

    "bootNodes": [
      "/ip4/127.0.0.1/tcp/30333/p2p/12D3KooWC7wPZMC44rnA9X132J6uAudNQyARQq2rRpmvguD4oz2U",
    ],

is seen as ``StateLine("bootNodes", "/ip4/127.0.0.1/...")`` and a storage
entry ``"0xa686...": "0x0100..."`` as ``StateLine("0xa686...", "0x0100...")``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from .utils import short

log = logging.getLogger(__name__)

KEEP = "keep"
REMOVE = "remove"


@dataclass
class StateLine:
    key: str
    value: Optional[Any]


@dataclass
class LineMeta:
    end_with_comma: bool
    indent_spaces: int


@dataclass
class WriteDecision:
    action: str
    extra_lines: List[StateLine] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.action not in (KEEP, REMOVE):
            raise ValueError(f"invalid action {self.action!r}")

    @staticmethod
    def keep(extra_lines: Optional[List[StateLine]] = None) -> "WriteDecision":
        return WriteDecision(KEEP, list(extra_lines or []))

    @staticmethod
    def remove(extra_lines: Optional[List[StateLine]] = None) -> "WriteDecision":
        return WriteDecision(REMOVE, list(extra_lines or []))

    @staticmethod
    def replace(key: str, value: Any) -> "WriteDecision":
        return WriteDecision(REMOVE, [StateLine(key, value)])


class StateManipulator:
    """Base class for the rules plugged into the rewriter.

    Subclasses keep whatever they learn during the read pass on their own
    instance and consult it in ``process_write``.
    """

    def process_read(self, line: StateLine) -> None:
        pass

    def prepare_write(self) -> None:
        pass

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        raise NotImplementedError


def dispatch_write(
    manipulators: Sequence[StateManipulator], line: StateLine
) -> Tuple[bool, List[StateLine]]:
    """Run every manipulator on ``line``; any remove drops the original line."""
    keep_line = True
    extra_lines: List[StateLine] = []
    for manipulator in manipulators:
        decision = manipulator.process_write(line)
        if decision is None:
            continue
        log.debug("  - %6s %s: %s", decision.action, line.key, short(line.value))
        if decision.action == REMOVE:
            keep_line = False
        for extra in decision.extra_lines:
            log.debug("  - %6s %s: %s", "add", extra.key, short(extra.value))
        extra_lines.extend(decision.extra_lines)
    return keep_line, extra_lines
