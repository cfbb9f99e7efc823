"""
Streaming rewriter for exported chain state files.

The exported state is a multi-gigabyte JSON document, so it is never parsed
as JSON. Instead it is read line by line, relying on how the node writes it
(2-space indentation, at most one key and one value per line), in two
passes:

- a read pass calling ``process_read`` on every manipulator,
- a write pass calling ``process_write`` and writing the result.
"""

import logging
import os
from contextlib import closing
from typing import IO, Iterator, List, Optional, Sequence, Tuple

from .manipulator import LineMeta, StateLine, StateManipulator, dispatch_write

log = logging.getLogger(__name__)

# Lines buffered in memory before writing to the destination file
BUFFER_LINES = int(os.getenv("STATEFORK_BUFFER_LINES", "200"))

_STRUCTURAL = ("{", "}", "[", "]")


def _indent(line: str) -> int:
    spaces = len(line) - len(line.lstrip(" "))
    return spaces - spaces % 2


def classify_line(line: str, last_key: str) -> Tuple[Optional[StateLine], LineMeta]:
    meta = LineMeta(end_with_comma=line.endswith(","), indent_spaces=_indent(line))
    parts = line.split('": ', 1)
    if len(parts) == 1:
        # not a key/value line, either structural or an array element
        body = line.strip()
        if not body or body[0] in _STRUCTURAL:
            return None, meta
        if body[0] == '"':
            return StateLine(last_key, body.split('"')[1]), meta
        return StateLine(last_key, body.rstrip(",").strip()), meta

    key = parts[0].split('"')[1]
    raw = parts[1].lstrip()
    if raw.startswith('"'):
        value: Optional[str] = raw.split('"')[1]
    elif raw[:1] in ("{", "["):
        value = None
    else:
        value = raw.split(",")[0].strip()
    return StateLine(key, value), meta


def iter_state_lines(path: str) -> Iterator[Tuple[str, Optional[StateLine], LineMeta]]:
    last_key = ""
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.rstrip("\n")
            state_line, meta = classify_line(line, last_key)
            if state_line is not None:
                last_key = state_line.key
            yield line, state_line, meta


def render_state_line(line: StateLine, indent_spaces: int) -> str:
    if isinstance(line.value, str):
        value = f'"{line.value}"'
    else:
        value = str(line.value)
    return f'{" " * indent_spaces}"{line.key}": {value}'


def _with_comma(text: str, comma: bool) -> str:
    if comma and not text.endswith(","):
        return text + ","
    if not comma and text.endswith(","):
        return text[:-1]
    return text


class _LineBuffer:
    """Buffers output lines, always holding back the last one.

    The held line can still lose its trailing comma when the line following
    it gets removed.
    """

    def __init__(self, out: IO[str], size: int) -> None:
        self.out = out
        self.size = max(1, size)
        self.lines: List[str] = []

    def append(self, text: str) -> None:
        self.lines.append(text)
        if len(self.lines) > self.size:
            self._write(self.lines[:-1])
            del self.lines[:-1]

    def drop_trailing_comma(self) -> None:
        if self.lines:
            self.lines[-1] = _with_comma(self.lines[-1], False)

    def flush(self) -> None:
        self._write(self.lines)
        self.lines = []

    def _write(self, lines: List[str]) -> None:
        if lines:
            self.out.write("".join(f"{text}\n" for text in lines))


def process_state(
    input_file: str, dest_file: str, manipulators: Sequence[StateManipulator]
) -> None:
    if not input_file or not dest_file:
        raise ValueError("Missing input and destination file")
    if os.path.abspath(input_file) == os.path.abspath(dest_file) or (
        os.path.exists(dest_file) and os.path.samefile(input_file, dest_file)
    ):
        raise ValueError("Input and output files are the same")

    log.info("Reading %s (%d manipulators)", input_file, len(manipulators))
    with closing(iter_state_lines(input_file)) as lines:
        for _, state_line, _ in lines:
            if state_line is None or state_line.value is None:
                continue
            for manipulator in manipulators:
                manipulator.process_read(state_line)

    for manipulator in manipulators:
        manipulator.prepare_write()

    log.info("Writing %s", dest_file)
    removed = added = 0
    with open(dest_file, "w", encoding="utf-8") as out, closing(iter_state_lines(input_file)) as lines:
        buffer = _LineBuffer(out, BUFFER_LINES)
        for line, state_line, meta in lines:
            if state_line is None or not state_line.value:
                buffer.append(line)
                continue
            keep_line, extra_lines = dispatch_write(manipulators, state_line)
            if keep_line and not extra_lines:
                buffer.append(line)
                continue

            group = [line] if keep_line else []
            group.extend(render_state_line(extra, meta.indent_spaces) for extra in extra_lines)
            removed += 0 if keep_line else 1
            added += len(extra_lines)
            if not group:
                if not meta.end_with_comma:
                    buffer.drop_trailing_comma()
                continue
            for index, text in enumerate(group):
                last = index == len(group) - 1
                buffer.append(_with_comma(text, meta.end_with_comma if last else True))
        buffer.flush()
    log.info("Wrote %s: %d lines removed, %d lines added", dest_file, removed, added)
