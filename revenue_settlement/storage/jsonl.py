"""
Durable JSON-lines appends.
"""
from __future__ import annotations

import os
from pathlib import Path


def append_line(path: Path, line: str) -> None:
    """Append one line to ``path`` with a single write, then fsync.

    If a previous crash left the file without a trailing newline, the torn
    fragment is terminated first so the new line stays parseable. Existing
    bytes are never modified.
    """
    if not line.endswith("\n"):
        line += "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a+b") as fh:
        if fh.tell() > 0:
            fh.seek(-1, os.SEEK_END)
            if fh.read(1) != b"\n":
                line = "\n" + line
        fh.write(line.encode("utf-8"))
        fh.flush()
        os.fsync(fh.fileno())
