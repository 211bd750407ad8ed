"""Unified patch rendering for record revisions.

Patches are display strings. They follow the GNU unified format, including
the ``\\ No newline at end of file`` marker, so a reader (or a patch tool)
sees exactly which bytes changed between two snapshots of a record.
"""

from __future__ import annotations

import difflib
import re


OLD_LABEL = 'before'
NEW_LABEL = 'after'
NO_NEWLINE_MARKER = '\\ No newline at end of file'

_LINE_RE = re.compile(r'[^\n]*\n|[^\n]+\Z')


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, keeping terminators. ``\\r`` stays inside a line."""
    return _LINE_RE.findall(text or '')


def build_patch(
    old: str,
    new: str,
    *,
    old_label: str = OLD_LABEL,
    new_label: str = NEW_LABEL,
    context: int = 3,
) -> str:
    """Return the unified patch turning ``old`` into ``new``; empty when equal."""
    chunks: list[str] = []
    for line in difflib.unified_diff(
        split_lines(old),
        split_lines(new),
        fromfile=old_label,
        tofile=new_label,
        n=context,
    ):
        chunks.append(line)
        if not line.endswith('\n'):
            chunks.append('\n' + NO_NEWLINE_MARKER + '\n')
    return ''.join(chunks)


def summarize_patch(patch: str) -> dict[str, int]:
    added = 0
    removed = 0
    in_hunk = False
    for line in split_lines(patch):
        if line.startswith('@@'):
            in_hunk = True
            continue
        if not in_hunk:
            continue
        if line.startswith('+'):
            added += 1
        elif line.startswith('-'):
            removed += 1
    return {'added': added, 'removed': removed}
