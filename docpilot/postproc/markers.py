"""Managed marker blocks for enhancer-owned regions of generator pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class ManagedBlock:
    """Content for a marker-delimited region of a page."""

    key: str
    body: str
    heading: str | None = None


class MarkerManager:
    """Wraps, replaces and extracts ``docpilot`` marker blocks.

    Markers are MDX comments so the static-site renderer never shows them.
    """

    BEGIN_FMT = "{{/* docpilot:begin:{key} */}}"
    END_FMT = "{{/* docpilot:end:{key} */}}"

    def wrap(self, block: ManagedBlock) -> str:
        """Wrap a block body with managed markers."""
        begin = self.BEGIN_FMT.format(key=block.key)
        end = self.END_FMT.format(key=block.key)
        parts = [begin]
        if block.heading:
            parts.extend([block.heading, ""])
        parts.append(block.body.rstrip())
        parts.append(end)
        return "\n".join(parts)

    def contains(self, markdown: str, key: str) -> bool:
        begin = self.BEGIN_FMT.format(key=key)
        end = self.END_FMT.format(key=key)
        return begin in markdown and end in markdown

    def replace(self, markdown: str, block: ManagedBlock) -> str:
        """Replace an existing managed block; return the input unchanged if absent."""
        if not self.contains(markdown, block.key):
            return markdown
        begin = self.BEGIN_FMT.format(key=block.key)
        end = self.END_FMT.format(key=block.key)
        pre, rest = markdown.split(begin, 1)
        _, post = rest.split(end, 1)
        return f"{pre}{self.wrap(block)}{post}"

    def upsert(self, markdown: str, block: ManagedBlock) -> str:
        """Replace the block when present, otherwise append it to the page."""
        if self.contains(markdown, block.key):
            return self.replace(markdown, block)
        return f"{markdown.rstrip()}\n\n{self.wrap(block)}\n"

    def extract(self, markdown: str) -> Dict[str, str]:
        """Return a mapping of block key to current content (without markers)."""
        blocks: Dict[str, str] = {}
        start_token = "{/* docpilot:begin:"
        position = 0
        while True:
            start_index = markdown.find(start_token, position)
            if start_index == -1:
                break
            key_start = start_index + len(start_token)
            key_end = markdown.find(" */}", key_start)
            if key_end == -1:
                break
            key = markdown[key_start:key_end]
            end_token = self.END_FMT.format(key=key)
            body_start = key_end + len(" */}")
            end_index = markdown.find(end_token, body_start)
            if end_index == -1:
                break
            blocks[key] = markdown[body_start:end_index].strip()
            position = end_index + len(end_token)
        return blocks


__all__ = ["ManagedBlock", "MarkerManager"]
