"""Normalisation for Markdown returned by the text-generation service."""

from __future__ import annotations

import re
from typing import List

_WRAPPING_FENCE = re.compile(r"^```(?:markdown|md|mdx)?\s*\n(?P<body>.*)\n```\s*$", re.DOTALL)
_HEADING = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<title>.*)$")

# Blocks embedded under a page's own "##" heading start at this level.
FRAGMENT_HEADING_LEVEL = 3


class MarkdownLinter:
    """Cleans model output before it is written into a page.

    Full pages keep their heading levels. Fragments (managed blocks) have
    headings pushed down to ``FRAGMENT_HEADING_LEVEL`` so they nest under
    the surrounding section. A code fence left open by a truncated response
    is closed.
    """

    def lint(self, markdown: str, *, fragment: bool = False) -> str:
        text = markdown.replace("\r\n", "\n").replace("\r", "\n").strip()
        match = _WRAPPING_FENCE.match(text)
        if match:
            text = match.group("body")

        output: List[str] = []
        in_code = False
        for raw in text.split("\n"):
            line = raw.rstrip()
            if line.startswith("```"):
                in_code = not in_code
                output.append(line)
                continue
            if in_code:
                output.append(line)
                continue
            if not line:
                if output and output[-1] != "":
                    output.append("")
                continue
            heading = _HEADING.match(line)
            if heading:
                if fragment:
                    line = self._demote(heading.group("hashes"), heading.group("title"))
                if output and output[-1] != "":
                    output.append("")
            output.append(line)

        if in_code:
            output.append("```")
        while output and output[-1] == "":
            output.pop()
        return "\n".join(output) + "\n"

    @staticmethod
    def _demote(hashes: str, title: str) -> str:
        level = max(len(hashes), FRAGMENT_HEADING_LEVEL)
        return f"{'#' * level} {title}"


__all__ = ["FRAGMENT_HEADING_LEVEL", "MarkdownLinter"]
