"""Markdown stripping that keeps a map back to original offsets."""

from __future__ import annotations

from dataclasses import dataclass, field

_MARKERS = frozenset("*_`")


@dataclass(slots=True)
class StrippedText:
    """Readable text plus the original index of every kept character."""

    clean: str
    index_map: list[int] = field(default_factory=list)

    def map_to_original(self, clean_index: int) -> int:
        """Translate a clean-text index to the source index, or -1."""

        if clean_index < 0 or clean_index >= len(self.index_map):
            return -1
        return self.index_map[clean_index]


def strip_with_map(source: str) -> StrippedText:
    """Drop link targets and emphasis/code markers from markdown text.

    ``[text](url)`` keeps only ``text``; the url (including nested parens)
    contributes nothing. ``*``, ``_`` and backticks are removed. Every other
    character is copied with its source index.
    """

    chars: list[str] = []
    index_map: list[int] = []
    n = len(source)
    i = 0
    while i < n:
        ch = source[i]
        if ch == "[":
            close = source.find("]", i + 1)
            if close != -1 and close + 1 < n and source[close + 1] == "(":
                for k in range(i + 1, close):
                    chars.append(source[k])
                    index_map.append(k)
                j = close + 2
                depth = 1
                while j < n and depth > 0:
                    if source[j] == "(":
                        depth += 1
                    elif source[j] == ")":
                        depth -= 1
                    j += 1
                i = j
                continue
        if ch in _MARKERS:
            i += 1
            continue
        chars.append(ch)
        index_map.append(i)
        i += 1
    return StrippedText(clean="".join(chars), index_map=index_map)
