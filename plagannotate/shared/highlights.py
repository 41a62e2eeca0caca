"""Grouping of raw match spans into per-file-pair highlight regions.

Matches are grouped by their normalized ``(first_file, second_file)`` pair in
first-encounter order.  Each match keeps its report ``index``; colors and
click targets are always derived from that index, never from the position of
the match inside its group.

When several matches cover the same rendered line the last one in group order
wins, so a line always resolves to a single style and a single click target.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Collection, Dict, Iterable, List, Optional, Tuple

from .models import Match

PALETTE: Tuple[str, ...] = (
    "rgba(255,0,0,0.3)",
    "rgba(0,0,255,0.3)",
    "rgba(0,255,0,0.3)",
    "rgba(255,255,0,0.3)",
    "rgba(0,255,255,0.3)",
    "rgba(255,0,255,0.3)",
)

_LANGUAGES = (
    ((".java",), "java"),
    ((".py",), "python"),
    ((".js", ".jsx"), "javascript"),
    ((".ts", ".tsx"), "typescript"),
)


@dataclass
class MatchGroup:
    file_a: str
    file_b: str
    matches: List[Match] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return self.file_a, self.file_b


@dataclass(frozen=True)
class LineHighlight:
    match_index: int
    color: str
    assessed: bool = False


@dataclass(frozen=True)
class Snippet:
    file_a: str
    file_b: str
    text_a: str
    text_b: str


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def group_matches(matches: Iterable[Match]) -> List[MatchGroup]:
    groups: Dict[Tuple[str, str], MatchGroup] = {}
    for match in matches:
        key = match.file_pair
        group = groups.get(key)
        if group is None:
            group = MatchGroup(file_a=key[0], file_b=key[1])
            groups[key] = group
        group.matches.append(match)
    return list(groups.values())


def covering_matches(group: MatchGroup, role: str, line: int) -> List[Match]:
    return [match for match in group.matches if match.covers(role, line)]


def resolve_line(
    group: MatchGroup,
    role: str,
    line: int,
    assessed: Collection[int] = (),
) -> Optional[LineHighlight]:
    covering = covering_matches(group, role, line)
    if not covering:
        return None
    winner = covering[-1]
    return LineHighlight(
        match_index=winner.index,
        color=color_for(winner.index),
        assessed=winner.index in assessed,
    )


def highlight_lines(
    group: MatchGroup,
    role: str,
    line_count: int,
    assessed: Collection[int] = (),
) -> Dict[int, LineHighlight]:
    """Resolved highlight for every covered line in ``1..line_count``."""
    resolved: Dict[int, LineHighlight] = {}
    for match in group.matches:
        start, end = match.span(role)
        for line in range(max(start.line, 1), min(end.line, line_count) + 1):
            # later matches overwrite earlier ones
            resolved[line] = LineHighlight(
                match_index=match.index,
                color=color_for(match.index),
                assessed=match.index in assessed,
            )
    return dict(sorted(resolved.items()))


def match_at(group: MatchGroup, role: str, line: int) -> Optional[int]:
    highlight = resolve_line(group, role, line)
    return highlight.match_index if highlight else None


def _slice_lines(text: str, start: int, end: int) -> str:
    lines = text.split("\n")
    return "\n".join(lines[max(start - 1, 0):end])


def extract_snippet(match: Match, text_first: str, text_second: str) -> Snippet:
    return Snippet(
        file_a=PurePosixPath(match.first_path).name,
        file_b=PurePosixPath(match.second_path).name,
        text_a=_slice_lines(text_first, match.start_in_first.line, match.end_in_first.line),
        text_b=_slice_lines(text_second, match.start_in_second.line, match.end_in_second.line),
    )


def language_for(filename: Optional[str]) -> str:
    if not filename:
        return "clike"
    for suffixes, language in _LANGUAGES:
        if filename.endswith(suffixes):
            return language
    return "clike"
