"""
Drover suggestion and completion primitives.

- ldist(): Levenshtein distance (insert/delete/substitute cost 1, no transpositions).
- rank(): four-pass candidate ranking (exact, case-insensitive, prefix, bounded distance).
- Completion / CompDirective: completion candidates and the hint sent back to the shell.

Command-aware entry points (Command.suggest, Command.comps, ...) live on the command
tree and delegate here.
"""
from enum import IntFlag
from typing import NamedTuple

DEFAULT_MIN_DIST = 2


class Completion(NamedTuple):
    name: str
    usage: str = ""


class CompDirective(IntFlag):
    DEFAULT = 0
    ERROR = 1
    NO_SPACE = 2
    NO_FILE_COMP = 4
    FILTER_FILE_EXT = 8
    FILTER_DIRS = 16
    KEEP_ORDER = 32


def ldist(source, target, /):
    """
    edit distance between two strings, computed with two rolling rows.

    comparison is exact; callers case-fold both sides first when they want a
    case-insensitive distance.
    """
    if source == target:
        return 0
    if not source:
        return len(target)
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for row, char in enumerate(source, 1):
        current = [row]
        for column, other in enumerate(target, 1):
            current.append(min(
                previous[column] + 1,
                current[column - 1] + 1,
                previous[column - 1] + (char != other),
            ))
        previous = current
    return previous[-1]


def rank(name, candidates, /, distance=DEFAULT_MIN_DIST):
    """
    rank candidates against a (possibly partial) name.

    candidates is an iterable of (key, names, payload) triples where names holds the
    spellings to match (canonical name first, then aliases). passes, in order:
    1. exact, case-sensitive;
    2. exact, case-insensitive;
    3. case-insensitive prefix;
    4. case-insensitive edit distance <= distance.
    every key is yielded once, with its payload, by the first pass it matches.
    """
    candidates = list(candidates)
    folded = name.casefold()
    passes = (
        lambda spelling: spelling == name,
        lambda spelling: spelling.casefold() == folded,
        lambda spelling: spelling.casefold().startswith(folded),
        lambda spelling: ldist(spelling.casefold(), folded) <= distance,
    )
    seen = set()
    for matches in passes:
        for key, names, payload in candidates:
            if key not in seen and any(map(matches, names)):
                seen.add(key)
                yield payload


__all__ = (
    "DEFAULT_MIN_DIST",
    "Completion",
    "CompDirective",
    "ldist",
    "rank",
)
