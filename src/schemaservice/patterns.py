"""Association of resources with schemas by glob patterns."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from pathspec.patterns import GitWildMatchPattern

logger = logging.getLogger(__name__)

NEGATION_MARKER = "!"
PATH_SEPARATOR = "/"
# Group that gitwildmatch regexes use for the "or anything below this directory" suffix
DIRECTORY_SUFFIX_GROUP = "ps_d"

Predicate = Callable[[str], bool]


class InvalidPattern(ValueError):
    """Glob pattern can not be compiled."""


def expand_braces(pattern: str) -> list[str]:
    """Expand `{a,b}` alternatives, including nested ones, into plain glob patterns."""
    start = pattern.find("{")
    if start == -1:
        if "}" in pattern:
            raise InvalidPattern(f"Unbalanced braces in `{pattern}`")
        return [pattern]
    if "}" in pattern[:start]:
        raise InvalidPattern(f"Unbalanced braces in `{pattern}`")
    depth = 0
    alternatives = []
    current = start + 1
    for position in range(start, len(pattern)):
        char = pattern[position]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                alternatives.append(pattern[current:position])
                prefix, suffix = pattern[:start], pattern[position + 1 :]
                return [
                    expanded
                    for alternative in alternatives
                    for expanded in expand_braces(f"{prefix}{alternative}{suffix}")
                ]
        elif char == "," and depth == 1:
            alternatives.append(pattern[current:position])
            current = position + 1
    raise InvalidPattern(f"Unbalanced braces in `{pattern}`")


def compile_glob(pattern: str) -> Predicate:
    """Compile a glob that matches any path ending with the given pattern."""
    try:
        regexes = [GitWildMatchPattern(f"**/{item}").regex for item in expand_braces(pattern)]
    except (ValueError, TypeError) as exc:
        raise InvalidPattern(f"Invalid glob pattern `{pattern}`: {exc}") from exc
    compiled = [regex for regex in regexes if regex is not None]

    def predicate(path: str) -> bool:
        for regex in compiled:
            match = regex.match(path)
            # Only whole paths match, not files below a directory that matches the pattern
            if match is not None and match.groupdict().get(DIRECTORY_SUFFIX_GROUP) is None:
                return True
        return False

    return predicate


@dataclass
class CompiledGlob:
    predicate: Predicate
    include: bool

    __slots__ = ("predicate", "include")


class PatternMatcher:
    """Ordered include / exclude globs where the last matching glob decides."""

    __slots__ = ("globs",)

    def __init__(self, globs: list[CompiledGlob] | None = None) -> None:
        self.globs = globs or []

    @classmethod
    def compile(cls, patterns: Sequence[str], *, compiler: Callable[[str], Predicate] = compile_glob) -> PatternMatcher:
        globs = []
        try:
            for pattern in patterns:
                include = not pattern.startswith(NEGATION_MARKER)
                if not include:
                    pattern = pattern[1:]
                if not pattern:
                    continue
                if pattern.startswith(PATH_SEPARATOR):
                    pattern = pattern[1:]
                globs.append(CompiledGlob(predicate=compiler(pattern), include=include))
        except Exception as exc:
            # A broken pattern list disables the whole association instead of matching everything
            logger.warning("Ignoring file patterns %r: %s", list(patterns), exc)
            return cls()
        return cls(globs)

    def __bool__(self) -> bool:
        return bool(self.globs)

    def matches(self, path: str) -> bool:
        matched = False
        for glob in self.globs:
            if glob.predicate(path):
                matched = glob.include
        return matched


def compile_patterns(patterns: Sequence[str]) -> PatternMatcher:
    return PatternMatcher.compile(patterns)


class FilePatternAssociation:
    """Schemas that apply to every resource matched by the patterns."""

    __slots__ = ("matcher", "uris")

    def __init__(self, patterns: Sequence[str], uris: Sequence[str]) -> None:
        self.matcher = compile_patterns(patterns)
        self.uris = list(uris)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(uris={self.uris!r})"

    def matches_pattern(self, path: str) -> bool:
        return self.matcher.matches(path)
