"""Heuristic complexity estimation and line counting.

The estimators count branching constructs with regular expressions rather
than walking an AST. The count over-approximates a control-flow-graph metric
(``else if`` matches both the ``if`` and the ``else if`` pattern, ternaries
are matched per line) in exchange for speed and tolerance of any syntax.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Pattern, Tuple

from ..math import round_half_up

# Lines made only of braces, semicolons and whitespace
_PUNCTUATION_ONLY = re.compile(r"^[{};\s]*$")
_COMMENT_PREFIXES = ("//", "#", "*", "/*", "*/")


def count_lines_of_code(content: str) -> int:
    """Count lines that are not blank, comment markers or bare punctuation."""
    count = 0
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(_COMMENT_PREFIXES):
            continue
        if _PUNCTUATION_ONLY.match(stripped):
            continue
        count += 1
    return count


class ComplexityEstimator(ABC):
    """Estimates cyclomatic complexity for one file kind."""

    @abstractmethod
    def estimate(self, content: str) -> int:
        """Return a complexity score >= 1 for ``content``."""


@dataclass(frozen=True)
class PatternFamily:
    """Regex patterns that contribute ``weight`` per match.

    When ``skip_first`` is set the first match is free, so a single
    ``return`` adds nothing.
    """

    name: str
    patterns: Tuple[Pattern[str], ...]
    weight: float = 1.0
    skip_first: bool = False

    def contribution(self, content: str) -> float:
        matches = sum(len(p.findall(content)) for p in self.patterns)
        if self.skip_first:
            matches = max(0, matches - 1)
        return matches * self.weight


def _compile(*sources: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(s) for s in sources)


C_STYLE_FAMILIES: Tuple[PatternFamily, ...] = (
    PatternFamily("conditional", _compile(r"\bif\s*\(", r"\belse\s+if\s*\(", r"\?\s*.*\s*:")),
    PatternFamily(
        "loop",
        _compile(
            r"\bfor\s*\(",
            r"\bwhile\s*\(",
            r"\bdo\s*\{",
            r"\bfor\s+\w+\s+in\s+",
            r"\bfor\s+\w+\s+of\s+",
        ),
    ),
    PatternFamily("case", _compile(r"\bcase\s+")),
    PatternFamily("exception", _compile(r"\bcatch\s*\(", r"\bfinally\s*\{")),
    PatternFamily("function_literal", _compile(r"=>\s*\{", r"\bfunction\s*\(")),
    PatternFamily("logical_operator", _compile(r"&&", r"\|\|"), weight=0.5),
    PatternFamily("return", _compile(r"\breturn\b"), weight=0.5, skip_first=True),
)


class PatternComplexityEstimator(ComplexityEstimator):
    """Weighted pattern count starting from a base complexity of 1."""

    def __init__(self, families: Tuple[PatternFamily, ...] = C_STYLE_FAMILIES):
        self.families = families

    def estimate(self, content: str) -> int:
        complexity = 1.0
        for family in self.families:
            complexity += family.contribution(content)
        return round_half_up(complexity)


# File-kind families and the estimator used for each
TYPESCRIPT_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts")
JAVASCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")


def default_estimators() -> Dict[str, ComplexityEstimator]:
    """Extension -> estimator map for the supported source kinds."""
    typescript = PatternComplexityEstimator()
    javascript = PatternComplexityEstimator()
    estimators: Dict[str, ComplexityEstimator] = {}
    for ext in TYPESCRIPT_EXTENSIONS:
        estimators[ext] = typescript
    for ext in JAVASCRIPT_EXTENSIONS:
        estimators[ext] = javascript
    return estimators


def estimator_for(
    path: str, estimators: Dict[str, ComplexityEstimator]
) -> Optional[ComplexityEstimator]:
    """Estimator registered for the file's extension, or None."""
    return estimators.get(Path(path).suffix.lower())
