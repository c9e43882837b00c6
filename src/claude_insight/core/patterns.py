from __future__ import annotations

import re

from claude_insight.storage.models import WorkType


# `.` in the tables below never matches a line terminator (\r, \n, U+2028, U+2029).
_ANY_IN_LINE = r"[^\r\n\u2028\u2029]"


def _p(expression: str) -> re.Pattern[str]:
    return re.compile(expression.replace(".", _ANY_IN_LINE), re.IGNORECASE)


# Tried in order; the first pattern that matches a message wins.
DECISION_PATTERNS: tuple[re.Pattern[str], ...] = (
    _p(r"decided to (.+)"),
    _p(r"chose (.+) over (.+)"),
    _p(r"went with (.+) because (.+)"),
    _p(r"trade-off:?\s*(.+)"),
    _p(r"approach:?\s*(.+)"),
    _p(r"\*\*decision\*\*:?\s*(.+)"),
    _p(r"we('ll| will) use (.+) (for|to|because)"),
    _p(r"let's go with (.+)"),
    _p(r"the (best|right|better) (approach|solution|choice) is (.+)"),
)

LEARNING_PATTERNS: tuple[re.Pattern[str], ...] = (
    _p(r"learned that (.+)"),
    _p(r"TIL:?\s*(.+)"),
    _p(r"insight:?\s*(.+)"),
    _p(r"realized (.+)"),
    _p(r"mistake:?\s*(.+)"),
    _p(r"note to self:?\s*(.+)"),
    _p(r"important:?\s*(.+)"),
    _p(r"remember:?\s*(.+)"),
    _p(r"turns out (.+)"),
    _p(r"didn't know (.+)"),
)

# Category order matters: the first category with a signal hit wins.
WORK_TYPE_SIGNALS: tuple[tuple[WorkType, tuple[str, ...]], ...] = (
    (
        WorkType.FEATURE,
        ("added", "implemented", "created", "built", "new feature", "introducing"),
    ),
    (
        WorkType.BUGFIX,
        ("fixed", "resolved", "patched", "corrected", "bug fix", "fixing"),
    ),
    (
        WorkType.REFACTOR,
        ("refactored", "restructured", "reorganized", "cleaned", "improved", "simplified"),
    ),
    (
        WorkType.DOCS,
        ("documented", "documentation", "readme", "comments", "jsdoc"),
    ),
    (
        WorkType.TEST,
        ("tested", "test", "spec", "coverage", "unit test", "integration test"),
    ),
)

DEFAULT_WORK_TYPE = WorkType.FEATURE

WORK_TOOLS: frozenset[str] = frozenset({"Edit", "Write", "Bash"})
FILE_PATH_TOOLS: frozenset[str] = frozenset({"Edit", "Write"})

CALLOUT_MARKERS: tuple[str, ...] = ("★ Insight", "★Insight")

MAX_TITLE_LENGTH = 100
CONTEXT_RADIUS = 100

DECISION_CONFIDENCE = 0.7
LEARNING_CONFIDENCE = 0.6
WORKITEM_CONFIDENCE = 0.9
EFFORT_CONFIDENCE = 1.0
