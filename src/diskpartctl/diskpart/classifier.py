"""
Success/failure classification of diskpart output.

diskpart reports outcomes as free text, so classification is a heuristic:
an ordered list of substring rules where the first match wins. Rules can be
replaced to cope with other locales or tool versions without touching the
executor.

Known limitation: the rules match anywhere in the output, so a volume label
such as "Cannot Boot" in a ``list volume`` table classifies as a failure.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from diskpartctl.core.errors import ErrorCode


@dataclass(frozen=True)
class OutputRule:
    """A case-insensitive substring rule."""

    name: str
    marker: str
    success: bool
    code: ErrorCode | None = None

    def matches(self, lowered_output: str) -> bool:
        return self.marker in lowered_output


@dataclass(frozen=True)
class Classification:
    """Verdict for one output text."""

    success: bool
    rule: OutputRule | None = None

    @property
    def code(self) -> ErrorCode | None:
        return self.rule.code if self.rule else None


NEGATIVE_RULES: tuple[OutputRule, ...] = (
    OutputRule("access-denied", "access is denied", False, ErrorCode.ACCESS_DENIED),
    OutputRule("disk-invalid", "the disk you specified is not valid", False, ErrorCode.DISK_NOT_FOUND),
    OutputRule("no-disk-selected", "there is no disk selected", False, ErrorCode.DISK_NOT_FOUND),
    OutputRule(
        "partition-invalid",
        "the partition you specified is not valid",
        False,
        ErrorCode.PARTITION_NOT_FOUND,
    ),
    OutputRule(
        "no-partition-selected",
        "there is no partition selected",
        False,
        ErrorCode.PARTITION_NOT_FOUND,
    ),
    OutputRule("error", "error", False),
    OutputRule("failed", "failed", False),
    OutputRule("cannot", "cannot", False),
    OutputRule("invalid", "invalid", False),
    OutputRule("not-found", "not found", False),
)

POSITIVE_RULES: tuple[OutputRule, ...] = (
    OutputRule("successfully", "successfully", True),
    OutputRule("disk-table", "disk ###", True),
    OutputRule("volume-table", "volume ###", True),
    OutputRule("partition-table", "partition ###", True),
)

DEFAULT_RULES: tuple[OutputRule, ...] = NEGATIVE_RULES + POSITIVE_RULES

# Line markers used to pick the human-readable error line
ERROR_LINE_MARKERS: tuple[str, ...] = tuple(
    dict.fromkeys([rule.marker for rule in NEGATIVE_RULES] + ["denied"])
)


class OutputClassifier:
    """Ordered rule set; the first matching rule decides."""

    def __init__(self, rules: Iterable[OutputRule] = DEFAULT_RULES) -> None:
        self.rules: tuple[OutputRule, ...] = tuple(rules)

    def classify(self, output: str) -> Classification:
        lowered = output.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return Classification(success=rule.success, rule=rule)

        # No marker at all: any output counts as success, silence as failure
        return Classification(success=bool(output.strip()))

    def is_success(self, output: str) -> bool:
        return self.classify(output).success

    def with_rules(self, rules: Sequence[OutputRule], first: bool = True) -> OutputClassifier:
        """Return a classifier with extra rules before (or after) the current ones."""
        if first:
            return OutputClassifier(tuple(rules) + self.rules)
        return OutputClassifier(self.rules + tuple(rules))


def extract_error_message(
    output: str, markers: Sequence[str] = ERROR_LINE_MARKERS
) -> str | None:
    """Return the first line of ``output`` that carries an error marker."""
    for raw_line in output.splitlines():
        line = raw_line.strip()
        lowered = line.lower()
        if any(marker in lowered for marker in markers):
            return line
    return None


default_classifier = OutputClassifier()


def is_command_successful(output: str) -> bool:
    return default_classifier.is_success(output)
