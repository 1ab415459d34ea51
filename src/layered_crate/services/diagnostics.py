"""Diagnostic classification of cargo's stderr, one line at a time.

Each line is stripped of ANSI styling and sorted into a :class:`LineKind`.
Warning and error headers are counted.  During a layer check (not the
baseline) headers that look like a layering violation get an advisory
hint; hints never change whether a build passes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from rich.text import Text

from layered_crate.services.synthesizer import LAYER_TEST_MARKER

# Cargo right-aligns its stage verbs: "   Compiling foo v0.1.0 (...)".
_STATUS_PATTERN = re.compile(
    r"^\s*(Adding|Archiving|Blocking|Building|Checking|Compiling|Documenting|"
    r"Downloaded|Downloading|Dirty|Finished|Fresh|Installing|Locking|Packaging|"
    r"Removing|Running|Scraping|Unpacking|Updating|Verifying|Waiting)\b"
)
_WARNING_SUMMARY_PATTERN = re.compile(r"^warning: .* generated \d+ warnings?\b")
_WARNING_PATTERN = re.compile(r"^warning(\[[\w-]+\])?:")
_ERROR_SUMMARY_PATTERN = re.compile(r"^error: (could not compile|aborting due to)\b")
_ERROR_PATTERN = re.compile(r"^error(\[\w+\])?:")
_UNRESOLVED_PATTERN = re.compile(r"unresolved import|failed to resolve|cannot find .+ in ")

HINT_EXTRANEOUS = "(you might have specified an extraneous dependency on this layer)"
HINT_MISSING = "(you might be missing a dependency on this layer)"


class LineKind(StrEnum):
    STATUS = "status"
    WARNING = "warning"
    ERROR = "error"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifiedLine:
    """One compiler output line after classification.

    Attributes:
        kind: Category of the line.
        text: The line without ANSI codes.
        raw: The line as the compiler printed it.
        hint: Advisory hint for layer checks, if any.
    """

    kind: LineKind
    text: str
    raw: str
    hint: str | None = None


def strip_ansi(line: str) -> str:
    """Remove ANSI escape sequences from *line*."""
    return Text.from_ansi(line).plain


class DiagnosticClassifier:
    """Stateful classifier for the output of a single build.

    Pass *layer* for restricted builds; hints are only produced then.
    """

    def __init__(self, *, layer: str | None = None) -> None:
        self.layer = layer
        self.warning_count = 0
        self.error_count = 0
        self.hints: list[str] = []

    def classify(self, raw: str) -> ClassifiedLine:
        text = strip_ansi(raw.rstrip("\r\n"))
        kind = self._kind(text)
        if kind is LineKind.WARNING and not _WARNING_SUMMARY_PATTERN.match(text):
            self.warning_count += 1
        elif kind is LineKind.ERROR and not _ERROR_SUMMARY_PATTERN.match(text):
            self.error_count += 1

        hint = self._hint(kind, text)
        if hint is not None:
            self.hints.append(f"{text} {hint}")
        return ClassifiedLine(kind=kind, text=text, raw=raw.rstrip("\r\n"), hint=hint)

    @staticmethod
    def _kind(text: str) -> LineKind:
        if _STATUS_PATTERN.match(text) or _WARNING_SUMMARY_PATTERN.match(text):
            return LineKind.STATUS
        if _WARNING_PATTERN.match(text):
            return LineKind.WARNING
        if _ERROR_PATTERN.match(text):
            return LineKind.ERROR
        return LineKind.OTHER

    def _hint(self, kind: LineKind, text: str) -> str | None:
        if self.layer is None or kind not in (LineKind.WARNING, LineKind.ERROR):
            return None
        if "unused import" in text and LAYER_TEST_MARKER in text:
            return HINT_EXTRANEOUS
        if _UNRESOLVED_PATTERN.search(text):
            return HINT_MISSING
        return None
