"""
dcaudit/diag_parser.py — Turns dcdiag text output into per-test verdicts.

dcdiag prints, for every test it runs:

    Starting test: Replications
       ......................... DC01 passed test Replications

The parser is a two-state machine over the lines of one output blob:

    AWAITING_TEST_NAME --"Starting test:"--> AWAITING_RESULT
    AWAITING_RESULT   --"passed/failed test"--> emit, AWAITING_TEST_NAME

A test that starts but never reports a verdict produces no entry; callers
see it as Unknown rather than Failed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

LOGGER = logging.getLogger(__name__)

START_RE = re.compile(r"Starting test:\s*(?P<name>.+)")
RESULT_RE = re.compile(r"\b(?P<verdict>passed|failed) test\b")

PASSED = "Passed"
FAILED = "Failed"
UNKNOWN = "Unknown"


class ParserState(str, Enum):
    AWAITING_TEST_NAME = "awaiting_test_name"
    AWAITING_RESULT = "awaiting_result"


@dataclass(frozen=True)
class DiagOutcome:
    """Verdict per test name, in first-seen order; True means passed."""

    results: dict[str, bool] = field(default_factory=dict)
    unresolved: tuple[str, ...] = ()
    # Set when dcdiag ran but produced nothing to judge; reported for every test.
    failure: str | None = None

    def status(self, name: str) -> str:
        if self.failure is not None:
            return self.failure
        if name not in self.results:
            return UNKNOWN
        return PASSED if self.results[name] else FAILED

    @classmethod
    def all_failed(cls, names: Iterable[str]) -> DiagOutcome:
        return cls(results={name: False for name in names})

    @classmethod
    def query_failed(cls, label: str) -> DiagOutcome:
        return cls(failure=label)


class DiagTextParser:
    """Single-use parser; feed() every line, then finish() once."""

    def __init__(self) -> None:
        self.state = ParserState.AWAITING_TEST_NAME
        self.current_test: str | None = None
        self._results: dict[str, bool] = {}
        self._abandoned: list[str] = []

    def feed(self, line: str) -> None:
        start = START_RE.search(line)
        if start:
            name = start.group("name").strip()
            if self.state is ParserState.AWAITING_RESULT and self.current_test:
                LOGGER.debug("Test %s started without a verdict for %s", name, self.current_test)
                self._abandoned.append(self.current_test)
            self.current_test = name
            self.state = ParserState.AWAITING_RESULT
            return

        result = RESULT_RE.search(line)
        if not result:
            return
        if self.state is not ParserState.AWAITING_RESULT or not self.current_test:
            LOGGER.debug("Ignoring verdict with no test in progress: %s", line.strip())
            return

        self._results[self.current_test] = result.group("verdict") == "passed"
        self.current_test = None
        self.state = ParserState.AWAITING_TEST_NAME

    def finish(self) -> DiagOutcome:
        pending = list(self._abandoned)
        if self.state is ParserState.AWAITING_RESULT and self.current_test:
            pending.append(self.current_test)
        unresolved = tuple(dict.fromkeys(name for name in pending if name not in self._results))
        return DiagOutcome(results=dict(self._results), unresolved=unresolved)


def parse_diag_text(text: str) -> DiagOutcome:
    parser = DiagTextParser()
    for line in text.splitlines():
        parser.feed(line)
    return parser.finish()
