"""Unit tests for dcaudit.diag_parser — one test per state transition."""

from __future__ import annotations

from dcaudit.diag_parser import DiagOutcome, DiagTextParser, ParserState, parse_diag_text


def test_start_line_enters_awaiting_result():
    parser = DiagTextParser()
    parser.feed("      Starting test: Connectivity   ")
    assert parser.state is ParserState.AWAITING_RESULT
    assert parser.current_test == "Connectivity"


def test_result_line_emits_and_returns_to_awaiting_name():
    parser = DiagTextParser()
    parser.feed("Starting test: Connectivity")
    parser.feed("   ......................... DC01 passed test Connectivity")
    assert parser.state is ParserState.AWAITING_TEST_NAME
    assert parser.current_test is None
    assert parser.finish().results == {"Connectivity": True}


def test_result_separated_by_noise_lines():
    text = (
        "Starting test: Replications\n"
        "   [Replications Check,DC01] A recent replication attempt failed\n"
        "......................... FOO passed test Replications\n"
    )
    outcome = parse_diag_text(text)
    assert outcome.results == {"Replications": True}
    assert outcome.status("Replications") == "Passed"


def test_failed_marker_records_failure():
    outcome = parse_diag_text("Starting test: Services\n......................... DC01 failed test Services\n")
    assert outcome.results == {"Services": False}
    assert outcome.status("Services") == "Failed"


def test_result_without_test_in_progress_is_ignored():
    parser = DiagTextParser()
    parser.feed("......................... DC01 passed test Orphan")
    assert parser.state is ParserState.AWAITING_TEST_NAME
    parser.feed("Starting test: Advertising")
    assert parser.finish().results == {}


def test_start_without_result_contributes_no_entry():
    outcome = parse_diag_text("Starting test: FSMOCheck\n   some output\n")
    assert outcome.results == {}
    assert outcome.unresolved == ("FSMOCheck",)
    assert outcome.status("FSMOCheck") == "Unknown"


def test_new_start_abandons_pending_test():
    text = (
        "Starting test: NetLogons\n"
        "Starting test: Advertising\n"
        "......................... DC01 passed test Advertising\n"
    )
    outcome = parse_diag_text(text)
    assert outcome.results == {"Advertising": True}
    assert outcome.unresolved == ("NetLogons",)


def test_repeated_test_name_last_write_wins():
    text = (
        "Starting test: Services\n"
        "......................... DC01 passed test Services\n"
        "Starting test: Services\n"
        "......................... DC01 failed test Services\n"
    )
    assert parse_diag_text(text).results == {"Services": False}


def test_unrelated_lines_are_ignored():
    outcome = parse_diag_text("Directory Server Diagnosis\n\nDoing primary tests\n")
    assert outcome.results == {}
    assert outcome.unresolved == ()


def test_all_failed_marks_every_name():
    outcome = DiagOutcome.all_failed(["NetLogons", "Services"])
    assert outcome.status("NetLogons") == "Failed"
    assert outcome.status("Services") == "Failed"
    assert outcome.status("Advertising") == "Unknown"


def test_query_failed_reports_label_for_every_name():
    outcome = DiagOutcome.query_failed("DCDIAG Failure")
    assert outcome.results == {}
    assert outcome.status("NetLogons") == "DCDIAG Failure"
    assert outcome.status("FSMOCheck") == "DCDIAG Failure"


def test_error_only_output_yields_no_verdicts():
    text = "Ldap search capability attribute search failed on server DC01, return value = 81\n"
    assert parse_diag_text(text).results == {}
    assert parse_diag_text("").results == {}
