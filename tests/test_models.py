"""Tests for payload normalization into record types."""
from dataclasses import FrozenInstanceError

import pytest

from guidance_console.models import (
    Exam, ExamResult, InProgressExam, IncompleteRegistration, QuestionStat, WorkingSet,
)


def test_question_stat_from_payload():
    q = QuestionStat.from_payload({
        "questionId": 12, "question": " What is 2+2? ", "category": "Math",
        "total_attempts": "30", "avg_time_seconds": "45.5", "wrong_percentage": 40,
    })
    assert q.question_id == 12
    assert q.question == "What is 2+2?"
    assert q.total_attempts == 30
    assert q.avg_time_seconds == 45.5
    assert q.correct_percentage == 60.0


def test_question_stat_defaults_for_missing_fields():
    q = QuestionStat.from_payload({"question_id": 3})
    assert q.category == ""
    assert q.wrong_percentage == 0.0
    assert q.avg_time_seconds == 0.0


def test_exam_result_builds_name_from_parts():
    r = ExamResult.from_payload({
        "resultId": 5, "score": "12",
        "examinee": {"fname": "Ana", "mname": "", "lname": "Cruz"},
        "exam": {"exam-ref-no": "EX-1"},
    })
    assert r.result_id == 5
    assert r.examinee_name == "Ana Cruz"
    assert r.exam_ref_no == "EX-1"
    assert r.score == 12.0
    assert r.passed


def test_exam_result_finished_key_normalizes_formats():
    spaced = ExamResult.from_payload({"id": 1, "finished_at": "2025-10-27 17:07:01"})
    iso = ExamResult.from_payload({"id": 2, "finished_at": "2025-10-27T17:07:01.000000Z"})
    missing = ExamResult.from_payload({"id": 3})
    assert spaced.finished_key == iso.finished_key == "2025-10-27 17:07:01"
    assert missing.finished_at is None
    assert missing.finished_key == ""
    assert not missing.passed


def test_exam_status_is_lowercased_with_default():
    assert Exam.from_payload({"examId": 1, "status": "Active"}).status == "active"
    assert Exam.from_payload({"examId": 2}).status == "inactive"


def test_exam_counts_question_lists():
    exam = Exam.from_payload({
        "examId": 1, "exam-ref-no": "EX-9", "time_limit": 60,
        "questions": [{}, {}, {}], "personalityQuestions": [{}],
    })
    assert exam.exam_ref_no == "EX-9"
    assert exam.question_count == 3
    assert exam.personality_question_count == 1


def test_in_progress_exam_outcome_falls_back_to_pass_mark():
    finished = InProgressExam.from_payload({"resultId": 1, "finished_at": "2025-01-01 10:00:00", "percentage": 12})
    failing = InProgressExam.from_payload({"resultId": 2, "percentage": 4})
    told = InProgressExam.from_payload({"resultId": 3, "percentage": 4, "will_be": "Passed"})
    assert finished.will_be == "Passed"
    assert finished.is_finished
    assert failing.will_be == "Failed"
    assert not failing.is_finished
    assert told.will_be == "Passed"
    assert InProgressExam.from_payload({"resultId": 4}).examinee_name == "Unknown"


def test_incomplete_registration_reads_yes_no():
    reg = IncompleteRegistration.from_payload({"id": 7, "email": "a@b.c", "name": "ana", "email_verified": "Yes"})
    assert reg.email_verified is True
    assert IncompleteRegistration.from_payload({"id": 8, "email_verified": "No"}).email_verified is False


def test_records_are_immutable():
    q = QuestionStat.from_payload({"questionId": 1})
    with pytest.raises(FrozenInstanceError):
        q.category = "changed"


def test_working_set_defaults():
    ws = WorkingSet()
    assert ws.records == []
    assert ws.total == 0
    assert ws.facets == {}
    assert ws.meta == {}
