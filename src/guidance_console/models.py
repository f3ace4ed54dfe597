"""Record types for each view, with one normalization step per server payload."""
from dataclasses import dataclass, field
from typing import Any, Optional

from guidance_console.classify import is_passing, pass_label


def _num(value, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _str(value, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _first(payload: dict, *names, default=None):
    for name in names:
        if payload.get(name) is not None:
            return payload[name]
    return default


def _full_name(first, middle, last) -> str:
    return " ".join(part.strip() for part in (first, middle, last) if part and str(part).strip())


@dataclass(frozen=True)
class QuestionStat:
    question_id: int
    question: str = ""
    category: str = ""
    exam_ref_no: str = ""
    total_attempts: int = 0
    avg_time_seconds: float = 0.0
    min_time_seconds: float = 0.0
    max_time_seconds: float = 0.0
    slow_attempts: int = 0
    slow_percentage: float = 0.0
    wrong_attempts: int = 0
    correct_attempts: int = 0
    wrong_percentage: float = 0.0
    correct_percentage: float = 0.0

    @classmethod
    def from_payload(cls, payload: dict) -> "QuestionStat":
        wrong_pct = _num(payload.get("wrong_percentage"))
        correct_raw = payload.get("correct_percentage")
        return cls(
            question_id=_int(_first(payload, "questionId", "question_id", "id")),
            question=_str(payload.get("question")),
            category=_str(payload.get("category")),
            exam_ref_no=_str(_first(payload, "exam_ref_no", "exam-ref-no")),
            total_attempts=_int(payload.get("total_attempts")),
            avg_time_seconds=_num(payload.get("avg_time_seconds")),
            min_time_seconds=_num(payload.get("min_time_seconds")),
            max_time_seconds=_num(payload.get("max_time_seconds")),
            slow_attempts=_int(payload.get("slow_attempts")),
            slow_percentage=_num(payload.get("slow_percentage")),
            wrong_attempts=_int(payload.get("wrong_attempts")),
            correct_attempts=_int(payload.get("correct_attempts")),
            wrong_percentage=wrong_pct,
            correct_percentage=_num(correct_raw) if correct_raw is not None else round(100 - wrong_pct, 1),
        )


@dataclass(frozen=True)
class AvailableExam:
    exam_id: int
    exam_ref_no: str = ""
    status: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "AvailableExam":
        return cls(
            exam_id=_int(_first(payload, "examId", "exam_id", "id")),
            exam_ref_no=_str(_first(payload, "exam_ref_no", "exam-ref-no")),
            status=_str(payload.get("status")),
        )


@dataclass(frozen=True)
class ExamResult:
    result_id: int
    examinee_name: str = ""
    exam_ref_no: str = ""
    status: str = ""
    remarks: str = ""
    score: float = 0.0
    total_items: int = 0
    correct: int = 0
    finished_at: Optional[str] = None
    school_year: str = ""
    semester: str = ""
    personality_type: str = ""
    is_archived: bool = False

    @property
    def finished_key(self) -> str:
        """``finished_at`` as ``YYYY-MM-DD HH:MM:SS`` so both server formats order together."""
        if not self.finished_at:
            return ""
        return self.finished_at.replace("T", " ").rstrip("Z")[:19]

    @property
    def passed(self) -> bool:
        return is_passing(self.score)

    @classmethod
    def from_payload(cls, payload: dict) -> "ExamResult":
        examinee = payload.get("examinee") or {}
        exam = payload.get("exam") or {}
        personality = payload.get("personality") or {}
        name = _first(payload, "examinee_name", "examinee_full_name") or examinee.get("full_name")
        if not name:
            name = _full_name(examinee.get("fname"), examinee.get("mname"), examinee.get("lname"))
        finished = payload.get("finished_at")
        return cls(
            result_id=_int(_first(payload, "resultId", "result_id", "id")),
            examinee_name=_str(name),
            exam_ref_no=_str(_first(payload, "exam_ref_no") or exam.get("exam-ref-no") or exam.get("exam_ref_no")),
            status=_str(payload.get("status")),
            remarks=_str(payload.get("remarks")),
            score=_num(payload.get("score")),
            total_items=_int(payload.get("total_items")),
            correct=_int(payload.get("correct")),
            finished_at=_str(finished) or None,
            school_year=_str(payload.get("school_year")),
            semester=_str(payload.get("semester")),
            personality_type=_str(payload.get("personality_type") or personality.get("type")),
            is_archived=bool(_int(payload.get("is_archived"))),
        )


@dataclass(frozen=True)
class Exam:
    exam_id: int
    exam_ref_no: str = ""
    status: str = "inactive"
    time_limit: int = 0
    question_count: int = 0
    personality_question_count: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Exam":
        questions = payload.get("questions")
        personality = _first(payload, "personalityQuestions", "personality_questions")
        return cls(
            exam_id=_int(_first(payload, "examId", "exam_id", "id")),
            exam_ref_no=_str(_first(payload, "exam-ref-no", "exam_ref_no")),
            status=_str(payload.get("status"), "inactive").lower(),
            time_limit=_int(payload.get("time_limit")),
            question_count=len(questions) if isinstance(questions, list) else _int(payload.get("question_count")),
            personality_question_count=(
                len(personality) if isinstance(personality, list)
                else _int(payload.get("personality_question_count"))
            ),
            created_at=_str(payload.get("created_at")) or None,
        )


@dataclass(frozen=True)
class InProgressExam:
    result_id: int
    examinee_id: int = 0
    examinee_name: str = ""
    exam_id: int = 0
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    total_items: int = 0
    correct: int = 0
    percentage: Optional[float] = None
    will_be: str = ""

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    @classmethod
    def from_payload(cls, payload: dict) -> "InProgressExam":
        pct = payload.get("percentage")
        return cls(
            result_id=_int(_first(payload, "resultId", "result_id", "id")),
            examinee_id=_int(_first(payload, "examineeId", "examinee_id")),
            examinee_name=_str(_first(payload, "examinee_name", "examinee_full_name"), "Unknown"),
            exam_id=_int(_first(payload, "examId", "exam_id")),
            started_at=_str(payload.get("started_at")) or None,
            finished_at=_str(payload.get("finished_at")) or None,
            total_items=_int(payload.get("total_items")),
            correct=_int(payload.get("correct")),
            percentage=_num(pct) if pct is not None else None,
            will_be=_str(payload.get("will_be")) or (pass_label(_num(pct)) if pct is not None else ""),
        )


@dataclass(frozen=True)
class IncompleteRegistration:
    id: int
    email: str = ""
    name: str = ""
    created_at: Optional[str] = None
    email_verified: bool = False
    issue_type: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "IncompleteRegistration":
        verified = payload.get("email_verified")
        if isinstance(verified, str):
            verified = verified.strip().lower() in ("yes", "true", "1")
        return cls(
            id=_int(payload.get("id")),
            email=_str(payload.get("email")),
            name=_str(_first(payload, "name", "username")),
            created_at=_str(payload.get("created_at")) or None,
            email_verified=bool(verified),
            issue_type=_str(payload.get("issue_type")),
        )


@dataclass
class WorkingSet:
    """One fetch: the full record list plus metadata the server sent alongside it."""
    records: list = field(default_factory=list)
    total: int = 0
    facets: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)
