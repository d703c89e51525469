"""Per-student progress ledger: attendance, homework, quiz and messaging state."""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional, Sequence, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..core.database import insert_if_absent
from ..models import AccountState, HomeworkState, PeriodKey, PeriodRecord, QuizState, Student
from ..utils.datetime import parse_legacy_stamp, utcnow
from . import credit_service, history_service
from .errors import Conflict, InsufficientCredit, InvalidState, MustAttendFirst
from .student_directory import get_active_student, get_student

logger = logging.getLogger(__name__)

Score = tuple[Decimal, Decimal]
QuizResult = Union[Score, tuple[float, float], QuizState, None]

MESSAGE_FLAGS = {
    "student": "student_message_sent",
    "parent": "parent_message_sent",
}

# Homework states a grader may pick; NOT_DONE only comes from un-attending.
GRADED_HOMEWORK_STATES = (HomeworkState.DONE, HomeworkState.NO_HOMEWORK, HomeworkState.NOT_COMPLETED)
SCORE_LIMIT = Decimal("100000000")

_SCORE_TEXT = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)\s*$")


def _validate_score(score) -> Score:
    try:
        obtained, total = (Decimal(str(part)) for part in score)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidState(f"Score {score!r} is not an obtained/total pair") from exc
    if not (obtained.is_finite() and total.is_finite()) or total <= 0 or obtained < 0 or obtained > total:
        raise InvalidState(f"Score {obtained}/{total} is not a valid obtained/total pair")
    # Stored as NUMERIC(10, 2).
    if any(part.as_tuple().exponent < -2 or part >= SCORE_LIMIT for part in (obtained, total)):
        raise InvalidState(f"Score {obtained}/{total} must have at most 2 decimal places and stay below {SCORE_LIMIT}")
    return obtained, total


# Legacy progress migration

class UnreadableLegacyValue(ValueError):
    """A legacy field holds something that cannot be carried over unchanged."""


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_legacy_score(value) -> Optional[Score]:
    if _is_blank(value):
        return None
    if isinstance(value, (list, tuple)) and len(value) == 2:
        pair = tuple(value)
    else:
        match = _SCORE_TEXT.match(str(value))
        if match is None:
            raise UnreadableLegacyValue(f"unreadable score {value!r}")
        pair = match.groups()
    try:
        return _validate_score(pair)
    except InvalidState as exc:
        # "0/0" is how the old screens rendered an empty score.
        if [str(part).strip() for part in pair] == ["0", "0"]:
            return None
        raise UnreadableLegacyValue(f"unreadable score {value!r}") from exc


def _legacy_homework_state(value) -> HomeworkState:
    if value is True:
        return HomeworkState.DONE
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "no homework":
            return HomeworkState.NO_HOMEWORK
        if normalized == "not completed":
            return HomeworkState.NOT_COMPLETED
        if normalized in {"true", "done"}:
            return HomeworkState.DONE
    return HomeworkState.NOT_DONE


def _legacy_quiz(value) -> tuple[QuizState, Optional[Score]]:
    if _is_blank(value):
        return QuizState.UNGRADED, None
    text = str(value).strip().lower()
    if text == "no quiz":
        return QuizState.NO_QUIZ, None
    if "didn't attend" in text or "did not attend" in text:
        return QuizState.DID_NOT_ATTEND, None
    score = _parse_legacy_score(value)
    if score is None:
        return QuizState.UNGRADED, None
    return QuizState.SCORED, score


def _legacy_values(item: dict) -> dict:
    homework_score = _parse_legacy_score(item.get("hwDegree", item.get("homework_degree")))
    quiz_state, quiz_score = _legacy_quiz(item.get("quizDegree", item.get("quiz_degree")))
    attended = bool(item.get("attended"))
    return {
        "attended": attended,
        "last_attendance_at": parse_legacy_stamp(item.get("lastAttendance")) if attended else None,
        "last_attendance_center": item.get("lastAttendanceCenter") if attended else None,
        "homework_state": _legacy_homework_state(item.get("hwDone", item.get("homework_done"))),
        "homework_obtained": homework_score[0] if homework_score else None,
        "homework_total": homework_score[1] if homework_score else None,
        "quiz_state": quiz_state,
        "quiz_obtained": quiz_score[0] if quiz_score else None,
        "quiz_total": quiz_score[1] if quiz_score else None,
        "comment": item.get("comment") or None,
        "student_message_sent": bool(item.get("message_state")),
        "parent_message_sent": bool(item.get("parent_message_state")),
        "paid": bool(item.get("paid")),
    }


def _legacy_rows(legacy) -> Iterator[tuple[PeriodKey, dict]]:
    if isinstance(legacy, dict):
        for lesson, item in legacy.items():
            if isinstance(item, dict):
                yield PeriodKey.by_name(lesson), item
        return

    for index, item in enumerate(legacy or []):
        if not isinstance(item, dict):
            continue
        if item.get("lesson"):
            yield PeriodKey.by_name(str(item["lesson"])), item
        else:
            yield PeriodKey.by_number(item.get("week") or index + 1), item


def migrate_legacy_progress(session: Session, student: Student) -> int:
    """Move a student's legacy progress blob into keyed period records.

    Records that already exist under the same key win over the legacy values.
    The legacy column is cleared afterwards. Deactivated students keep their
    legacy blob. If any legacy row cannot be read, nothing is migrated and
    :class:`InvalidState` is raised so the blob is never dropped with values
    missing. Returns the number of rows created.
    """

    if student.legacy_progress is None or student.is_deactivated:
        return 0

    try:
        rows = [(key, _legacy_values(item)) for key, item in _legacy_rows(student.legacy_progress)]
    except ValueError as exc:
        logger.warning("legacy progress for student %s left in place: %s", student.student_id, exc)
        raise InvalidState(
            f"Legacy progress for student {student.student_id} could not be migrated: {exc}"
        ) from exc

    created = 0
    for key, values in rows:
        created += insert_if_absent(
            session,
            PeriodRecord,
            {"student_id": student.student_id, "period_key": key.encode(), **values},
            ["student_id", "period_key"],
        )
        if values["attended"]:
            history_service.record(session, student_id=student.student_id, period_key=key)
            if student.current_period_key is None:
                student.current_period_key = key.encode()

    student.legacy_progress = None
    session.flush()
    logger.info("migrated %s legacy period records for student %s", created, student.student_id)
    return created


# Period records

def _load_period(session: Session, student: Student, period_key: PeriodKey) -> PeriodRecord:
    session.flush()
    migrate_legacy_progress(session, student)

    encoded = period_key.encode()
    if insert_if_absent(
        session,
        PeriodRecord,
        {"student_id": student.student_id, "period_key": encoded},
        ["student_id", "period_key"],
    ):
        logger.debug("created period %s for student %s", encoded, student.student_id)

    stmt = select(PeriodRecord).where(
        PeriodRecord.student_id == student.student_id,
        PeriodRecord.period_key == encoded,
    )
    record = session.execute(stmt).scalar_one_or_none()
    if record is None:
        raise Conflict(f"Period {encoded} for student {student.student_id} could not be created")
    return record


def ensure_period(session: Session, *, student_id: int, period_key: PeriodKey) -> PeriodRecord:
    """Return the period record, creating a default one when it does not exist yet."""

    student = get_active_student(session, student_id, for_update=True)
    return _load_period(session, student, period_key)


def _student_for_read(session: Session, student_id: int) -> Student:
    student = get_student(session, student_id)
    if student.legacy_progress is not None and not student.is_deactivated:
        # Migration writes, so take the same lock the writers take.
        student = get_student(session, student_id, for_update=True)
        migrate_legacy_progress(session, student)
    return student


def list_periods(session: Session, *, student_id: int) -> Sequence[PeriodRecord]:
    _student_for_read(session, student_id)
    stmt = select(PeriodRecord).where(PeriodRecord.student_id == student_id)
    records = session.execute(stmt).scalars().all()
    return sorted(records, key=lambda record: record.key.sort_key())


def get_progress(session: Session, *, student_id: int) -> tuple[Student, Optional[PeriodRecord]]:
    """Return the student together with the period its current-period pointer names."""

    student = _student_for_read(session, student_id)
    if student.current_period_key is None:
        return student, None

    stmt = select(PeriodRecord).where(
        PeriodRecord.student_id == student_id,
        PeriodRecord.period_key == student.current_period_key,
    )
    return student, session.execute(stmt).scalar_one_or_none()


def _clear_attendance(record: PeriodRecord) -> None:
    record.attended = False
    record.last_attendance_at = None
    record.last_attendance_center = None
    record.homework_state = HomeworkState.NOT_DONE
    record.homework_obtained = None
    record.homework_total = None
    record.quiz_state = QuizState.UNGRADED
    record.quiz_obtained = None
    record.quiz_total = None
    record.student_message_sent = False
    record.parent_message_sent = False


def set_attendance(
    session: Session,
    *,
    student_id: int,
    period_key: PeriodKey,
    attended: bool,
    center: Optional[str] = None,
) -> PeriodRecord:
    """Mark a period attended or not, keeping credits and the audit log in step.

    Marking attended charges one session credit unless the period is already
    paid; un-marking refunds it. Repeating the current state changes nothing.
    """

    student = get_active_student(session, student_id, for_update=True)
    record = _load_period(session, student, period_key)
    encoded = period_key.encode()

    if attended:
        if not record.paid and student.sessions_remaining <= 0:
            raise InsufficientCredit(f"Student {student_id} has no remaining session credits")

        if not record.paid:
            credit_service.consume_one(session, student_id=student_id, record=record)

        if not record.attended:
            record.attended = True
            record.last_attendance_at = utcnow()
            record.last_attendance_center = center
            record.updated_at = utcnow()
            student.current_period_key = encoded
            logger.info("student %s attended %s at %s", student_id, encoded, center)

        history_service.record(session, student_id=student_id, period_key=period_key)
    else:
        if record.attended:
            _clear_attendance(record)
            record.updated_at = utcnow()
            if student.current_period_key == encoded:
                student.current_period_key = None
            logger.info("student %s attendance for %s retracted", student_id, encoded)

        if record.paid:
            credit_service.refund_one(session, student_id=student_id, record=record)
        history_service.retract(session, student_id=student_id, period_key=period_key)

    session.flush()
    session.refresh(record)
    return record


def _attended_period(session: Session, student_id: int, period_key: PeriodKey) -> PeriodRecord:
    student = get_active_student(session, student_id, for_update=True)
    record = _load_period(session, student, period_key)
    if not record.attended:
        raise MustAttendFirst(f"Student {student_id} must attend {period_key.encode()} first")
    return record


def set_homework_state(
    session: Session,
    *,
    student_id: int,
    period_key: PeriodKey,
    state: HomeworkState,
    score: Optional[Score] = None,
) -> PeriodRecord:
    """Record the homework outcome; only a DONE state may carry a score."""

    if state not in GRADED_HOMEWORK_STATES:
        raise InvalidState(f"Homework state must be one of {', '.join(s.value for s in GRADED_HOMEWORK_STATES)}")
    record = _attended_period(session, student_id, period_key)

    kept_score = _validate_score(score) if state == HomeworkState.DONE and score is not None else None
    record.homework_state = state
    record.homework_obtained = kept_score[0] if kept_score else None
    record.homework_total = kept_score[1] if kept_score else None
    record.updated_at = utcnow()
    session.flush()
    return record


def set_quiz_score(
    session: Session,
    *,
    student_id: int,
    period_key: PeriodKey,
    result: QuizResult,
) -> PeriodRecord:
    """Record a quiz score, a DID_NOT_ATTEND/NO_QUIZ outcome, or ``None`` to ungrade."""

    record = _attended_period(session, student_id, period_key)

    if result is None or result == QuizState.UNGRADED:
        state, score = QuizState.UNGRADED, None
    elif result in (QuizState.DID_NOT_ATTEND, QuizState.NO_QUIZ):
        state, score = QuizState(result), None
    elif isinstance(result, tuple):
        state, score = QuizState.SCORED, _validate_score(result)
    else:
        raise InvalidState(f"Unsupported quiz result {result!r}")

    record.quiz_state = state
    record.quiz_obtained = score[0] if score else None
    record.quiz_total = score[1] if score else None
    record.updated_at = utcnow()
    session.flush()
    return record


def set_comment(
    session: Session,
    *,
    student_id: int,
    period_key: PeriodKey,
    text: Optional[str],
) -> PeriodRecord:
    student = get_active_student(session, student_id, for_update=True)
    record = _load_period(session, student, period_key)
    record.comment = text.strip() if text and text.strip() else None
    record.updated_at = utcnow()
    session.flush()
    return record


def set_message_flag(
    session: Session,
    *,
    student_id: int,
    period_key: PeriodKey,
    which: str,
    sent: bool,
) -> PeriodRecord:
    """Record whether the student or parent notification for the period went out."""

    if which not in MESSAGE_FLAGS:
        raise InvalidState(f"Unknown message recipient {which!r}")

    student = get_active_student(session, student_id, for_update=True)
    record = _load_period(session, student, period_key)
    setattr(record, MESSAGE_FLAGS[which], bool(sent))
    record.updated_at = utcnow()
    session.flush()
    return record


# Bulk reset

def reset_student(session: Session, *, student_id: int) -> int:
    """Drop every period record and audit entry for one student.

    Session credits consumed by paid periods are not returned.
    """

    student = get_active_student(session, student_id, for_update=True)
    removed = session.execute(delete(PeriodRecord).where(PeriodRecord.student_id == student_id)).rowcount
    history_service.clear(session, student_ids=[student_id])
    student.legacy_progress = None
    student.current_period_key = None
    student.updated_at = utcnow()
    session.flush()
    session.expire(student, ["periods"])
    logger.info("reset %s period records for student %s", removed, student_id)
    return removed


def reset_all(session: Session) -> dict[str, int]:
    """Bulk reset for every active student; deactivated ledgers are left untouched."""

    active = (
        session.execute(
            select(Student)
            .where(Student.account_state == AccountState.ACTIVE)
            .order_by(Student.student_id)
            .with_for_update(nowait=False)
        )
        .scalars()
        .all()
    )
    active_ids = [student.student_id for student in active]
    summary = {"students_reset": len(active_ids), "periods_removed": 0, "history_removed": 0}
    if not active_ids:
        return summary

    summary["periods_removed"] = session.execute(
        delete(PeriodRecord)
        .where(PeriodRecord.student_id.in_(active_ids))
        .execution_options(synchronize_session=False)
    ).rowcount
    summary["history_removed"] = history_service.clear(session, student_ids=active_ids)

    for student in active:
        student.legacy_progress = None
        student.current_period_key = None
        student.updated_at = utcnow()
    session.flush()
    session.expire_all()
    logger.info("bulk reset completed: %s", summary)
    return summary
