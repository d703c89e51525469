from decimal import Decimal

import pytest
from sqlalchemy import func, select

from tutorledger.models import AccountState, AttendanceHistory, HomeworkState, PeriodKey, PeriodRecord, QuizState
from tutorledger.services import ledger_service
from tutorledger.services.errors import (
    AccountDeactivated,
    InsufficientCredit,
    InvalidState,
    MustAttendFirst,
    NotFound,
)

WEEK_3 = PeriodKey.by_number(3)


def _history_count(db, student_id, key=WEEK_3):
    stmt = select(func.count(AttendanceHistory.entry_id)).where(
        AttendanceHistory.student_id == student_id,
        AttendanceHistory.period_key == key.encode(),
    )
    return db.execute(stmt).scalar_one()


def test_new_period_has_defaults_and_requires_attendance_for_homework(db, make_student):
    make_student(1, sessions=2)

    record = ledger_service.ensure_period(db, student_id=1, period_key=WEEK_3)
    assert record.attended is False
    assert record.paid is False
    assert record.homework_state == HomeworkState.NOT_DONE
    assert record.quiz_score is None

    with pytest.raises(MustAttendFirst):
        ledger_service.set_homework_state(db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE)


def test_ensure_period_is_idempotent(db, make_student):
    make_student(1)
    first = ledger_service.ensure_period(db, student_id=1, period_key=WEEK_3)
    second = ledger_service.ensure_period(db, student_id=1, period_key=WEEK_3)
    assert first.record_id == second.record_id
    count = db.execute(select(func.count(PeriodRecord.record_id))).scalar_one()
    assert count == 1


def test_attend_without_credit_is_rejected(db, make_student):
    student = make_student(1, sessions=0)

    with pytest.raises(InsufficientCredit):
        ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    db.rollback()

    db.refresh(student)
    assert student.sessions_remaining == 0
    assert _history_count(db, 1) == 0


def test_attend_then_unattend_restores_credit(db, make_student):
    student = make_student(1, sessions=1)

    record = ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True, center="Maadi")
    db.commit()
    db.refresh(student)
    assert student.sessions_remaining == 0
    assert record.paid is True
    assert record.attended is True
    assert record.last_attendance_center == "Maadi"
    assert record.last_attendance_at is not None
    assert student.current_period_key == "week:3"
    assert _history_count(db, 1) == 1

    record = ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=False)
    db.commit()
    db.refresh(student)
    assert student.sessions_remaining == 1
    assert record.paid is False
    assert record.attended is False
    assert record.last_attendance_at is None
    assert student.current_period_key is None
    assert _history_count(db, 1) == 0


def test_double_attend_consumes_one_credit(db, make_student):
    student = make_student(1, sessions=3)

    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    db.commit()

    db.refresh(student)
    assert student.sessions_remaining == 2
    assert _history_count(db, 1) == 1


def test_reattend_paid_period_with_zero_balance_is_allowed(db, make_student):
    student = make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    db.commit()

    record = ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    db.commit()
    db.refresh(student)
    assert record.attended is True
    assert student.sessions_remaining == 0


def test_unattend_clears_grades_but_keeps_comment(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_homework_state(
        db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE, score=(8, 10)
    )
    ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=(14, 20))
    ledger_service.set_message_flag(db, student_id=1, period_key=WEEK_3, which="parent", sent=True)
    ledger_service.set_comment(db, student_id=1, period_key=WEEK_3, text="  needs revision  ")

    record = ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=False)
    assert record.homework_state == HomeworkState.NOT_DONE
    assert record.homework_score is None
    assert record.quiz_state == QuizState.UNGRADED
    assert record.quiz_score is None
    assert record.parent_message_sent is False
    assert record.comment == "needs revision"


def test_homework_score_kept_only_when_done(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)

    record = ledger_service.set_homework_state(
        db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE, score=(7, 10)
    )
    assert record.homework_score == (7, 10)

    record = ledger_service.set_homework_state(
        db, student_id=1, period_key=WEEK_3, state=HomeworkState.NO_HOMEWORK, score=(7, 10)
    )
    assert record.homework_state == HomeworkState.NO_HOMEWORK
    assert record.homework_score is None


def test_invalid_scores_are_rejected(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)

    with pytest.raises(InvalidState):
        ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=(11, 10))
    with pytest.raises(InvalidState):
        ledger_service.set_homework_state(
            db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE, score=(1, 0)
        )


def test_fractional_scores_are_kept(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)

    record = ledger_service.set_homework_state(
        db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE, score=(Decimal("8.5"), 10)
    )
    record = ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=(17.25, 20))
    db.commit()
    db.refresh(record)

    assert record.homework_score == (Decimal("8.5"), 10)
    assert record.quiz_score == (Decimal("17.25"), 20)

    with pytest.raises(InvalidState):
        ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=(Decimal("1.005"), 10))


def test_not_done_is_not_a_graded_homework_state(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_homework_state(db, student_id=1, period_key=WEEK_3, state=HomeworkState.DONE, score=(7, 10))

    with pytest.raises(InvalidState):
        ledger_service.set_homework_state(db, student_id=1, period_key=WEEK_3, state=HomeworkState.NOT_DONE)

    record = ledger_service.ensure_period(db, student_id=1, period_key=WEEK_3)
    assert record.homework_state == HomeworkState.DONE
    assert record.homework_score == (7, 10)


def test_quiz_outcomes(db, make_student):
    make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)

    record = ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=(9, 10))
    assert record.quiz_state == QuizState.SCORED
    assert record.quiz_score == (9, 10)

    record = ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=QuizState.NO_QUIZ)
    assert record.quiz_state == QuizState.NO_QUIZ
    assert record.quiz_score is None

    record = ledger_service.set_quiz_score(db, student_id=1, period_key=WEEK_3, result=None)
    assert record.quiz_state == QuizState.UNGRADED


def test_comment_and_flags_do_not_need_attendance(db, make_student):
    make_student(1)
    record = ledger_service.set_comment(db, student_id=1, period_key=WEEK_3, text="   ")
    assert record.comment is None
    record = ledger_service.set_message_flag(db, student_id=1, period_key=WEEK_3, which="student", sent=True)
    assert record.student_message_sent is True
    assert record.attended is False

    with pytest.raises(InvalidState):
        ledger_service.set_message_flag(db, student_id=1, period_key=WEEK_3, which="tutor", sent=True)


def test_deactivated_student_is_never_mutated(db, make_student):
    make_student(1, sessions=5, state=AccountState.DEACTIVATED)

    with pytest.raises(AccountDeactivated):
        ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    with pytest.raises(AccountDeactivated):
        ledger_service.set_comment(db, student_id=1, period_key=WEEK_3, text="hi")
    with pytest.raises(AccountDeactivated):
        ledger_service.reset_student(db, student_id=1)
    with pytest.raises(AccountDeactivated):
        ledger_service.ensure_period(db, student_id=1, period_key=WEEK_3)


def test_unknown_student(db):
    with pytest.raises(NotFound):
        ledger_service.get_progress(db, student_id=404)


def test_periods_are_independent(db, make_student):
    make_student(1, sessions=2)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_comment(db, student_id=1, period_key=PeriodKey.by_name("Optics"), text="x")

    records = ledger_service.list_periods(db, student_id=1)
    assert [record.period_key for record in records] == ["week:3", "lesson:Optics"]
    assert records[1].attended is False


def test_progress_follows_current_period_pointer(db, make_student):
    make_student(1, sessions=2)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_attendance(db, student_id=1, period_key=PeriodKey.by_number(4), attended=True)
    db.commit()

    student, record = ledger_service.get_progress(db, student_id=1)
    assert record.period_key == "week:4"
    assert student.sessions_remaining == 0

    ledger_service.set_attendance(db, student_id=1, period_key=PeriodKey.by_number(4), attended=False)
    db.commit()
    _, record = ledger_service.get_progress(db, student_id=1)
    assert record is None


def test_legacy_week_list_is_migrated_once(db, make_student):
    legacy = [
        {
            "attended": True,
            "lastAttendance": "04/10/2025 in Maadi",
            "lastAttendanceCenter": "Maadi",
            "hwDone": True,
            "hwDegree": "8 / 10",
            "quizDegree": "15/20",
            "comment": "good",
            "message_state": True,
            "paid": True,
        },
        {"attended": False, "hwDone": "No Homework", "quizDegree": "Didn't Attend The Quiz"},
    ]
    student = make_student(1, sessions=4, legacy=legacy)

    records = ledger_service.list_periods(db, student_id=1)
    db.commit()

    assert [record.period_key for record in records] == ["week:1", "week:2"]
    first, second = records
    assert first.attended is True
    assert first.paid is True
    assert first.last_attendance_center == "Maadi"
    assert first.last_attendance_at.year == 2025
    assert first.homework_state == HomeworkState.DONE
    assert first.homework_score == (8, 10)
    assert first.quiz_state == QuizState.SCORED
    assert first.quiz_score == (15, 20)
    assert first.comment == "good"
    assert first.student_message_sent is True
    assert second.homework_state == HomeworkState.NO_HOMEWORK
    assert second.quiz_state == QuizState.DID_NOT_ATTEND

    db.refresh(student)
    assert student.legacy_progress is None
    assert student.current_period_key == "week:1"
    assert student.sessions_remaining == 4
    assert _history_count(db, 1, PeriodKey.by_number(1)) == 1


def test_legacy_lesson_map_is_migrated(db, make_student):
    make_student(1, legacy={"Optics": {"attended": False, "comment": "absent"}})

    record = ledger_service.ensure_period(db, student_id=1, period_key=PeriodKey.by_name("Optics"))
    assert record.comment == "absent"
    assert record.attended is False


def test_legacy_fractional_scores_are_migrated(db, make_student):
    make_student(1, legacy=[{"attended": True, "hwDone": True, "hwDegree": "8.5 / 10", "quizDegree": "7.5/10", "paid": True}])

    record = ledger_service.list_periods(db, student_id=1)[0]

    assert record.homework_state == HomeworkState.DONE
    assert record.homework_score == (Decimal("8.5"), Decimal("10"))
    assert record.quiz_state == QuizState.SCORED
    assert record.quiz_score == (Decimal("7.5"), Decimal("10"))


def test_unreadable_legacy_progress_is_left_in_place(db, make_student):
    legacy = [
        {"attended": True, "hwDegree": "8/10", "paid": True},
        {"attended": True, "quizDegree": "twelve out of twenty"},
    ]
    student = make_student(1, sessions=2, legacy=legacy)
    db.commit()

    with pytest.raises(InvalidState):
        ledger_service.list_periods(db, student_id=1)
    db.rollback()

    db.refresh(student)
    assert student.legacy_progress == legacy
    assert db.execute(select(func.count(PeriodRecord.record_id))).scalar_one() == 0
    assert _history_count(db, 1, PeriodKey.by_number(1)) == 0


def test_reset_student_drops_records_without_refund(db, make_student):
    student = make_student(1, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    db.commit()

    removed = ledger_service.reset_student(db, student_id=1)
    db.commit()

    db.refresh(student)
    assert removed == 1
    assert student.sessions_remaining == 0
    assert student.current_period_key is None
    assert _history_count(db, 1) == 0
    assert ledger_service.list_periods(db, student_id=1) == []


def test_reset_all_skips_deactivated_students(db, make_student):
    make_student(1, sessions=1)
    make_student(2, sessions=1)
    ledger_service.set_attendance(db, student_id=1, period_key=WEEK_3, attended=True)
    ledger_service.set_attendance(db, student_id=2, period_key=WEEK_3, attended=True)
    db.commit()
    frozen = ledger_service.get_progress(db, student_id=2)[0]
    frozen.account_state = AccountState.DEACTIVATED
    db.commit()

    summary = ledger_service.reset_all(db)
    db.commit()

    assert summary == {"students_reset": 1, "periods_removed": 1, "history_removed": 1}
    assert _history_count(db, 2) == 1
    assert len(ledger_service.list_periods(db, student_id=2)) == 1
