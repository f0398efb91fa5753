import asyncio
from datetime import timedelta

from examportal.models.submission_model import SubmissionStatus

from conftest import utcnow


def payload(exam, *answers, time_spent=120):
    return {
        "answers": [{"questionId": str(q.id), "answer": a} for q, a in zip(exam.questions, answers)],
        "timeSpent": time_spent,
    }


async def test_autosave_creates_in_progress_attempt(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])

    res = await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1", time_spent=30))
    assert res.status_code == 200
    assert res.json() == {"message": "Progress saved"}

    sub = await fetch_submission(exam.id, users["student"].id)
    assert sub.status == SubmissionStatus.IN_PROGRESS
    assert sub.auto_saved is True
    assert sub.time_spent == 30
    assert sub.answers == [{"questionId": str(exam.questions[0].id), "answer": "1"}]

    # last write wins
    res = await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "2", "3", time_spent=45))
    assert res.status_code == 200
    sub = await fetch_submission(exam.id, users["student"].id)
    assert [a["answer"] for a in sub.answers] == ["2", "3"]
    assert sub.time_spent == 45


async def test_submit_grades_multiple_choice(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])

    res = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "1"))
    assert res.status_code == 200
    body = res.json()
    assert body["submission"]["totalScore"] == 5
    assert body["submission"]["percentage"] == 50
    assert body["submission"]["status"] == "graded"

    sub = await fetch_submission(exam.id, users["student"].id)
    assert sub.status == SubmissionStatus.GRADED
    assert sub.submitted_at is not None
    assert sub.graded_at is not None
    assert sub.time_spent == 120


async def test_submit_with_written_question_stays_submitted(client, login_as, users, make_exam, written_question):
    from examportal.models.exam_model import ExamQuestion

    exam = await make_exam(questions=[
        ExamQuestion(text="2 + 2?", options=["3", "4"], correct_answer=1, points=5),
        written_question,
    ])
    login_as(users["student"])

    res = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "Tasks and microtasks"))
    assert res.status_code == 200
    sub = res.json()["submission"]
    assert sub["status"] == "submitted"
    assert sub["totalScore"] == 5
    assert sub["percentage"] == round(5 / 15 * 100, 2)


async def test_submit_merges_autosaved_answers(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])
    await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1", "0"))

    # only the second answer changes at submit time
    body = {"answers": [{"questionId": str(exam.questions[1].id), "answer": "2"}], "timeSpent": 300}
    res = await client.post(f"/api/exams/{exam.id}/submit", json=body)
    assert res.status_code == 200
    assert res.json()["submission"]["totalScore"] == 10

    sub = await fetch_submission(exam.id, users["student"].id)
    assert [a["answer"] for a in sub.answers] == ["1", "2"]


async def test_autosave_after_submit_is_rejected(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])
    res = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))
    assert res.status_code == 200

    res = await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "0", "0", time_spent=999))
    assert res.status_code == 409
    assert res.json()["isSubmitted"] is True

    sub = await fetch_submission(exam.id, users["student"].id)
    assert [a["answer"] for a in sub.answers] == ["1", "2"]
    assert sub.status == SubmissionStatus.GRADED
    assert sub.time_spent == 120


async def test_second_submit_is_duplicate(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])
    first = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))
    assert first.status_code == 200

    second = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "0", "0"))
    assert second.status_code == 400
    assert second.json()["isSubmitted"] is True

    sub = await fetch_submission(exam.id, users["student"].id)
    assert sub.total_score == 10


async def test_concurrent_submits_produce_one_terminal_record(client, login_as, users, make_exam, fetch_submission):
    exam = await make_exam()
    login_as(users["student"])
    # the attempt already exists, as it would after the first autosave
    await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1"))

    responses = await asyncio.gather(*[
        client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2", time_spent=60 + i))
        for i in range(5)
    ])

    codes = sorted(r.status_code for r in responses)
    assert codes == [200, 400, 400, 400, 400]
    assert all(r.json()["isSubmitted"] for r in responses if r.status_code == 400)

    winner = next(r for r in responses if r.status_code == 200).json()["submission"]
    sub = await fetch_submission(exam.id, users["student"].id)
    assert str(sub.id) == winner["id"]
    assert sub.status == SubmissionStatus.GRADED


async def test_concurrent_first_submits_without_autosave(client, login_as, users, make_exam):
    exam = await make_exam()
    login_as(users["student"])

    responses = await asyncio.gather(*[
        client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2")) for _ in range(3)
    ])
    assert sorted(r.status_code for r in responses) == [200, 400, 400]


async def test_upcoming_exam_refuses_writes(client, login_as, users, make_exam):
    now = utcnow()
    exam = await make_exam(start=now + timedelta(days=1), end=now + timedelta(days=2))
    login_as(users["student"])

    assert (await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1"))).status_code == 403
    assert (await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))).status_code == 403


async def test_other_class_is_denied(client, login_as, users, make_exam):
    exam = await make_exam()
    login_as(users["outsider"])

    assert (await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1"))).status_code == 403
    assert (await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))).status_code == 403


async def test_submit_after_window_needs_started_attempt(client, login_as, users, make_exam, session_maker):
    from sqlalchemy import update
    from examportal.models.exam_model import Exam

    exam = await make_exam()
    login_as(users["student"])
    await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1"))

    # close the window behind the student's back
    async with session_maker() as db:
        await db.execute(update(Exam).where(Exam.id == exam.id).values(end_date=utcnow() - timedelta(minutes=1)))
        await db.commit()

    assert (await client.put(f"/api/exams/{exam.id}/auto-save", json=payload(exam, "1", "2"))).status_code == 403
    res = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))
    assert res.status_code == 200

    login_as(users["student"])
    late = await make_exam(start=utcnow() - timedelta(days=2), end=utcnow() - timedelta(days=1))
    assert (await client.post(f"/api/exams/{late.id}/submit", json=payload(late, "1", "2"))).status_code == 403


async def test_staff_cannot_submit(client, login_as, users, make_exam):
    exam = await make_exam()
    login_as(users["teacher"])
    res = await client.post(f"/api/exams/{exam.id}/submit", json=payload(exam, "1", "2"))
    assert res.status_code == 403


async def test_unknown_exam_is_404(client, login_as, users):
    import uuid

    login_as(users["student"])
    res = await client.post(f"/api/exams/{uuid.uuid4()}/submit", json={"answers": [], "timeSpent": 0})
    assert res.status_code == 404
