import uuid

from examportal.models.exam_model import QuestionType
from examportal.models.submission_model import SubmissionStatus
from examportal.services.grading_service import grade_submission, normalize_answers


class DummyQuestion:
    def __init__(self, id, correct_answer=None, points=1, type=QuestionType.MULTIPLE_CHOICE):
        self.id = id
        self.type = type
        self.correct_answer = correct_answer
        self.points = points


def test_two_choice_questions_half_right():
    q1 = DummyQuestion(id="q1", correct_answer=1, points=5)
    q2 = DummyQuestion(id="q2", correct_answer=2, points=5)

    answers = [{"questionId": "q1", "answer": "1"}, {"questionId": "q2", "answer": "1"}]
    result = grade_submission(answers, [q1, q2])

    assert result.total_score == 5
    assert result.percentage == 50
    assert result.status == SubmissionStatus.GRADED
    assert result.answers[0]["isCorrect"] is True
    assert result.answers[0]["pointsEarned"] == 5.0
    assert result.answers[1]["isCorrect"] is False
    assert result.answers[1]["pointsEarned"] == 0.0


def test_regrading_is_idempotent():
    questions = [DummyQuestion(id="q1", correct_answer=0, points=3), DummyQuestion(id="q2", correct_answer=1, points=7)]
    answers = [{"questionId": "q1", "answer": "0"}, {"questionId": "q2", "answer": "0"}]

    first = grade_submission(answers, questions)
    second = grade_submission(answers, questions)

    assert first == second
    assert first.total_score == 3
    assert first.percentage == 30


def test_written_question_is_not_graded_and_keeps_submitted():
    q1 = DummyQuestion(id=uuid.uuid4(), type=QuestionType.WRITTEN, points=5)
    q2 = DummyQuestion(id=2, correct_answer=1, points=2)

    answers = [{"questionId": str(q1.id), "answer": "Some text"}, {"questionId": "2", "answer": "1"}]
    result = grade_submission(answers, [q1, q2])

    written = result.answers[0]
    assert "isCorrect" not in written
    assert "pointsEarned" not in written
    assert written["answer"] == "Some text"
    assert result.total_score == 2
    # 2 of 7 marks; the written part is still pending
    assert result.percentage == round(2 / 7 * 100, 2)
    assert result.status == SubmissionStatus.SUBMITTED


def test_missing_and_garbage_answers_score_zero():
    q = DummyQuestion(id="q1", correct_answer=1, points=4)

    assert grade_submission([], [q]).total_score == 0
    assert grade_submission([{"questionId": "q1", "answer": "one"}], [q]).total_score == 0
    assert grade_submission([{"questionId": "q1", "answer": " 1 "}], [q]).total_score == 4


def test_unknown_questions_are_dropped():
    q = DummyQuestion(id="q1", correct_answer=0, points=1)
    result = grade_submission([{"questionId": "nope", "answer": "0"}, {"questionId": "q1", "answer": "0"}], [q])
    assert [a["questionId"] for a in result.answers] == ["q1"]
    assert result.percentage == 100


def test_zero_total_marks_gives_zero_percentage():
    result = grade_submission([], [])
    assert result.total_score == 0
    assert result.percentage == 0
    assert result.status == SubmissionStatus.GRADED


def test_normalize_answers_last_write_wins_keeps_first_position():
    merged = normalize_answers(
        [{"questionId": "a", "answer": "1"}, {"questionId": "b", "answer": "2"}],
        [{"questionId": "a", "answer": "3"}, {"questionId": 7, "answer": 0}],
    )
    assert merged == [
        {"questionId": "a", "answer": "3"},
        {"questionId": "b", "answer": "2"},
        {"questionId": "7", "answer": "0"},
    ]
