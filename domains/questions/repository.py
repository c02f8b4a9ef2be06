"""Questions repository layer."""

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from models import DIFFICULTY_ORDER, Question, QuestionAttempt

_difficulty_rank = case(
    {name: rank for rank, name in enumerate(DIFFICULTY_ORDER)},
    value=Question.difficulty,
    else_=len(DIFFICULTY_ORDER),
)


def get_question(db: Session, question_id: int):
    return db.query(Question).filter(Question.id == question_id).first()


def create_question(db: Session, *, room_id, content, options, correct_option_index, difficulty):
    question = Question(
        room_id=room_id,
        content=content,
        options=list(options),
        correct_option_index=correct_option_index,
        difficulty=difficulty,
    )
    db.add(question)
    return question


def list_room_questions(db: Session, room_id: int):
    return (
        db.query(Question)
        .filter(Question.room_id == room_id)
        .order_by(_difficulty_rank, Question.created_at, Question.id)
        .all()
    )


def list_questions_not_attempted_by(db: Session, room_id: int, participant_id: int):
    attempted = select(QuestionAttempt.question_id).where(
        QuestionAttempt.participant_id == participant_id
    )
    return (
        db.query(Question)
        .filter(Question.room_id == room_id, Question.id.notin_(attempted))
        .order_by(_difficulty_rank, Question.created_at, Question.id)
        .all()
    )


def has_attempted(db: Session, question_id: int, participant_id: int) -> bool:
    return (
        db.query(QuestionAttempt.id)
        .filter(
            QuestionAttempt.question_id == question_id,
            QuestionAttempt.participant_id == participant_id,
        )
        .first()
        is not None
    )


def add_attempt(db: Session, *, question, participant_id, answer_index, is_correct):
    attempt = QuestionAttempt(
        question_id=question.id,
        participant_id=participant_id,
        room_id=question.room_id,
        answer_index=answer_index,
        is_correct=is_correct,
    )
    db.add(attempt)
    return attempt


def mark_solved(db: Session, question_id: int) -> None:
    db.execute(
        update(Question)
        .where(Question.id == question_id, Question.is_solved.is_(False))
        .values(is_solved=True)
        .execution_options(synchronize_session=False)
    )
