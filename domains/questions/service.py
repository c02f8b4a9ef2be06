"""Questions service layer.

Answer submission is the only path that mints tokens. A participant gets exactly
one submission per question: the attempt row is inserted under a unique
(question, participant) constraint, and that insert is the gate, not a prior read.
"""

import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import TOKENS_PER_CORRECT_ANSWER
from core.participants import participant_in_room
from core.results import Err, ErrorKind, Ok, Result, not_found, validation_error
from core.rooms import get_room
from models import DIFFICULTY_ORDER
from utils import token_ledger
from utils.logging_helpers import log_info, log_warning

from . import repository as questions_repository
from .schemas import QuestionCreate

logger = logging.getLogger(__name__)


def question_to_dict(question, include_answer: bool = False) -> dict:
    data = {
        "id": question.id,
        "room_id": question.room_id,
        "content": question.content,
        "options": list(question.options),
        "difficulty": question.difficulty,
        "is_solved": question.is_solved,
        "created_at": question.created_at,
    }
    if include_answer:
        data["correct_option_index"] = question.correct_option_index
    return data


def create_question(db: Session, room_id: int, payload: dict) -> Result:
    return bulk_create_questions(db, room_id, [payload], single=True)


def bulk_create_questions(db: Session, room_id: int, payloads: List[dict], single: bool = False) -> Result:
    """Validate every question first; nothing is stored unless all of them pass."""
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")
    if not payloads:
        return validation_error("questions: At least one question is required")

    validated = []
    for index, payload in enumerate(payloads):
        try:
            validated.append(QuestionCreate(**payload))
        except ValidationError as exc:
            err = validation_error(exc)
            message = err.message if single else f"Question {index + 1}: {err.message}"
            log_warning(logger, "Question rejected", room_id=room.id, index=index)
            return Err(ErrorKind.VALIDATION_ERROR, message)

    try:
        created = [
            questions_repository.create_question(
                db,
                room_id=room.id,
                content=q.content,
                options=q.options,
                correct_option_index=q.correct_option_index,
                difficulty=q.difficulty.value,
            )
            for q in validated
        ]
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(logger, "Questions created", room_id=room.id, count=len(created))
    if single:
        return Ok(question_to_dict(created[0], include_answer=True))
    return Ok({"count": len(created)})


def list_questions(db: Session, room_id: int) -> Result:
    """Admin view of every question in the room, correct answers included."""
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")
    questions = questions_repository.list_room_questions(db, room.id)
    return Ok([question_to_dict(q, include_answer=True) for q in questions])


def list_available_questions(db: Session, room_id: int, participant_id: int) -> Result:
    """Questions this participant has not answered yet, grouped by difficulty."""
    room = get_room(db, room_id=room_id)
    if not room:
        return not_found("Game room")
    questions = questions_repository.list_questions_not_attempted_by(
        db, room.id, participant_id
    )
    grouped = {difficulty: [] for difficulty in DIFFICULTY_ORDER}
    for question in questions:
        grouped.setdefault(question.difficulty, []).append(question_to_dict(question))
    return Ok(grouped)


def submit_answer(db: Session, question_id: int, participant_id: int, answer_index: int) -> Result:
    """
    Record a participant's one answer to a question.

    Right or wrong, the participant is added to the question's solvers so they
    cannot retry. A correct answer marks the question solved (display only) and
    credits the participant's token balance in the same transaction.

    Returns:
        Ok({"is_correct": bool, "tokens": int}) or Err(NOT_FOUND | ALREADY_ANSWERED | VALIDATION_ERROR)
    """
    question = questions_repository.get_question(db, question_id)
    if not question:
        return not_found("Question")

    if not participant_in_room(db, participant_id=participant_id, room_id=question.room_id):
        return not_found("Participant")

    if questions_repository.has_attempted(db, question.id, participant_id):
        log_warning(logger, "Repeat answer rejected", participant_id, question_id=question.id)
        return Err(ErrorKind.ALREADY_ANSWERED, "You have already answered this question")

    if isinstance(answer_index, bool) or not isinstance(answer_index, int):
        return validation_error("answer_index: must be an integer")
    if answer_index < 0 or answer_index >= len(question.options):
        return validation_error("answer_index: must point at one of the options")

    is_correct = answer_index == question.correct_option_index
    room_id = question.room_id

    try:
        try:
            with db.begin_nested():
                questions_repository.add_attempt(
                    db,
                    question=question,
                    participant_id=participant_id,
                    answer_index=answer_index,
                    is_correct=is_correct,
                )
        except IntegrityError:
            # Lost a race against a concurrent submission by the same participant
            db.rollback()
            log_warning(logger, "Concurrent repeat answer rejected", participant_id, question_id=question_id)
            return Err(ErrorKind.ALREADY_ANSWERED, "You have already answered this question")

        if is_correct:
            questions_repository.mark_solved(db, question_id)
            balance = token_ledger.credit(db, participant_id, room_id, TOKENS_PER_CORRECT_ANSWER)
        else:
            balance = token_ledger.get_balance(db, participant_id, room_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(
        logger,
        "Answer recorded",
        participant_id,
        question_id=question_id,
        room_id=room_id,
        correct=is_correct,
        tokens=balance,
    )
    return Ok({"is_correct": is_correct, "tokens": balance})
