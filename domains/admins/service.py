"""Admins service layer. A deployment has exactly one admin account."""

import logging

from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.results import Err, ErrorKind, Ok, Result, validation_error
from utils.logging_helpers import log_info, log_warning

from . import repository as admins_repository
from .schemas import AdminCreate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def admin_to_dict(admin) -> dict:
    return {
        "id": admin.id,
        "name": admin.name,
        "email": admin.email,
        "created_at": admin.created_at,
    }


def create_admin(db: Session, name: str, email: str, password: str) -> Result:
    try:
        data = AdminCreate(name=name, email=email, password=password)
    except ValidationError as exc:
        return validation_error(exc)

    if admins_repository.any_admin_exists(db):
        log_warning(logger, "Second admin creation rejected", email=data.email)
        return validation_error("Admin already exists")

    try:
        admin = admins_repository.create_admin(
            db,
            name=data.name,
            email=data.email,
            password_hash=pwd_context.hash(data.password),
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        return validation_error("Admin already exists")
    except SQLAlchemyError:
        db.rollback()
        raise

    log_info(logger, "Admin created", admin_id=admin.id)
    return Ok(admin_to_dict(admin))


def verify_admin_credentials(db: Session, email: str, password: str) -> Result:
    admin = admins_repository.get_admin_by_email(db, (email or "").strip().lower())
    if not admin or not pwd_context.verify(password or "", admin.password_hash):
        log_warning(logger, "Admin login rejected")
        return Err(ErrorKind.NOT_FOUND, "Invalid email or password")
    return Ok(admin_to_dict(admin))
