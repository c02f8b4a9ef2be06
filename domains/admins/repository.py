"""Admins repository layer."""

from sqlalchemy.orm import Session

from models import AdminUser


def any_admin_exists(db: Session) -> bool:
    return db.query(AdminUser.id).first() is not None


def get_admin_by_email(db: Session, email: str):
    return db.query(AdminUser).filter(AdminUser.email == email).first()


def create_admin(db: Session, *, name: str, email: str, password_hash: str):
    admin = AdminUser(name=name, email=email, password_hash=password_hash)
    db.add(admin)
    return admin
