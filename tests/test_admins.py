import initialize_db
from core.results import ErrorKind
from domains.admins import service as admins_service
from models import AdminUser


def test_create_admin_hashes_password(test_db):
    result = admins_service.create_admin(test_db, "Grandma", "Grandma@Example.com ", "correct horse")

    assert result.success
    assert result.data["email"] == "grandma@example.com"
    stored = test_db.query(AdminUser).one()
    assert stored.password_hash != "correct horse"
    assert admins_service.pwd_context.verify("correct horse", stored.password_hash)


def test_only_one_admin_allowed(test_db):
    admins_service.create_admin(test_db, "First", "first@example.com", "password1")
    second = admins_service.create_admin(test_db, "Second", "second@example.com", "password2")

    assert second.kind == ErrorKind.VALIDATION_ERROR
    assert second.message == "Admin already exists"
    assert test_db.query(AdminUser).count() == 1


def test_admin_input_is_validated(test_db):
    assert admins_service.create_admin(test_db, "X", "not-an-email", "password1").kind == ErrorKind.VALIDATION_ERROR
    assert admins_service.create_admin(test_db, "X", "x@example.com", "short").kind == ErrorKind.VALIDATION_ERROR


def test_verify_admin_credentials(test_db):
    admins_service.create_admin(test_db, "Host", "host@example.com", "s3cret-pass")

    ok = admins_service.verify_admin_credentials(test_db, "HOST@example.com", "s3cret-pass")
    assert ok.data["name"] == "Host"

    wrong = admins_service.verify_admin_credentials(test_db, "host@example.com", "nope")
    assert wrong.kind == ErrorKind.NOT_FOUND
    assert wrong.message == "Invalid email or password"
    assert admins_service.verify_admin_credentials(test_db, "nobody@example.com", "x").kind == ErrorKind.NOT_FOUND


def test_initialize_db_creates_admin_from_environment(persistence, session_factory, monkeypatch):
    monkeypatch.setattr(initialize_db, "ADMIN_NAME", "Party Host")
    monkeypatch.setattr(initialize_db, "ADMIN_EMAIL", "party@example.com")
    monkeypatch.setattr(initialize_db, "ADMIN_PASSWORD", "let-me-in-please")

    initialize_db.init_db(persistence)
    initialize_db.init_db(persistence)

    db = session_factory()
    try:
        assert [a.email for a in db.query(AdminUser).all()] == ["party@example.com"]
    finally:
        db.close()
