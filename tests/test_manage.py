"""Tests for the administrator bootstrap command."""
import pytest

from conftest import TEST_PASSWORD, login_as
from nyumba_connect.server import manage
from nyumba_connect.server.models import User


def test_created_admin_can_log_in_and_manage_resources(client, db):
    admin = manage.create_admin(db, "root", "Rita Root", TEST_PASSWORD, rounds=4)
    assert admin.role == "admin"

    session = login_as(client, "root")
    assert session["user"]["role"] == "admin"
    response = client.post(
        "/resources/delete.php",
        data={"resource_id": 999, "csrf_token": session["csrf_token"]},
        headers=session["headers"],
    )
    assert response.status_code == 404


def test_rejects_duplicate_login(db):
    manage.create_admin(db, "root", "Rita Root", TEST_PASSWORD, rounds=4)
    with pytest.raises(ValueError, match="already exists"):
        manage.create_admin(db, "root", "Other", TEST_PASSWORD, rounds=4)


def test_rejects_short_password(db):
    with pytest.raises(ValueError, match="at least"):
        manage.create_admin(db, "root", "Rita Root", "short", rounds=4)
    assert db.query(User).count() == 0


def test_main_prompts_for_password(db_session_factory, monkeypatch, capsys):
    monkeypatch.setattr(manage, "SessionLocal", db_session_factory)
    monkeypatch.setattr(manage.getpass, "getpass", lambda prompt="": TEST_PASSWORD)

    assert manage.main(["root", "Rita Root"]) == 0
    assert "Created administrator root" in capsys.readouterr().out

    session = db_session_factory()
    try:
        assert session.query(User).filter(User.login == "root").one().role == "admin"
    finally:
        session.close()


def test_main_rejects_mismatched_passwords(db_session_factory, monkeypatch):
    answers = iter([TEST_PASSWORD, "something-else-entirely"])
    monkeypatch.setattr(manage, "SessionLocal", db_session_factory)
    monkeypatch.setattr(manage.getpass, "getpass", lambda prompt="": next(answers))
    with pytest.raises(SystemExit):
        manage.main(["root", "Rita Root"])
