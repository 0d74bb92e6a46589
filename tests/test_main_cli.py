"""Unit tests for main.py -- the create-user and serve commands."""

import uuid
from types import SimpleNamespace

import pytest

import main
from auth.store import UserStore
from auth.tokens import verify_password


@pytest.fixture
def db_url(monkeypatch):
    url = f"sqlite:///file:cli_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    # Keep one store open so the shared in-memory database outlives each command.
    keeper = UserStore(url)
    monkeypatch.setattr(main, "get_settings", lambda: SimpleNamespace(database_url=url, host="127.0.0.1", port=5000))
    yield url
    keeper.close()


def _args(*extra):
    return ["create-user", "--name", "Ada", "--email", "Ada@Example.com", "--phone", "5550001111", *extra]


def test_create_user_provisions_active_admin(db_url, capsys):
    assert main.main(_args("--password", "ada-secret")) == 0
    assert "Created admin" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        user = store.get_by_email("ada@example.com")
    finally:
        store.close()
    assert user.role == "admin"
    assert user.status == "active"
    assert verify_password("ada-secret", user.password_hash)


def test_create_user_refuses_duplicates(db_url):
    assert main.main(_args("--password", "ada-secret")) == 0
    assert main.main(_args("--password", "ada-secret")) == 1


def test_create_user_validates_input(db_url):
    assert main.main(_args("--password", "123")) == 1
    assert main.main(["create-user", "--name", "A", "--email", "nope", "--phone", "5550001111", "--password", "x" * 8]) == 1


def test_create_user_prompts_for_password(db_url, monkeypatch):
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": "prompted-pw")
    assert main.main(_args("--role", "employee")) == 0


def test_role_choices_are_enforced():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(_args("--role", "wizard"))


def test_serve_passes_settings_to_uvicorn(db_url, monkeypatch):
    calls = {}
    monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: calls.update(app=app, **kwargs))
    assert main.main(["serve", "--port", "8001"]) == 0
    assert calls == {"app": "asgi:app", "host": "127.0.0.1", "port": 8001, "reload": False}
