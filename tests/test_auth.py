from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from werkzeug.security import check_password_hash

from app_core import auth, store
from models import db, User, UserSession
from conftest import JSON, register, login


def _user_count(app):
    with app.app_context():
        return User.query.count()

def _boom(*args, **kwargs):
    raise AssertionError("store must not be touched")

def test_register_then_login(client):
    r = register(client)
    assert r.status_code == 200
    assert r.json["message"] == "User registered successfully"

    r = login(client)
    assert r.status_code == 200
    assert r.json["message"] == "Login successful"
    assert r.json["username"] == "alice"

def test_password_is_stored_hashed(app, client):
    register(client, "bob", "s3cret-pass")
    with app.app_context():
        u = User.query.filter_by(username="bob").one()
        assert u.password != "s3cret-pass"
        assert check_password_hash(u.password, "s3cret-pass")

def test_duplicate_username_is_a_conflict(app, client):
    assert register(client, "dup", "pw1").status_code == 200
    r = register(client, "dup", "pw2")
    assert r.status_code == 400
    assert "already exists" in r.json["message"]
    assert _user_count(app) == 1

@pytest.mark.parametrize("payload", [
    {"username": "", "password": "pw"},
    {"username": "   ", "password": "pw"},
    {"username": "carol", "password": ""},
    {"username": "carol"},
    {"password": "pw"},
    {},
])
def test_register_missing_fields_rejected_before_store(client, monkeypatch, payload):
    monkeypatch.setattr(store, "create_user", _boom)
    r = client.post("/register", json=payload)
    assert r.status_code == 400
    assert "required" in r.json["message"]

@pytest.mark.parametrize("payload", [
    {"username": "", "password": "pw"},
    {"username": "alice", "password": ""},
    {},
])
def test_login_missing_fields_rejected_before_store(client, monkeypatch, payload):
    monkeypatch.setattr(store, "find_user", _boom)
    r = client.post("/login", json=payload)
    assert r.status_code == 400
    assert "required" in r.json["message"]

def test_register_rejects_overlong_username(client):
    r = register(client, "x" * 51, "pw")
    assert r.status_code == 400
    assert "at most 50" in r.json["message"]

def test_unknown_user_and_wrong_password_look_the_same(client):
    register(client, "alice", "pw12345")
    wrong_pw = login(client, "alice", "nope")
    unknown = login(client, "nobody", "pw12345")
    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json["message"] == unknown.json["message"] == "Incorrect username or password."

def test_register_store_failure_is_generic(client, monkeypatch):
    def down(*args, **kwargs):
        raise OperationalError("INSERT INTO users", {}, Exception("db is down"))
    monkeypatch.setattr(store, "create_user", down)
    r = register(client, "erin", "pw")
    assert r.status_code == 500
    assert r.json["message"] == "Registration failed. Please try again later."
    assert "db is down" not in r.get_data(as_text=True)

def test_login_store_failure_is_generic(client, monkeypatch):
    def down(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db is down"))
    monkeypatch.setattr(store, "find_user", down)
    r = login(client, "erin", "pw")
    assert r.status_code == 500
    assert r.json["message"] == "Login failed. Please try again."

# ---- browser (form) clients ----

def test_forms_render(client):
    r = client.get("/register")
    assert r.status_code == 200
    assert b"Register" in r.data
    r = client.get("/login")
    assert r.status_code == 200
    assert b"Login" in r.data

def test_form_register_redirects_to_login(client):
    r = client.post("/register", data={"username": "dana", "password": "pw"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")

def test_form_register_duplicate_shows_message(client):
    client.post("/register", data={"username": "dana", "password": "pw"})
    r = client.post("/register", data={"username": "dana", "password": "pw"})
    assert r.status_code == 400
    assert b"already exists" in r.data

def test_form_login_sets_session_and_redirects(app, client):
    client.post("/register", data={"username": "dana", "password": "pw"})
    r = client.post("/login", data={"username": "dana", "password": "pw"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/discover")
    with client.session_transaction() as sess:
        assert set(sess) == {"sid"}
        assert sess.permanent
        sid = sess["sid"]
    with app.app_context():
        row = db.session.get(UserSession, sid)
        assert row.user.username == "dana"
        assert row.expires_at - row.created_at == timedelta(days=1)

def test_form_login_failure_renders_message(client):
    r = client.post("/login", data={"username": "ghost", "password": "pw"})
    assert r.status_code == 401
    assert b"Incorrect username or password." in r.data

# ---- login gate ----

@pytest.mark.parametrize("method,path", [
    ("get", "/discover"),
    ("get", "/discover?title=Heat"),
    ("get", "/profile"),
    ("get", "/reviews?title=Heat"),
    ("get", "/reviews/new"),
    ("get", "/logout"),
    ("post", "/movies/add"),
    ("post", "/reviews/add"),
    ("post", "/reviews"),
])
def test_protected_paths_redirect_to_login(client, catalog, method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    assert catalog.calls == []

def test_protected_path_json_client_gets_401(client):
    r = client.get("/discover", headers=JSON)
    assert r.status_code == 401
    assert r.json["message"] == "Please log in first."

def test_logout_ends_session(app, auth_client):
    r = auth_client.get("/logout")
    assert r.status_code == 200
    with auth_client.session_transaction() as sess:
        assert "sid" not in sess
    with app.app_context():
        assert UserSession.query.count() == 0
    r = auth_client.get("/discover")
    assert r.status_code == 302

def test_logout_json(auth_client):
    r = auth_client.get("/logout", headers=JSON)
    assert r.status_code == 200
    assert r.json["message"] == "Logged out."

def test_cookie_from_before_logout_is_rejected(app, client):
    register(client)
    login(client)
    stale = client.get_cookie("session").value
    assert client.get("/logout", headers=JSON).status_code == 200

    other = app.test_client()
    other.set_cookie("session", stale)
    r = other.get("/discover", headers=JSON)
    assert r.status_code == 401
    assert r.json["message"] == "Please log in first."

def test_expired_session_is_rejected(app, auth_client):
    with app.app_context():
        UserSession.query.update({UserSession.expires_at: datetime(2000, 1, 1)})
        db.session.commit()
    r = auth_client.get("/discover", headers=JSON)
    assert r.status_code == 401

def test_each_login_gets_its_own_session(app, client):
    register(client)
    login(client)
    other = app.test_client()
    login(other)
    assert client.get_cookie("session").value != other.get_cookie("session").value

    client.get("/logout")
    assert other.get("/profile", headers=JSON).status_code == 200
    with app.app_context():
        assert UserSession.query.count() == 1

def test_session_store_failure_at_login_is_generic(app, client, monkeypatch):
    register(client, "erin", "pw")
    def down(*args, **kwargs):
        raise OperationalError("INSERT INTO user_sessions", {}, Exception("db is down"))
    monkeypatch.setattr(auth, "login_user", down)
    r = login(client, "erin", "pw")
    assert r.status_code == 500
    assert r.json["message"] == "Login failed. Please try again."
    assert client.get_cookie("session") is None
