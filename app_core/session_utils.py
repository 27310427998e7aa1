import secrets
from datetime import datetime, timezone

from flask import current_app, g, session

from models import db, User, UserSession

SESSION_KEY = "sid"  # the cookie carries only this opaque id

def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def _lookup(sid: str | None) -> dict | None:
    if not sid:
        return None
    row = (
        db.session.query(UserSession.user_id, User.username)
        .join(User, UserSession.user_id == User.user_id)
        .filter(UserSession.session_id == sid, UserSession.expires_at > _now())
        .first()
    )
    if row is None:
        return None
    return {"user_id": row.user_id, "username": row.username}

def current_user() -> dict | None:
    if "current_user" not in g:
        g.current_user = _lookup(session.get(SESSION_KEY))
    return g.current_user

def login_user(user) -> None:
    """Open a server-side session for `user` and point the cookie at it. Commits."""
    now = _now()
    UserSession.query.filter(
        UserSession.user_id == user.user_id, UserSession.expires_at <= now
    ).delete(synchronize_session=False)
    sid = secrets.token_urlsafe(32)
    db.session.add(UserSession(
        session_id=sid,
        user_id=user.user_id,
        created_at=now,
        expires_at=now + current_app.permanent_session_lifetime,
    ))
    db.session.commit()

    session.clear()
    session[SESSION_KEY] = sid
    session.permanent = True
    g.current_user = {"user_id": user.user_id, "username": user.username}

def logout_user() -> dict | None:
    """Delete the server-side row so the old cookie stops working anywhere."""
    user = current_user()
    sid = session.get(SESSION_KEY)
    if sid:
        UserSession.query.filter_by(session_id=sid).delete(synchronize_session=False)
        db.session.commit()
    session.clear()
    g.pop("current_user", None)
    return user
