from flask import Blueprint, current_app, redirect, url_for
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import BadRequest
from werkzeug.security import check_password_hash, generate_password_hash

from models import db
from . import store
from .metrics import LOGIN_ATTEMPTS
from .errors import read_payload, validate_credentials
from .responders import get_responder
from .session_utils import login_user

auth_bp = Blueprint("auth", __name__)  # public routes, registered before the login gate

BAD_CREDENTIALS = "Incorrect username or password."

# checked against when the username is unknown, so both failure paths hash once
_DUMMY_HASH = generate_password_hash("not-a-real-password")

def hash_password(password: str) -> str:
    return generate_password_hash(password)

def verify_password(password_hash: str | None, password: str) -> bool:
    if not password_hash:
        check_password_hash(_DUMMY_HASH, password)
        return False
    return check_password_hash(password_hash, password)

@auth_bp.get("/")
def index():
    return redirect(url_for("auth.login"))

@auth_bp.get("/welcome")
def welcome():
    return {"status": "success", "message": "Welcome!"}

@auth_bp.get("/register")
def register_form():
    return get_responder().page("register.html", {"message": None})

@auth_bp.post("/register")
def register():
    responder = get_responder()
    try:
        username, password = validate_credentials(read_payload())
    except BadRequest as e:
        return responder.fail(e.description, 400, template="register.html")

    try:
        store.create_user(username, hash_password(password))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return responder.fail("Username already exists. Please choose another.", 400, template="register.html")
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Registration failed for %s", username)
        return responder.fail("Registration failed. Please try again later.", 500, template="register.html")

    current_app.logger.info("New user registered: %s", username)
    return responder.done("User registered successfully", redirect_to=url_for("auth.login"))

@auth_bp.get("/login")
def login_form():
    return get_responder().page("login.html", {"message": None})

@auth_bp.post("/login")
def login():
    responder = get_responder()
    try:
        username, password = validate_credentials(read_payload())
    except BadRequest as e:
        return responder.fail(e.description, 400, template="login.html")

    try:
        user = store.find_user(username)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Login lookup failed for %s", username)
        LOGIN_ATTEMPTS.labels("error").inc()
        return responder.fail("Login failed. Please try again.", 500, template="login.html")

    if not verify_password(user.password if user else None, password):
        LOGIN_ATTEMPTS.labels("rejected").inc()
        return responder.fail(BAD_CREDENTIALS, 401, template="login.html")

    try:
        login_user(user)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Could not open a session for %s", username)
        LOGIN_ATTEMPTS.labels("error").inc()
        return responder.fail("Login failed. Please try again.", 500, template="login.html")

    LOGIN_ATTEMPTS.labels("success").inc()
    current_app.logger.info("User logged in: %s", user.username)
    return responder.done(
        "Login successful",
        redirect_to=url_for("web.discover"),
        username=user.username,
    )
