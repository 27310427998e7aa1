from flask import flash, g, jsonify, redirect, render_template, request

JSON_MIMETYPE = "application/json"


class HtmlResponder:
    """Browser clients: templates, flash messages and redirects."""

    is_json = False

    def page(self, template: str, payload: dict, status: int = 200):
        return render_template(template, **payload), status

    def fail(self, message: str, status: int, *, template: str | None = None,
             redirect_to: str | None = None, **context):
        if redirect_to:
            flash(message, "error")
            return redirect(redirect_to)
        return render_template(template or "error.html", message=message, status=status, **context), status

    def done(self, message: str, *, redirect_to: str, status: int = 200, **payload):
        if message:
            flash(message, "success")
        return redirect(redirect_to)

    def login_required(self, login_url: str):
        return redirect(login_url)


class JsonResponder:
    """API clients: JSON bodies carrying a `message` and a meaningful status."""

    is_json = True

    def page(self, template: str, payload: dict, status: int = 200):
        return jsonify(payload), status

    def fail(self, message: str, status: int, *, template: str | None = None,
             redirect_to: str | None = None, **context):
        return jsonify({"message": message}), status

    def done(self, message: str, *, redirect_to: str, status: int = 200, **payload):
        return jsonify({"message": message, **payload}), status

    def login_required(self, login_url: str):
        return jsonify({"message": "Please log in first."}), 401


def wants_json(req) -> bool:
    if req.is_json:
        return True
    accept = req.accept_mimetypes
    return accept[JSON_MIMETYPE] > accept["text/html"]


def responder_for(req):
    return JsonResponder() if wants_json(req) else HtmlResponder()


def install_responder(app):
    @app.before_request
    def _pick_responder():
        g.responder = responder_for(request)


def get_responder():
    responder = g.get("responder")
    if responder is None:
        responder = g.responder = responder_for(request)
    return responder
