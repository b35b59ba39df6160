# crafthub/auth/routes.py
from flask_jwt_extended import create_access_token

from . import bp
from ..schemas import LoginIn, RegisterIn, ResendCodeIn, VerifyEmailIn
from ..services import account_service
from ..utils.api import ok, parse_body
from ..utils.decorators import current_user, login_required


def _issue_token(user):
    return create_access_token(identity=str(user.id), additional_claims={"role": user.role})


@bp.post("/register")
def register():
    body = parse_body(RegisterIn)
    user = account_service.register(body.username, body.email, body.password)
    return ok("Account created. Check your email for the verification code.", {
        "requires_verification": True,
        "email": user.email,
    }, status=201)


@bp.post("/verify-email")
def verify_email():
    body = parse_body(VerifyEmailIn)
    user = account_service.verify_email(body.email, body.code)
    return ok("Email verified", {"token": _issue_token(user), "user": user.as_dict()})


@bp.post("/resend-code")
def resend_code():
    body = parse_body(ResendCodeIn)
    account_service.resend_code(body.email)
    return ok("Verification code re-sent")


@bp.post("/login")
def login():
    body = parse_body(LoginIn)
    user = account_service.authenticate(body.email, body.password)
    return ok("You've logged in successfully", {"token": _issue_token(user), "user": user.as_dict()})


@bp.get("/me")
@login_required
def me():
    return ok("me", {"user": current_user().as_dict()})
