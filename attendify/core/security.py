# attendify/core/security.py
import re
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

_SPECIALS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")
STUDENT_ID_RE = re.compile(r"^[A-Za-z0-9-]{3,50}$")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def generate_numeric_code(length: int = 6) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def password_policy_errors(password: str) -> list[str]:
    if not isinstance(password, str) or len(password) < 8 or len(password) > 128:
        return ["password must be between 8 and 128 characters"]
    problems = []
    if not any(c.isupper() for c in password):
        problems.append("password must contain an uppercase letter")
    if not any(c.islower() for c in password):
        problems.append("password must contain a lowercase letter")
    if not any(c.isdigit() for c in password):
        problems.append("password must contain a digit")
    if not any(c in _SPECIALS for c in password):
        problems.append("password must contain a special character")
    return problems
