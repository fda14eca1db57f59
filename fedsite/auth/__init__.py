"""Bearer-token authentication against the federation's Auth Provider."""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, jsonify, request
from flask_login import UserMixin
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from fedsite.extensions import login_manager


@dataclass
class Principal(UserMixin):
    """The authenticated caller as asserted by the Auth Provider."""

    id: str
    role: str
    email: str | None = None

    def get_id(self) -> str:
        return str(self.id)

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(
        current_app.config['AUTH_TOKEN_SECRET'],
        salt=current_app.config.get('AUTH_TOKEN_SALT', 'fedsite-auth'),
    )


def issue_token(user_id: str, role: str, email: str | None = None) -> str:
    """Mint a signed bearer token. Production tokens come from the Auth Provider."""
    return _serializer().dumps({'sub': str(user_id), 'role': role, 'email': email})


def verify_token(token: str) -> Principal | None:
    """Return the principal for a valid token, or None when it is bad or expired."""
    try:
        data = _serializer().loads(token, max_age=current_app.config.get('AUTH_TOKEN_MAX_AGE', 86400))
    except SignatureExpired:
        current_app.logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        return None

    if not isinstance(data, dict) or not data.get('sub') or not data.get('role'):
        return None
    return Principal(id=str(data['sub']), role=str(data['role']), email=data.get('email'))


def _bearer_token() -> str | None:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def init_auth(app) -> None:
    """Wire Flask-Login to load the principal from the Authorization header."""

    @login_manager.request_loader
    def load_principal(req):
        token = _bearer_token()
        if not token:
            return None
        return verify_token(token)

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return jsonify({'error': 'Authentication required', 'kind': 'unauthenticated'}), 401


__all__ = ['Principal', 'issue_token', 'verify_token', 'init_auth']
