from flask import g
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


def tenant_rate_limit_key() -> str:
    """Rate limit per client address, bucketed by the resolved microsite."""
    subdomain = getattr(g, "tenant_subdomain", None)
    if subdomain:
        return f"{subdomain}:{get_remote_address()}"
    return get_remote_address()


# Application-wide extension instances

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=tenant_rate_limit_key,
    default_limits=["1000 per day", "200 per hour"],
)

__all__ = [
    "db",
    "migrate",
    "login_manager",
    "limiter",
    "tenant_rate_limit_key",
]
