"""Security configuration and middleware."""

import re

from flask import abort, current_app, g, request


def configure_security_headers(app):
    """Configure security headers."""

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        # Prevent MIME type sniffing
        response.headers['X-Content-Type-Options'] = 'nosniff'

        # Prevent clickjacking
        response.headers['X-Frame-Options'] = 'DENY'

        # Control referrer information
        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'

        if getattr(g, 'tenant_host', False):
            # Rendered microsites embed owner styles, YouTube videos and maps
            csp_directives = [
                "default-src 'self'",
                "style-src 'self' 'unsafe-inline'",
                "img-src 'self' data: https:",
                "media-src 'self' https:",
                "frame-src https://www.youtube.com https://www.openstreetmap.org",
                "frame-ancestors 'none'",
                "base-uri 'self'",
            ]
        else:
            csp_directives = [
                "default-src 'none'",
                "frame-ancestors 'none'",
            ]
        response.headers.setdefault('Content-Security-Policy', "; ".join(csp_directives))

        # HSTS for HTTPS (only add if using HTTPS)
        if request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response

    return app


def allowed_origin(origin: str | None) -> str | None:
    """Return ``origin`` when it is the federation domain or one of its subdomains."""
    root = current_app.config.get('ROOT_DOMAIN')
    if not origin or not root:
        return None
    pattern = r'^https://([a-z0-9-]+\.)*' + re.escape(root) + r'(:\d+)?$'
    return origin if re.match(pattern, origin.lower()) else None


def configure_cors(app):
    """Allow the builder front end and microsites on *.ROOT_DOMAIN to call the API."""

    @app.after_request
    def add_cors_headers(response):
        origin = allowed_origin(request.headers.get('Origin'))
        if origin:
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Access-Control-Allow-Credentials'] = 'true'
            response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type'
            response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
            response.headers['Access-Control-Max-Age'] = '600'
        response.vary.add('Origin')
        return response

    return app


def validate_input_length(app):
    """Middleware to validate request payload size."""
    @app.before_request
    def limit_request_size():
        # JSON bodies are capped at 1MB; uploads are bounded by MAX_CONTENT_LENGTH
        if request.mimetype == 'multipart/form-data':
            return
        if request.content_length and request.content_length > 1024 * 1024:
            abort(413)  # Payload Too Large

    return app


__all__ = [
    'configure_security_headers',
    'configure_cors',
    'allowed_origin',
    'validate_input_length',
]
