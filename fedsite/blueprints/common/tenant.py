"""Tenant resolution from the request host."""

from __future__ import annotations

from flask import current_app, g, request

from fedsite.errors import NotFound
from fedsite.models import Microsite
from fedsite.services import tenants


def init_tenant(app) -> None:
    """Register tenant resolution hooks with the Flask app.

    Must run before the rate limiter is initialised so limit keys can use
    ``g.tenant_subdomain``.
    """

    @app.before_request
    def _load_tenant() -> None:
        resolve_tenant()


def request_host() -> str | None:
    """Host the client asked for, preferring X-Forwarded-Host behind a proxy."""
    if current_app.config.get('TRUST_FORWARDED_HOST', True):
        forwarded = request.headers.get('X-Forwarded-Host')
        if forwarded:
            return forwarded.split(',', 1)[0].strip() or None
    return request.headers.get('Host') or None


def resolve_tenant() -> Microsite | None:
    """Resolve the microsite addressed by the Host header.

    Order:
    1) Hosts outside ROOT_DOMAIN (every host when it is unset) are looked up
       as custom domains
    2) Otherwise the first label is the candidate subdomain, unless it is
       reserved (www, api, the root label, configured labels)

    Never raises: a missing tenant leaves ``g.microsite`` as None and
    ``g.tenant_host`` tells downstream handlers whether one was addressed.
    """
    g.microsite = None
    g.tenant_host = False
    g.tenant_subdomain = None

    host = request_host()
    if not host:
        return None

    microsite: Microsite | None = None
    if not tenants.is_within_root_domain(host):
        # Unknown outside hosts are treated as main-domain requests
        microsite = tenants.resolve_custom_domain(tenants.strip_port(host))
        if microsite is None:
            return None
        g.tenant_host = True
    else:
        candidate = tenants.extract_candidate(host)
        if not candidate:
            return None
        g.tenant_host = True
        g.tenant_subdomain = candidate
        try:
            microsite = tenants.resolve(candidate)
        except NotFound:
            microsite = None

    if microsite is not None:
        g.tenant_subdomain = microsite.subdomain
    g.microsite = microsite
    return microsite


__all__ = [
    "init_tenant",
    "request_host",
    "resolve_tenant",
]
