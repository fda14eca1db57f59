"""Public microsite routes served on tenant hosts.

Flask's URL map belongs to the main domain, so tenant hosts are answered from a
separate werkzeug map inside a ``before_request`` hook; returning a response
there skips the normal router.
"""

from __future__ import annotations

from flask import Response, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule

from fedsite.blueprints.common.tenant import request_host
from fedsite.errors import MicrositeError, NotFound
from fedsite.models import Microsite
from fedsite.services import renderer
from fedsite.services.theme import generate_theme_css

site_routes = Map(
    [
        Rule('/', endpoint='page', defaults={'slug': ''}, methods=['GET']),
        Rule('/navigation', endpoint='navigation', methods=['GET']),
        Rule('/theme.css', endpoint='theme_css', methods=['GET']),
        Rule('/sitemap.xml', endpoint='sitemap', methods=['GET']),
        Rule('/<slug>', endpoint='page', methods=['GET']),
    ],
    strict_slashes=False,
)


def init_site(app) -> None:
    """Register the tenant dispatcher; must come after tenant resolution."""

    @app.before_request
    def _dispatch_site():
        return dispatch_site_request()


def _live_microsite() -> Microsite:
    microsite = getattr(g, 'microsite', None)
    if microsite is None or not microsite.is_live:
        raise NotFound("Microsite not found")
    return microsite


def page(slug: str):
    microsite = _live_microsite()
    selected = renderer.select_page(microsite, slug)
    if renderer.wants_json(request):
        return jsonify(renderer.build_page_payload(microsite, selected))
    return Response(renderer.render_page_html(microsite, selected), mimetype='text/html')


def navigation():
    microsite = _live_microsite()
    return jsonify({'pages': [renderer.serialize_nav_item(p) for p in renderer.navigation(microsite)]})


def theme_css():
    microsite = _live_microsite()
    return Response(generate_theme_css(microsite), mimetype='text/css')


def sitemap():
    microsite = _live_microsite()
    base_url = f"{request.scheme}://{request_host()}"
    return Response(renderer.render_sitemap(microsite, base_url), mimetype='application/xml')


VIEWS = {
    'page': page,
    'navigation': navigation,
    'theme_css': theme_css,
    'sitemap': sitemap,
}


def dispatch_site_request():
    """Answer tenant-host requests; main-domain requests fall through (None)."""
    if not getattr(g, 'tenant_host', False):
        return None
    if request.endpoint == 'static':
        return None

    adapter = site_routes.bind_to_environ(request.environ)
    try:
        endpoint, values = adapter.match(request.path, method=request.method)
    except HTTPException as e:
        if e.code == 405:
            return jsonify({'error': 'Method not allowed', 'kind': 'method_not_allowed'}), 405
        if getattr(g, 'microsite', None) is None:
            return jsonify(NotFound("Microsite not found").to_dict()), 404
        return jsonify(NotFound("Page not found").to_dict()), 404

    try:
        return VIEWS[endpoint](**values)
    except MicrositeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception(f"Failed to render {request.host}{request.path}")
        return jsonify({'error': 'Internal server error', 'kind': 'error'}), 500


__all__ = ['site_routes', 'init_site', 'dispatch_site_request']
