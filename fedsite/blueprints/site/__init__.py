from .routes import init_site, site_routes

__all__ = ["init_site", "site_routes"]
