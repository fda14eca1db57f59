from .routes import builder_bp

__all__ = ['builder_bp']
