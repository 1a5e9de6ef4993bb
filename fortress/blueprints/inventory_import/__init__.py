from .routes import inventory_import_bp

__all__ = ['inventory_import_bp']
