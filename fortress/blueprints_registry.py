import importlib
import logging

from .extensions import csrf

logger = logging.getLogger(__name__)

# (module path, blueprint attribute, url prefix, csrf exempt)
BLUEPRINTS = (
    ('fortress.blueprints.inventory_import', 'inventory_import_bp', '/api/inventory', True),
)


def register_blueprints(app):
    """Register every blueprint in ``BLUEPRINTS``; one failing import does not stop the rest."""
    registered, failed = [], []

    for module_path, attribute, url_prefix, csrf_exempt in BLUEPRINTS:
        try:
            blueprint = getattr(importlib.import_module(module_path), attribute)
            app.register_blueprint(blueprint, url_prefix=url_prefix)
        except Exception as e:
            failed.append(f"{module_path}.{attribute}: {e}")
            continue

        # Bearer-token APIs carry no CSRF cookie
        if csrf_exempt:
            csrf.exempt(blueprint)
        registered.append(f"{blueprint.name} -> {url_prefix}")

    if app.debug:
        for entry in registered:
            logger.info("Registered blueprint %s", entry)
    for entry in failed:
        logger.error("Blueprint registration failed: %s", entry)
    logger.info("Blueprints registered: %s ok, %s failed", len(registered), len(failed))
    return registered, failed
