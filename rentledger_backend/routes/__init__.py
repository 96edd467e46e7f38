from .health import bp as health_bp
from .rents import bp as rents_bp
from .tenancies import bp as tenancies_bp
from .units import bp as units_bp

BLUEPRINTS = (health_bp, units_bp, tenancies_bp, rents_bp)


def register_routes(app):
    """Register all API blueprints under the API prefix."""
    prefix = app.config.get("API_PREFIX", "/api")
    for bp in BLUEPRINTS:
        app.register_blueprint(bp, url_prefix=prefix)
        app.logger.debug("Registered blueprint %s at %s", bp.name, prefix)
