# Routes package - registers all blueprints with the Flask app

def register_blueprints(app):
    """Register all route blueprints with the Flask app."""
    from .networks import networks_bp

    app.register_blueprint(networks_bp)
