from .auth import auth_bp
from .sheets import sheets_bp
from .imports import imports_bp

def register_blueprints(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(sheets_bp)
    app.register_blueprint(imports_bp)
