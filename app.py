import logging

from flask import Flask, jsonify

from models import db, enable_sqlite_savepoints
from routes import register_blueprints


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object('config.Config')
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    with app.app_context():
        enable_sqlite_savepoints(db.engine)

    register_blueprints(app)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5005, debug=app.config.get('FLASK_ENV') == 'development')
