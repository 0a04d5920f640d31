import os
from dotenv import load_dotenv

# Load environment variables FIRST before any other imports
load_dotenv()

from flask import Flask, jsonify
from flask_cors import CORS

from config import config
from database import init_database, database_health_check
from logging_config import setup_app_logging
from odoo_api import odoo_bp


def create_app(config_name=None, init_db=True):
    """Application factory."""
    config_name = config_name or os.getenv('FLASK_ENV', 'default')
    app = Flask(__name__)
    app_config = config.get(config_name, config['default'])
    app.config.from_object(app_config)

    CORS(app, origins=app_config.CORS_ORIGINS, supports_credentials=True)
    setup_app_logging(app, app_config.LOG_PATH)

    if init_db:
        init_database(app_config.DATABASE_URL, create_tables=True)

    app.register_blueprint(odoo_bp)

    @app.route('/api/health', methods=['GET'])
    def health():
        db_health = database_health_check()
        status = 200 if db_health.get('status') == 'healthy' else 503
        return jsonify({'status': db_health.get('status'), 'database': db_health}), status

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '3560')))
