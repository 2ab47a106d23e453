import os
import logging
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix

# Import database instance
from database import db

load_dotenv()

# Configure logging for debugging
logging.basicConfig(level=logging.DEBUG)

# Create the app
app = Flask(__name__)
# CORS is restricted to the `/api/*` namespace, origins can be narrowed via ALLOWED_ORIGINS
CORS(app, resources={r"/api/*": {"origins": os.environ.get("ALLOWED_ORIGINS", "*")}})
app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

# Configure the database
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///recruitment.db")
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Initialize extensions
db.init_app(app)
login_manager = LoginManager()
login_manager.init_app(app)

@login_manager.user_loader
def load_user(user_id):
    from models import User
    return db.session.get(User, int(user_id))

@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'Authentication required'}), 401

# Import routes and register them with the app
from routes import register_routes
register_routes(app)

with app.app_context():
    # Import models to create tables
    import models  # noqa: F401

    db.create_all()

    # Create default admin user if none exists
    from models import User, UserRole
    from werkzeug.security import generate_password_hash

    if not User.query.filter_by(username='admin').first():
        admin_user = User(
            username='admin',
            email='admin@recruitment.com',
            password_hash=generate_password_hash(os.environ.get('ADMIN_PASSWORD', 'admin123')),
            role=UserRole.ADMIN.value,
            is_admin=True
        )
        db.session.add(admin_user)
        db.session.commit()
        logging.info("Default admin user created: admin")

if __name__ == '__main__':
    from scheduler import start_background_services

    # Start background services
    start_background_services()

    app.run(host='0.0.0.0', port=5000, debug=True)
