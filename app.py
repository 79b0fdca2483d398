import logging

import click
from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import config
from extensions import db_session, init_db
from models import Agent

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = config.SECRET_KEY
app.json.sort_keys = False

# Empty origin list means any origin is accepted
CORS(
    app,
    origins=config.CORS_ORIGINS or "*",
    supports_credentials=True,
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Expires", "Cache-Control", "Pragma", "X-Api-Key"]
)

# Register Blueprints
from routes_bookings import bookings_bp
from routes_agents import agents_bp
from routes_inquiries import inquiries_bp
app.register_blueprint(bookings_bp)
app.register_blueprint(agents_bp)
app.register_blueprint(inquiries_bp)


@app.teardown_appcontext
def shutdown_session(exception=None):
    db_session.remove()


# ==================== ERROR HANDLERS ====================

@app.errorhandler(404)
def not_found(error):
    return jsonify({"error": f"Not Found - {request.path}"}), 404


@app.errorhandler(HTTPException)
def http_error(error):
    return jsonify({"error": error.description}), error.code


@app.errorhandler(Exception)
def server_error(error):
    db_session.rollback()
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Server error"}), 500


# ==================== ROUTES ====================

@app.route("/health")
def health():
    return jsonify({"ok": True})


# ==================== CLI ====================

@app.cli.command("init-db")
def init_db_command():
    """Create all tables."""
    init_db()
    click.echo("Database initialized successfully!")


@app.cli.command("create-admin")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.option("--password", required=True)
def create_admin_command(name, email, password):
    """Create an admin account, or promote an existing one."""
    init_db()
    email = email.strip().lower()
    agent = db_session.query(Agent).filter_by(email=email).first()
    if agent:
        agent.role = "admin"
        agent.is_active = True
        agent.set_password(password)
        click.echo(f"Promoted {email} to admin")
    else:
        agent = Agent(name=name, email=email, role="admin")
        agent.set_password(password)
        db_session.add(agent)
        click.echo(f"Created admin {email}")
    db_session.commit()
    logger.info("Admin account ready: %s", email)


if __name__ == "__main__":
    init_db()
    app.run(host=config.HOST, port=config.PORT, debug=True)
