from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///repairdesk.db')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    # Business knobs, see services.context.ServiceSettings
    app.config['STOCK_MODE'] = os.getenv('STOCK_MODE', 'permissive')
    app.config['TICKET_TRANSITION_POLICY'] = os.getenv('TICKET_TRANSITION_POLICY', 'strict')
    app.config['DEFAULT_TAX_RATE'] = os.getenv('DEFAULT_TAX_RATE', '0.20')
    app.config['TICKET_NUMBER_PREFIX'] = os.getenv('TICKET_NUMBER_PREFIX', 'TKT')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(app.config['LOG_LEVEL'])
    logging.getLogger('repairdesk').setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    # register every table on Base.metadata before blueprints resolve foreign keys
    from .models import tenancy, customer, product, supplier, repair_ticket, purchase_order, invoice, sale, audit  # noqa: F401

    from .routes.repairs import rpr_bp  # ticket workflow
    from .routes.inventory import inv_bp  # products & stock ledger
    from .routes.purchase_orders import po_bp  # purchase orders
    from .routes.billing import billing_bp  # invoices & payments
    from .routes.sales import sales_bp  # point of sale
    from .routes.customers import cust_bp  # customer & device intake
    app.register_blueprint(rpr_bp, url_prefix='/repairs')
    app.register_blueprint(inv_bp, url_prefix='/inventory')
    app.register_blueprint(po_bp, url_prefix='/po')
    app.register_blueprint(billing_bp, url_prefix='/billing')
    app.register_blueprint(sales_bp, url_prefix='/sales')
    app.register_blueprint(cust_bp, url_prefix='/customers')

    @app.teardown_appcontext
    def remove_session(exc=None):
        # each request starts from an empty identity map
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .errors import DomainError

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        app.logger.info('%s: %s', e.title, e.message)
        return {'error': e.to_dict()}, e.status

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
