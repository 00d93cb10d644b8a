# ==============================================================================
# ORDER DESK - Flask JSON API
# ==============================================================================
# Routes only orchestrate: read the request, call a service, serialize.
# Business rules live in services/, persistence in repositories/.
# Errors raised by services are OrderDeskError subclasses; the handlers
# registered here turn them into {"error": ..., ...details} responses.
# ==============================================================================

import logging
import os
from functools import wraps
from typing import Any, Dict

from flask import Flask, current_app, jsonify, request, session
from werkzeug.exceptions import HTTPException

from order_desk.app_container import DEFAULT_DATA_DIR, AppContainer, get_container
from order_desk.errors import AuthError, OrderDeskError, PermissionDeniedError, ValidationError
from order_desk.models.entities import UserRole
from order_desk.performance_logger import configure_profiling, init_profiling
from order_desk.repositories.base import configure_store
from order_desk.services.order_service import PASSTHROUGH_FIELDS

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════
# SECRET_KEY: must come from ORDER_DESK_SECRET_KEY in production
_DEFAULT_SECRET = "order_desk_dev_secret_key_change_in_production"

ROLE_COOKIE = 'userRole'
ROLE_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


def _env_flag(name: str, default: str = '0') -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


def load_config(overrides: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Reads ORDER_DESK_* environment variables, then applies overrides.

    Keys: DATA_DIR, SECRET_KEY, PRODUCTION, STORE_LOCK_TIMEOUT,
    STORE_RETRIES, DECREMENT_STOCK, PROFILING, LOGS_DIR
    """
    config = {
        'DATA_DIR': os.environ.get('ORDER_DESK_DATA_DIR') or DEFAULT_DATA_DIR,
        'SECRET_KEY': os.environ.get('ORDER_DESK_SECRET_KEY'),
        'PRODUCTION': _env_flag('ORDER_DESK_PRODUCTION'),
        'STORE_LOCK_TIMEOUT': float(os.environ.get('ORDER_DESK_STORE_LOCK_TIMEOUT', 5)),
        'STORE_RETRIES': int(os.environ.get('ORDER_DESK_STORE_RETRIES', 3)),
        'DECREMENT_STOCK': _env_flag('ORDER_DESK_DECREMENT_STOCK'),
        'PROFILING': _env_flag('ORDER_DESK_PROFILING', '1'),
        'LOGS_DIR': os.environ.get('ORDER_DESK_LOGS_DIR'),
    }
    config.update(overrides or {})
    return config


# ═══════════════════════════════════════════════════════════════════════════════
# ACCESS CONTROL
# ═══════════════════════════════════════════════════════════════════════════════

def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if "user" not in session:
            raise AuthError("Authentication required")
        return f(*args, **kwargs)
    return wrapper


def role_required(role_name):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if session.get("role") != role_name:
                raise PermissionDeniedError("Permission denied")
            return f(*args, **kwargs)
        return wrapper
    return deco


# ═══════════════════════════════════════════════════════════════════════════════
# REQUEST HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _container() -> AppContainer:
    return current_app.extensions['order_desk']


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _current_user():
    return session.get("user")


def _resolve_delivery_charge(data: Dict[str, Any], required: bool):
    """
    delivery_charge_bdt wins; otherwise delivery_type is looked up in the
    settings table. Returns None on update when neither is given.
    """
    if data.get('delivery_charge_bdt') is not None:
        return data['delivery_charge_bdt']
    if data.get('delivery_type'):
        return _container().settings_service.resolve_delivery_charge(data['delivery_type'])
    return 0 if required else None


def _customer_draft(data: Dict[str, Any]) -> Dict[str, Any]:
    draft = {
        'name': data.get('customer_name'),
        'phone': data.get('customer_phone'),
    }
    for key in ('email', 'address', 'city', 'zone', 'area', 'postal_code', 'country', 'website'):
        if data.get(f'customer_{key}') is not None:
            draft[key] = data[f'customer_{key}']
    return draft


# ═══════════════════════════════════════════════════════════════════════════════
# APPLICATION FACTORY
# ═══════════════════════════════════════════════════════════════════════════════

def create_app(config: Dict[str, Any] = None) -> Flask:
    """
    Builds the Flask application.

    Args:
        config: Overrides for load_config() keys

    Returns:
        Configured Flask app
    """
    settings = load_config(config)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    configure_store(
        lock_timeout=settings['STORE_LOCK_TIMEOUT'],
        retries=settings['STORE_RETRIES'],
    )
    configure_profiling(enabled=settings['PROFILING'], logs_dir=settings['LOGS_DIR'])

    AppContainer.reset_instance()
    container = get_container(settings['DATA_DIR'], settings['DECREMENT_STOCK'])

    app = Flask(__name__)

    if settings['PRODUCTION'] and not settings['SECRET_KEY']:
        logger.warning("Production mode without ORDER_DESK_SECRET_KEY; using the development key")
    app.secret_key = settings['SECRET_KEY'] or _DEFAULT_SECRET

    app.config.update(
        ORDER_DESK=settings,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=False,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=86400,
        MAX_CONTENT_LENGTH=2 * 1024 * 1024,
    )
    app.extensions['order_desk'] = container

    init_profiling(app)
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(OrderDeskError)
    def _handle_domain_error(error):
        if error.status_code >= 500:
            logger.error("%s on %s %s: %s", type(error).__name__, request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def _handle_unexpected(error):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        payload = {'error': 'Internal server error'}
        if not current_app.config['ORDER_DESK']['PRODUCTION']:
            payload['details'] = str(error)
        return jsonify(payload), 500

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
        return response


def _register_routes(app: Flask) -> None:

    # ───────────────────────────────────────────────────────────────────────
    # AUTH
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = _json_body()
        user = _container().user_service.authenticate(
            data.get('email'), data.get('password'), data.get('role')
        )
        session.clear()
        session.permanent = True
        session["user"] = user['email']
        session["role"] = user['role']

        response = jsonify({'success': True, 'user': user})
        response.set_cookie(
            ROLE_COOKIE, user['role'],
            max_age=ROLE_COOKIE_MAX_AGE, httponly=True, samesite='Lax'
        )
        return response

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        user = _current_user()
        if user:
            _container().user_service.logout(user)
        session.clear()
        response = jsonify({'success': True})
        response.delete_cookie(ROLE_COOKIE)
        return response

    @app.route("/api/auth/me", methods=["GET"])
    @login_required
    def me():
        user = _container().user_service.get_user(_current_user())
        if user is None:
            session.clear()
            raise AuthError("Authentication required")
        return jsonify(user)

    # ───────────────────────────────────────────────────────────────────────
    # CATALOG
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/products", methods=["GET"])
    @login_required
    def list_products():
        include_inactive = request.args.get('active') != '1'
        return jsonify(_container().catalog_service.list_products(
            include_inactive=include_inactive,
            query=request.args.get('q')
        ))

    @app.route("/api/products", methods=["POST"])
    @login_required
    def create_product():
        product = _container().catalog_service.create_product(_json_body(), user=_current_user())
        return jsonify(product), 201

    @app.route("/api/products/<int:product_id>", methods=["GET"])
    @login_required
    def get_product(product_id):
        return jsonify(_container().catalog_service.get_product_view(product_id))

    @app.route("/api/products/<int:product_id>", methods=["PUT"])
    @login_required
    def update_product(product_id):
        return jsonify(_container().catalog_service.update_product(
            product_id, _json_body(), user=_current_user()
        ))

    @app.route("/api/products/<int:product_id>", methods=["DELETE"])
    @login_required
    @role_required(UserRole.ADMIN.value)
    def delete_product(product_id):
        _container().catalog_service.delete_product(product_id, user=_current_user())
        return jsonify({'message': 'Product deleted successfully'})

    # ───────────────────────────────────────────────────────────────────────
    # CUSTOMERS
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/customers", methods=["GET"])
    @login_required
    def list_customers():
        return jsonify(_container().customer_service.list_customers(request.args.get('q')))

    @app.route("/api/customers", methods=["POST"])
    @login_required
    def create_customer():
        customer = _container().customer_service.create_customer(_json_body(), user=_current_user())
        return jsonify(customer), 201

    @app.route("/api/customers/<int:customer_id>", methods=["GET"])
    @login_required
    def get_customer(customer_id):
        return jsonify(_container().customer_service.get_customer(customer_id).to_dict())

    @app.route("/api/customers/<int:customer_id>", methods=["PUT"])
    @login_required
    def update_customer(customer_id):
        return jsonify(_container().customer_service.update_customer(
            customer_id, _json_body(), user=_current_user()
        ))

    @app.route("/api/customers/<int:customer_id>", methods=["DELETE"])
    @login_required
    def delete_customer(customer_id):
        _container().customer_service.delete_customer(customer_id, user=_current_user())
        return jsonify({'message': 'Customer deleted successfully'})

    # ───────────────────────────────────────────────────────────────────────
    # ORDERS
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/orders", methods=["GET"])
    @login_required
    def list_orders():
        return jsonify(_container().order_service.list_orders(
            status=request.args.get('status'),
            query=request.args.get('q')
        ))

    @app.route("/api/orders", methods=["POST"])
    @login_required
    def create_order():
        data = _json_body()
        customer_data = None
        if not data.get('customer_id') and data.get('customer_phone'):
            customer_data = _customer_draft(data)

        order = _container().order_service.create_order(
            customer_id=data.get('customer_id'),
            items=data.get('items'),
            address=data.get('address', data.get('delivery_address')),
            delivery_charge=_resolve_delivery_charge(data, required=True),
            advance=data.get('advance_bdt', 0),
            status=data.get('status') or 'pending',
            courier_fields={k: data.get(k) for k in PASSTHROUGH_FIELDS},
            customer_data=customer_data,
            user=_current_user(),
        )
        return jsonify(order), 201

    @app.route("/api/orders/availability", methods=["POST"])
    @login_required
    def check_availability():
        report = _container().order_service.check_items(_json_body().get('items'))
        return jsonify({
            'available': all(entry['available'] for entry in report),
            'items': report,
        })

    @app.route("/api/orders/<int:order_id>", methods=["GET"])
    @login_required
    def get_order(order_id):
        return jsonify(_container().order_service.get_order_view(order_id))

    @app.route("/api/orders/<int:order_id>", methods=["PUT", "PATCH"])
    @login_required
    def update_order(order_id):
        data = _json_body()
        patch = dict(data)
        patch.pop('delivery_type', None)
        delivery = _resolve_delivery_charge(data, required=False)
        if delivery is not None:
            patch['delivery_charge_bdt'] = delivery
        if 'address' not in patch and 'delivery_address' in patch:
            patch['address'] = patch['delivery_address']
        patch.pop('delivery_address', None)

        return jsonify(_container().order_service.update_order(order_id, patch, user=_current_user()))

    @app.route("/api/orders/<int:order_id>", methods=["DELETE"])
    @login_required
    def delete_order(order_id):
        _container().order_service.delete_order(order_id, user=_current_user())
        return jsonify({'message': 'Order deleted successfully'})

    # ───────────────────────────────────────────────────────────────────────
    # BATCHES
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/batches", methods=["GET"])
    @login_required
    def list_batches():
        return jsonify(_container().batch_service.list_batches())

    @app.route("/api/batches", methods=["POST"])
    @login_required
    @role_required(UserRole.ADMIN.value)
    def create_batch():
        batch = _container().batch_service.create_batch(_json_body(), user=_current_user())
        return jsonify(batch), 201

    @app.route("/api/batches/<int:batch_id>", methods=["GET"])
    @login_required
    def get_batch(batch_id):
        return jsonify(_container().batch_service.get_batch(batch_id).to_dict())

    @app.route("/api/batches/<int:batch_id>", methods=["PUT"])
    @login_required
    def update_batch(batch_id):
        return jsonify(_container().batch_service.update_batch(
            batch_id, _json_body(), user=_current_user()
        ))

    @app.route("/api/batches/<int:batch_id>", methods=["DELETE"])
    @login_required
    @role_required(UserRole.ADMIN.value)
    def delete_batch(batch_id):
        _container().batch_service.delete_batch(batch_id, user=_current_user())
        return jsonify({'message': 'Batch deleted successfully'})

    # ───────────────────────────────────────────────────────────────────────
    # SETTINGS / AUDIT
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/settings", methods=["GET"])
    @login_required
    def get_settings():
        return jsonify(_container().settings_service.get_settings())

    @app.route("/api/settings", methods=["PUT"])
    @login_required
    @role_required(UserRole.ADMIN.value)
    def update_settings():
        return jsonify(_container().settings_service.update_settings(_json_body(), user=_current_user()))

    @app.route("/api/audit", methods=["GET"])
    @login_required
    @role_required(UserRole.ADMIN.value)
    def audit_log():
        try:
            limit = int(request.args.get('limit', 200))
        except ValueError:
            raise ValidationError("limit must be an integer", 'limit')
        return jsonify(_container().audit_service.search_logs(
            query=request.args.get('q', ''),
            log_type=request.args.get('type'),
            related_id=request.args.get('related_id'),
            limit=limit,
        ))

    # ───────────────────────────────────────────────────────────────────────
    # PUBLIC TRACKING
    # ───────────────────────────────────────────────────────────────────────

    @app.route("/api/track/<int:order_id>", methods=["GET"])
    def track_order(order_id):
        container = _container()
        settings = container.settings_service.get_settings()
        view = container.order_service.tracking_view(
            order_id, container.settings_service.packing_message()
        )
        view['company_name'] = settings.get('company_name')
        view['support_phone'] = settings.get('support_phone')
        return jsonify(view)


if __name__ == "__main__":
    # Local development; use wsgi.py behind a WSGI server in production
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))
    create_app().run(host=HOST, port=PORT, debug=DEBUG)
