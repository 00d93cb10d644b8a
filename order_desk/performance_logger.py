# ==============================================================================
# INTERNAL PROFILING
# ==============================================================================
# Times every API request and the order coordinator operations. Each
# measurement becomes one line in performance.log; anything above the
# thresholds also lands in slow_routes.log / slow_functions.log.
#
#   2026-01-31 10:02:11 | 312 ms | WARNING | Create order | POST /api/orders | admin@example.com
#
# ON/OFF: ENABLE_PROFILING (ORDER_DESK_PROFILING, see configure_profiling)
# ==============================================================================

import logging
import os
import threading
import time
from datetime import datetime
from functools import wraps
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = True

# Milliseconds
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOGS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'

# Flask rule → label used in the log lines
ROUTE_NAMES = {
    'POST /api/auth/login': 'Log in',
    'POST /api/auth/logout': 'Log out',
    'GET /api/auth/me': 'Current user',

    'GET /api/products': 'List products',
    'POST /api/products': 'Create product',
    'GET /api/products/<int:product_id>': 'View product',
    'PUT /api/products/<int:product_id>': 'Edit product',
    'DELETE /api/products/<int:product_id>': 'Delete product',

    'GET /api/customers': 'List customers',
    'POST /api/customers': 'Create customer',
    'GET /api/customers/<int:customer_id>': 'View customer',
    'PUT /api/customers/<int:customer_id>': 'Edit customer',
    'DELETE /api/customers/<int:customer_id>': 'Delete customer',

    'GET /api/orders': 'List orders',
    'POST /api/orders': 'Create order',
    'POST /api/orders/availability': 'Check availability',
    'GET /api/orders/<int:order_id>': 'View order',
    'PUT /api/orders/<int:order_id>': 'Edit order',
    'PATCH /api/orders/<int:order_id>': 'Edit order',
    'DELETE /api/orders/<int:order_id>': 'Delete order',

    'GET /api/batches': 'List batches',
    'POST /api/batches': 'Create batch',
    'GET /api/batches/<int:batch_id>': 'View batch',
    'PUT /api/batches/<int:batch_id>': 'Edit batch',
    'DELETE /api/batches/<int:batch_id>': 'Delete batch',

    'GET /api/settings': 'View settings',
    'PUT /api/settings': 'Save settings',
    'GET /api/audit': 'View audit trail',
    'GET /api/track/<int:order_id>': 'Track order',
}


def configure_profiling(enabled: bool = None, logs_dir: str = None) -> None:
    """Overrides the module switches (called by create_app)."""
    global ENABLE_PROFILING, LOGS_DIR
    if enabled is not None:
        ENABLE_PROFILING = bool(enabled)
    if logs_dir:
        LOGS_DIR = logs_dir


def severity_for(elapsed_ms: float) -> Optional[str]:
    """'CRITICAL', 'WARNING' or None when under both thresholds."""
    if elapsed_ms >= THRESHOLD_CRITICAL:
        return 'CRITICAL'
    if elapsed_ms >= THRESHOLD_WARNING:
        return 'WARNING'
    return None


# ═══════════════════════════════════════════════════════════════════════════
# LOG FILES
# ═══════════════════════════════════════════════════════════════════════════

_file_lock = threading.Lock()


def _append(filename: str, line: str) -> None:
    """Profiling must never break a request: I/O errors are only logged."""
    try:
        with _file_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(os.path.join(LOGS_DIR, filename), 'a', encoding='utf-8') as f:
                f.write(line + '\n')
    except OSError as e:
        logger.debug("Could not write %s: %s", filename, e)


def _line(*fields) -> str:
    stamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    return ' | '.join([stamp] + [str(f) for f in fields if f is not None])


def route_label(method: str, rule: str) -> str:
    return ROUTE_NAMES.get(f"{method} {rule}", f"{method} {rule}")


# ═══════════════════════════════════════════════════════════════════════════
# REQUEST TIMING
# ═══════════════════════════════════════════════════════════════════════════

def record_request(method: str, path: str, rule: str, elapsed_ms: float, user: str = None) -> None:
    """
    Writes one request measurement.

    Args:
        method: HTTP method
        path: Requested path (/api/orders/3)
        rule: Matched Flask rule (/api/orders/<int:order_id>)
        elapsed_ms: Wall time of the request
        user: Session user, if any
    """
    if not ENABLE_PROFILING:
        return

    level = severity_for(elapsed_ms)
    line = _line(f"{elapsed_ms:.0f} ms", level, route_label(method, rule), f"{method} {path}", user or 'anonymous')
    _append(PERFORMANCE_LOG, line)
    if level:
        _append(SLOW_ROUTES_LOG, line)
        logger.warning("Slow route %s %s: %.0f ms", method, path, elapsed_ms)


def init_profiling(app) -> None:
    """Registers the request timing hooks when profiling is enabled."""
    if not ENABLE_PROFILING:
        return

    from flask import g, request, session

    @app.before_request
    def _mark_request_start():
        g.request_started = time.perf_counter()

    @app.after_request
    def _record_request(response):
        started = g.pop('request_started', None)
        if started is not None:
            rule = request.url_rule.rule if request.url_rule else request.path
            record_request(
                request.method,
                request.path,
                rule,
                (time.perf_counter() - started) * 1000,
                session.get('user'),
            )
        return response


# ═══════════════════════════════════════════════════════════════════════════
# FUNCTION TIMING
# ═══════════════════════════════════════════════════════════════════════════

class _Timing:
    __slots__ = ('calls', 'total_ms', 'max_ms')

    def __init__(self):
        self.calls = 0
        self.total_ms = 0.0
        self.max_ms = 0.0

    def add(self, elapsed_ms: float) -> None:
        self.calls += 1
        self.total_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)

    def summary(self) -> Dict[str, float]:
        return {
            'calls': self.calls,
            'avg_time': round(self.total_ms / self.calls, 2) if self.calls else 0,
            'max_time': round(self.max_ms, 2),
        }


_timings: Dict[str, _Timing] = {}
_timings_lock = threading.Lock()


def profile_function(func=None, name=None):
    """
    Counts calls and tracks average/max time of the decorated function.

    Usage:
        @profile_function
        def rebuild(): ...

        @profile_function(name="Create order")
        def create_order(self, ...): ...
    """
    def decorator(fn):
        label = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                with _timings_lock:
                    _timings.setdefault(label, _Timing()).add(elapsed_ms)
                level = severity_for(elapsed_ms)
                if level:
                    _append(SLOW_FUNCTIONS_LOG, _line(f"{elapsed_ms:.0f} ms", level, label))

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def get_function_stats() -> Dict[str, Dict[str, float]]:
    """{label: {calls, avg_time, max_time}} for every profiled function."""
    with _timings_lock:
        return {label: timing.summary() for label, timing in _timings.items()}


def reset_function_stats() -> None:
    with _timings_lock:
        _timings.clear()
