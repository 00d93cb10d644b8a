# ==============================================================================
# ORDER DESK
# ==============================================================================
# Order ledger for a small shop: products with color/size variants,
# customers, orders with snapshotted line items, fulfillment batches.
#
# Entry points:
#   order_desk.main.create_app()   → Flask JSON API
#   order_desk.app_container       → repositories and services, no HTTP
# ==============================================================================

__version__ = '1.0.0'
