# ==============================================================================
# WSGI Entry Point
# ==============================================================================
# Entry point for WSGI servers such as Gunicorn:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# Configuration comes from ORDER_DESK_* environment variables
# (see order_desk.main.load_config).
# ==============================================================================

from order_desk.main import create_app

app = create_app()

# ==============================================================================
# LOCAL DEVELOPMENT
# ==============================================================================
#   python wsgi.py
# ==============================================================================

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
