"""
Main application entry point.
"""
from larga import create_app, socketio

app = create_app()


if __name__ == '__main__':
    # For development
    socketio.run(app, host='0.0.0.0', port=3000, debug=True, allow_unsafe_werkzeug=True)
