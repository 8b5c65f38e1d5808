"""
Main entry point for the launcher (development server).
"""
import logging
import os

from launcher import create_app

app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))

    # Set FLASK_ENV=production to disable debug mode
    debug = os.environ.get("FLASK_ENV") != "production"
    host = "127.0.0.1" if debug else "0.0.0.0"

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
    logging.getLogger(__name__).info("Starting launcher on http://%s:%s", host, port)
    logging.getLogger(__name__).info("Debug mode: %s", "ON" if debug else "OFF")

    app.run(host=host, port=port, debug=debug)
