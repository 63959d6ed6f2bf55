"""
Serverless WSGI entry point.

MongoDB and the broker are reached lazily on first use; Redis is probed
once at startup when REDIS_URL is set.
"""

import os

from app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
