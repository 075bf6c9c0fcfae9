"""Local development entry point.

Run with ``python main.py``; production uses gunicorn (see
``gunicorn.conf.py``).
"""

import os

import uvicorn

from blueprint_chat.main import app

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )
