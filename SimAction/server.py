"""ASGI entry point used by uvicorn (including --reload mode)."""

from SimAction.api import create_app

app = create_app()
