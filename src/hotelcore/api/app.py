"""ASGI entrypoint: uvicorn hotelcore.api.app:app (role from APP_ROLE)."""

from hotelcore.api.factory import create_app

app = create_app()
