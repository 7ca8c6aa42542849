"""ASGI entry point: `uvicorn xcom_validator.server.main:app`."""
from .app import create_app

app = create_app()
