"""ASGI entrypoint, configured from environment variables: `uvicorn src.photoshare.asgi:app`."""

from src.photoshare.main import create_app

app = create_app()
