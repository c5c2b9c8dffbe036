"""
Photo Sharing Backend.

`create_app()` builds the FastAPI application; `src.photoshare.asgi:app` is the
instance for ASGI servers.
"""
