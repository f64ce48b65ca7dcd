"""FastAPI host application.

Endpoints:
    - GET /health: Service health and backend connectivity

The NiceGUI pages are mounted onto this app by `dataroom.main`.
"""

from dataroom.api.app import app, create_app

__all__ = ["app", "create_app"]
