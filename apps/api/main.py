"""Uvicorn entrypoint for the Later search API.

Run with: uvicorn apps.api.main:app --reload

The app instance lives here rather than in later.app so importing the
package never reads settings.
"""

from later.app import add_request_id_middleware, create_app

app = create_app()
# Outermost middleware, added last
add_request_id_middleware(app)

__all__ = ["app"]
