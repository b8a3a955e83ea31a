"""
Expose the FastAPI application instance.

Importing this module will create a FastAPI application and register
all routes.  The server can be started with Uvicorn directly or with
the ``-m`` invocation:

```sh
python -m coderoom.api
```
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
