from __future__ import annotations

import uvicorn

from .main import create_app
from .settings import get_settings


# PUBLIC_INTERFACE
def main() -> None:
    """Serve the API on all interfaces using the port and shutdown grace from settings."""
    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        log_config=None,
    )


if __name__ == "__main__":
    main()
