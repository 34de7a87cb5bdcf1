from __future__ import annotations

import uvicorn

from dbaas_backup.apps.api.main import create_app
from dbaas_backup.core.config import get_settings


def main() -> None:
    # Run the adapter with env-driven settings; one process owns one pooled daemon client.
    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    main()
