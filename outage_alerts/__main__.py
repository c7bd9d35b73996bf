from __future__ import annotations

import uvicorn

from outage_alerts.config import load_settings


if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run(
        "outage_alerts.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
