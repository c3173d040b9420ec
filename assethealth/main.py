import logging
import sys

import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from assethealth.core.config import settings
from assethealth.health_scoring.api import router as health_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)
    app.include_router(health_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    if settings.METRICS_ENABLED:
        app.mount("/metrics", make_asgi_app())
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("assethealth.main:app", host="0.0.0.0", port=8000)
