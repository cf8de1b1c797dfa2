from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from docrouting.api.documents import router as documents_router
from docrouting.api.notifications import router as notifications_router
from docrouting.api.public import router as public_router
from docrouting.api.routing import router as routing_router
from docrouting.config import settings
from docrouting.errors import register_error_handlers
from docrouting.logging import configure_logging
from docrouting.observability import ObservabilityMiddleware

app = FastAPI(title=f"{settings.brand_name} API")

configure_logging()
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(documents_router)
_include_api_router(routing_router)
_include_api_router(notifications_router)
_include_api_router(public_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
