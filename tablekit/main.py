from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from tablekit import config
from tablekit.db.base import dispose_engine, get_engine
from tablekit.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from tablekit.observability.logger import configure_logging
from tablekit.observability.metrics import PrometheusMiddleware
from tablekit.observability.metrics import router as prometheus_router
from tablekit.routers.health import router as health_router
from tablekit.routers.records import router as records_router
from tablekit.routers.views import router as views_router
from tablekit.utils.cache import close_cache
from tablekit.utils.telemetry import init_otel

configure_logging(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_cache()
    await dispose_engine()


app = FastAPI(
    title="Tablekit API",
    description="Filterable data table with URL-synced state and saved views",
    version="1.0.0",
    lifespan=lifespan,
)

# Error handler should be outermost to catch all errors
app.add_middleware(PrometheusMiddleware)
app.add_middleware(ErrorHandlerMiddleware, debug=config.DEBUG)

setup_exception_handlers(app)

app.include_router(health_router)
app.include_router(prometheus_router)
app.include_router(records_router, prefix="/api")
app.include_router(views_router, prefix="/api")

if config.OTEL_ENABLED:
    init_otel(app=app, engine=get_engine())


def get_app() -> FastAPI:
    return app


def run() -> None:
    uvicorn.run("tablekit.main:app", host=config.HOST, port=config.PORT, reload=config.DEBUG)


if __name__ == "__main__":
    run()
