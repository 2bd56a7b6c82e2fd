import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import SplitError
from app.core.logging_config import configure_logging
from app.db.session import engine, init_models
from app.services.events import EventBus, log_split_event
from app.api.v1.routes.system import router as system_router
from app.api.v1.routes.template import router as template_router
from app.api.v1.routes.split import router as split_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("app")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("%s started", settings.APP_NAME)
    yield
    await app.state.event_bus.drain()
    await engine.dispose()

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.state.event_bus = EventBus()
app.state.event_bus.subscribe(log_split_event)

@app.exception_handler(SplitError)
async def split_error_handler(request: Request, exc: SplitError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.get("/")
async def root():
    return {"message": "Split Ledger Backend is live"}

app.include_router(system_router, prefix="/api/v1/system")
# template routes first so /template/list isn't read as a split id
app.include_router(template_router, prefix="/api/v1/split/template")
app.include_router(split_router, prefix="/api/v1/split")
