import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from menudesk.routers.offers import router as offers_router
from menudesk.routers.pages import limiter, router as pages_router
from menudesk.services.editor import EditorSession

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Menudesk – Menu Page Editor API",
    description="Loads menu HTML pages, exposes their items for editing, and regenerates the HTML.",
    version="1.0.0",
)

# One editing session per process: a single editor works on the site at a time
app.state.editor = EditorSession()

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(pages_router)
app.include_router(offers_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from Menudesk", "unsaved_changes": app.state.editor.has_unsaved_changes()}
