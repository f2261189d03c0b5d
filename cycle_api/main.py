import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import cors_origins, settings
from .db import init_db
from .notifications.scheduler import start_scheduler, stop_scheduler
from .routes.auth import router as auth_router
from .routes.cron import router as cron_router, test_router
from .routes.daily_logs import router as daily_logs_router
from .routes.health import router as health_router
from .routes.notifications import router as notifications_router
from .routes.push import router as push_router
from .routes.reminders import router as reminders_router
from .routes.settings import router as settings_router
from .routes.todos import router as todos_router
from .routes.users import router as users_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Cycle Tracker API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(settings.CORS_ORIGINS), allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(daily_logs_router)
app.include_router(users_router)
app.include_router(notifications_router)
app.include_router(reminders_router)
app.include_router(push_router)
app.include_router(todos_router)
app.include_router(settings_router)
app.include_router(cron_router)
if settings.ENABLE_TEST_ROUTES:
    app.include_router(test_router)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid request", "details": jsonable_encoder(exc.errors())}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.on_event("startup")
def startup():
    init_db()
    if settings.ENABLE_SCHEDULER:
        start_scheduler(settings.SCHEDULER_INTERVAL_MINUTES)


@app.on_event("shutdown")
def shutdown():
    stop_scheduler()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("cycle_api.main:app", host="0.0.0.0", port=8000, reload=True)
