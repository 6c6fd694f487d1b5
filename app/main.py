from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.db import Base, SessionLocal, engine
from app.route_logging import EndpointNameRoute
from app.routers import academic_calendar, folders, recent_access, schedules
from app.services.bootstrap_service import run_bootstrap
from app.services.file_storage_service import get_file_storage

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        run_bootstrap(db)
    finally:
        db.close()
    yield


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_base_url],
    allow_methods=['GET', 'POST', 'PUT', 'DELETE'],
    allow_headers=['Content-Type', 'Authorization'],
    expose_headers=['Content-Length'],
    allow_credentials=True,
)

_storage = get_file_storage()
_storage.ensure_directories()
app.mount('/uploads', StaticFiles(directory=str(_storage.root)), name='uploads')


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('app.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response


app.include_router(schedules.router)
app.include_router(folders.router)
app.include_router(academic_calendar.router)
app.include_router(recent_access.router)


@app.get('/')
def health():
    return {'app': settings.app_name, 'status': 'ok'}


@app.get('/health')
def healthcheck():
    return {'status': 'ok'}
