import uuid
import time
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from spa_manager.api.appointments import router as appointments_router
from spa_manager.api.dashboard import router as dashboard_router
from spa_manager.api.debug import router as debug_router
from spa_manager.api.filters import router as filters_router
from spa_manager.api.sales import router as sales_router
from spa_manager.api.settings import router as settings_router
from spa_manager.config import get_settings
from spa_manager.db import init_db
from spa_manager.services.adapters import close_spa_resources
from spa_manager.utils.profiling import set_request_id

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name)

cors_origins = [x.strip() for x in settings.cors_allow_origins.split(',') if x.strip()]
allow_origins = cors_origins or ['*']
allow_methods = [x.strip() for x in settings.cors_allow_methods.split(',') if x.strip()] or ['*']
allow_headers = [x.strip() for x in settings.cors_allow_headers.split(',') if x.strip()] or ['*']

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=allow_methods,
    allow_headers=allow_headers,
    expose_headers=['X-Cache', 'X-Request-Id', 'X-Response-Time-Ms'],
)

app.include_router(debug_router)
app.include_router(dashboard_router)
app.include_router(sales_router)
app.include_router(appointments_router)
app.include_router(filters_router)
app.include_router(settings_router)


@app.on_event('startup')
def startup() -> None:
    init_db()


@app.middleware('http')
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    started = time.perf_counter()
    set_request_id(request_id)
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info('request method=%s path=%s status=%s duration_ms=%.2f', request.method, request.url.path, response.status_code, elapsed_ms)
    response.headers['X-Request-Id'] = request_id
    response.headers['X-Response-Time-Ms'] = f"{elapsed_ms:.2f}"
    return response


@app.on_event('shutdown')
def shutdown() -> None:
    close_spa_resources()


@app.get('/healthz')
def healthz():
    return {'status': 'ok'}
