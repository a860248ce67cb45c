import time
import logging
from fastapi import FastAPI, Request
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from medibook.core.config import settings
from medibook.core.logging import setup_logging, request_id_ctx
from medibook.core.errors import register_exception_handlers
from medibook.core.db import init_models
from medibook.api.router import api_router
from medibook.modules.directory.sync import directory_sync
from medibook.tenancy.connections import connection_router
from medibook.tenancy.middleware import install_tenant_middleware

setup_logging()
app = FastAPI(title=settings.APP_NAME)
register_exception_handlers(app)

logger = logging.getLogger(__name__)

# innermost first: the tenant is resolved after the request id is known
install_tenant_middleware(app)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
    )
    return response

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    token = request_id_ctx.set(request.headers.get("x-request-id", "-"))
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    return response

@app.on_event("startup")
async def on_startup():
    await init_models()

@app.on_event("shutdown")
async def on_shutdown():
    await directory_sync.drain()
    await connection_router.dispose_all()

app.include_router(api_router, prefix=settings.API_PREFIX)
