import logging
from contextvars import ContextVar
from .config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

def setup_logging():
    level = logging.DEBUG if settings.ENV == "local" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] [%(tenant)s] %(message)s",
    )
    install_record_factory()

def install_record_factory():
    """Stamp every log record with the request id and active tenant."""
    from medibook.tenancy.context import tenant_context

    old_factory = logging.getLogRecordFactory()
    if getattr(old_factory, "_medibook", False):
        return

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.request_id = request_id_ctx.get()
        record.tenant = tenant_context.get() or "-"
        return record

    record_factory._medibook = True
    logging.setLogRecordFactory(record_factory)
