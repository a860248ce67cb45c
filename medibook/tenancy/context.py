from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Awaitable, Callable, Iterator, TypeVar

T = TypeVar("T")

class TenantContext:
    """Per-request holder of the active tenant database name.

    Backed by a ContextVar, so each request task (and anything it spawns)
    sees its own value. An empty value means "use the central database".
    """

    def __init__(self, name: str = "tenant_database"):
        self._var: ContextVar[str | None] = ContextVar(name, default=None)

    def set(self, database_name: str | None) -> Token:
        return self._var.set(database_name or None)

    def get(self) -> str | None:
        return self._var.get()

    def clear(self) -> None:
        self._var.set(None)

    def reset(self, token: Token) -> None:
        self._var.reset(token)

    def is_tenant(self) -> bool:
        return self._var.get() is not None

    @contextmanager
    def scope(self, database_name: str | None) -> Iterator[None]:
        token = self.set(database_name)
        try:
            yield
        finally:
            self.reset(token)

tenant_context = TenantContext()

async def with_tenant_context(database_name: str | None, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    """Run ``fn`` with ``database_name`` as the active tenant, restoring the previous value on every exit path."""
    with tenant_context.scope(database_name):
        return await fn(*args, **kwargs)
