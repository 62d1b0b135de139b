from contextvars import ContextVar
from contextlib import contextmanager


request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
computation_var: ContextVar[str | None] = ContextVar("computation", default=None)


@contextmanager
def computation_context(kind: str | None, run_id: int | str | None = None):
    label = None
    if kind:
        label = f"{kind}#{run_id}" if run_id is not None else kind
    token = computation_var.set(label)
    try:
        yield
    finally:
        computation_var.reset(token)
