"""Request correlation id.

Held in a ContextVar so log records emitted anywhere while a request is
handled (engine, store, counters) carry the same id as the access log line.
Outside a request, e.g. in operator scripts, records carry "-".
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST = "-"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST


@contextmanager
def bound_request_id(incoming: Optional[str] = None) -> Iterator[str]:
    """Bind ``incoming`` (or a fresh id) for the duration of the block.

    The previous value is restored on exit so ids never leak between
    requests served by the same worker.
    """
    request_id = (incoming or "").strip()[:128] or generate_request_id()
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)
