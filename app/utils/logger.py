import logging
from contextvars import ContextVar

# Set per HTTP request by request_logging_middleware; "-" outside a request
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamps every record with the id of the request that produced it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_ctx.get()
        return True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
