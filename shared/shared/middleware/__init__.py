from shared.middleware.request_id import RequestIdLogFilter, request_id_middleware
from shared.middleware.error_handler import error_envelope_middleware, install_error_handlers

__all__ = [
    "RequestIdLogFilter",
    "request_id_middleware",
    "error_envelope_middleware",
    "install_error_handlers",
]
