"""
Global slowapi rate limiter.

Imported by auth/router.py for per-endpoint limits. Mounted onto app.state in
main.py so slowapi middleware can find it.

Storage: RATE_LIMIT_STORAGE_URI (``memory://`` by default; point it at Redis
when running more than one worker).
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=get_settings().rate_limit_storage_uri,
)
