from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import settings

# Per-client limit shared by the upload and health endpoints
limiter = Limiter(key_func=get_remote_address)
limit_param = f"{settings.RATE_LIMIT_MIN}/minute"
