from slowapi import Limiter
from slowapi.util import get_remote_address
from dailyrank.core.config import settings

limiter = Limiter(key_func=get_remote_address)

RATE_LIMIT = f"{settings.RATE_LIMIT_PER_MINUTE}/minute"
