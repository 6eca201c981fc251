"""
Core module - Configuration, database, auth, email, scheduling and utilities.
"""

from campuslink.core.config import get_settings, settings
from campuslink.core.database import Base, close_db, get_db, init_db
from campuslink.core.exceptions import ServiceError
from campuslink.core.redis import close_redis, get_redis, init_redis
from campuslink.core.security import create_access_token, decode_token

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Errors
    "ServiceError",
    # Security
    "create_access_token",
    "decode_token",
]
