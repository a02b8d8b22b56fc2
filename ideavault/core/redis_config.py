from arq.connections import RedisSettings

from ideavault.config import settings


def get_redis_settings() -> RedisSettings:
    """Get Redis settings from application settings."""
    return RedisSettings(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        database=settings.REDIS_DB,
    )


REDIS_SETTINGS = get_redis_settings()
