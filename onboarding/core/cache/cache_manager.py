import redis
from onboarding.core.setting import config
import logging

#  INITIALIZE CONNECTION

# Set up logger
logger = logging.getLogger(__name__)

# We use a simple global variable. In larger apps, use a Singleton class.
_dragonfly_client = None

def get_dragonfly_client() -> redis.Redis:
    """
    Returns the Dragonfly (Redis) client instance.
    Initializes it only once. The connection itself is lazy, so failures
    surface on the first command as redis.RedisError.
    """
    global _dragonfly_client

    if _dragonfly_client is None:
        _dragonfly_client = redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5
        )
        logger.info(f"Dragonfly client created for {config.REDIS_HOST}:{config.REDIS_PORT}")
    return _dragonfly_client
