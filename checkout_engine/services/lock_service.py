import uuid
from contextlib import contextmanager

import redis

from checkout_engine.domain.errors import ConcurrencyConflict
from checkout_engine.utils.retry import redis_retry
from checkout_engine.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nikt nie wcisnie sie miedzy GET a DEL
#wiec lock zwalnia tylko ten kto go wzial (po tokenie)


class LockService:
    """
    -serializacja operacji na koszyku jednego uzytkownika (lock per koszyk)
    -zwalnianie locka tylko przez wlasciciela tokenu
    -TTL zeby lock po padnietym procesie sam wygasl
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def cart_key(user_id: int) -> str:
        return f"cart:{user_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, user_id: int, token: str, ttl: int = CART_LOCK_TTL_SECONDS) -> bool:
        key = self.cart_key(user_id)
        logger.info(f"Acquire lock {key}")
        #SET cart:1:lock "<token>" NX EX 10
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True, #tylko jesli klucz nie istnieje
                ex=ttl, #wygasa sam po ttl
            )
        )

    @redis_retry()
    def release_cart_lock(self, user_id: int, token: str) -> bool:
        key = self.cart_key(user_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def cart_lock(self, user_id: int, ttl: int = CART_LOCK_TTL_SECONDS):
        token = uuid.uuid4().hex
        if not self.acquire_cart_lock(user_id, token, ttl):
            raise ConcurrencyConflict(
                "Cart is being modified by another request",
                details={"user_id": user_id},
            )
        try:
            yield token
        finally:
            # lock i tak wygasnie po TTL, blad zwalniania tylko logujemy
            try:
                released = self.release_cart_lock(user_id, token)
            except redis.RedisError as e:
                logger.warning(f"Failed to release lock {self.cart_key(user_id)}: {e}")
            else:
                if not released:
                    logger.warning(f"Lock {self.cart_key(user_id)} expired before release")
