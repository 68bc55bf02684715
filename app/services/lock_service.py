import time
import uuid
from contextlib import contextmanager

import redis
from app.domain.errors import ConflictError
from app.utils.retry import redis_retry
from app.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS, LOCK_WAIT_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz

_POLL_INTERVAL = 0.05


class LockService:
    """
    -blokada koszyka uzytkownika (find-or-create, skladanie zamowienia)
    -zwalnianie locka tylko przez wlasciciela (token)
    -atomowosc przy pomocy lua
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
    def acquire(self, key: str, token: str, ttl: int) -> bool:
        #SET cart:1:lock "<token>" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True, #tylko jesli klucz nie istnieje
                ex=ttl, #wygasa sam, nawet jak proces padnie
            )
        )

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def hold(self, key: str, ttl: int = CART_LOCK_TTL_SECONDS, wait: float = LOCK_WAIT_SECONDS):
        token = uuid.uuid4().hex
        deadline = time.monotonic() + wait

        while not self.acquire(key, token, ttl):
            if time.monotonic() >= deadline:
                logger.warning(f"Timeout waiting for lock {key}")
                raise ConflictError("Resource is busy, try again", {"lock": key})
            time.sleep(_POLL_INTERVAL)

        logger.debug(f"Acquired lock {key}")
        try:
            yield
        finally:
            if not self.release(key, token):
                logger.warning(f"Lock {key} expired before release")

    def hold_cart(self, user_id: int):
        return self.hold(self.cart_key(user_id))
