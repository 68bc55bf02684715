# app/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from sqlalchemy.exc import IntegrityError
import redis


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


#kolizja order_number (unique) - cala transakcja jest powtarzana
def unique_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(IntegrityError),
    )
