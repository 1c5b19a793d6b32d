from typing import Dict, Iterable, Optional
import json
import redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError


class CacheService:
    CACHE_KEY_PREFIX = "driver:"
    DEFAULT_TTL_SECONDS = 10 * 60

    def __init__(self, config):
        self.config = config
        self.ttl_seconds = int(config.get('DRIVER_CACHE_TTL_SECONDS') or self.DEFAULT_TTL_SECONDS)
        self.redis_client: Optional[redis.Redis] = None
        self._connect()

    def _connect(self) -> None:
        try:
            redis_url = self.config.get('REDIS_URL')
            if not redis_url:
                return

            connection_params = {
                'decode_responses': True,
                'socket_connect_timeout': self.config.get('REDIS_SOCKET_CONNECT_TIMEOUT'),
                'socket_timeout': self.config.get('REDIS_SOCKET_TIMEOUT'),
                'retry_on_timeout': True,
                'health_check_interval': 30
            }

            if redis_url.startswith('rediss://'):
                import ssl
                connection_params['ssl_cert_reqs'] = ssl.CERT_NONE
                connection_params['ssl_check_hostname'] = False

            self.redis_client = redis.from_url(redis_url, **connection_params)
            self.redis_client.ping()
        except (RedisConnectionError, RedisError, ValueError):
            self.redis_client = None

    def _get_cache_key(self, driver_id) -> str:
        return f"{self.CACHE_KEY_PREFIX}{driver_id}"

    def get_drivers(self, driver_ids: Iterable) -> Dict:
        """Return cached driver rows keyed by driver_id; misses are omitted."""
        if not self.redis_client:
            return {}

        ids = list(driver_ids)
        if not ids:
            return {}
        try:
            values = self.redis_client.mget([self._get_cache_key(d) for d in ids])
        except RedisError:
            return {}

        found = {}
        for driver_id, raw in zip(ids, values):
            if not raw:
                continue
            try:
                found[driver_id] = json.loads(raw)
            except ValueError:
                continue
        return found

    def set_drivers(self, drivers: Dict) -> bool:
        if not self.redis_client or not drivers:
            return False

        try:
            pipe = self.redis_client.pipeline()
            for driver_id, row in drivers.items():
                pipe.setex(self._get_cache_key(driver_id), self.ttl_seconds, json.dumps(row))
            pipe.execute()
            return True
        except RedisError:
            return False

    def invalidate_driver(self, driver_id) -> bool:
        if not self.redis_client:
            return False

        try:
            return self.redis_client.delete(self._get_cache_key(driver_id)) > 0
        except RedisError:
            return False

    def is_available(self) -> bool:
        if not self.redis_client:
            return False
        try:
            self.redis_client.ping()
            return True
        except RedisError:
            return False


cache_service: Optional[CacheService] = None


def init_cache_service(config) -> CacheService:
    global cache_service
    if cache_service is None:
        cache_service = CacheService(config)
    return cache_service


def get_cache_service() -> Optional[CacheService]:
    return cache_service
