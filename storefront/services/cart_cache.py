# storefront/services/cart_cache.py
import logging
from collections.abc import Callable

from pydantic import TypeAdapter, ValidationError as SchemaError
from redis import Redis
from redis.exceptions import RedisError

from storefront.schemas.cart import CartItemRead, OwnerKey

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(list[CartItemRead])


class CartCache:
    """
    Read-through cache of cart contents in Redis, keyed by owner.

    - One JSON document per owner under `cart:{kind}:{value}`, written with
      a TTL (SET ... PX) so every worker process sees the same entry.
    - ttl_seconds <= 0 disables caching (every read hits the store).
    - Any mutation against an owner must call invalidate(owner); the DEL
      reaches every worker sharing the Redis instance.
    - Redis being down only costs cache hits: reads fall back to the store.
    """

    PREFIX = "cart:"

    def __init__(self, client: Redis, ttl_seconds: float):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    @classmethod
    def key_for(cls, owner: OwnerKey) -> str:
        return f"{cls.PREFIX}{owner.kind}:{owner.value}"

    def get(self, owner: OwnerKey) -> list[CartItemRead] | None:
        if not self.enabled:
            return None
        key = self.key_for(owner)
        try:
            data = self.client.get(key)
        except RedisError as exc:
            logger.warning("Cart cache read failed for %s: %s", owner, exc)
            return None
        if data is None:
            return None

        try:
            return _items_adapter.validate_json(data)
        except SchemaError:
            logger.warning("Dropping corrupted cart cache entry %s", key)
            self.invalidate(owner)
            return None

    def set(self, owner: OwnerKey, items: list[CartItemRead]) -> None:
        if not self.enabled:
            return
        try:
            self.client.set(
                self.key_for(owner),
                _items_adapter.dump_json(items),
                px=max(int(self.ttl_seconds * 1000), 1),
            )
        except RedisError as exc:
            logger.warning("Cart cache write failed for %s: %s", owner, exc)

    def get_or_load(
        self,
        owner: OwnerKey,
        loader: Callable[[], list[CartItemRead]],
    ) -> list[CartItemRead]:
        cached = self.get(owner)
        if cached is not None:
            return cached
        items = loader()
        self.set(owner, items)
        return list(items)

    def invalidate(self, *owners: OwnerKey) -> None:
        if not owners or not self.enabled:
            return
        try:
            self.client.delete(*(self.key_for(o) for o in owners))
        except RedisError as exc:
            # Entries left behind expire with their TTL.
            logger.error(
                "Cart cache invalidation failed for %s: %s",
                ", ".join(str(o) for o in owners),
                exc,
            )
