from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence

from pydantic import BaseModel, ValidationError
from redis import Redis
from redis.exceptions import RedisError

from app.domain.models import OrgNodeRead
from app.infra.redis_state import get_redis

logger = logging.getLogger(__name__)

ORG_CHART_LIST_KEY = "org-chart:list"
ORG_CHART_GENERATION_KEY = "org-chart:generation"
ORG_CHART_REVALIDATE_SECONDS = int(os.getenv("ORG_CHART_CACHE_TTL", "300"))


class CachedListing(BaseModel):
    generation: int
    nodes: list[OrgNodeRead]


class OrgChartCache:
    """Cached org chart listing tagged with the generation it was read under.

    Every invalidation bumps the generation, so a listing read from the
    database before a mutation committed is never served after it.
    """

    def __init__(
        self,
        client_factory: Callable[[], Redis] = get_redis,
        ttl_seconds: int = ORG_CHART_REVALIDATE_SECONDS,
    ) -> None:
        self._client_factory = client_factory
        self._ttl_seconds = ttl_seconds

    def generation(self) -> int | None:
        try:
            raw = self._client_factory().get(ORG_CHART_GENERATION_KEY)
        except RedisError:
            logger.warning("org chart cache generation read failed", exc_info=True)
            return None
        return int(raw) if raw is not None else 0

    def get_nodes(self) -> list[OrgNodeRead] | None:
        try:
            raw_generation, raw_listing = self._client_factory().mget(
                [ORG_CHART_GENERATION_KEY, ORG_CHART_LIST_KEY]
            )
        except RedisError:
            logger.warning("org chart cache read failed, falling back to database", exc_info=True)
            return None
        if raw_listing is None:
            return None
        try:
            listing = CachedListing.model_validate_json(raw_listing)
        except ValidationError:
            logger.warning("discarding malformed org chart cache entry")
            return None
        current = int(raw_generation) if raw_generation is not None else 0
        if listing.generation != current:
            return None
        return listing.nodes

    def set_nodes(self, nodes: Sequence[OrgNodeRead], generation: int | None) -> None:
        if generation is None:
            return
        payload = CachedListing(generation=generation, nodes=list(nodes)).model_dump_json()
        try:
            self._client_factory().set(ORG_CHART_LIST_KEY, payload, ex=self._ttl_seconds)
        except RedisError:
            logger.warning("org chart cache write failed", exc_info=True)

    def invalidate(self) -> None:
        try:
            client = self._client_factory()
            client.incr(ORG_CHART_GENERATION_KEY)
            client.delete(ORG_CHART_LIST_KEY)
        except RedisError:
            logger.warning("org chart cache invalidation failed", exc_info=True)


org_chart_cache = OrgChartCache()


def get_org_chart_cache() -> OrgChartCache:
    return org_chart_cache
