from typing import Optional
from aiocache import Cache

from edutrack_backend.settings import settings

def create_cache(backend: Optional[str] = None) -> Cache:
    backend = backend or settings.CACHE_BACKEND

    if backend == "memory":
        return Cache(Cache.MEMORY)

    return Cache(
        Cache.REDIS,
        endpoint=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
        pool_max_size=10,
        db=0
    )
