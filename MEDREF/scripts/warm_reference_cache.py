from __future__ import annotations

import asyncio

from MEDREF.packages.logger import logger
from MEDREF.packages.utils.repository.cache import CacheRefreshFailed, ReferenceCache


# -----------------------------------------------------------------------------
async def warm_cache() -> dict[str, int]:
    cache = ReferenceCache()
    snapshot = await cache.refresh()
    return snapshot.sizes()


###############################################################################
if __name__ == "__main__":
    logger.info("Warming reference cache from remote sources")
    try:
        sizes = asyncio.run(warm_cache())
    except CacheRefreshFailed as exc:
        logger.error("Reference cache could not be populated: %s", exc)
        raise SystemExit(1) from exc
    for kind, count in sizes.items():
        logger.info("Loaded %d %s terms", count, kind)
