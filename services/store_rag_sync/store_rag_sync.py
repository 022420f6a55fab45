"""Sync runner entry point.

Mirrors commerce platform data of one or more stores into their namespaces.
Without arguments every active store is synced.

Usage:
    python -m services.store_rag_sync.store_rag_sync [store_id ...]
"""

import asyncio
import sys

from services.ServiceContainer import ServiceContainer
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main(store_ids: list[str]) -> int:
    """Run a manual sync for the given stores.

    Returns:
        int: Process exit code, 1 if any store failed.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    container = ServiceContainer(helper_config=config)

    try:
        # vector store and embedding service are required, abort if they are not reachable
        try:
            await container.boot()
            await container.check_connections()
        except Exception as e:
            logger.error("Error booting clients: %s. Aborting.", e)
            return 1

        if not store_ids:
            store_ids = [store.id for store in await container.tenant_client.do_fetch_active_stores()]
        if not store_ids:
            logger.warning("No active stores found. Nothing to sync.")
            return 0

        failed = 0
        for store_id in store_ids:
            bootstrap = await container.namespace_manager.create_namespaces(store_id)
            if not bootstrap.success:
                logger.error("Skipping store %s: %s", store_id, bootstrap.error)
                failed += 1
                continue
            result = await container.namespace_manager.trigger_sync(store_id)
            if result.success and result.sync_result:
                logger.info(
                    "Store %s: %d documents in %d namespaces.",
                    store_id, result.sync_result.documents_indexed, len(result.sync_result.namespaces_processed),
                    color="green",
                )
            else:
                logger.error("Store %s: sync failed: %s", store_id, result.error)
                failed += 1
        return 1 if failed else 0
    finally:
        await container.close()


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
