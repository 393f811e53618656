"""Purge pipeline: clear the asset directory"""

import logging

from managers.asset_store import AssetStore
from models.results import PurgeResult

logger = logging.getLogger("MCP_Server")


class PurgePipeline:
    """Deletes every stored file except the reserved marker.

    The registry is not contacted, so DocumentReferences pointing at purged
    files are left behind.
    """

    def __init__(self, store: AssetStore):
        self.store = store

    def run(self) -> PurgeResult:
        removed = self.store.purge_all()
        logger.info(f"Purge removed {len(removed)} files")
        return PurgeResult(removed=removed)
