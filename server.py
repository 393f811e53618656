import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP

from managers.asset_store import AssetStore
from managers.config_manager import ImageDBConfig
from managers.identity_allocator import IdentityAllocator
from pipelines import DeletePipeline, PurgePipeline, UploadPipeline
from registry_client import RegistryClient
from tools.assets import register_asset_tools
from tools.configuration import register_configuration_tools

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("MCP_Server")


class AppContext:
    def __init__(self, config: ImageDBConfig, store: AssetStore, registry: RegistryClient):
        self.config = config
        self.store = store
        self.registry = registry


def create_server(config: Optional[ImageDBConfig] = None) -> FastMCP:
    """Wire config, store, registry client and pipelines into a FastMCP server"""
    config = config or ImageDBConfig.load()
    store = AssetStore(
        config.asset_dir,
        reserved_marker=config.reserved_marker,
        thumbnail_size=config.thumbnail_size,
    )
    registry = RegistryClient(config.fhir_server_url, timeout=config.request_timeout)

    @asynccontextmanager
    async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
        """Manage application lifecycle"""
        logger.info("Starting MCP server lifecycle...")
        try:
            store.ensure_directory()
            logger.info(f"Registry endpoint: {config.fhir_server_url}")
            yield AppContext(config=config, store=store, registry=registry)
        finally:
            registry.session.close()
            logger.info("Shutting down MCP server")

    mcp = FastMCP("FHIR_ImageDB_MCP_Server", lifespan=app_lifespan)

    register_asset_tools(
        mcp,
        upload_pipeline=UploadPipeline(config, store, registry, IdentityAllocator(config.id_bytes)),
        delete_pipeline=DeletePipeline(config, store, registry),
        purge_pipeline=PurgePipeline(store),
    )
    register_configuration_tools(mcp, config)
    logger.info(f"Registered asset tools for {config.asset_dir}")
    return mcp


mcp = create_server()

if __name__ == "__main__":
    mcp.run(transport="streamable-http")
