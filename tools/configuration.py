"""Configuration tools for the FHIR Image DB MCP Server"""

from mcp.server.fastmcp import FastMCP

from managers.config_manager import ImageDBConfig, get_config_file


def register_configuration_tools(
    mcp: FastMCP,
    config: ImageDBConfig
):
    """Register configuration tools with the MCP server"""

    @mcp.tool()
    def get_config() -> dict:
        """Get the effective server configuration.

        Shows merged values from overrides, the config file, FHIR_IMAGEDB_*
        environment variables and built-in defaults.
        """
        return {
            "config": config.to_dict(),
            "config_file": str(get_config_file()),
        }
