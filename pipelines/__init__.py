"""Request pipelines for the FHIR Image DB MCP Server"""

from pipelines.delete import DeletePipeline
from pipelines.purge import PurgePipeline
from pipelines.upload import UploadPipeline

__all__ = ["DeletePipeline", "PurgePipeline", "UploadPipeline"]
