"""MCP tool registration for the FHIR Image DB MCP Server"""
