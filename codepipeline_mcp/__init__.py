"""codepipeline_mcp — AWS CodePipeline operations exposed as MCP tools.

Provides:
    - Tool catalog and dispatch (registry)
    - CodePipeline / CloudWatch adapter over boto3
    - Pipeline metrics aggregation
    - stdio MCP server entry point
"""

__version__ = "1.0.0"
