"""
Exceptions raised by the CodePipeline tool layer.

Each carries the error code reported in the tool error envelope.
"""

EXECUTION_ERROR = "EXECUTION_ERROR"


class PipelineToolError(Exception):
    """Base exception for all tool failures"""

    code = EXECUTION_ERROR

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = str(message)
        self.details = details or {}


class UnknownOperation(PipelineToolError):
    """Raised when a tool name is not in the registry"""

    code = "UNKNOWN_OPERATION"


class InvalidArgument(PipelineToolError):
    """Raised when tool arguments fail the operation's schema"""

    code = "INVALID_ARGUMENT"


class ResourceNotFound(PipelineToolError):
    """Raised when a secondary lookup yields nothing"""

    code = "RESOURCE_NOT_FOUND"


class RemoteCallFailed(PipelineToolError):
    """Raised when a CodePipeline or CloudWatch call fails"""

    code = "REMOTE_CALL_FAILED"
