from .formatter import ResponseFormatter, ToolResponse
from .outcome import ErrorKind, Failure, Outcome, Success
from .registry import DuplicateNameError, NotFoundError, ToolRegistry, ToolSpec
from .router import RequestRouter
from .runner import EffectRunner
from .validation import NoArgs, ToolArgs, ValidationFailure

__all__ = [
    "DuplicateNameError",
    "EffectRunner",
    "ErrorKind",
    "Failure",
    "NoArgs",
    "NotFoundError",
    "Outcome",
    "RequestRouter",
    "ResponseFormatter",
    "Success",
    "ToolArgs",
    "ToolRegistry",
    "ToolResponse",
    "ToolSpec",
    "ValidationFailure",
]
