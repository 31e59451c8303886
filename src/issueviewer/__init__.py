"""issueviewer: MCP tools for GitHub issues and record-database resource plans."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("issueviewer")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from issueviewer.outcome import Failure, Success, ToolOutcome
from issueviewer.registry import ToolDescriptor, ToolRegistry

__all__ = ["Failure", "Success", "ToolDescriptor", "ToolOutcome", "ToolRegistry", "__version__"]
