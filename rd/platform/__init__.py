"""Platform abstraction layer: processes, HTTP, runner integration."""

from .actions import ActionsOutputs, GitHubContext, MemoryOutputs, OutputWriter
from .http import HttpClient, HttpError, HttpResponse, MockHttpClient, RealHttpClient
from .process import CommandOutput, run_command
from .state import JsonStateStore, MemoryStateStore, StateStore, select_state_store

__all__ = [
    # actions
    "ActionsOutputs",
    "GitHubContext",
    "MemoryOutputs",
    "OutputWriter",
    # http
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "CommandOutput",
    "run_command",
    # state
    "JsonStateStore",
    "MemoryStateStore",
    "StateStore",
    "select_state_store",
]
