"""platform-cli — API client layer and CLI for the observability platform."""

from platform_cli.api import (
    Options,
    abbreviate_string,
    http_get,
    http_post,
    http_request,
    json_delete,
    json_get,
    json_patch,
    json_post,
    json_put,
    json_request,
)
from platform_cli.client import PlatformClient
from platform_cli.config import VERSION, ConfigContext, LocalAuthOptions
from platform_cli.exceptions import (
    CliError,
    ContractError,
    LoginError,
    ResponseDecodeError,
    SetupError,
    StatusError,
    TransportError,
)
from platform_cli.problems import Problem

__all__ = [
    "VERSION",
    "ConfigContext",
    "LocalAuthOptions",
    "Options",
    "PlatformClient",
    "Problem",
    "CliError",
    "ContractError",
    "LoginError",
    "ResponseDecodeError",
    "SetupError",
    "StatusError",
    "TransportError",
    "abbreviate_string",
    "http_get",
    "http_post",
    "http_request",
    "json_delete",
    "json_get",
    "json_patch",
    "json_post",
    "json_put",
    "json_request",
]
