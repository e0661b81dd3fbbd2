"""
PlatformClient — public Python API for calling the observability platform.

Binds a configuration context, login procedure, logger and spinner policy
once, and exposes the request verbs as methods.
"""

from __future__ import annotations

from typing import Any, Callable

from platform_cli import api, auth, config
from platform_cli.config import ConfigContext
from platform_cli.log import null_log


class PlatformClient:
    def __init__(
        self,
        cfg: ConfigContext | None = None,
        *,
        login: Callable[..., None] = auth.login,
        log: Callable[..., None] = null_log,
        quiet: bool = False,
    ):
        self.cfg = cfg if cfg is not None else config.load_context()
        self.login_procedure = login
        self.log = log
        self.quiet = quiet

    def _options(self, options: api.Options | None) -> api.Options:
        if options is None:
            return api.Options(quiet=self.quiet)
        if self.quiet:
            options.quiet = True
        return options

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        options: api.Options | None = None,
    ) -> Any:
        return api.http_request(
            method,
            path,
            body,
            self._options(options),
            cfg=self.cfg,
            login=self.login_procedure,
            log=self.log,
        )

    def get(self, path: str, options: api.Options | None = None) -> Any:
        return self.request("GET", path, None, options)

    def delete(self, path: str, options: api.Options | None = None) -> None:
        self.request("DELETE", path, None, options)

    def post(self, path: str, body: Any, options: api.Options | None = None) -> Any:
        return self.request("POST", path, body, options)

    def put(self, path: str, body: Any, options: api.Options | None = None) -> Any:
        return self.request("PUT", path, body, options)

    def patch(self, path: str, body: Any, options: api.Options | None = None) -> Any:
        return self.request("PATCH", path, body, options)

    def download(self, path: str, file_name: str, options: api.Options | None = None) -> str:
        """GET an archive and write it to *file_name*."""
        options = self._options(options)
        options.headers = {
            **options.headers,
            "Accept": "application/octet-stream, application/zip",
            "solutionFileName": file_name,
        }
        self.request("GET", path, None, options)
        return file_name

    def login(self) -> None:
        """Force a fresh login regardless of the cached token."""
        self.login_procedure(self.cfg)
