"""
platform-cli — raw access to the observability platform API
"""

import argparse
import json
import sys

from platform_cli import config
from platform_cli.api import Options
from platform_cli.client import PlatformClient
from platform_cli.exceptions import CliError
from platform_cli.log import StderrLog

HELP_TEXT = """\
Usage: platform-cli <command> [args...]

Global flags:
  --curl                  Log a redacted curl equivalent of every request
  --quiet, -q             Suppress the progress spinner
  --verbose, -v           Enable HTTP request logging
  --version               Show version number

Commands:
  get <path>              - GET a platform API path and print the JSON response
  delete <path>           - DELETE a platform API path
  post <path> <json>      - POST a JSON body
  put <path> <json>       - PUT a JSON body
  patch <path> <json>     - PATCH with a JSON merge-patch body
  request <method> <path> - Any method; body optional
    --data <json>           JSON request body
  download <path> <file>  - GET an archive and save it to <file>
  login                   - Obtain a fresh token for the configured auth method

Common options for API commands:
  -H, --header <k:v>      Extra request header (repeatable)
  --expect <status>       Status code that is an expected outcome (repeatable)
"""


# ---------------------------------------------------------------------------
# Global flag extraction (before argparse, so flags work after subcommand)
# ---------------------------------------------------------------------------


def _extract_global_flags(argv):
    """Extract global flags from argv regardless of position.

    Returns (curl, quiet, verbose, remaining_argv).
    Handles --version directly.
    """
    curl = False
    quiet = False
    verbose = False
    remaining = []
    for arg in argv:
        if arg == "--version":
            print(f"platform-cli {config.VERSION}")
            sys.exit(0)
        elif arg == "--curl":
            curl = True
        elif arg in ("--quiet", "-q"):
            quiet = True
        elif arg in ("--verbose", "-v"):
            verbose = True
        else:
            remaining.append(arg)
    return curl, quiet, verbose, remaining


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises CliError instead of printing full help text."""

    def error(self, message):
        raise CliError(f"[ERROR] {message}")


def _header(value):
    name, sep, val = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError("must look like 'Name: value'")
    return name.strip(), val.strip()


def _status_code(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an HTTP status code") from exc
    if not 100 <= parsed <= 599:
        raise argparse.ArgumentTypeError("must be an HTTP status code")
    return parsed


def _json_arg(text, context="request body"):
    """Parse JSON with friendly error message on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CliError(f"[ERROR] Invalid JSON in {context}: {e.msg} at position {e.pos}") from None


def _add_call_options(p):
    p.add_argument("--header", "-H", type=_header, action="append", default=[], dest="headers")
    p.add_argument("--expect", type=_status_code, action="append", default=[], dest="expect")


def build_parser():
    parser = _SubcommandParser(
        prog="platform-cli",
        description="Raw access to the observability platform API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    for name in ("get", "delete"):
        p = sub.add_parser(name)
        p.add_argument("path")
        _add_call_options(p)

    for name in ("post", "put", "patch"):
        p = sub.add_parser(name)
        p.add_argument("path")
        p.add_argument("json_data")
        _add_call_options(p)

    p = sub.add_parser("request")
    p.add_argument("method")
    p.add_argument("path")
    p.add_argument("--data")
    _add_call_options(p)

    p = sub.add_parser("download")
    p.add_argument("path")
    p.add_argument("file")
    _add_call_options(p)

    sub.add_parser("login")
    sub.add_parser("version")

    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _error_type_from_message(message):
    if message.startswith("[TOKEN_EXPIRED]"):
        return "token_expired"
    if message.startswith("[SETUP_NEEDED]"):
        return "setup_needed"
    if message.startswith("[BUG]"):
        return "bug"
    if message.startswith("[ERROR]"):
        return "error"
    return "cli_error"


def _emit_cli_error(err):
    msg = str(err)
    error = {
        "type": _error_type_from_message(msg),
        "message": msg,
        "exit_code": getattr(err, "exit_code", 1),
    }
    status_code = getattr(err, "status_code", None)
    if status_code is not None:
        error["status"] = status_code
    payload = {"ok": False, "schema_version": config.CONTRACT_SCHEMA_VERSION, "error": error}
    print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)


def _print_result(result):
    if result is None:
        return
    print(json.dumps(result, indent=2, ensure_ascii=False))


def _call_options(ns):
    return Options(headers=dict(ns.headers), expected_errors=tuple(ns.expect))


def run_command(client, ns):
    cmd = ns.command
    if cmd == "login":
        client.login()
        print("Login succeeded.")
        return
    options = _call_options(ns)
    if cmd == "get":
        _print_result(client.get(ns.path, options))
    elif cmd == "delete":
        client.delete(ns.path, options)
    elif cmd in ("post", "put", "patch"):
        body = _json_arg(ns.json_data)
        _print_result(getattr(client, cmd)(ns.path, body, options))
    elif cmd == "request":
        body = _json_arg(ns.data) if ns.data is not None else None
        _print_result(client.request(ns.method, ns.path, body, options))
    elif cmd == "download":
        print(f"Saved {client.download(ns.path, ns.file, options)}")
    else:
        raise CliError(f"[ERROR] Unknown command: {cmd}")


def main():
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    curl, quiet, verbose, remaining_argv = _extract_global_flags(sys.argv[1:])
    if not remaining_argv:
        print(HELP_TEXT)
        sys.exit(0)

    try:
        parser = build_parser()
        ns = parser.parse_args(remaining_argv)

        if ns.show_help or not ns.command:
            print(HELP_TEXT)
            sys.exit(0)

        if ns.command == "version":
            print(f"platform-cli {config.VERSION}")
            sys.exit(0)

        cfg = config.load_context()
        cfg.curlify = cfg.curlify or curl
        level = "info" if (verbose or curl or config.HTTP_LOG_ENABLED) else "warn"
        client = PlatformClient(cfg, log=StderrLog(level), quiet=quiet)
        run_command(client, ns)

    except CliError as e:
        _emit_cli_error(e)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
