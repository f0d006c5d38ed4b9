"""
Command line options for the SearXNG MCP server.

Flags are parsed strictly, missing flags are filled from environment
variables (then hard-coded defaults), and the merged values are validated
in one pass so every problem is reported at once.
"""

import argparse
import os
import re
from typing import Literal, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

# option name -> (environment variable, hard-coded default)
ENVIRONMENT = {
    "server": ("SEARXNG_SERVER", None),
    "key": ("SEARXNG_API_KEY", None),
    "language": ("SEARXNG_LANGUAGE", None),
    "transport": ("SEARXNG_TRANSPORT", "stdio"),
    "port": ("SEARXNG_PORT", "5021"),
    "host": ("SEARXNG_HOST", "0.0.0.0"),
    "timeout": ("SEARXNG_TIMEOUT", "10"),
    "log_level": ("SEARXNG_LOG_LEVEL", "WARNING"),
    "log_dir": ("SEARXNG_LOG_DIR", None),
}

# options with no flag, reported under their environment variable
ENVIRONMENT_ONLY = ("log_level", "log_dir")

TRANSPORTS = ("stdio", "http")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class OptionsError(Exception):
    """Raised when the command line or environment does not form valid options."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("Invalid options:\n" + "\n".join(f"  {e}" for e in self.errors))


class Options(BaseModel):
    """Validated, read-only configuration shared by the whole process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # help and version come first: the server check looks at them
    help: bool = False
    version: bool = False
    server: Optional[str] = Field(default=None, validate_default=True)
    key: Optional[str] = Field(default=None, min_length=1)
    language: Optional[str] = Field(default=None, min_length=1)
    transport: Literal["stdio", "http"] = "stdio"
    port: str = "5021"
    host: str = Field(default="0.0.0.0", min_length=1)
    timeout: str = "10"
    log_level: str = "WARNING"
    log_dir: Optional[str] = None

    @field_validator("server")
    @classmethod
    def _check_server(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if info.data.get("help") or info.data.get("version"):
            return value
        if value is None:
            raise ValueError(
                "the --server option or SEARXNG_SERVER environment variable is required"
            )
        if not is_valid_server_url(value):
            raise ValueError(
                f"the server URL {value!r} is not valid, expected http(s)://host[:port] "
                "with no path, query string or fragment"
            )
        return value

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: str) -> str:
        if not re.fullmatch(r"[+-]?[0-9]+", value):
            raise ValueError(f"the port {value!r} is not a number")
        if not 0 < int(value, 10) < 65536:
            raise ValueError(f"the port {value!r} must be greater than 0 and less than 65536")
        return value

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: str) -> str:
        try:
            seconds = float(value)
        except ValueError:
            raise ValueError(f"the timeout {value!r} is not a number") from None
        if not seconds > 0:
            raise ValueError(f"the timeout {value!r} must be greater than 0")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"{value!r} must be one of: {', '.join(LOG_LEVELS)}")
        return level

        return value

    @property
    def port_number(self) -> int:
        return int(self.port, 10)

    @property
    def timeout_seconds(self) -> float:
        return float(self.timeout)


def is_valid_server_url(url: str) -> bool:
    """
    Check that url points at the root of an http(s) server.
    """
    try:
        parts = urlsplit(url)
        # accessing the port validates it
        parts.port
    except ValueError:
        return False
    return (
        parts.scheme in ("http", "https")
        and bool(parts.hostname)
        and parts.path in ("", "/")
        and not parts.query
        and not parts.fragment
    )


class _StrictParser(argparse.ArgumentParser):
    def error(self, message):
        raise OptionsError([message])


def build_parser(prog: str = "mcp-server-searxng") -> argparse.ArgumentParser:
    parser = _StrictParser(prog=prog, add_help=False, allow_abbrev=False)
    parser.add_argument("-s", "--server")
    parser.add_argument("-k", "--key")
    parser.add_argument("-l", "--language")
    parser.add_argument("-t", "--transport")
    parser.add_argument("-p", "--port")
    parser.add_argument("--host")
    parser.add_argument("--timeout")
    parser.add_argument("--help", action="store_true")
    parser.add_argument("-v", "--version", action="store_true")
    return parser


def merge_environment(values: Mapping[str, object], environ: Mapping[str, str]) -> dict:
    """
    Fill options missing from the command line.

    An explicit flag wins over the environment variable, which wins over
    the hard-coded default. Empty environment variables count as unset.
    """
    merged = dict(values)
    for name, (variable, default) in ENVIRONMENT.items():
        if merged.get(name) is not None:
            continue
        from_env = environ.get(variable)
        merged[name] = from_env if from_env else default
    return merged


def format_errors(exc: ValidationError) -> list[str]:
    errors = []
    for error in exc.errors():
        field = error["loc"][0] if error["loc"] else "options"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        if error["type"] == "literal_error" and field == "transport":
            message = f"the transport {error['input']!r} must be one of: {', '.join(TRANSPORTS)}"
        elif error["type"] == "string_too_short":
            message = "must not be empty"
        if field in ENVIRONMENT_ONLY:
            errors.append(f"{ENVIRONMENT[field][0]}: {message}")
        else:
            errors.append(f"--{field}: {message}")
    return errors


def validate_options(values: Mapping[str, object]) -> Options:
    try:
        return Options.model_validate(dict(values))
    except ValidationError as exc:
        raise OptionsError(format_errors(exc)) from None


def parse_options(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Options:
    """
    Parse command line arguments into validated Options.

    Raises OptionsError with every problem found.
    """
    if environ is None:
        environ = os.environ
    namespace = build_parser().parse_args(argv)
    return validate_options(merge_environment(vars(namespace), environ))
