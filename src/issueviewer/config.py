"""Runtime settings for the issueviewer tools.

Settings are read once at startup from the process environment (optionally
primed from a ``.env`` file) and passed explicitly to the components that
need them.  Nothing below the entry points reads ``os.environ``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "github-issue-viewer-mcp-server"
DEFAULT_HTTP_TIMEOUT = 30.0
DATA_API_PATH = "/fmi/data/vLatest"


@dataclass(frozen=True)
class RecordDbConfig:
    """Coordinates of the session-authenticated record database."""

    host: str = ""
    database: str = ""
    layout: str = ""
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"https://{host}{DATA_API_PATH}"


@dataclass(frozen=True)
class Settings:
    github_api_url: str = DEFAULT_GITHUB_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    recorddb: RecordDbConfig = field(default_factory=RecordDbConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from *environ* (defaults to ``os.environ``).

        Missing record-database credentials are not an error here; the
        resource-plan tool reports them when it is called.

        Raises ValueError if HTTP_TIMEOUT is set but not a positive number.
        """
        env = os.environ if environ is None else environ
        raw_timeout = env.get("HTTP_TIMEOUT", "")
        timeout = DEFAULT_HTTP_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                msg = f"Invalid HTTP_TIMEOUT: {raw_timeout!r}. Must be a number of seconds."
                raise ValueError(msg) from None
            if timeout <= 0:
                msg = f"Invalid HTTP_TIMEOUT: {raw_timeout!r}. Must be positive."
                raise ValueError(msg)

        recorddb = RecordDbConfig(
            host=env.get("FM_HOST", ""),
            database=env.get("FM_DATABASE", ""),
            layout=env.get("FM_LAYOUT", ""),
            username=env.get("FM_USERNAME") or None,
            password=env.get("FM_PASSWORD") or None,
        )
        return cls(
            github_api_url=(env.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/"),
            user_agent=env.get("GITHUB_USER_AGENT") or DEFAULT_USER_AGENT,
            http_timeout=timeout,
            recorddb=recorddb,
        )


def load_env_file(path: Path | None) -> None:
    """Prime ``os.environ`` from a dotenv file without overriding set variables."""
    if path is None:
        loaded = load_dotenv(find_dotenv(usecwd=True))
    else:
        loaded = load_dotenv(path)
    if loaded:
        logger.debug("Loaded environment from %s", path or ".env")
