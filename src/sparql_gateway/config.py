"""
Gateway configuration.

A GatewayConfig is an immutable value: switching repository, server or
credentials produces a new instance (see ``with_repository`` and friends)
instead of mutating the one a client holds.

Configuration can be built directly, from a dict, from environment
variables or from a YAML file.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost/rdf4j-server"
DEFAULT_REPOSITORY = "default"

# SELECT response size limit (in rows) sent to the endpoint.
# The server may enforce a lower maximum of its own.
DEFAULT_QUERY_LIMIT = 2048
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_PREFIX = "SPARQL_GATEWAY_"


@dataclass(frozen=True)
class GatewayConfig:
    """Endpoint identity, credentials and request defaults for a client."""
    server_url: str = DEFAULT_SERVER_URL
    repository: str = DEFAULT_REPOSITORY
    username: Optional[str] = None
    password: Optional[str] = dataclasses.field(default=None, repr=False)
    default_limit: int = DEFAULT_QUERY_LIMIT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    saved_queries_path: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "server_url", self.server_url.rstrip("/"))

    @property
    def repository_endpoint(self) -> str:
        return self.server_url + "/repositories/" + self.repository

    @property
    def repositories_url(self) -> str:
        return self.server_url + "/repositories"

    @property
    def has_credentials(self) -> bool:
        """Both username and password are set (empty strings count as unset)."""
        return bool(self.username) and bool(self.password)

    def with_repository(self, repository: str) -> "GatewayConfig":
        return dataclasses.replace(self, repository=repository)

    def with_server_url(self, server_url: str) -> "GatewayConfig":
        return dataclasses.replace(self, server_url=server_url)

    def with_credentials(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> "GatewayConfig":
        return dataclasses.replace(self, username=username, password=password)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration. The password is never included."""
        return {
            "server_url": self.server_url,
            "repository": self.repository,
            "username": self.username,
            "default_limit": self.default_limit,
            "timeout_seconds": self.timeout_seconds,
            "saved_queries_path": self.saved_queries_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatewayConfig":
        return cls(
            server_url=data.get("server_url", DEFAULT_SERVER_URL),
            repository=data.get("repository", DEFAULT_REPOSITORY),
            username=data.get("username"),
            password=data.get("password"),
            default_limit=int(data.get("default_limit", DEFAULT_QUERY_LIMIT)),
            timeout_seconds=float(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            saved_queries_path=data.get("saved_queries_path"),
        )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "GatewayConfig":
        """
        Build a configuration from ``SPARQL_GATEWAY_*`` environment variables.

        Recognized: SERVER_URL, REPOSITORY, USERNAME, PASSWORD, LIMIT,
        TIMEOUT, QUERIES_FILE. Unset variables fall back to the defaults.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        data: Dict[str, Any] = {
            "server_url": get("SERVER_URL") or DEFAULT_SERVER_URL,
            "repository": get("REPOSITORY") or DEFAULT_REPOSITORY,
            "username": get("USERNAME"),
            "password": get("PASSWORD"),
            "saved_queries_path": get("QUERIES_FILE"),
        }
        if get("LIMIT"):
            data["default_limit"] = get("LIMIT")
        if get("TIMEOUT"):
            data["timeout_seconds"] = get("TIMEOUT")
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "GatewayConfig":
        """Load configuration from a YAML mapping file."""
        path = Path(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Gateway config in {path} must be a mapping")
        logger.debug(f"Loaded gateway config from {path}")
        return cls.from_dict(data)
