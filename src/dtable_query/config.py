"""Connection settings for the remote row store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_TIMEOUT = 30


@dataclass
class StoreConfig:
    """Where the dtable server lives and how to authenticate against it.

    ``api_token`` is an already issued dtable access token; obtaining or
    refreshing it is left to the caller.
    """

    server_url: str
    api_token: str
    dtable_uuid: str
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        self.server_url = self.server_url.rstrip("/")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @property
    def base_url(self) -> str:
        """Return the URL prefix of the dtable endpoints."""
        return f"{self.server_url}/api/v1/dtables/{self.dtable_uuid}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StoreConfig:
        """Build a config from environment variables.

        Reads ``DTABLE_SERVER_URL``, ``DTABLE_API_TOKEN``, ``DTABLE_UUID``
        and ``DTABLE_TIMEOUT``. The script-runner names ``dtable_web_url``,
        ``api_token`` and ``dtable_uuid`` are accepted as fallbacks.

        Raises:
            ValueError: If a required variable is missing or the timeout is
                not a number.
        """
        env = os.environ if environ is None else environ

        def lookup(*names: str) -> str | None:
            for name in names:
                value = env.get(name)
                if value:
                    return value
            return None

        server_url = lookup("DTABLE_SERVER_URL", "dtable_web_url")
        api_token = lookup("DTABLE_API_TOKEN", "api_token")
        dtable_uuid = lookup("DTABLE_UUID", "dtable_uuid")
        missing = [
            name
            for name, value in (
                ("DTABLE_SERVER_URL", server_url),
                ("DTABLE_API_TOKEN", api_token),
                ("DTABLE_UUID", dtable_uuid),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")

        raw_timeout = lookup("DTABLE_TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"DTABLE_TIMEOUT must be a number, got '{raw_timeout}'") from None

        return cls(
            server_url=server_url,  # type: ignore[arg-type]
            api_token=api_token,  # type: ignore[arg-type]
            dtable_uuid=dtable_uuid,  # type: ignore[arg-type]
            timeout=timeout,
        )
