"""Client configuration.

Configuration is read once, at construction time. Environment variables:

- ``FIREBASE_AUTH_EMULATOR_HOST``: ``host:port`` of an Auth emulator. When set,
  custom tokens are unsigned and signatures are not verified.
- ``GOOGLE_CLOUD_PROJECT`` / ``GCLOUD_PROJECT``: project ID fallback.
- ``GOOGLE_APPLICATION_CREDENTIALS``: path to a service account JSON file.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final

from ._http import DEFAULT_RETRIES, DEFAULT_TIMEOUT

EMULATOR_HOST_ENV_VAR: Final[str] = "FIREBASE_AUTH_EMULATOR_HOST"
PROJECT_ENV_VARS: Final[tuple[str, ...]] = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")
CREDENTIALS_ENV_VAR: Final[str] = "GOOGLE_APPLICATION_CREDENTIALS"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings for an auth ``Client``.

    Attributes:
        project_id: Project whose tokens are verified. Falls back to the
            service account's ``project_id``.
        service_account: Parsed service account JSON (``client_email``,
            ``private_key``, ``project_id``). Enables local signing.
        service_account_id: Service account email for remote IAM signing when
            no private key is available. Discovered from the metadata server
            if neither is set.
        emulator_host: ``host:port`` of an Auth emulator, or None.
        timeout: Default per-request timeout in seconds.
        retries: Connection retries performed by the HTTP transport.
    """

    project_id: str | None = None
    service_account: Mapping[str, Any] | None = None
    service_account_id: str | None = None
    emulator_host: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.retries < 0:
            raise ValueError(f"retries must not be negative, got {self.retries}")
        if self.service_account is not None and not isinstance(self.service_account, Mapping):
            raise TypeError("service_account must be a mapping")

    @property
    def resolved_project_id(self) -> str | None:
        if self.project_id:
            return self.project_id
        if self.service_account:
            project_id = self.service_account.get("project_id")
            if isinstance(project_id, str) and project_id:
                return project_id
        return None

    @property
    def emulator(self) -> bool:
        return bool(self.emulator_host)

    @classmethod
    def from_service_account_file(cls, path: str | Path, **overrides: Any) -> ClientConfig:
        """Load a service account JSON file.

        Raises:
            OSError: The file cannot be read.
            ValueError: The file is not a service account JSON object.
        """
        return cls(service_account=load_service_account(path), **overrides)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> ClientConfig:
        """Build a config from environment variables.

        Keyword arguments take precedence over the environment.
        """
        env = os.environ if environ is None else environ

        service_account = None
        credentials_path = env.get(CREDENTIALS_ENV_VAR)
        if credentials_path:
            service_account = load_service_account(credentials_path)

        project_id = next((env[name] for name in PROJECT_ENV_VARS if env.get(name)), None)
        config = cls(
            project_id=project_id,
            service_account=service_account,
            emulator_host=env.get(EMULATOR_HOST_ENV_VAR) or None,
        )
        return replace(config, **overrides) if overrides else config


def load_service_account(path: str | Path) -> dict[str, Any]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"service account file {path} does not contain a JSON object")
    if data.get("type", "service_account") != "service_account":
        raise ValueError(f"{path} is not a service account credential (type={data.get('type')!r})")
    return data
