"""Credential lookup for the BigQuery warehouse client.

Sources are probed in a fixed order and the first one that yields credentials
wins:

1. ``GOOGLE_APPLICATION_CREDENTIALS_JSON``: the service-account JSON itself.
2. ``GOOGLE_APPLICATION_CREDENTIALS``: a path to a key file. Relative paths are
   resolved against the working directory.
3. A key file named ``DEFAULT_CREDENTIALS_FILE`` in the working directory.
4. Application default credentials, left for the BigQuery client to discover.

A probe that raises is logged and skipped.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from google.oauth2 import service_account

from download_stats.config import DEFAULT_CREDENTIALS_FILE

logger = logging.getLogger("download_stats.credentials")


@dataclass(frozen=True)
class ResolvedCredentials:
    origin: str
    credentials: Any | None
    project_id: str | None


CredentialProbe = Callable[[Mapping[str, str], Path], "ResolvedCredentials | None"]


def _project_from_info(info: Mapping[str, Any], env: Mapping[str, str]) -> str | None:
    return info.get("project_id") or env.get("GOOGLE_CLOUD_PROJECT") or None


def _from_key_file(path: Path, origin: str, env: Mapping[str, str]) -> ResolvedCredentials:
    info = json.loads(path.read_text(encoding="utf-8"))
    credentials = service_account.Credentials.from_service_account_info(info)
    return ResolvedCredentials(
        origin=origin,
        credentials=credentials,
        project_id=_project_from_info(info, env),
    )


def probe_inline_json(env: Mapping[str, str], cwd: Path) -> ResolvedCredentials | None:
    raw = (env.get("GOOGLE_APPLICATION_CREDENTIALS_JSON") or "").strip()
    if not raw:
        return None
    info = json.loads(raw)
    credentials = service_account.Credentials.from_service_account_info(info)
    return ResolvedCredentials(
        origin="env-json",
        credentials=credentials,
        project_id=_project_from_info(info, env),
    )


def probe_key_file_env(env: Mapping[str, str], cwd: Path) -> ResolvedCredentials | None:
    raw = (env.get("GOOGLE_APPLICATION_CREDENTIALS") or "").strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = cwd / path
    if not path.exists():
        return None
    return _from_key_file(path, f"key-file:{path}", env)


def probe_local_default_file(
    env: Mapping[str, str], cwd: Path
) -> ResolvedCredentials | None:
    if not DEFAULT_CREDENTIALS_FILE:
        return None
    path = cwd / DEFAULT_CREDENTIALS_FILE
    if not path.exists():
        return None
    return _from_key_file(path, f"local-file:{path}", env)


def probe_application_default(
    env: Mapping[str, str], cwd: Path
) -> ResolvedCredentials | None:
    return ResolvedCredentials(
        origin="application-default",
        credentials=None,
        project_id=env.get("GOOGLE_CLOUD_PROJECT") or None,
    )


CREDENTIAL_PROBES: list[CredentialProbe] = [
    probe_inline_json,
    probe_key_file_env,
    probe_local_default_file,
    probe_application_default,
]


def resolve_credentials(
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    probes: list[CredentialProbe] | None = None,
) -> ResolvedCredentials | None:
    env = os.environ if env is None else env
    cwd = cwd or Path.cwd()
    for probe in probes if probes is not None else CREDENTIAL_PROBES:
        try:
            resolved = probe(env, cwd)
        except Exception as exc:
            logger.warning("credential probe %s failed: %s", probe.__name__, exc)
            continue
        if resolved is not None:
            logger.info("using BigQuery credentials origin=%s", resolved.origin)
            return resolved
    return None
