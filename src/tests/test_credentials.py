import json
from pathlib import Path

import pytest

from download_stats.sources import credentials
from download_stats.sources.credentials import resolve_credentials


@pytest.fixture(autouse=True)
def _fake_service_account(monkeypatch) -> None:
    monkeypatch.setattr(
        credentials.service_account.Credentials,
        "from_service_account_info",
        lambda info, **kwargs: ("creds", info["client_email"]),
    )
    monkeypatch.setattr(credentials, "DEFAULT_CREDENTIALS_FILE", "service-account.json")


def _key(email: str, project: str | None = "proj-from-key") -> dict:
    info = {"type": "service_account", "client_email": email}
    if project:
        info["project_id"] = project
    return info


def test_inline_json_wins_over_key_file(tmp_path: Path) -> None:
    key_file = tmp_path / "key.json"
    key_file.write_text(json.dumps(_key("file@example.com")), encoding="utf-8")
    env = {
        "GOOGLE_APPLICATION_CREDENTIALS_JSON": json.dumps(_key("inline@example.com")),
        "GOOGLE_APPLICATION_CREDENTIALS": str(key_file),
    }

    resolved = resolve_credentials(env=env, cwd=tmp_path)

    assert resolved is not None
    assert resolved.origin == "env-json"
    assert resolved.credentials == ("creds", "inline@example.com")
    assert resolved.project_id == "proj-from-key"


def test_broken_inline_json_falls_through_to_relative_key_file(tmp_path: Path) -> None:
    (tmp_path / "keys").mkdir()
    (tmp_path / "keys" / "sa.json").write_text(
        json.dumps(_key("file@example.com")), encoding="utf-8"
    )
    env = {
        "GOOGLE_APPLICATION_CREDENTIALS_JSON": "{not json",
        "GOOGLE_APPLICATION_CREDENTIALS": "keys/sa.json",
    }

    resolved = resolve_credentials(env=env, cwd=tmp_path)

    assert resolved is not None
    assert resolved.origin.startswith("key-file:")
    assert resolved.credentials == ("creds", "file@example.com")


def test_local_default_file_is_used_when_env_is_empty(tmp_path: Path) -> None:
    (tmp_path / "service-account.json").write_text(
        json.dumps(_key("local@example.com", project=None)), encoding="utf-8"
    )

    resolved = resolve_credentials(env={"GOOGLE_CLOUD_PROJECT": "env-proj"}, cwd=tmp_path)

    assert resolved is not None
    assert resolved.origin.startswith("local-file:")
    assert resolved.project_id == "env-proj"


def test_application_default_is_the_last_resort(tmp_path: Path) -> None:
    resolved = resolve_credentials(
        env={"GOOGLE_APPLICATION_CREDENTIALS": "missing.json"}, cwd=tmp_path
    )

    assert resolved is not None
    assert resolved.origin == "application-default"
    assert resolved.credentials is None
    assert resolved.project_id is None


def test_custom_probe_list_returns_none_when_nothing_matches(tmp_path: Path) -> None:
    assert resolve_credentials(env={}, cwd=tmp_path, probes=[]) is None
