from __future__ import annotations

import os
from pathlib import Path

import pytest

from bakery import settings
from bakery.config import GitPushConfiguration, RepositoryConfiguration, RepositoryCredentials


def test_credentials_round_trip_with_private_mode(tmp_path: Path) -> None:
    path = tmp_path / "config" / "credentials.toml"
    settings.save_credentials(RepositoryCredentials("octocat", "tok"), path=path)

    loaded = settings.load_stored_credentials(path)

    assert loaded == RepositoryCredentials("octocat", "tok")
    assert os.stat(path).st_mode & 0o777 == 0o600


def test_save_credentials_preserves_other_tables(tmp_path: Path) -> None:
    path = tmp_path / "credentials.toml"
    path.write_text('# mine\n[other]\nkeep = "yes"\n', encoding="utf-8")

    settings.save_credentials(RepositoryCredentials("octocat", "tok"), path=path)

    text = path.read_text(encoding="utf-8")
    assert "# mine" in text
    assert 'keep = "yes"' in text
    assert "[auth]" in text


def test_missing_credentials_file_is_blank(tmp_path: Path) -> None:
    assert settings.load_stored_credentials(tmp_path / "none.toml") == RepositoryCredentials()


def test_unparseable_credentials_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "credentials.toml"
    path.write_text("[auth\n", encoding="utf-8")
    with pytest.raises(settings.CredentialError):
        settings.load_stored_credentials(path)


def test_resolve_credentials_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    stored_path = tmp_path / "credentials.toml"
    settings.save_credentials(RepositoryCredentials("stored-user", "stored-token"), path=stored_path)
    configured = RepositoryCredentials("yaml-user", "yaml-token")

    resolved = settings.resolve_credentials(configured, credentials_path=stored_path)
    assert resolved == RepositoryCredentials("stored-user", "stored-token")

    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    resolved = settings.resolve_credentials(configured, credentials_path=stored_path)
    assert resolved.password == "env-token"
    assert resolved.username == "stored-user"

    resolved = settings.resolve_credentials(
        configured, username="cli-user", password="cli-token", credentials_path=stored_path
    )
    assert resolved == RepositoryCredentials("cli-user", "cli-token")


def test_resolve_credentials_falls_back_to_site_yml(tmp_path: Path) -> None:
    configured = RepositoryCredentials("yaml-user", "yaml-token")
    resolved = settings.resolve_credentials(configured, credentials_path=tmp_path / "none.toml")
    assert resolved == configured


def test_with_resolved_credentials_keeps_target(tmp_path: Path) -> None:
    target = GitPushConfiguration(
        from_="bake",
        to="cvs",
        repo=RepositoryConfiguration(name="site", repository="https://example.com/o/site.git"),
        branch="main",
    )
    resolved = settings.with_resolved_credentials(
        target, password="tok", credentials_path=tmp_path / "none.toml"
    )
    assert resolved.repo.credentials.password == "tok"
    assert resolved.repo.repository == target.repo.repository
    assert resolved.branch == "main"


def test_resolve_config_path_order(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    assert settings.resolve_config_path(tmp_path) == tmp_path / "site.yml"

    settings.write_project_setting(tmp_path / "bakery.toml", "bakery.configPath", "conf/site.yaml")
    assert settings.resolve_config_path(tmp_path) == tmp_path / "conf" / "site.yaml"

    assert settings.resolve_config_path(tmp_path, "other.yml") == tmp_path / "other.yml"

    settings.write_project_setting(tmp_path / "bakery.toml", "bakery.configPath", "site.json")
    assert settings.resolve_config_path(tmp_path) == tmp_path / "site.yml"
    assert "not a YAML file" in caplog.text


def test_project_settings_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "bakery.toml"
    settings.write_project_setting(path, "bakery.repository", "https://example.com/o/r.git")
    settings.write_project_setting(path, "bakery.configPath", "site.yml")

    assert settings.read_project_setting(path, "bakery.repository") == "https://example.com/o/r.git"
    assert settings.read_project_setting(path, "bakery.configPath") == "site.yml"
    assert settings.read_project_setting(path, "bakery.missing") is None
    assert settings.read_project_setting(tmp_path / "absent.toml", "bakery.configPath") is None


def test_is_git_ignored(tmp_path: Path) -> None:
    secret = tmp_path / ".bakery" / "credentials.toml"
    assert settings.is_git_ignored(tmp_path, Path("/somewhere/else.toml"))
    assert not settings.is_git_ignored(tmp_path, secret)

    (tmp_path / ".gitignore").write_text(".bakery/credentials.toml\n", encoding="utf-8")
    assert settings.is_git_ignored(tmp_path, secret)
