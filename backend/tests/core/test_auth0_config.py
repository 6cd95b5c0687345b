"""
Tests for Auth0ConfigLoader: environment variables and the YAML overlay.
"""

import pytest

from auth0_bridge.core.auth0.config import Auth0Config, Auth0ConfigLoader

AUTH0_ENV_VARS = (
    "AUTH0_DOMAIN",
    "AUTH0_CLIENT_ID",
    "AUTH0_CLIENT_SECRET",
    "AUTH0_CALLBACK_URL",
    "AUTH0_LOGOUT_URL",
    "AUTH0_AUTO_CREATE_USERS",
    "AUTH0_SYNC_USER_DATA",
    "AUTH0_DEFAULT_USER_GROUP_ID",
    "AUTH0_STATELESS_MODE",
)


@pytest.fixture(autouse=True)
def clean_auth0_env(monkeypatch):
    for name in AUTH0_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _loader(tmp_path, yaml_text=None) -> Auth0ConfigLoader:
    path = tmp_path / "auth0.yaml"
    if yaml_text is not None:
        path.write_text(yaml_text, encoding="utf-8")
    return Auth0ConfigLoader(str(path))


class TestAuth0ConfigLoader:
    def test_defaults_without_sources(self, tmp_path):
        config = _loader(tmp_path).load()

        assert config.domain == ""
        assert config.auto_create_users is True
        assert config.sync_user_data is True
        assert config.default_user_group_id is None
        assert config.stateless_mode is False
        assert not config.is_configured()

    def test_reads_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTH0_DOMAIN", " t.auth0.com ")
        monkeypatch.setenv("AUTH0_CLIENT_ID", "abc")
        monkeypatch.setenv("AUTH0_CLIENT_SECRET", "s3cret")
        monkeypatch.setenv("AUTH0_AUTO_CREATE_USERS", "false")
        monkeypatch.setenv("AUTH0_DEFAULT_USER_GROUP_ID", "3")

        config = _loader(tmp_path).load()

        assert config.domain == "t.auth0.com"
        assert config.is_configured()
        assert config.auto_create_users is False
        assert config.default_user_group_id == 3

    def test_yaml_overrides_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTH0_DOMAIN", "env.auth0.com")
        monkeypatch.setenv("AUTH0_CLIENT_ID", "env-id")
        yaml_text = (
            "auth0:\n"
            "  domain: yaml.auth0.com\n"
            "  client_id: ''\n"
            "  stateless_mode: true\n"
        )

        config = _loader(tmp_path, yaml_text).load()

        assert config.domain == "yaml.auth0.com"
        # empty YAML values leave the environment value in place
        assert config.client_id == "env-id"
        assert config.stateless_mode is True

    def test_yaml_expands_env_vars(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_TENANT", "expanded.auth0.com")
        yaml_text = (
            "auth0:\n"
            "  domain: ${MY_TENANT}\n"
            "  client_id: ${MISSING_CLIENT_ID:-fallback-id}\n"
            "  client_secret: ${MISSING_SECRET}\n"
        )

        config = _loader(tmp_path, yaml_text).load()

        assert config.domain == "expanded.auth0.com"
        assert config.client_id == "fallback-id"
        assert config.client_secret == ""

    def test_malformed_section_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTH0_DOMAIN", "env.auth0.com")
        config = _loader(tmp_path, "auth0: just-a-string\n").load()
        assert config.domain == "env.auth0.com"

    def test_reloaded_on_every_call(self, tmp_path, monkeypatch):
        loader = _loader(tmp_path)
        assert loader.load().domain == ""

        monkeypatch.setenv("AUTH0_DOMAIN", "late.auth0.com")
        assert loader.load().domain == "late.auth0.com"


class TestAuth0Config:
    @pytest.mark.parametrize(
        "domain,client_id,client_secret,expected",
        [
            ("t.auth0.com", "abc", "s", True),
            ("", "abc", "s", False),
            ("t.auth0.com", " ", "s", False),
            ("t.auth0.com", "abc", "", False),
        ],
    )
    def test_is_configured(self, domain, client_id, client_secret, expected):
        config = Auth0Config(domain=domain, client_id=client_id, client_secret=client_secret)
        assert config.is_configured() is expected

    def test_secret_not_in_repr(self):
        assert "s3cret" not in repr(Auth0Config(client_secret="s3cret"))
