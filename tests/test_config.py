import pytest

from sharetrack.config import AuthConfig, PlatformConfig, Settings, ShareConfig, ShareStrategy
from sharetrack.config.settings import DEFAULT_TOKEN_PATTERNS, DEFAULT_USER_AGENT, _env_truthy


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("Yes", True), (" on ", True), ("0", False), ("off", False), ("maybe", False), (None, False)],
)
def test_env_truthy(value, expected):
    assert _env_truthy(value) is expected


def test_auth_from_env(monkeypatch):
    monkeypatch.setenv("API_KEY_AUTH_ENABLED", "true")
    monkeypatch.setenv("API_MASTER_KEY", "k")
    monkeypatch.setenv("API_KEY_HEADER_NAME", "X-Share-Key")

    cfg = AuthConfig.from_env()
    assert cfg.enabled is True
    assert cfg.master_key == "k"
    assert cfg.header_name == "X-Share-Key"


def test_platform_lists_from_env(monkeypatch):
    monkeypatch.setenv("USER_AGENTS", '["agent-a", "agent-b"]')
    monkeypatch.setenv("TOKEN_PATTERNS", "token=(\\w+)")
    monkeypatch.setenv("TOKEN_PAGE_URL", "https://platform.test/page")
    monkeypatch.delenv("SHARE_ENDPOINT_URL", raising=False)

    cfg = PlatformConfig.from_env()
    assert cfg.user_agents == ["agent-a", "agent-b"]
    assert cfg.token_patterns == ["token=(\\w+)"]
    assert cfg.token_page_url == "https://platform.test/page"
    assert cfg.share_endpoint_url is None


def test_platform_defaults_on_malformed_env(monkeypatch):
    monkeypatch.setenv("USER_AGENTS", "[not json")
    monkeypatch.setenv("TOKEN_MIN_LENGTH", "many")
    monkeypatch.delenv("TOKEN_PATTERNS", raising=False)

    cfg = PlatformConfig.from_env()
    assert cfg.user_agents == [DEFAULT_USER_AGENT]
    assert cfg.token_patterns == DEFAULT_TOKEN_PATTERNS
    assert cfg.min_token_length == 31
    assert cfg.share_params == {}


def test_share_config_from_env(monkeypatch):
    monkeypatch.setenv("SHARE_STRATEGY", "Sequential")
    monkeypatch.setenv("SHARE_BATCH_SIZE", "8")
    monkeypatch.setenv("SHARE_ABORT_ON_FAILURE", "yes")

    cfg = ShareConfig.from_env()
    assert cfg.strategy == ShareStrategy.sequential
    assert cfg.batch_size == 8
    assert cfg.effective_batch_size == 1
    assert cfg.abort_on_failure is True


def test_unknown_strategy_falls_back_to_batched(monkeypatch):
    monkeypatch.setenv("SHARE_STRATEGY", "warp-speed")
    assert ShareConfig.from_env().strategy == ShareStrategy.batched


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("HISTORY_CAP", "50")
    monkeypatch.setenv("SNAPSHOT_PATH", "/tmp/sharetrack-history.json")

    settings = Settings.from_env()
    assert settings.port == 8123
    assert settings.ledger.history_cap == 50
    assert settings.ledger.snapshot_path == "/tmp/sharetrack-history.json"


@pytest.mark.parametrize(
    "raw, expected",
    [('{"published": 0, "source": "web"}', {"published": "0", "source": "web"}), ('["a"]', {}), ("{oops", {})],
)
def test_share_params_from_env(monkeypatch, raw, expected):
    monkeypatch.setenv("SHARE_EXTRA_PARAMS", raw)
    assert PlatformConfig.from_env().share_params == expected
