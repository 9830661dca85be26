from amadeus_mcp.config import (
    AmadeusConfig,
    _load_bool,
    _load_timeout,
    load_api_key,
    load_faucet_key,
)


def test_load_timeout_invalid_env(monkeypatch):
    monkeypatch.setenv("AMADEUS_HTTP_TIMEOUT", "not-a-number")
    assert _load_timeout() == 10.0  # falls back to default on parse error


def test_load_timeout_valid_env(monkeypatch):
    monkeypatch.setenv("AMADEUS_HTTP_TIMEOUT", "5.5")
    assert _load_timeout() == 5.5


def test_load_bool(monkeypatch):
    monkeypatch.setenv("AMADEUS_TRUST_PROXY_HEADERS", "yes")
    assert _load_bool("AMADEUS_TRUST_PROXY_HEADERS") is True
    monkeypatch.setenv("AMADEUS_TRUST_PROXY_HEADERS", "0")
    assert _load_bool("AMADEUS_TRUST_PROXY_HEADERS") is False
    monkeypatch.delenv("AMADEUS_TRUST_PROXY_HEADERS")
    assert _load_bool("AMADEUS_TRUST_PROXY_HEADERS", default=True) is True


def test_load_api_key_env_over_file(monkeypatch, tmp_path):
    monkeypatch.setenv("AMADEUS_API_KEY", "env-key")
    monkeypatch.setenv("AMADEUS_API_KEY_FILE", str(tmp_path / "apikey.txt"))
    assert load_api_key() == "env-key"


def test_load_api_key_from_file(monkeypatch, tmp_path):
    key_file = tmp_path / "apikey.txt"
    key_file.write_text("file-key\n", encoding="utf-8")
    monkeypatch.delenv("AMADEUS_API_KEY", raising=False)
    monkeypatch.setenv("AMADEUS_API_KEY_FILE", str(key_file))
    assert load_api_key() == "file-key"


def test_legacy_api_key_env(monkeypatch, tmp_path):
    monkeypatch.delenv("AMADEUS_API_KEY", raising=False)
    monkeypatch.setenv("AMADEUS_API_KEY_FILE", str(tmp_path / "missing.txt"))
    monkeypatch.setenv("BLOCKCHAIN_API_KEY", " legacy ")
    assert load_api_key() == "legacy"


def test_faucet_key_from_file(monkeypatch, tmp_path):
    key_file = tmp_path / "sk"
    key_file.write_text("seed58", encoding="utf-8")
    monkeypatch.delenv("AMADEUS_TESTNET_SK", raising=False)
    monkeypatch.setenv("AMADEUS_TESTNET_SK_FILE", str(key_file))
    assert load_faucet_key() == "seed58"


def test_network_url_selection():
    cfg = AmadeusConfig(mainnet_url="http://main", testnet_url="http://test")
    assert cfg.network_url("mainnet") == "http://main"
    assert cfg.network_url("testnet") == "http://test"
    assert AmadeusConfig(testnet_url=None).network_url("testnet") is None


def test_per_tool_limits_are_not_shared():
    first = AmadeusConfig()
    first.per_tool_rate_limits["claim_testnet_ama"] = 0.5
    assert AmadeusConfig().per_tool_rate_limits["claim_testnet_ama"] == 1.0
