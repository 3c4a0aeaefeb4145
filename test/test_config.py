import pytest

from apr_checkin import config as config_mod
from apr_checkin.config import Config, ConfigError

KEY = "0x" + "11" * 32


def test_missing_required_values_are_reported_together():
    with pytest.raises(ConfigError) as excinfo:
        Config.from_env({})
    assert "PRIVATE_KEY" in str(excinfo.value)
    assert "MONAD_RPC_URL" in str(excinfo.value)


def test_blank_values_count_as_missing():
    with pytest.raises(ConfigError, match="MONAD_RPC_URL"):
        Config.from_env({"PRIVATE_KEY": KEY, "MONAD_RPC_URL": "   "})


def test_defaults():
    cfg = Config.from_env({"PRIVATE_KEY": KEY, "MONAD_RPC_URL": "https://rpc.example"})
    assert cfg.private_key == KEY
    assert cfg.rpc_url == "https://rpc.example"
    assert cfg.api_base_url == config_mod.DEFAULT_API_BASE_URL
    assert cfg.verbosity == "INFO"
    assert cfg.receipt_timeout == 180
    assert cfg.request_timeout == 10
    assert cfg.display_timezone == "Asia/Jakarta"


def test_overrides():
    cfg = Config.from_env(
        {
            "PRIVATE_KEY": KEY,
            "MONAD_RPC_URL": "https://rpc.example",
            "APR_API_BASE_URL": "http://localhost:3000/",
            "APR_CHECKIN_VERBOSITY": "DEBUG",
            "APR_RECEIPT_TIMEOUT": "60",
            "APR_REQUEST_TIMEOUT": "5",
            "APR_DISPLAY_TZ": "UTC",
        }
    )
    assert cfg.api_base_url == "http://localhost:3000"
    assert cfg.verbosity == "DEBUG"
    assert cfg.receipt_timeout == 60
    assert cfg.request_timeout == 5
    assert cfg.display_timezone == "UTC"


@pytest.mark.parametrize("raw", ["soon", "0", "-5"])
def test_bad_timeouts_rejected(raw):
    env = {"PRIVATE_KEY": KEY, "MONAD_RPC_URL": "https://rpc.example", "APR_RECEIPT_TIMEOUT": raw}
    with pytest.raises(ConfigError, match="APR_RECEIPT_TIMEOUT"):
        Config.from_env(env)


def test_repr_hides_private_key():
    cfg = Config(private_key=KEY, rpc_url="https://rpc.example")
    assert KEY not in repr(cfg)


def test_load_config_reads_dotenv(tmp_path, monkeypatch):
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
    monkeypatch.setenv("MONAD_RPC_URL", "https://from-env.example")
    dotenv = tmp_path / ".env"
    dotenv.write_text(f"PRIVATE_KEY={KEY}\nMONAD_RPC_URL=https://from-file.example\n")

    cfg = config_mod.load_config(str(dotenv))

    assert cfg.private_key == KEY
    # real environment wins over the file
    assert cfg.rpc_url == "https://from-env.example"
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
