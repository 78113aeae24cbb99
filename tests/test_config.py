import pytest

from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.exceptions import ConfigError
from reconnecting_socket.utils import random_name


def test_defaults():
    cfg = BackoffConfig()
    assert cfg.strategy == "fibonacci"
    assert cfg.initial_delay == 1000
    assert cfg.max_delay == 20000
    assert cfg.randomization_factor == 0.2
    assert cfg.fail_after is None


@pytest.mark.parametrize("options", [
    {"strategy": "linear"},
    {"initial_delay": 0},
    {"initial_delay": 500, "max_delay": 100},
    {"randomization_factor": 1},
    {"randomization_factor": -0.1},
    {"fail_after": 0},
])
def test_invalid_options_raise(options):
    with pytest.raises(ConfigError):
        BackoffConfig(**options)


def test_from_mapping_accepts_camel_case():
    cfg = BackoffConfig.from_mapping({"initialDelay": 10, "maxDelay": 50, "randomisationFactor": 0, "failAfter": 4})
    assert (cfg.initial_delay, cfg.max_delay, cfg.randomization_factor, cfg.fail_after) == (10, 50, 0, 4)


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError):
        BackoffConfig.from_mapping({"retries": 3})


def test_from_env(monkeypatch):
    monkeypatch.setenv("RS_BACKOFF_STRATEGY", "Exponential")
    monkeypatch.setenv("RS_BACKOFF_INITIAL_DELAY", "250")
    monkeypatch.setenv("RS_BACKOFF_MAX_DELAY", "4000")
    monkeypatch.setenv("RS_BACKOFF_RANDOMIZATION_FACTOR", "0")
    monkeypatch.setenv("RS_BACKOFF_FAIL_AFTER", "5")
    cfg = BackoffConfig.from_env()
    assert cfg == BackoffConfig("exponential", 250, 4000, 0, 5)


def test_from_env_unbounded_and_bad_numbers(monkeypatch):
    monkeypatch.setenv("RS_BACKOFF_FAIL_AFTER", "unbounded")
    monkeypatch.delenv("RS_BACKOFF_STRATEGY", raising=False)
    monkeypatch.delenv("RS_BACKOFF_INITIAL_DELAY", raising=False)
    monkeypatch.delenv("RS_BACKOFF_MAX_DELAY", raising=False)
    monkeypatch.delenv("RS_BACKOFF_RANDOMIZATION_FACTOR", raising=False)
    assert BackoffConfig.from_env().fail_after is None

    monkeypatch.setenv("RS_BACKOFF_MAX_DELAY", "soon")
    with pytest.raises(ConfigError):
        BackoffConfig.from_env()


def test_random_name_is_reproducible():
    import random

    assert random_name(random.Random(3)) == random_name(random.Random(3))
    assert random_name().startswith("rs-")
    assert len(random_name()) == 7
