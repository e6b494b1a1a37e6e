import pytest

from workforce.config import (
    AgentSpec,
    ExecutionLimits,
    ProviderSettings,
    WorkforceConfig,
    import_string,
    instantiate_from_path,
)
from workforce.errors import ConfigurationError


def test_defaults():
    config = WorkforceConfig()

    assert config.providers.default == "anthropic"
    assert config.providers.fallback == ["groq", "cerebras"]
    assert config.providers.mode == "standard"
    assert config.providers.max_retries == 3
    assert config.execution.task_timeout == 60.0
    assert config.execution.agent_timeout == 30.0
    assert config.history.max_items == 100
    assert config.agent("developer").enabled is True


def test_from_yaml_reads_every_section():
    config_yaml = """
providers:
  default: openai
  fallback: groq
  mode: aggressive
  temperature: 0.2
  max_retries: 2
  backoff_base: 0.5
  credentials:
    openai: sk-test
    groq: ""
execution:
  task_timeout: 20
  agent_timeout: 10
  attempt_timeout: 5
agents:
  developer: false
  search:
    max_tokens: 512
    provider: groq
history:
  max_items: 5
"""
    config = WorkforceConfig.from_yaml(config_yaml)

    assert config.providers.default == "openai"
    assert config.providers.fallback == ["groq"]
    assert config.providers.aggressive
    assert config.providers.credentials == {"openai": "sk-test"}
    assert config.execution.attempt_timeout == 5.0
    assert config.agent("developer").enabled is False
    assert config.agent("search") == AgentSpec(kind="search", max_tokens=512, provider="groq")
    assert config.history.max_items == 5


def test_timeouts_must_nest():
    with pytest.raises(ConfigurationError, match="attempt_timeout <= agent_timeout <= task_timeout"):
        ExecutionLimits(task_timeout=10, agent_timeout=20, attempt_timeout=5)

    with pytest.raises(ConfigurationError, match="positive"):
        ExecutionLimits(task_timeout=10, agent_timeout=5, attempt_timeout=0)


def test_invalid_provider_settings():
    with pytest.raises(ConfigurationError, match="mode"):
        ProviderSettings(mode="reckless")
    with pytest.raises(ConfigurationError, match="max_retries"):
        ProviderSettings(max_retries=0)


def test_agent_entry_must_be_mapping_or_bool():
    with pytest.raises(ConfigurationError):
        WorkforceConfig.from_yaml("agents:\n  developer: [1, 2]\n")


def test_from_file(tmp_path):
    path = tmp_path / "workforce.yaml"
    path.write_text("execution:\n  task_timeout: 90\n")

    config = WorkforceConfig.from_file(path)

    assert config.execution.task_timeout == 90.0
    assert config.file_path == path


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="Config not found"):
        WorkforceConfig.from_file(tmp_path / "absent.yaml")


def test_root_must_be_mapping():
    with pytest.raises(ConfigurationError, match="mapping"):
        WorkforceConfig.from_yaml("- just\n- a list\n")


def test_import_helpers():
    assert import_string("workforce.config:ExecutionLimits") is ExecutionLimits
    limits = instantiate_from_path("workforce.config:ExecutionLimits", 10, 5, 1)
    assert limits.agent_timeout == 5

    with pytest.raises(ConfigurationError, match="module:qualname"):
        import_string("workforce.config.ExecutionLimits")
    with pytest.raises(ConfigurationError, match="no attribute"):
        import_string("workforce.config:Missing")
