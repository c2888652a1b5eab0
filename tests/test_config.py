"""Tests for configuration, error mapping and the CLI."""

import os

import pytest
from pydantic import ValidationError

from flowengine.config import (
    AppConfig,
    LogLevel,
    get_config,
    get_production_config,
    get_testing_config,
    load_config,
    reset_config,
    validate_config
)
from flowengine.core.exceptions import (
    ConfigurationError,
    ExecutionLogNotFoundError,
    NoStartNodeError,
    StorageError,
    WorkflowNotFoundError,
    create_error_response
)
from flowengine.core.middleware import status_code_for_error
from flowengine.startup import create_argument_parser, load_configuration, main


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


class TestAppConfig:
    """Test cases for AppConfig."""

    def test_defaults(self):
        config = AppConfig()
        assert config.database_url == "sqlite:///./flow_engine.db"
        assert config.execution_log_limit == 1000
        assert config.stripe_secret_key is None
        assert config.openai_model == "gpt-4o"
        assert config.is_sqlite

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FLOW_ENGINE_PORT", "9001")
        monkeypatch.setenv("FLOW_ENGINE_DEBUG", "true")
        monkeypatch.setenv("FLOW_ENGINE_STRIPE_SECRET_KEY", "sk_env")
        monkeypatch.setenv("FLOW_ENGINE_NODE_TIMEOUT", "2.5")
        monkeypatch.setenv("FLOW_ENGINE_LOG_LEVEL", "debug")
        monkeypatch.setenv("FLOW_ENGINE_CORS_ORIGINS", "http://a.test, http://b.test")

        config = get_config()

        assert config.port == 9001
        assert config.debug is True
        assert config.stripe_secret_key == "sk_env"
        assert config.node_timeout == 2.5
        assert config.log_level == LogLevel.DEBUG
        assert config.cors_origins == ["http://a.test", "http://b.test"]
        assert get_config() is config

    def test_load_config_reads_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FLOW_ENGINE_OPENAI_MODEL", raising=False)
        monkeypatch.chdir(tmp_path)
        env_file = tmp_path / "flow.env"
        env_file.write_text("FLOW_ENGINE_OPENAI_MODEL=gpt-from-file\n")

        try:
            config = load_config(str(env_file))
            assert config.openai_model == "gpt-from-file"
        finally:
            os.environ.pop("FLOW_ENGINE_OPENAI_MODEL", None)

    def test_rejects_unsupported_database(self):
        with pytest.raises(ValidationError):
            AppConfig(database_url="mongodb://localhost/flows")

    def test_rejects_bad_port_and_timeouts(self):
        with pytest.raises(ValidationError):
            AppConfig(port=70000)
        with pytest.raises(ValidationError):
            AppConfig(node_timeout=0)
        with pytest.raises(ValidationError):
            AppConfig(execution_log_limit=0)

    def test_node_timeout_can_be_disabled(self):
        assert AppConfig(node_timeout=None).node_timeout is None

    def test_presets(self):
        assert get_testing_config().database_url == "sqlite:///:memory:"
        production = get_production_config()
        assert production.is_production
        assert production.log_structured

    def test_validate_config_creates_directories(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        config = AppConfig(
            database_url=f"sqlite:///{tmp_path / 'data' / 'flows.db'}",
            log_file=str(log_file)
        )

        validate_config(config)

        assert (tmp_path / "data").is_dir()
        assert log_file.parent.is_dir()


class TestErrorMapping:
    """Test cases for engine error to HTTP status mapping."""

    def test_status_codes(self):
        assert status_code_for_error(WorkflowNotFoundError("wf")) == 404
        assert status_code_for_error(ExecutionLogNotFoundError("log")) == 404
        assert status_code_for_error(NoStartNodeError()) == 400
        assert status_code_for_error(StorageError("disk")) == 500
        assert status_code_for_error(ConfigurationError("missing key")) == 500

    def test_error_response_body(self):
        body = create_error_response(WorkflowNotFoundError("wf-9"))
        assert body["error"] == "WorkflowNotFoundError"
        assert body["message"] == "Workflow with ID 'wf-9' not found"
        assert body["details"]["category"] == "storage"
        assert body["context"]["workflow_id"] == "wf-9"


class TestCli:
    """Test cases for the command line interface."""

    def test_arguments_override_preset(self):
        args = create_argument_parser().parse_args(
            ["--env", "testing", "--port", "9100", "--log-level", "ERROR", "--node-timeout", "3", "config", "show"]
        )

        config = load_configuration(args)

        assert config.port == 9100
        assert config.log_level == LogLevel.ERROR
        assert config.node_timeout == 3.0
        assert config.database_url == "sqlite:///:memory:"

    def test_config_show_masks_secrets(self, capsys):
        main(["--env", "testing", "config", "show"])
        out = capsys.readouterr().out
        assert "Current Configuration:" in out
        assert "Stripe Secret Key: not set" in out

    def test_config_validate(self, capsys):
        main(["--env", "testing", "config", "validate"])
        assert "PASSED" in capsys.readouterr().out

    def test_db_init_creates_tables(self, tmp_path, capsys):
        from sqlalchemy import inspect
        from flowengine.storage.database import get_database_engine, reset_database_engine

        db_path = tmp_path / "cli.db"
        try:
            main(["--database-url", f"sqlite:///{db_path}", "db", "init"])
            tables = set(inspect(get_database_engine()).get_table_names())
        finally:
            reset_database_engine()

        assert {"workflows", "execution_logs"} <= tables
        assert "Database tables created successfully" in capsys.readouterr().out
