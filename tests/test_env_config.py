"""Tests for environment config resolution and loading."""

import os
from unittest.mock import patch

import pytest

from fleet.config.env_config import (
    ENV_CONFIG_PATH_VAR,
    REQUIRED_STAGE_KEYS,
    EnvironmentConfig,
    EnvironmentSpec,
    get_env_config_path,
    load_environment_config,
    resolve_environment_config,
)
from fleet.config.stages import Stage, parse_stage
from fleet.validator.errors import ConfigValidationError


class TestFullPipelineConfig:
    """Tests for the four-stage promotion pipeline config."""

    def test_all_stages_resolved(self, full_raw_config):
        """Every stage should map to its own account/region."""
        config = resolve_environment_config(full_raw_config)

        assert config.is_dev is False
        assert config.pipeline == EnvironmentSpec("111111111111", "us-west-2")
        assert config.beta == EnvironmentSpec("222222222222", "us-east-2")
        assert config.prod == EnvironmentSpec("333333333333", "us-east-1")
        assert config.release == EnvironmentSpec("444444444444", "us-east-1")

    @pytest.mark.parametrize("missing", REQUIRED_STAGE_KEYS)
    def test_missing_stage_names_field(self, full_raw_config, missing):
        """A missing stage should fail naming that stage."""
        del full_raw_config[missing]

        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(full_raw_config)

        assert exc_info.value.field == missing
        assert missing in str(exc_info.value)

    def test_first_missing_field_is_reported(self):
        """Fail-fast: the first missing key in pipeline order is reported."""
        raw = {"envProd": {"account": "3", "region": "us-east-1"}}

        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(raw)

        assert exc_info.value.field == "envPipeline"

    def test_empty_stage_counts_as_missing(self, full_raw_config):
        """An empty mapping for a stage is treated as absent."""
        full_raw_config["envBeta"] = {}

        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(full_raw_config)

        assert exc_info.value.field == "envBeta"

    def test_stage_without_region_rejected(self, full_raw_config):
        """A stage entry must carry both account and region."""
        full_raw_config["envRelease"] = {"account": "444444444444"}

        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(full_raw_config)

        assert exc_info.value.field == "envRelease"
        assert "region" in str(exc_info.value)

    def test_integer_account_normalized(self, full_raw_config):
        """Account ids parsed as integers are kept as strings."""
        full_raw_config["envPipeline"] = {"account": 111111111111, "region": "us-west-2"}

        config = resolve_environment_config(full_raw_config)

        assert config.pipeline.account == "111111111111"

    def test_non_mapping_root_rejected(self):
        """The raw config itself must be a mapping."""
        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(["envDev"])

        assert exc_info.value.field == "<root>"


class TestDevConfig:
    """Tests for the single-account dev shortcut."""

    def test_dev_mode_shares_pipeline_and_beta(self, dev_env_config):
        """Dev mode uses envDev for both pipeline and beta."""
        dev = EnvironmentSpec("999999999999", "us-east-2")

        assert dev_env_config.is_dev is True
        assert dev_env_config.pipeline == dev
        assert dev_env_config.beta == dev
        assert dev_env_config.beta == dev_env_config.pipeline

    def test_dev_mode_has_no_prod_or_release(self, dev_env_config):
        """Dev mode never resolves prod or release."""
        assert dev_env_config.prod is None
        assert dev_env_config.release is None

    def test_dev_ignores_other_fields(self, full_raw_config):
        """With envDev present, the other stage keys are ignored."""
        full_raw_config["envDev"] = {"account": "999", "region": "eu-west-1"}

        config = resolve_environment_config(full_raw_config)

        assert config.is_dev is True
        assert config.pipeline.region == "eu-west-1"
        assert config.release is None

    def test_empty_dev_entry_is_not_ignored(self, full_raw_config):
        """A present but empty envDev is rejected instead of falling back to the pipeline."""
        full_raw_config["envDev"] = {}

        with pytest.raises(ConfigValidationError) as exc_info:
            resolve_environment_config(full_raw_config)

        assert exc_info.value.field == "envDev"

    def test_null_dev_entry_is_absent(self, full_raw_config):
        """``envDev: null`` in YAML means the key is not set."""
        full_raw_config["envDev"] = None

        config = resolve_environment_config(full_raw_config)

        assert config.is_dev is False

    def test_dev_with_partial_pipeline_is_accepted(self):
        """Missing pipeline stages do not matter in dev mode."""
        raw = {
            "envDev": {"account": "999", "region": "us-east-2"},
            "envBeta": {"account": "2", "region": "us-east-1"},
        }

        config = resolve_environment_config(raw)

        assert config.beta.account == "999"


class TestForStage:
    """Tests for stage -> environment lookup."""

    def test_each_stage_maps_to_field(self, full_env_config):
        assert full_env_config.for_stage(Stage.PIPELINE) is full_env_config.pipeline
        assert full_env_config.for_stage(Stage.BETA) is full_env_config.beta
        assert full_env_config.for_stage(Stage.PROD) is full_env_config.prod
        assert full_env_config.for_stage(Stage.RELEASE) is full_env_config.release

    def test_dev_release_is_none(self, dev_env_config):
        """Release is not configured in dev mode."""
        assert dev_env_config.for_stage(Stage.RELEASE) is None

    def test_config_is_immutable(self, full_env_config):
        """Resolved configs cannot be modified."""
        with pytest.raises(AttributeError):
            full_env_config.is_dev = True


class TestStages:
    """Tests for stage parsing and labels."""

    def test_release_label(self):
        assert Stage.RELEASE.label == "release"

    @pytest.mark.parametrize("stage", [Stage.PIPELINE, Stage.BETA, Stage.PROD])
    def test_non_release_label_is_test(self, stage):
        assert stage.label == "test"

    def test_parse_stage_case_insensitive(self):
        assert parse_stage("beta") is Stage.BETA
        assert parse_stage(" RELEASE ") is Stage.RELEASE

    def test_parse_unknown_stage(self):
        with pytest.raises(ValueError, match="Unknown stage"):
            parse_stage("gamma")


class TestLoadEnvironmentConfig:
    """Tests for loading the environment config from disk."""

    def test_load_yaml_file(self, tmp_path):
        """A YAML config should load and resolve."""
        config_file = tmp_path / "env.yaml"
        config_file.write_text("""
envPipeline: {account: "1", region: us-west-2}
envBeta: {account: "2", region: us-east-2}
envProd: {account: "3", region: us-east-1}
envRelease: {account: "4", region: us-east-1}
""")
        config = load_environment_config(config_file)

        assert config.is_dev is False
        assert config.release.account == "4"

    def test_load_json_file(self, tmp_path):
        """JSON configs load through the same path."""
        config_file = tmp_path / "env-dev.json"
        config_file.write_text('{"envDev": {"account": "5", "region": "us-east-2"}}')

        config = load_environment_config(config_file)

        assert config.is_dev is True
        assert config.pipeline.account == "5"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigValidationError) as exc_info:
            load_environment_config(tmp_path / "nope.yaml")

        assert exc_info.value.field == "<file>"

    def test_invalid_yaml_raises(self, tmp_path):
        config_file = tmp_path / "env.yaml"
        config_file.write_text("envDev: [unclosed")

        with pytest.raises(ConfigValidationError, match="invalid YAML"):
            load_environment_config(config_file)

    def test_empty_file_reports_first_stage(self, tmp_path):
        """An empty file is a non-dev config missing every stage."""
        config_file = tmp_path / "env.yaml"
        config_file.write_text("")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_environment_config(config_file)

        assert exc_info.value.field == "envPipeline"

    def test_default_config_ships(self):
        """The packaged default config should load as dev mode."""
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(ENV_CONFIG_PATH_VAR, None)
            config = load_environment_config()

        assert isinstance(config, EnvironmentConfig)
        assert config.is_dev is True


class TestEnvConfigPath:
    """Tests for config path resolution."""

    def test_env_var_overrides_default(self, tmp_path):
        override = tmp_path / "custom.yaml"
        with patch.dict(os.environ, {ENV_CONFIG_PATH_VAR: str(override)}):
            assert get_env_config_path() == override

    def test_default_path_next_to_module(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(ENV_CONFIG_PATH_VAR, None)
            path = get_env_config_path()

        assert path.name == "environments.yaml"
        assert path.parent.name == "config"

    def test_load_uses_env_var(self, tmp_path):
        config_file = tmp_path / "env.yaml"
        config_file.write_text("envDev: {account: '7', region: us-east-1}\n")

        with patch.dict(os.environ, {ENV_CONFIG_PATH_VAR: str(config_file)}):
            config = load_environment_config()

        assert config.pipeline == EnvironmentSpec("7", "us-east-1")
