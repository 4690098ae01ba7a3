# -*- coding: utf-8 -*-
"""
Unit Tests for Config
=====================

Tests for sfdeploy.config - conexao Salesforce e opcoes de deploy.
"""

import pytest

from sfdeploy.config import DeployOptions, SalesforceConfig

SALESFORCE_VARS = (
    "USERNAME", "PASSWORD", "SECURITY_TOKEN", "DOMAIN", "API_VERSION",
    "INSTANCE_URL", "ACCESS_TOKEN", "TIMEOUT", "MAX_RETRIES",
)
DEPLOY_VARS = (
    "SFDEPLOY_DEPLOY_MODE", "SFDEPLOY_COVERAGE", "SFDEPLOY_CONCURRENCY",
    "SFDEPLOY_POLL_INTERVAL", "SFDEPLOY_POLL_TIMEOUT", "SFDEPLOY_ARTIFACT_FILTER",
    "SFDEPLOY_SOURCE_ROOT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Ambiente sem variaveis do sfdeploy e sem .env no diretorio atual"""
    monkeypatch.chdir(tmp_path)
    for name in SALESFORCE_VARS:
        monkeypatch.delenv(f"SALESFORCE_{name}", raising=False)
        monkeypatch.delenv(f"SALESFORCE_DEV_{name}", raising=False)
    for name in DEPLOY_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSalesforceConfig:
    """Tests for SalesforceConfig"""

    def test_from_env(self, clean_env):
        clean_env.setenv("SALESFORCE_USERNAME", "user@empresa.com")
        clean_env.setenv("SALESFORCE_PASSWORD", "senha123")
        clean_env.setenv("SALESFORCE_DOMAIN", "test")

        config = SalesforceConfig.from_env()

        assert config.username == "user@empresa.com"
        assert config.login_url == "https://test.salesforce.com"
        assert config.api_version == "59.0"

    def test_org_scoped_variables_win(self, clean_env):
        clean_env.setenv("SALESFORCE_USERNAME", "prod@empresa.com")
        clean_env.setenv("SALESFORCE_DEV_USERNAME", "dev@empresa.com")
        clean_env.setenv("SALESFORCE_PASSWORD", "senha123")

        config = SalesforceConfig.from_env(tenant_id="dev")

        assert config.tenant_id == "dev"
        assert config.username == "dev@empresa.com"
        assert config.password == "senha123"

    def test_urls(self, salesforce_config):
        assert salesforce_config.tooling_url == \
            "https://test.my.salesforce.com/services/data/v59.0/tooling"
        assert salesforce_config.metadata_url == \
            "https://test.my.salesforce.com/services/Soap/m/59.0"

    def test_my_domain_login_url(self):
        config = SalesforceConfig(domain="empresa")
        assert config.login_url == "https://empresa.my.salesforce.com"

    def test_validate_requires_credentials(self):
        with pytest.raises(ValueError):
            SalesforceConfig(username="user@empresa.com").validate()

    def test_token_skips_credentials(self):
        config = SalesforceConfig(access_token="00D!abc", instance_url="https://x.my.salesforce.com")
        assert config.validate() is True

    def test_to_dict_hides_secrets(self, salesforce_config):
        data = salesforce_config.to_dict()

        assert "password" not in data
        assert "access_token" not in data
        assert data["has_token"] is True


class TestDeployOptions:
    """Tests for DeployOptions"""

    def test_defaults(self):
        options = DeployOptions()

        assert options.deploy_mode == "dynamic"
        assert options.concurrency == 5
        assert options.poll_interval == 1.0
        assert options.poll_timeout is None
        assert options.artifact_filter == "resolved"

    def test_from_env(self, clean_env):
        clean_env.setenv("SFDEPLOY_DEPLOY_MODE", "metadata")
        clean_env.setenv("SFDEPLOY_COVERAGE", "true")
        clean_env.setenv("SFDEPLOY_POLL_TIMEOUT", "300")

        options = DeployOptions.from_env()

        assert options.deploy_mode == "metadata"
        assert options.coverage is True
        assert options.poll_timeout == 300.0

    def test_overrides_win(self, clean_env):
        clean_env.setenv("SFDEPLOY_CONCURRENCY", "2")

        options = DeployOptions.from_env(concurrency=8, coverage=None)

        assert options.concurrency == 8
        assert options.coverage is False

    @pytest.mark.parametrize("kwargs", [
        {"deploy_mode": "fast"},
        {"artifact_filter": "all"},
        {"concurrency": 0},
        {"poll_interval": -1},
        {"poll_timeout": 0},
        {"source_root": "a/b"},
    ])
    def test_validate(self, kwargs):
        with pytest.raises(ValueError):
            DeployOptions(**kwargs).validate()
