# -*- coding: utf-8 -*-
"""
Configuracao do sfdeploy
========================
Configuracoes de conexao com a organizacao Salesforce e opcoes da sessao
de deploy.

Exemplo de configuracao via variaveis de ambiente (ou arquivo .env):
    SALESFORCE_USERNAME=user@empresa.com
    SALESFORCE_PASSWORD=senha123
    SALESFORCE_SECURITY_TOKEN=token_seguranca
    SALESFORCE_DOMAIN=login  # ou "test" para sandbox
    SALESFORCE_API_VERSION=59.0

    SFDEPLOY_DEPLOY_MODE=dynamic  # ou "metadata"
    SFDEPLOY_POLL_INTERVAL=1

Selecao de org:
    SalesforceConfig.from_env(tenant_id="dev") procura primeiro as variaveis
    SALESFORCE_DEV_* e cai para SALESFORCE_* quando ausentes.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "59.0"

DEPLOY_MODES = ("dynamic", "metadata")
ARTIFACT_FILTERS = ("resolved", "unresolved")


def _load_env() -> None:
    """Carrega .env do diretorio atual sem sobrescrever o ambiente"""
    load_dotenv(override=False)


def _getenv(name: str, tenant_id: str = "", default: Optional[str] = None) -> Optional[str]:
    """Le SALESFORCE_<ORG>_<NAME> e depois SALESFORCE_<NAME>"""
    if tenant_id:
        scoped = os.getenv(f"SALESFORCE_{tenant_id.upper()}_{name}")
        if scoped is not None:
            return scoped
    return os.getenv(f"SALESFORCE_{name}", default)


def _as_bool(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SalesforceConfig:
    """
    Configuracao principal para conexao com Salesforce

    Attributes:
        tenant_id: Org selecionada (vazio = org padrao do ambiente)
        username: Nome de usuario Salesforce
        password: Senha do usuario
        security_token: Token de seguranca
        domain: Dominio de login ("login" para producao, "test" para sandbox)
        api_version: Versao da API Salesforce (ex: "59.0")
        instance_url: URL da instancia (preenchida apos login)
        access_token: Token ja emitido; dispensa o login SOAP
        timeout: Timeout em segundos para requisicoes
        max_retries: Numero maximo de tentativas em erro de conexao
    """
    tenant_id: str = ""

    # Autenticacao Username/Password
    username: Optional[str] = None
    password: Optional[str] = None
    security_token: Optional[str] = None

    # Ambiente
    domain: str = "login"
    api_version: str = DEFAULT_API_VERSION
    instance_url: Optional[str] = None

    # Conexao
    timeout: int = 30
    max_retries: int = 3
    verify_ssl: bool = True

    # Preenchidos apos autenticacao
    access_token: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_env(cls, tenant_id: Optional[str] = None) -> "SalesforceConfig":
        """
        Cria configuracao a partir de variaveis de ambiente

        Args:
            tenant_id: Org selecionada (opcional)

        Variaveis suportadas (com ou sem o prefixo da org):
            SALESFORCE_USERNAME
            SALESFORCE_PASSWORD
            SALESFORCE_SECURITY_TOKEN
            SALESFORCE_DOMAIN
            SALESFORCE_API_VERSION
            SALESFORCE_INSTANCE_URL
            SALESFORCE_ACCESS_TOKEN
            SALESFORCE_TIMEOUT
            SALESFORCE_MAX_RETRIES
        """
        _load_env()
        org = tenant_id or ""

        return cls(
            tenant_id=org,
            username=_getenv("USERNAME", org),
            password=_getenv("PASSWORD", org),
            security_token=_getenv("SECURITY_TOKEN", org),
            domain=_getenv("DOMAIN", org, "login"),
            api_version=_getenv("API_VERSION", org, DEFAULT_API_VERSION),
            instance_url=_getenv("INSTANCE_URL", org),
            access_token=_getenv("ACCESS_TOKEN", org),
            timeout=int(_getenv("TIMEOUT", org, "30")),
            max_retries=int(_getenv("MAX_RETRIES", org, "3"))
        )

    @property
    def login_url(self) -> str:
        """URL de login baseada no dominio"""
        if self.domain == "test":
            return "https://test.salesforce.com"
        elif self.domain == "login":
            return "https://login.salesforce.com"
        else:
            return f"https://{self.domain}.my.salesforce.com"

    @property
    def soap_url(self) -> str:
        """URL do SOAP API (login)"""
        return f"{self.login_url}/services/Soap/u/{self.api_version}"

    @property
    def metadata_url(self) -> Optional[str]:
        """URL da Metadata API"""
        if self.instance_url:
            return f"{self.instance_url}/services/Soap/m/{self.api_version}"
        return None

    @property
    def tooling_url(self) -> Optional[str]:
        """URL da Tooling API"""
        if self.instance_url:
            return f"{self.instance_url}/services/data/v{self.api_version}/tooling"
        return None

    @property
    def has_token(self) -> bool:
        return bool(self.access_token and self.instance_url)

    def validate(self) -> bool:
        """
        Valida se a configuracao esta completa

        Raises:
            ValueError: Se a configuracao e invalida
        """
        if self.has_token:
            return True

        if not self.username:
            raise ValueError("Username e obrigatorio")
        if not self.password:
            raise ValueError("Password e obrigatorio")

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Converte configuracao para dicionario (sem dados sensiveis)"""
        return {
            "tenant_id": self.tenant_id,
            "username": self.username,
            "domain": self.domain,
            "api_version": self.api_version,
            "instance_url": self.instance_url,
            "has_token": self.has_token,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "organization_id": self.organization_id,
            "user_id": self.user_id
        }

    def __repr__(self) -> str:
        return (
            f"SalesforceConfig(tenant_id={self.tenant_id}, username={self.username}, "
            f"domain={self.domain}, api_version={self.api_version})"
        )


@dataclass
class DeployOptions:
    """
    Opcoes de uma sessao de deploy.

    Passadas explicitamente para o orquestrador e deste para cada
    componente que precisa delas.

    Attributes:
        deploy_mode: "dynamic" escolhe a API por sessao, "metadata" fixa a
            Metadata API
        force_metadata: Forca a Metadata API (flag --meta)
        coverage: Calcula coverage por componente no relatorio
        concurrency: Maximo de chamadas remotas simultaneas em lote
        poll_interval: Intervalo de polling do container em segundos
        poll_timeout: Prazo maximo de polling em segundos (None = sem prazo)
        artifact_filter: "resolved" cria artefatos para entradas com id
            resolvido; "unresolved" para entradas sem id
        source_root: Diretorio raiz dos metadados dentro do archive
        project_root: Diretorio do projeto local
    """
    deploy_mode: str = "dynamic"
    force_metadata: bool = False
    coverage: bool = False
    concurrency: int = 5
    poll_interval: float = 1.0
    poll_timeout: Optional[float] = None
    artifact_filter: str = "resolved"
    source_root: str = "src"
    project_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls, **overrides: Any) -> "DeployOptions":
        """
        Cria opcoes a partir de variaveis SFDEPLOY_*; argumentos nomeados
        tem precedencia.

        Variaveis suportadas:
            SFDEPLOY_DEPLOY_MODE
            SFDEPLOY_COVERAGE
            SFDEPLOY_CONCURRENCY
            SFDEPLOY_POLL_INTERVAL
            SFDEPLOY_POLL_TIMEOUT
            SFDEPLOY_ARTIFACT_FILTER
            SFDEPLOY_SOURCE_ROOT
        """
        _load_env()
        timeout = os.getenv("SFDEPLOY_POLL_TIMEOUT")

        values: Dict[str, Any] = {
            "deploy_mode": os.getenv("SFDEPLOY_DEPLOY_MODE", "dynamic"),
            "coverage": _as_bool(os.getenv("SFDEPLOY_COVERAGE")),
            "concurrency": int(os.getenv("SFDEPLOY_CONCURRENCY", "5")),
            "poll_interval": float(os.getenv("SFDEPLOY_POLL_INTERVAL", "1")),
            "poll_timeout": float(timeout) if timeout else None,
            "artifact_filter": os.getenv("SFDEPLOY_ARTIFACT_FILTER", "resolved"),
            "source_root": os.getenv("SFDEPLOY_SOURCE_ROOT", "src"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        options = cls(**values)
        options.validate()
        return options

    def validate(self) -> bool:
        """
        Valida as opcoes

        Raises:
            ValueError: Se alguma opcao e invalida
        """
        if self.deploy_mode not in DEPLOY_MODES:
            raise ValueError(f"deploy_mode invalido: {self.deploy_mode}")
        if self.artifact_filter not in ARTIFACT_FILTERS:
            raise ValueError(f"artifact_filter invalido: {self.artifact_filter}")
        if self.concurrency < 1:
            raise ValueError("concurrency deve ser >= 1")
        if self.poll_interval < 0:
            raise ValueError("poll_interval nao pode ser negativo")
        if self.poll_timeout is not None and self.poll_timeout <= 0:
            raise ValueError("poll_timeout deve ser positivo")
        if not self.source_root or "/" in self.source_root.strip("/"):
            raise ValueError(f"source_root invalido: {self.source_root}")
        return True
