# -*- coding: utf-8 -*-
"""
Erros do sfdeploy
=================
Hierarquia de excecoes usada pelo cliente Salesforce e pelos deployers.

Todas as excecoes herdam de SalesforceError, que carrega um codigo de erro
opcional e um dicionario de detalhes estruturados.

Categorias:
- Transporte: AuthenticationError, QueryError, DMLError, RateLimitError
- Sessao de deploy: DiscoveryError, RemoteLookupError, ResourceCreationError,
  ContainerError, DeployFailedError, MissingFilesError
- Execucao em lote: BatchItemError
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .deploy.models import DeployReport


class SalesforceError(Exception):
    """Excecao base para erros do Salesforce"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        fields: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.fields = fields or []
        self.details = details or {}

    def __str__(self):
        msg = super().__str__()
        if self.error_code:
            msg = f"[{self.error_code}] {msg}"
        if self.fields:
            msg = f"{msg} (campos: {', '.join(self.fields)})"
        return msg


# ==================== TRANSPORTE ====================

class AuthenticationError(SalesforceError):
    """Erro de autenticacao"""
    pass


class QueryError(SalesforceError):
    """Erro em consulta SOQL"""
    pass


class DMLError(SalesforceError):
    """Erro em operacao DML (insert, update, delete)"""
    pass


class RateLimitError(SalesforceError):
    """Erro de limite de requisicoes"""
    pass


class MetadataDeployError(SalesforceError):
    """
    Deploy da Metadata API terminou sem sucesso.

    Attributes:
        deploy_details: Detalhes estruturados parciais (componentSuccesses,
            componentFailures, runTestResult), quando disponiveis
    """

    def __init__(
        self,
        message: str,
        deploy_details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message, error_code=error_code)
        self.deploy_details = deploy_details or {}


# ==================== SESSAO DE DEPLOY ====================

class DiscoveryError(SalesforceError):
    """Nenhum arquivo local encontrado para deploy"""
    pass


class RemoteLookupError(SalesforceError):
    """Falha ao resolver ids remotos dos metadados"""
    pass


class ResourceCreationError(SalesforceError):
    """Falha ao criar ou atualizar recursos antes do deploy"""
    pass


class StubCreationError(ResourceCreationError):
    """Falha ao criar stubs para obter ids remotos"""
    pass


class StaticResourceError(ResourceCreationError):
    """Falha ao enviar static resources"""
    pass


class ArtifactError(ResourceCreationError):
    """Falha ao registrar artefatos no container"""
    pass


class ContainerError(SalesforceError):
    """Falha de protocolo do MetadataContainer (submit, poll, delete)"""
    pass


class DeployTimeoutError(ContainerError):
    """Polling excedeu o prazo configurado"""
    pass


class MissingFilesError(SalesforceError):
    """Arquivos referenciados pelo indice nao existem no disco"""

    def __init__(self, paths: List[str]):
        super().__init__(
            "cannot deploy - missing files: " + ", ".join(paths),
            details={"paths": list(paths)}
        )
        self.paths = list(paths)


class DeployFailedError(SalesforceError):
    """
    O servidor sinalizou falha no deploy.

    Attributes:
        report: DeployReport com os problemas estruturados (pode ser None
            quando a falha ocorreu antes de qualquer resultado)
    """

    def __init__(self, message: str, report: Optional["DeployReport"] = None):
        super().__init__(message)
        self.report = report


# ==================== LOTE ====================

class BatchItemError(SalesforceError):
    """
    Primeiro item que falhou em uma execucao em lote.

    A excecao original fica disponivel em __cause__.
    """

    def __init__(self, index: int, item: Any, cause: BaseException):
        super().__init__(
            f"item {index} falhou: {cause}",
            details={"index": index}
        )
        self.index = index
        self.item = item
