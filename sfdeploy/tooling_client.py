# -*- coding: utf-8 -*-
"""
Salesforce Tooling API Client
=============================
Cliente para Tooling API do Salesforce.

A Tooling API permite:
- Consultar ids de classes, triggers, pages e static resources
- Criar, atualizar e remover objetos (stubs, static resources)
- Criar MetadataContainers e registrar membros (ApexClassMember, ...)
- Submeter o container (ContainerAsyncRequest) e acompanhar o status

Exemplo de uso:
    tooling = ToolingClient(sf_client)

    container = await tooling.create_container("sfdeploy:1700000000000")
    await tooling.add_artifact(container.id, artifact)
    async_id = await tooling.submit_container(container.id)
    status = await tooling.poll_container(async_id)
    await tooling.delete_container(container.id)
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .deploy.models import Container, ContainerStatus, DeployArtifact, PollStatus
from .errors import ContainerError, QueryError, SalesforceError

logger = logging.getLogger(__name__)

# Limite de tamanho do campo Name do MetadataContainer
CONTAINER_NAME_MAX = 32


class ToolingClient:
    """
    Cliente para Tooling API do Salesforce

    Fornece as operacoes usadas pelo deploy incremental.
    """

    def __init__(self, sf_client):
        """
        Inicializa o cliente Tooling

        Args:
            sf_client: SalesforceClient autenticado
        """
        self.sf = sf_client

    @property
    def tooling_url(self) -> str:
        """URL da Tooling API"""
        return self.sf.config.tooling_url

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        retry: bool = True
    ) -> Any:
        """
        Faz requisicao para Tooling API

        Args:
            method: Metodo HTTP
            endpoint: Endpoint relativo
            data: Dados do body
            params: Query params
            retry: Repetir em erro de conexao

        Returns:
            Resposta JSON
        """
        url = f"{self.tooling_url}{endpoint}"
        return await self.sf._send(method, url, data=data, params=params, retry=retry)

    async def query(self, soql: str) -> List[Dict[str, Any]]:
        """
        Executa query SOQL na Tooling API (todas as paginas)

        Args:
            soql: Query SOQL

        Returns:
            Lista de registros
        """
        try:
            result = await self._request("GET", "/query", params={"q": soql})
            records = list(result.get("records", []))

            while not result.get("done", True) and result.get("nextRecordsUrl"):
                next_url = f"{self.sf.config.instance_url}{result['nextRecordsUrl']}"
                result = await self.sf._send("GET", next_url)
                records.extend(result.get("records", []))
        except SalesforceError as e:
            raise QueryError(str(e), e.error_code) from e

        return records

    # ==================== SOBJECTS ====================

    async def insert(self, sobject: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Cria um objeto na Tooling API

        Args:
            sobject: Tipo do objeto (ex: "ApexClass")
            fields: Campos do objeto

        Returns:
            Dict com id e success
        """
        return await self._request("POST", f"/sobjects/{sobject}", data=fields)

    async def update(self, sobject: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Atualiza um objeto existente

        Args:
            sobject: Tipo do objeto
            record_id: ID do objeto
            fields: Campos para atualizar

        Returns:
            Dict com o id atualizado
        """
        await self._request("PATCH", f"/sobjects/{sobject}/{record_id}", data=fields)
        return {"id": record_id, "success": True}

    async def delete(self, sobject: str, record_id: str) -> bool:
        """
        Remove um objeto

        Args:
            sobject: Tipo do objeto
            record_id: ID do objeto

        Returns:
            True se sucesso
        """
        await self._request("DELETE", f"/sobjects/{sobject}/{record_id}")
        return True

    # ==================== METADATA CONTAINER ====================

    async def create_container(self, name: str) -> Container:
        """
        Cria um MetadataContainer

        Args:
            name: Nome do container (truncado em 32 caracteres)

        Returns:
            Container criado
        """
        name = name[:CONTAINER_NAME_MAX]
        result = await self.insert("MetadataContainer", {"Name": name})
        container_id = (result or {}).get("id")
        if not container_id:
            raise ContainerError(f"MetadataContainer sem id na resposta: {result}")
        return Container(id=container_id, name=name)

    async def add_artifact(self, container_id: str, artifact: DeployArtifact) -> Dict[str, Any]:
        """
        Registra um membro no container

        Args:
            container_id: ID do MetadataContainer
            artifact: Artefato (tipo do membro, corpo e ContentEntityId)

        Returns:
            Resposta da criacao do membro
        """
        fields = {
            "MetadataContainerId": container_id,
            "ContentEntityId": artifact.content_entity_id,
            "Body": artifact.body
        }
        return await self.insert(artifact.member_type, fields)

    async def submit_container(self, container_id: str, check_only: bool = False) -> str:
        """
        Submete o container para compilacao/deploy assincrono

        Args:
            container_id: ID do MetadataContainer
            check_only: Apenas validar

        Returns:
            ID do ContainerAsyncRequest
        """
        result = await self.insert("ContainerAsyncRequest", {
            "MetadataContainerId": container_id,
            "IsCheckOnly": check_only
        })
        async_id = (result or {}).get("id")
        if not async_id:
            raise ContainerError(f"ContainerAsyncRequest sem id na resposta: {result}")
        return async_id

    async def poll_container(self, async_id: str) -> ContainerStatus:
        """
        Consulta o status de um ContainerAsyncRequest

        Nao repete em erro de conexao: uma falha de transporte encerra a
        sessao.

        Args:
            async_id: ID do ContainerAsyncRequest

        Returns:
            ContainerStatus
        """
        data = await self._request(
            "GET",
            f"/sobjects/ContainerAsyncRequest/{async_id}",
            retry=False
        )
        return parse_container_status(async_id, data or {})

    async def delete_container(self, container_id: str) -> bool:
        """
        Remove o MetadataContainer

        Args:
            container_id: ID do container

        Returns:
            True se sucesso
        """
        return await self.delete("MetadataContainer", container_id)


def parse_container_status(async_id: str, data: Dict[str, Any]) -> ContainerStatus:
    """Converte a resposta de ContainerAsyncRequest em ContainerStatus"""
    raw_state = data.get("State") or ""

    return ContainerStatus(
        id=async_id,
        state=PollStatus.from_state(raw_state),
        raw_state=raw_state,
        error_message=data.get("ErrorMsg"),
        compiler_errors=_parse_compiler_errors(data.get("CompilerErrors")),
        details=data.get("DeployDetails")
    )


def _parse_compiler_errors(value: Any) -> List[Dict[str, Any]]:
    """
    CompilerErrors chega como string JSON (REST) ou lista de dicts cujos
    valores podem vir embrulhados em listas de um elemento.
    """
    if not value:
        return []

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [{"problem": value}]

    if isinstance(value, dict):
        value = [value]

    errors = []
    for item in value:
        if not isinstance(item, dict):
            continue
        errors.append({
            key: (val[0] if isinstance(val, list) and len(val) == 1 else val)
            for key, val in item.items()
        })
    return errors
