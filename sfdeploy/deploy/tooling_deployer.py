# -*- coding: utf-8 -*-
"""
Tooling Deployer
================
Deploy incremental via Tooling API usando um MetadataContainer efemero.

Fluxo:
1. Resolve ids remotos das entradas do indice
2. Cria stubs para entradas sem id
3. Envia static resources (insert ou update)
4. Cria o MetadataContainer
5. Registra os artefatos (ApexClassMember, ApexTriggerMember, ...)
6. Submete o container e faz polling ate um estado terminal
7. Remove o container (sempre, inclusive em erro)

Exemplo de uso:
    deployer = ToolingDeployer(tooling, options)
    report = await deployer.deploy(index)
"""

import asyncio
import base64
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Set, Tuple

from ..config import DeployOptions
from ..errors import (
    ArtifactError,
    BatchItemError,
    ContainerError,
    DeployFailedError,
    DeployTimeoutError,
    SalesforceError,
    StaticResourceError,
    StubCreationError,
)
from ..metadata.index import MetadataEntry, MetadataIndex
from ..metadata.types import MEMBER_TYPES, MetadataType
from ..tooling_client import ToolingClient
from .batch import map_limit
from .models import (
    ComponentResult,
    Container,
    ContainerStatus,
    DeployArtifact,
    DeployReport,
    DeployStrategy,
    Outcome,
    PollStatus,
)
from .report import build_report

logger = logging.getLogger(__name__)

STATIC_RESOURCE_CONTENT_TYPE = "application/zip"
UNKNOWN_ERROR = "an unknown error occurred"


def container_name() -> str:
    """Nome do container a partir do timestamp da sessao"""
    return f"sfdeploy:{int(time.time() * 1000)}"


def artifact_candidate(entry: MetadataEntry, mode: str = "resolved") -> bool:
    """
    Decide se a entrada vira artefato do container

    Args:
        entry: Entrada do indice
        mode: "resolved" inclui as entradas com id remoto; "unresolved"
            inclui as entradas sem id

    Returns:
        True se a entrada deve ser registrada no container
    """
    if entry.type not in MEMBER_TYPES or not entry.local_path:
        return False
    if mode == "unresolved":
        return not entry.has_remote_id
    return entry.has_remote_id


class ToolingDeployer:
    """
    Caminho incremental (Tooling API)

    Cada chamada de deploy() e uma sessao com um unico container.
    """

    def __init__(self, tooling: ToolingClient, options: DeployOptions):
        self.tooling = tooling
        self.options = options

    async def deploy(self, index: MetadataIndex) -> DeployReport:
        """
        Executa a sessao de deploy incremental

        Args:
            index: Indice com os arquivos locais

        Returns:
            DeployReport da sessao concluida com sucesso

        Raises:
            RemoteLookupError: Falha ao resolver ids
            ResourceCreationError: Falha em stubs, static resources ou artefatos
            ContainerError: Falha de protocolo do container
            DeployFailedError: O servidor sinalizou falha (carrega o relatorio)
        """
        await index.fetch_remote_ids(self.tooling)

        stubbed = await self.create_stubs(index)
        await self.upload_static_resources(index)

        entries = self.select_artifacts(index)
        if not entries:
            logger.info("Nenhum artefato para o container; submit ignorado")
            return build_report(None, DeployStrategy.TOOLING, success=True)

        async with self.open_container() as container:
            deployed = await self.create_artifacts(index, container, entries)
            status = await self.submit_and_poll(container)
            return self._build_report(status, deployed, stubbed)

    # ==================== RECURSOS ====================

    async def create_stubs(self, index: MetadataIndex) -> Set[Tuple[str, str]]:
        """
        Cria stubs para entradas sem id remoto

        Returns:
            Chaves (tipo, nome) criadas nesta sessao
        """
        deployable = index.list_deployable_types()
        candidates = [
            e for e in index.entries()
            if e.type in deployable and not e.has_remote_id
        ]

        async def create_stub(entry: MetadataEntry) -> str:
            result = await self.tooling.insert(entry.type, index.build_stub(entry))
            remote_id = (result or {}).get("id")
            if not remote_id:
                raise SalesforceError(f"insert de {entry.type} sem id: {result}")
            index.set_remote_id(entry.type, entry.name, remote_id)
            return remote_id

        try:
            await map_limit(candidates, create_stub, self.options.concurrency)
        except BatchItemError as e:
            raise StubCreationError(
                f"Falha ao criar stub de {e.item.type} {e.item.name}: {e.__cause__}"
            ) from e

        if candidates:
            logger.info(f"{len(candidates)} stubs criados")
        return {e.key for e in candidates}

    async def upload_static_resources(self, index: MetadataIndex) -> List[str]:
        """
        Envia cada StaticResource como application/zip em base64

        Returns:
            Ids dos static resources
        """
        resources = [
            e for e in index.entries(MetadataType.STATIC_RESOURCE.value)
            if e.local_path
        ]

        async def upload(entry: MetadataEntry) -> str:
            body = base64.b64encode(index.read_bytes(entry)).decode("utf-8")

            if entry.has_remote_id:
                await self.tooling.update(entry.type, entry.remote_id, {
                    "Body": body,
                    "ContentType": STATIC_RESOURCE_CONTENT_TYPE
                })
                return entry.remote_id

            result = await self.tooling.insert(entry.type, {
                "Name": entry.name,
                "Body": body,
                "ContentType": STATIC_RESOURCE_CONTENT_TYPE,
                "CacheControl": "Private"
            })
            remote_id = (result or {}).get("id")
            if not remote_id:
                raise SalesforceError(f"insert de {entry.type} sem id: {result}")
            index.set_remote_id(entry.type, entry.name, remote_id)
            return remote_id

        try:
            ids = await map_limit(resources, upload, self.options.concurrency)
        except BatchItemError as e:
            raise StaticResourceError(
                f"Falha ao enviar static resource {e.item.name}: {e.__cause__}"
            ) from e

        if ids:
            logger.info(f"{len(ids)} static resources enviados")
        return ids

    # ==================== CONTAINER ====================

    @asynccontextmanager
    async def open_container(self) -> AsyncIterator[Container]:
        """
        Cria o MetadataContainer e garante a remocao na saida

        Em erro, falha na remocao so e registrada em log e o erro original
        prevalece.
        """
        try:
            container = await self.tooling.create_container(container_name())
        except ContainerError:
            raise
        except SalesforceError as e:
            raise ContainerError(f"Falha ao criar container: {e}", e.error_code) from e

        logger.info(f"Container criado: {container.name} ({container.id})")

        try:
            yield container
        except BaseException:
            try:
                await self.tooling.delete_container(container.id)
                logger.info(f"Container removido: {container.id}")
            except SalesforceError as cleanup_error:
                logger.warning(f"Falha ao remover container {container.id}: {cleanup_error}")
            raise

        try:
            await self.tooling.delete_container(container.id)
        except SalesforceError as e:
            raise ContainerError(
                f"Falha ao remover container {container.id}: {e}",
                e.error_code
            ) from e
        logger.info(f"Container removido: {container.id}")

    def select_artifacts(self, index: MetadataIndex) -> List[MetadataEntry]:
        """Entradas do indice que viram artefatos, na ordem do indice"""
        mode = self.options.artifact_filter
        return [e for e in index.entries() if artifact_candidate(e, mode)]

    async def create_artifacts(
        self,
        index: MetadataIndex,
        container: Container,
        entries: List[MetadataEntry]
    ) -> List[MetadataEntry]:
        """
        Registra no container um artefato por entrada

        Returns:
            Entradas registradas
        """
        async def add(entry: MetadataEntry):
            artifact = DeployArtifact(
                member_type=MEMBER_TYPES[entry.type],
                body=index.read_body(entry),
                content_entity_id=entry.remote_id,
                full_name=entry.name
            )
            return await self.tooling.add_artifact(container.id, artifact)

        try:
            await map_limit(entries, add, self.options.concurrency)
        except BatchItemError as e:
            raise ArtifactError(
                f"Falha ao registrar {e.item.type} {e.item.name} no container: {e.__cause__}"
            ) from e

        logger.info(f"{len(entries)} artefatos registrados no container")
        return entries

    async def submit_and_poll(self, container: Container) -> ContainerStatus:
        """
        Submete o container e faz polling ate um estado terminal

        Erro de transporte no polling encerra a sessao (sem retry).

        Raises:
            ContainerError: Falha no submit ou no polling
            DeployTimeoutError: poll_timeout excedido
        """
        try:
            async_id = await self.tooling.submit_container(container.id, check_only=False)
        except ContainerError:
            raise
        except SalesforceError as e:
            raise ContainerError(f"Falha ao submeter container: {e}", e.error_code) from e

        loop = asyncio.get_running_loop()
        started = loop.time()
        timeout = self.options.poll_timeout

        while True:
            try:
                status = await self.tooling.poll_container(async_id)
            except SalesforceError as e:
                raise ContainerError(f"Falha no polling do container: {e}", e.error_code) from e

            logger.info(f"Deploy status: {status.raw_state or status.state.value}")

            if status.state.is_terminal:
                return status

            if timeout is not None and loop.time() - started >= timeout:
                raise DeployTimeoutError(
                    f"Container {container.id} nao terminou em {timeout}s"
                )

            await asyncio.sleep(self.options.poll_interval)

    # ==================== RESULTADO ====================

    def _build_report(
        self,
        status: ContainerStatus,
        deployed: List[MetadataEntry],
        stubbed: Set[Tuple[str, str]]
    ) -> DeployReport:
        include_coverage = self.options.coverage

        if status.state == PollStatus.COMPLETED:
            successes = [
                ComponentResult(
                    full_name=e.name,
                    component_type=e.type,
                    outcome=Outcome.CREATED if e.key in stubbed else Outcome.UPDATED
                )
                for e in deployed
            ]
            return build_report(
                status.details,
                DeployStrategy.TOOLING,
                success=True,
                include_coverage=include_coverage,
                successes=successes
            )

        if status.state == PollStatus.FAILED:
            report = build_report(
                status.details,
                DeployStrategy.TOOLING,
                success=False,
                include_coverage=include_coverage,
                error_message=status.error_message,
                failures=status.compiler_errors
            )
            message = status.error_message or (
                f"deploy failed with {len(report.failures)} component failure(s)"
            )
            raise DeployFailedError(message, report=report)

        message = status.error_message or UNKNOWN_ERROR
        report = build_report(
            status.details,
            DeployStrategy.TOOLING,
            success=False,
            include_coverage=include_coverage,
            error_message=message
        )
        raise DeployFailedError(message, report=report)
