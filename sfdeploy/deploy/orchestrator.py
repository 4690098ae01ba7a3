# -*- coding: utf-8 -*-
"""
Deploy Orchestrator
===================
Carrega os arquivos locais no indice, escolhe o caminho de deploy e
despacha para o deployer correspondente.

Regra de escolha: Tooling API, a menos que
- o indice contenha tipos que so a Metadata API aceita
- a flag --meta tenha sido usada (force_metadata)
- a configuracao fixe deploy_mode = "metadata"

Exemplo de uso:
    options = DeployOptions.from_env(coverage=True)
    orchestrator = DeployOrchestrator(SalesforceClient(config), options)
    report = await orchestrator.run(["src/classes/*"])
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..config import DeployOptions
from ..errors import DiscoveryError
from ..local.files import get_files
from ..logging_config import LogContext
from ..metadata.index import MetadataIndex
from ..metadata_client import MetadataClient
from ..tooling_client import ToolingClient
from .metadata_deployer import MetadataDeployer
from .models import DeployReport, DeployStrategy
from .tooling_deployer import ToolingDeployer

logger = logging.getLogger(__name__)


class DeployOrchestrator:
    """Sessao de deploy: uma escolha de caminho, um relatorio"""

    def __init__(
        self,
        sf_client,
        options: Optional[DeployOptions] = None,
        tooling: Optional[ToolingClient] = None,
        metadata: Optional[MetadataClient] = None
    ):
        """
        Args:
            sf_client: SalesforceClient (conectado em run())
            options: Opcoes da sessao
            tooling: ToolingClient (default: criado sobre sf_client)
            metadata: MetadataClient (default: criado sobre sf_client)
        """
        self.sf = sf_client
        self.options = options or DeployOptions()
        self.tooling = tooling or ToolingClient(sf_client)
        self.metadata = metadata or MetadataClient(sf_client)

    @staticmethod
    def select_strategy(index: MetadataIndex, options: DeployOptions) -> DeployStrategy:
        """Escolhe o caminho de deploy da sessao"""
        if index.requires_full_deploy():
            return DeployStrategy.METADATA
        if options.force_metadata or options.deploy_mode == "metadata":
            return DeployStrategy.METADATA
        return DeployStrategy.TOOLING

    def build_index(self, files: Iterable[Union[str, Path]]) -> MetadataIndex:
        index = MetadataIndex(project_root=self.options.project_root)
        index.add_local_files(files)
        return index

    async def deploy(self, files: List[Union[str, Path]]) -> DeployReport:
        """
        Faz o deploy dos arquivos informados

        Args:
            files: Caminhos relativos ao projeto

        Returns:
            DeployReport

        Raises:
            DiscoveryError: Nenhum arquivo (ou nenhum componente reconhecido)
        """
        if not files:
            raise DiscoveryError("no files to deploy")

        index = self.build_index(files)
        if len(index) == 0:
            raise DiscoveryError("no deployable metadata found in the selected files")

        strategy = self.select_strategy(index, self.options)
        logger.info(f"Deploy de {len(index)} componentes via {strategy.value}")

        with LogContext(strategy=strategy.value):
            if strategy == DeployStrategy.METADATA:
                return await MetadataDeployer(self.metadata, self.options).deploy(index)
            return await ToolingDeployer(self.tooling, self.options).deploy(index)

    async def run(self, patterns: Optional[Iterable[str]] = None) -> DeployReport:
        """
        Descobre os arquivos, abre a sessao Salesforce e faz o deploy

        A sessao HTTP e sempre fechada.
        """
        files = get_files(patterns, root=self.options.project_root)
        if not files:
            raise DiscoveryError(
                f"no files match {list(patterns or []) or 'src/**/*'}"
            )

        await self.sf.connect()
        try:
            return await self.deploy(files)
        finally:
            await self.sf.close()
