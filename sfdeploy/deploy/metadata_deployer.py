# -*- coding: utf-8 -*-
"""
Metadata Deployer
=================
Deploy completo via Metadata API: package.xml + todos os arquivos em um
archive ZIP sob src/, submetido como uma unidade.

Exemplo de uso:
    deployer = MetadataDeployer(metadata_client, options)
    report = await deployer.deploy(index)
"""

import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from ..config import DeployOptions
from ..errors import DeployFailedError, MetadataDeployError, MissingFilesError
from ..metadata.index import MetadataIndex
from ..metadata.types import is_metadata_folder
from ..metadata_client import DeployResult, MetadataClient, build_archive
from .batch import map_limit
from .models import DeployReport, DeployStrategy
from .report import build_report

logger = logging.getLogger(__name__)

DEPLOY_OPTIONS = {"rollbackOnError": True}


def normalize_archive_path(path: str, root: str = "src") -> str:
    """
    Coloca o caminho sob o diretorio raiz do archive

    Exemplos:
        "src/classes/Foo.cls"      -> "src/classes/Foo.cls"
        "classes/Foo.cls"          -> "src/classes/Foo.cls"
        "force-app/classes/Foo.cls" -> "src/classes/Foo.cls"
    """
    parts = PurePosixPath(path.replace("\\", "/")).parts
    if not parts:
        return root
    if parts[0] == root:
        return "/".join(parts)
    if is_metadata_folder(parts[0]):
        return "/".join((root,) + parts)
    return "/".join((root,) + parts[1:])


class MetadataDeployer:
    """Caminho completo (Metadata API)"""

    def __init__(self, metadata: MetadataClient, options: DeployOptions):
        self.metadata = metadata
        self.options = options

    @property
    def project_root(self) -> Path:
        return Path(self.options.project_root)

    async def deploy(self, index: MetadataIndex) -> DeployReport:
        """
        Monta o archive e faz deploy-and-poll

        Args:
            index: Indice com os arquivos locais

        Returns:
            DeployReport de um deploy concluido com sucesso

        Raises:
            MissingFilesError: Algum arquivo do indice nao existe (nada e enviado)
            DeployFailedError: A Metadata API sinalizou falha
        """
        api_version = self.metadata.sf.api_version
        package_xml = index.render_manifest(api_version)
        files = await self.collect_files(index.file_paths_for_deploy())

        logger.info(f"Archive com {len(files)} arquivos (API {api_version})")
        zip_bytes = build_archive(
            [(name, path.read_bytes()) for name, path in files],
            package_xml,
            root=self.options.source_root
        )

        try:
            result = await self.metadata.deploy_and_poll(
                zip_bytes,
                dict(DEPLOY_OPTIONS),
                include_details=True,
                on_poll=self._on_poll,
                poll_interval=self.options.poll_interval,
                timeout=self.options.poll_timeout
            )
        except MetadataDeployError as e:
            report = build_report(
                e.deploy_details,
                DeployStrategy.METADATA,
                success=False,
                include_coverage=self.options.coverage,
                error_message=e.message
            )
            raise DeployFailedError(e.message, report=report) from e

        return build_report(
            result.details,
            DeployStrategy.METADATA,
            success=True,
            include_coverage=self.options.coverage
        )

    async def collect_files(self, paths: List[str]) -> List[Tuple[str, Path]]:
        """
        Verifica a existencia de cada caminho e expande diretorios

        Returns:
            Lista de (caminho no archive, caminho local)

        Raises:
            MissingFilesError: Com todos os caminhos ausentes
        """
        root = self.options.source_root

        async def resolve(path: str) -> Optional[List[Tuple[str, Path]]]:
            local = self.project_root / path
            archive_path = normalize_archive_path(path, root)

            if local.is_dir():
                return [
                    (f"{archive_path}/{f.relative_to(local).as_posix()}", f)
                    for f in sorted(local.rglob("*")) if f.is_file()
                ]
            if local.is_file():
                return [(archive_path, local)]
            return None

        resolved = await map_limit(paths, resolve, self.options.concurrency)

        missing = [path for path, found in zip(paths, resolved) if found is None]
        if missing:
            raise MissingFilesError(missing)

        files = []
        seen = set()
        for found in resolved:
            for name, local in found:
                if name not in seen:
                    seen.add(name)
                    files.append((name, local))
        return files

    def _on_poll(self, result: DeployResult) -> None:
        detail = f" ({result.state_detail})" if result.state_detail else ""
        progress = (
            f" - componentes {result.number_components_deployed}/{result.number_components_total}"
        )
        if result.number_tests_total:
            progress += f", testes {result.number_tests_completed}/{result.number_tests_total}"
        logger.info(f"Deploy status: {result.status}{detail}{progress}")
