# -*- coding: utf-8 -*-
"""
Deploy
======
Orquestracao do deploy: escolha de caminho, deployers Tooling e Metadata,
execucao em lote e relatorio.

O pacote exporta apenas modelos, execucao em lote e relatorio. Os
deployers e o orquestrador dependem dos clientes da API e sao importados
pelos seus modulos:

    from sfdeploy.deploy.orchestrator import DeployOrchestrator
    from sfdeploy.deploy.tooling_deployer import ToolingDeployer
"""

from .batch import map_limit
from .models import (
    ComponentResult,
    Container,
    ContainerStatus,
    CoverageEntry,
    DeployArtifact,
    DeployReport,
    DeployStrategy,
    Outcome,
    PollStatus,
    Problem,
    TestRunSummary,
)
from .report import build_report, classify_success, compute_coverage, render_report

__all__ = [
    'map_limit',
    'ComponentResult',
    'Container',
    'ContainerStatus',
    'CoverageEntry',
    'DeployArtifact',
    'DeployReport',
    'DeployStrategy',
    'Outcome',
    'PollStatus',
    'Problem',
    'TestRunSummary',
    'build_report',
    'classify_success',
    'compute_coverage',
    'render_report'
]
