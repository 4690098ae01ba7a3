# -*- coding: utf-8 -*-
"""
sfdeploy
========
Deploy de metadados locais para uma organizacao Salesforce.

Dois caminhos de deploy:
- Tooling API: insert/update direto e MetadataContainer efemero para
  classes, triggers, pages e components
- Metadata API: archive ZIP com package.xml e todos os arquivos

Exemplo de uso:
    from sfdeploy import DeployOptions, DeployOrchestrator, SalesforceClient, SalesforceConfig

    sf = SalesforceClient(SalesforceConfig.from_env())
    orchestrator = DeployOrchestrator(sf, DeployOptions(coverage=True))
    report = await orchestrator.run(["src/classes/*"])
"""

__version__ = '1.0.0'

from .config import DeployOptions, SalesforceConfig
from .client import SalesforceClient
from .metadata_client import MetadataClient
from .tooling_client import ToolingClient
from .deploy import DeployReport, DeployStrategy, Outcome
from .deploy.orchestrator import DeployOrchestrator
from .errors import DeployFailedError, SalesforceError

__all__ = [
    'DeployOptions',
    'SalesforceConfig',
    'SalesforceClient',
    'MetadataClient',
    'ToolingClient',
    'DeployOrchestrator',
    'DeployReport',
    'DeployStrategy',
    'Outcome',
    'DeployFailedError',
    'SalesforceError'
]
