# -*- coding: utf-8 -*-
"""
Pytest Configuration and Fixtures
=================================

Fixtures compartilhadas pelos testes do sfdeploy: projeto local em
diretorio temporario, opcoes de deploy sem espera de polling e clientes
Tooling/Metadata mockados.
"""

import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from sfdeploy.config import DeployOptions, SalesforceConfig
from sfdeploy.deploy.models import Container, ContainerStatus, PollStatus

# Set test environment
os.environ["TESTING"] = "1"


# ==================== PROJETO LOCAL ====================

def write_file(root: Path, relative: str, content: str = "") -> Path:
    """Cria um arquivo (e os diretorios) dentro do projeto"""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def meta_xml(api_version: str = "59.0") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<ApexClass xmlns="http://soap.sforce.com/2006/04/metadata">\n'
        f"    <apiVersion>{api_version}</apiVersion>\n"
        "    <status>Active</status>\n"
        "</ApexClass>\n"
    )


@pytest.fixture
def project_dir(tmp_path):
    """Projeto com duas classes, um trigger e um static resource"""
    write_file(tmp_path, "src/classes/AccountService.cls", "public class AccountService {}")
    write_file(tmp_path, "src/classes/AccountService.cls-meta.xml", meta_xml())
    write_file(tmp_path, "src/classes/ContactService.cls", "public class ContactService {}")
    write_file(tmp_path, "src/classes/ContactService.cls-meta.xml", meta_xml())
    write_file(
        tmp_path,
        "src/triggers/AccountTrigger.trigger",
        "trigger AccountTrigger on Account (before insert, before update) {\n}\n"
    )
    write_file(tmp_path, "src/triggers/AccountTrigger.trigger-meta.xml", meta_xml())
    (tmp_path / "src/staticresources").mkdir(parents=True)
    (tmp_path / "src/staticresources/logo.resource").write_bytes(b"PK\x03\x04fake")
    write_file(tmp_path, "src/staticresources/logo.resource-meta.xml", "<StaticResource/>")
    return tmp_path


@pytest.fixture
def class_files():
    return ["src/classes/AccountService.cls", "src/classes/ContactService.cls"]


# ==================== CONFIGURACOES DE TESTE ====================

@pytest.fixture
def tenant_id():
    """Org usada nos testes"""
    return "dev"


@pytest.fixture
def salesforce_config(tenant_id):
    """Configuracao ja autenticada (token + instance_url)"""
    return SalesforceConfig(
        tenant_id=tenant_id,
        username="test@example.com",
        password="test-password",
        security_token="test-token",
        instance_url="https://test.my.salesforce.com",
        access_token="00D000000000001!AQ0AQ",
        max_retries=2
    )


@pytest.fixture
def deploy_options(project_dir):
    """Opcoes de deploy sem espera entre polls"""
    return DeployOptions(poll_interval=0, project_root=project_dir)


# ==================== CLIENTES MOCKADOS ====================

def container_status(state: PollStatus, **kwargs) -> ContainerStatus:
    return ContainerStatus(id="1dr000000000001", state=state, raw_state=state.value, **kwargs)


@pytest.fixture
def mock_tooling():
    """ToolingClient mockado: nenhum id remoto, inserts retornam ids novos"""
    tooling = MagicMock()
    tooling.query = AsyncMock(return_value=[])

    counter = {"n": 0}

    async def insert(sobject, fields):
        counter["n"] += 1
        return {"id": f"01p00000000000{counter['n']}", "success": True}

    tooling.insert = AsyncMock(side_effect=insert)
    tooling.update = AsyncMock(side_effect=lambda sobject, record_id, fields: {"id": record_id})
    tooling.delete = AsyncMock(return_value=True)
    tooling.create_container = AsyncMock(
        return_value=Container(id="1dc000000000001", name="sfdeploy:1700000000000")
    )
    tooling.add_artifact = AsyncMock(return_value={"id": "400000000000001", "success": True})
    tooling.submit_container = AsyncMock(return_value="1dr000000000001")
    tooling.poll_container = AsyncMock(return_value=container_status(PollStatus.COMPLETED))
    tooling.delete_container = AsyncMock(return_value=True)
    return tooling


@pytest.fixture
def mock_metadata():
    """MetadataClient mockado"""
    metadata = MagicMock()
    metadata.sf = MagicMock()
    metadata.sf.api_version = "59.0"
    metadata.deploy_and_poll = AsyncMock()
    return metadata


@pytest.fixture
def mock_http_response():
    """Factory de respostas aiohttp mockadas"""
    def _create(status=200, text=""):
        response = MagicMock()
        response.status = status
        response.headers = {}
        response.text = AsyncMock(return_value=text)
        return response
    return _create


@pytest.fixture
def mock_aiohttp_session():
    """Sessao aiohttp mockada; request() e post() sao async context managers"""
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    return session


def bind_response(method_mock, *responses):
    """Faz method_mock(...) retornar context managers com as respostas"""
    contexts = []
    for response in responses:
        context = MagicMock()
        if isinstance(response, BaseException):
            context.__aenter__ = AsyncMock(side_effect=response)
        else:
            context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        contexts.append(context)
    method_mock.side_effect = contexts


@pytest.fixture
def make_file():
    """Factory: make_file(root, "src/classes/Foo.cls", conteudo)"""
    return write_file


@pytest.fixture
def make_status():
    """Factory de ContainerStatus"""
    return container_status


@pytest.fixture
def bind_responses():
    """Factory: bind_responses(session.request, resp1, resp2, ...)"""
    return bind_response
