# -*- coding: utf-8 -*-
"""
Salesforce Metadata API Client
==============================
Cliente para Metadata API do Salesforce.

A Metadata API permite deploy de um archive ZIP com package.xml e todos os
arquivos dos componentes, acompanhado por checkDeployStatus ate terminar.

Exemplo de uso:
    metadata = MetadataClient(sf_client)

    deploy_id = await metadata.deploy(zip_bytes, {"rollbackOnError": True})
    result = await metadata.check_deploy_status(deploy_id)

    # Ou, em uma chamada so:
    result = await metadata.deploy_and_poll(
        zip_bytes,
        {"rollbackOnError": True},
        on_poll=lambda r: print(r.status)
    )
"""

import asyncio
import base64
import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import aiohttp

from .errors import MetadataDeployError, SalesforceError

logger = logging.getLogger(__name__)

# Namespace da Metadata API
METADATA_NS = "http://soap.sforce.com/2006/04/metadata"

# Campos de DeployDetails que sempre sao listas
_LIST_FIELDS = {
    "componentSuccesses",
    "componentFailures",
    "codeCoverage",
    "codeCoverageWarnings",
    "failures",
    "successes",
}


@dataclass
class DeployResult:
    """Resultado de um deploy"""
    id: str
    success: bool = False
    done: bool = False
    status: str = "Unknown"
    state_detail: Optional[str] = None
    error_message: Optional[str] = None
    error_status_code: Optional[str] = None
    number_components_deployed: int = 0
    number_components_total: int = 0
    number_tests_completed: int = 0
    number_tests_total: int = 0
    details: Dict[str, Any] = field(default_factory=dict)


class MetadataClient:
    """
    Cliente para Metadata API do Salesforce

    Usa a sessao e o token do SalesforceClient.
    """

    def __init__(self, sf_client):
        """
        Inicializa o cliente de Metadata

        Args:
            sf_client: SalesforceClient autenticado
        """
        self.sf = sf_client

    @property
    def metadata_url(self) -> str:
        """URL da Metadata API"""
        return self.sf.config.metadata_url

    async def _soap_request(
        self,
        action: str,
        body: str,
        timeout: int = 120
    ) -> str:
        """
        Faz requisicao SOAP para Metadata API

        Args:
            action: Nome da operacao SOAP
            body: Corpo da requisicao XML
            timeout: Timeout em segundos

        Returns:
            Resposta XML

        Raises:
            SalesforceError: Em erro de conexao ou SOAP fault
        """
        envelope = f"""<?xml version="1.0" encoding="UTF-8"?>
        <soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
                          xmlns:met="{METADATA_NS}">
            <soapenv:Header>
                <met:SessionHeader>
                    <met:sessionId>{self.sf.config.access_token}</met:sessionId>
                </met:SessionHeader>
            </soapenv:Header>
            <soapenv:Body>
                {body}
            </soapenv:Body>
        </soapenv:Envelope>"""

        headers = {
            "Content-Type": "text/xml; charset=UTF-8",
            "SOAPAction": action
        }

        session = await self.sf._get_session()
        try:
            async with session.post(
                self.metadata_url,
                data=envelope,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SalesforceError(f"Erro de conexao ({action}): {e}") from e

        if status >= 400:
            fault = self.sf._parse_soap_error(text)
            raise SalesforceError(fault or f"HTTP {status}", details={"status": status})

        return text

    # ==================== DEPLOY ====================

    async def deploy(
        self,
        zip_file: bytes,
        options: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Inicia deploy de componentes

        Args:
            zip_file: Arquivo ZIP com package.xml e componentes
            options: Opcoes de deploy (rollbackOnError, checkOnly, testLevel...)

        Returns:
            ID do deploy job
        """
        options = options or {}

        options_xml = ""
        if options:
            options_parts = []
            for key, value in options.items():
                if isinstance(value, bool):
                    value = str(value).lower()
                options_parts.append(f"<met:{key}>{value}</met:{key}>")
            options_xml = f"<met:DeployOptions>{''.join(options_parts)}</met:DeployOptions>"

        zip_base64 = base64.b64encode(zip_file).decode('utf-8')

        body = f"""
        <met:deploy>
            <met:ZipFile>{zip_base64}</met:ZipFile>
            {options_xml}
        </met:deploy>
        """

        response = await self._soap_request("deploy", body, timeout=300)

        try:
            root = ET.fromstring(response)
        except ET.ParseError as e:
            raise SalesforceError(f"Resposta de deploy invalida: {e}") from e

        for elem in root.iter():
            if elem.tag.split('}')[-1] == 'id' and elem.text:
                return elem.text

        raise SalesforceError("Nao foi possivel obter ID do deploy")

    async def check_deploy_status(
        self,
        deploy_id: str,
        include_details: bool = True
    ) -> DeployResult:
        """
        Verifica status de um deploy

        Args:
            deploy_id: ID do deploy
            include_details: Incluir detalhes de componentes e testes

        Returns:
            DeployResult com status e detalhes
        """
        body = f"""
        <met:checkDeployStatus>
            <met:asyncProcessId>{deploy_id}</met:asyncProcessId>
            <met:includeDetails>{str(include_details).lower()}</met:includeDetails>
        </met:checkDeployStatus>
        """

        response = await self._soap_request("checkDeployStatus", body)
        return self._parse_deploy_result(response, deploy_id)

    def _parse_deploy_result(self, response: str, deploy_id: str) -> DeployResult:
        """Parseia resultado de checkDeployStatus"""
        try:
            root = ET.fromstring(response)
        except ET.ParseError as e:
            raise SalesforceError(f"Erro ao parsear resultado do deploy: {e}") from e

        result_elem = None
        for elem in root.iter():
            if elem.tag.split('}')[-1] == 'result':
                result_elem = elem
                break

        result = DeployResult(id=deploy_id)
        if result_elem is None:
            return result

        data = _element_to_dict(result_elem)

        result.done = _as_bool(data.get("done"))
        result.success = _as_bool(data.get("success"))
        result.status = data.get("status") or "Unknown"
        result.state_detail = data.get("stateDetail")
        result.error_message = data.get("errorMessage")
        result.error_status_code = data.get("errorStatusCode")
        result.number_components_deployed = _as_int(data.get("numberComponentsDeployed"))
        result.number_components_total = _as_int(data.get("numberComponentsTotal"))
        result.number_tests_completed = _as_int(data.get("numberTestsCompleted"))
        result.number_tests_total = _as_int(data.get("numberTestsTotal"))

        details = data.get("details")
        if isinstance(details, dict):
            result.details = details

        return result

    async def deploy_and_poll(
        self,
        zip_file: bytes,
        options: Optional[Dict[str, Any]] = None,
        include_details: bool = True,
        on_poll: Optional[Callable[[DeployResult], None]] = None,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None
    ) -> DeployResult:
        """
        Faz deploy e aguarda conclusao

        Args:
            zip_file: Arquivo ZIP com componentes
            options: Opcoes de deploy
            include_details: Pedir detalhes no checkDeployStatus
            on_poll: Callback chamado a cada verificacao de status
            poll_interval: Intervalo de verificacao em segundos
            timeout: Timeout maximo em segundos (None = sem limite)

        Returns:
            DeployResult final com success=True

        Raises:
            MetadataDeployError: Se o deploy terminou sem sucesso (carrega
                os detalhes parciais)
        """
        deploy_id = await self.deploy(zip_file, options)
        logger.info(f"Deploy iniciado: {deploy_id}")

        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            result = await self.check_deploy_status(deploy_id, include_details)

            if on_poll is not None:
                on_poll(result)

            if result.done:
                break

            if timeout is not None and loop.time() - start_time > timeout:
                raise MetadataDeployError(
                    f"Deploy timeout apos {timeout}s",
                    deploy_details=result.details
                )

            logger.debug(f"Deploy status: {result.status}")
            await asyncio.sleep(poll_interval)

        if not result.success:
            raise MetadataDeployError(
                result.error_message or f"Deploy terminou com status {result.status}",
                deploy_details=result.details,
                error_code=result.error_status_code
            )

        return result


def build_archive(
    files: List[Tuple[str, Union[str, bytes]]],
    package_xml: str,
    root: str = "src"
) -> bytes:
    """Monta o ZIP com o manifest em <root>/package.xml"""
    zip_buffer = io.BytesIO()

    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        for path, content in files:
            if isinstance(content, str):
                content = content.encode('utf-8')
            zf.writestr(path, content)

        zf.writestr(f"{root}/package.xml", package_xml)

    return zip_buffer.getvalue()


def _element_to_dict(elem: ET.Element) -> Dict[str, Any]:
    """Converte elemento XML para dicionario"""
    result: Dict[str, Any] = {}

    for child in elem:
        tag = child.tag.split('}')[-1]
        value = _element_to_dict(child) if len(child) > 0 else child.text

        if tag in _LIST_FIELDS:
            result.setdefault(tag, []).append(value)
        elif tag in result:
            if not isinstance(result[tag], list):
                result[tag] = [result[tag]]
            result[tag].append(value)
        else:
            result[tag] = value

    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").lower() == "true"


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
