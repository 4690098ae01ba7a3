# -*- coding: utf-8 -*-
"""
Salesforce Client
=================
Sessao HTTP autenticada com a organizacao Salesforce.

Funcionalidades:
- Autenticacao via Username/Password (SOAP login) ou token ja emitido
- Sessao aiohttp compartilhada pelos clientes Tooling e Metadata
- Retry com backoff exponencial em erros de conexao
- Mapeamento de respostas de erro para excecoes tipadas

Exemplo de uso:
    from sfdeploy.client import SalesforceClient
    from sfdeploy.config import SalesforceConfig

    async with SalesforceClient(SalesforceConfig.from_env()) as sf:
        tooling = ToolingClient(sf)
        records = await tooling.query("SELECT Id FROM ApexClass LIMIT 1")
"""

import asyncio
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional
from xml.sax.saxutils import escape

import aiohttp

from .config import SalesforceConfig
from .errors import AuthenticationError, DMLError, RateLimitError, SalesforceError

logger = logging.getLogger(__name__)


class SalesforceClient:
    """
    Cliente base do Salesforce

    Mantem a sessao HTTP e as credenciais. Os clientes de Tooling API e
    Metadata API recebem uma instancia conectada.
    """

    def __init__(self, config: SalesforceConfig):
        """
        Inicializa o cliente Salesforce

        Args:
            config: Configuracao de conexao
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self._connected = False

    @property
    def api_version(self) -> str:
        return self.config.api_version

    @property
    def is_connected(self) -> bool:
        """Verifica se esta conectado"""
        return self._connected and self.config.access_token is not None

    @property
    def headers(self) -> Dict[str, str]:
        """Headers padrao para requisicoes"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    async def __aenter__(self):
        """Context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Obtem ou cria sessao HTTP"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=self.config.verify_ssl)
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout
            )
        return self._session

    async def close(self):
        """Fecha a sessao HTTP"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._connected = False

    # ==================== AUTENTICACAO ====================

    async def connect(self) -> bool:
        """
        Estabelece conexao com Salesforce

        Usa o token configurado quando existir; caso contrario faz login
        SOAP com usuario, senha e security token.

        Returns:
            True se conectou com sucesso

        Raises:
            AuthenticationError: Se falhar na autenticacao
        """
        try:
            self.config.validate()
        except ValueError as e:
            raise AuthenticationError(str(e)) from e

        if self.config.has_token:
            self._connected = True
            logger.debug(f"Usando token configurado para {self.config.instance_url}")
            return True

        await self._authenticate_soap()
        self._connected = True
        logger.info(f"Conectado ao Salesforce: {self.config.instance_url}")
        return True

    async def _authenticate_soap(self):
        """Autentica via SOAP (Username/Password + Security Token)"""
        password = f"{self.config.password}{self.config.security_token or ''}"
        soap_envelope = f"""<?xml version="1.0" encoding="utf-8"?>
        <env:Envelope xmlns:xsd="http://www.w3.org/2001/XMLSchema"
                      xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
                      xmlns:env="http://schemas.xmlsoap.org/soap/envelope/">
            <env:Body>
                <n1:login xmlns:n1="urn:partner.soap.sforce.com">
                    <n1:username>{escape(self.config.username or '')}</n1:username>
                    <n1:password>{escape(password)}</n1:password>
                </n1:login>
            </env:Body>
        </env:Envelope>"""

        headers = {
            "Content-Type": "text/xml; charset=UTF-8",
            "SOAPAction": "login"
        }

        session = await self._get_session()
        try:
            async with session.post(
                self.config.soap_url,
                data=soap_envelope,
                headers=headers
            ) as response:
                response_text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthenticationError(f"Erro de conexao no login: {e}") from e

        if status != 200:
            error_msg = self._parse_soap_error(response_text)
            raise AuthenticationError(error_msg or f"HTTP {status}")

        self._parse_login_response(response_text)

    def _parse_soap_error(self, response_text: str) -> Optional[str]:
        """Extrai mensagem de erro de resposta SOAP"""
        try:
            root = ET.fromstring(response_text)
        except ET.ParseError:
            return None

        for elem in root.iter():
            if elem.tag.split('}')[-1].lower() == "faultstring":
                return elem.text
        return None

    def _parse_login_response(self, response_text: str):
        """Parseia resposta de login SOAP"""
        try:
            root = ET.fromstring(response_text)
        except ET.ParseError as e:
            raise AuthenticationError(f"Erro ao parsear resposta SOAP: {e}") from e

        session_id = None
        server_url = None

        for elem in root.iter():
            tag_name = elem.tag.split('}')[-1].lower()

            if tag_name == 'sessionid' and elem.text:
                session_id = elem.text
            elif tag_name == 'serverurl' and elem.text:
                server_url = elem.text
            elif tag_name == 'userid' and elem.text:
                self.config.user_id = elem.text
            elif tag_name == 'organizationid' and elem.text:
                self.config.organization_id = elem.text

        if not session_id:
            raise AuthenticationError("Session ID nao encontrado na resposta")

        # server_url e algo como: https://na1.salesforce.com/services/Soap/u/59.0/00D...
        if server_url:
            instance_url = server_url.split('/services/')[0]
        else:
            instance_url = self.config.login_url

        self.config.access_token = session_id
        self.config.instance_url = instance_url

    # ==================== REQUISICOES ====================

    async def _send(
        self,
        method: str,
        url: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        retry: bool = True
    ) -> Any:
        """
        Faz requisicao JSON autenticada

        Args:
            method: Metodo HTTP (GET, POST, PATCH, DELETE)
            url: URL absoluta
            data: Dados para enviar no body
            params: Parametros de query string
            retry: Repetir em erro de conexao (backoff exponencial)

        Returns:
            Resposta da API (JSON) ou None para respostas vazias

        Raises:
            SalesforceError: Em caso de erro
        """
        if not self.is_connected:
            raise SalesforceError("Nao conectado. Chame connect() primeiro.")

        attempts = self.config.max_retries if retry else 1
        reauthenticated = False
        session = await self._get_session()

        attempt = 0
        while attempt < attempts:
            try:
                async with session.request(
                    method,
                    url,
                    json=data,
                    params=params,
                    headers=self.headers
                ) as response:
                    if response.status == 429:
                        retry_after = response.headers.get("Retry-After", "60")
                        raise RateLimitError(
                            f"Rate limit excedido. Aguarde {retry_after}s"
                        )

                    # Sessao expirada - novo login uma unica vez
                    if response.status == 401 and self.config.username and not reauthenticated:
                        reauthenticated = True
                        await self._authenticate_soap()
                        continue

                    response_text = await response.text()

                    if response.status == 401:
                        raise AuthenticationError(f"Sessao invalida: {response_text}")

                    if response.status >= 400:
                        self._handle_error_response(response.status, response_text)

                    if not response_text:
                        return None

                    return json.loads(response_text)

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                attempt += 1
                if attempt < attempts:
                    await asyncio.sleep(2 ** (attempt - 1))
                    continue
                raise SalesforceError(f"Erro de conexao: {e}") from e

        raise SalesforceError("Maximo de tentativas excedido")

    def _handle_error_response(self, status: int, response_text: str):
        """Processa resposta de erro"""
        try:
            errors = json.loads(response_text)
        except json.JSONDecodeError:
            errors = None

        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            error = errors[0]
            raise DMLError(
                error.get("message", response_text),
                error.get("errorCode"),
                error.get("fields", []),
                details={"status": status}
            )
        if isinstance(errors, dict):
            raise SalesforceError(
                errors.get("message", response_text),
                errors.get("errorCode"),
                details={"status": status}
            )

        raise SalesforceError(f"HTTP {status}: {response_text}", details={"status": status})
