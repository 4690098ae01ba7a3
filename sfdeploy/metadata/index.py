# -*- coding: utf-8 -*-
"""
Metadata Index
==============
Indice dos metadados locais de uma sessao de deploy.

Mantem, por tipo, as entradas (tipo, nome) encontradas no projeto na ordem
em que foram adicionadas, junto com o id remoto de cada uma quando ele ja
existe na organizacao.

Exemplo de uso:
    index = MetadataIndex(project_root=Path("."))
    index.add_local_files(["src/classes/Foo.cls", "src/triggers/Bar.trigger"])

    await index.fetch_remote_ids(tooling)
    if index.requires_full_deploy():
        package_xml = index.render_manifest("59.0")
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union
from xml.sax.saxutils import escape

from ..errors import RemoteLookupError, SalesforceError
from .types import (
    MEMBER_TYPES,
    TOOLING_DIRECT_TYPES,
    MetadataType,
    TypeInfo,
    get_type,
    type_for_folder,
)

logger = logging.getLogger(__name__)

METADATA_NS = "http://soap.sforce.com/2006/04/metadata"

_TRIGGER_SOBJECT = re.compile(r"trigger\s+\w+\s+on\s+(\w+)", re.IGNORECASE)


@dataclass
class MetadataEntry:
    """Componente de metadata identificado por (tipo, nome)"""
    type: str
    name: str
    remote_id: Optional[str] = None
    local_path: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.type, self.name)

    @property
    def has_remote_id(self) -> bool:
        return bool(self.remote_id)


class MetadataIndex:
    """
    Indice tipo -> entradas ordenadas

    Cada arquivo local aparece exatamente uma vez; componentes em bundle
    (aura, lwc) viram uma unica entrada apontando para o diretorio.
    """

    def __init__(self, project_root: Union[str, Path, None] = None):
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._entries: Dict[str, "OrderedDict[str, MetadataEntry]"] = OrderedDict()

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def __iter__(self) -> Iterator[MetadataEntry]:
        for entries in self._entries.values():
            yield from entries.values()

    def types(self) -> List[str]:
        """Tipos presentes no indice, na ordem de insercao"""
        return [t for t, entries in self._entries.items() if entries]

    def entries(self, metadata_type: Optional[str] = None) -> List[MetadataEntry]:
        if metadata_type is None:
            return list(self)
        return list(self._entries.get(metadata_type, {}).values())

    def get(self, metadata_type: str, name: str) -> Optional[MetadataEntry]:
        return self._entries.get(metadata_type, {}).get(name)

    def add(self, entry: MetadataEntry) -> MetadataEntry:
        """Adiciona uma entrada; se a chave ja existe, retorna a existente"""
        entries = self._entries.setdefault(entry.type, OrderedDict())
        existing = entries.get(entry.name)
        if existing is not None:
            if entry.local_path and not existing.local_path:
                existing.local_path = entry.local_path
            return existing
        entries[entry.name] = entry
        return entry

    # ==================== ARQUIVOS LOCAIS ====================

    def add_local_files(self, files: Iterable[Union[str, Path]]) -> List[MetadataEntry]:
        """
        Adiciona arquivos locais ao indice

        Args:
            files: Caminhos relativos ao projeto (ou absolutos dentro dele)

        Returns:
            Entradas novas, na ordem dos arquivos
        """
        added = []
        for file_path in files:
            relative = self._relative(file_path)
            classified = classify_path(relative)
            if classified is None:
                logger.debug(f"Ignorando arquivo sem tipo conhecido: {relative}")
                continue

            info, name, local_path = classified
            if self.get(info.name, name) is not None:
                continue

            added.append(self.add(MetadataEntry(info.name, name, local_path=local_path)))

        logger.debug(f"{len(added)} componentes adicionados ao indice")
        return added

    def _relative(self, file_path: Union[str, Path]) -> str:
        path = Path(file_path)
        if path.is_absolute():
            try:
                path = path.relative_to(self.project_root)
            except ValueError:
                pass
        return path.as_posix()

    def read_body(self, entry: MetadataEntry) -> str:
        """Le o conteudo local de uma entrada"""
        return (self.project_root / entry.local_path).read_text(encoding="utf-8")

    def read_bytes(self, entry: MetadataEntry) -> bytes:
        return (self.project_root / entry.local_path).read_bytes()

    # ==================== IDS REMOTOS ====================

    def list_deployable_types(self) -> Set[str]:
        """Tipos que podem ser enviados em um MetadataContainer"""
        return set(MEMBER_TYPES)

    async def fetch_remote_ids(self, tooling) -> List[str]:
        """
        Resolve os ids remotos das entradas do indice

        Faz uma consulta SOQL por tipo consultavel presente no indice.

        Args:
            tooling: ToolingClient conectado

        Returns:
            Ids encontrados

        Raises:
            RemoteLookupError: Se alguma consulta falhar
        """
        lookup_types = self.list_deployable_types() | set(TOOLING_DIRECT_TYPES)
        found = []

        for metadata_type in self.types():
            if metadata_type not in lookup_types:
                continue

            names = [e.name for e in self.entries(metadata_type)]
            soql = (
                f"SELECT Id, Name FROM {metadata_type} "
                f"WHERE Name IN ({', '.join(_soql_quote(n) for n in names)})"
            )
            try:
                records = await tooling.query(soql)
            except SalesforceError as e:
                raise RemoteLookupError(
                    f"Falha ao consultar ids de {metadata_type}: {e}",
                    e.error_code
                ) from e

            for record in records:
                entry = self.get(metadata_type, record.get("Name"))
                if entry is not None and record.get("Id"):
                    entry.remote_id = record["Id"]
                    found.append(record["Id"])

        logger.info(f"{len(found)} ids remotos carregados")
        return found

    def set_remote_id(self, metadata_type: str, name: str, remote_id: str) -> MetadataEntry:
        """Registra o id remoto de uma entrada (criando-a se necessario)"""
        entry = self.get(metadata_type, name)
        if entry is None:
            entry = self.add(MetadataEntry(metadata_type, name))
        entry.remote_id = remote_id
        return entry

    # ==================== METADATA API ====================

    def requires_full_deploy(self) -> bool:
        """
        Indica se algum tipo presente so pode ser enviado pela Metadata API
        """
        tooling_types = self.list_deployable_types() | set(TOOLING_DIRECT_TYPES)
        return any(t not in tooling_types for t in self.types())

    def render_manifest(self, api_version: str) -> str:
        """
        Gera o package.xml com todos os componentes do indice

        Args:
            api_version: Versao da API (ex: "59.0")

        Returns:
            Conteudo do package.xml
        """
        types_xml = []
        for metadata_type in sorted(self.types()):
            members = sorted(e.name for e in self.entries(metadata_type))
            members_xml = "\n        ".join(f"<members>{escape(m)}</members>" for m in members)
            types_xml.append(f"""
    <types>
        {members_xml}
        <name>{metadata_type}</name>
    </types>""")

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="{METADATA_NS}">{"".join(types_xml)}
    <version>{api_version}</version>
</Package>
"""

    def file_paths_for_deploy(self) -> List[str]:
        """
        Caminhos locais que entram no archive

        Inclui o companion -meta.xml dos tipos que o exigem; bundles entram
        como diretorio.
        """
        paths = []
        for entry in self:
            if not entry.local_path:
                continue
            paths.append(entry.local_path)
            info = get_type(entry.type)
            if info is not None and info.meta_file:
                paths.append(f"{entry.local_path}-meta.xml")
        return paths

    # ==================== STUBS ====================

    def build_stub(self, entry: MetadataEntry) -> Dict[str, str]:
        """
        Campos minimos para criar a entrada remotamente e obter um id

        Raises:
            ValueError: Se o tipo nao admite stub
        """
        name = entry.name

        if entry.type == MetadataType.APEX_CLASS.value:
            return {"Name": name, "Body": f"public class {name} {{}}"}

        if entry.type == MetadataType.APEX_TRIGGER.value:
            sobject = self._trigger_sobject(entry)
            return {
                "Name": name,
                "TableEnumOrId": sobject,
                "Body": f"trigger {name} on {sobject} (before insert) {{}}"
            }

        if entry.type == MetadataType.APEX_PAGE.value:
            return {"Name": name, "MasterLabel": name, "Markup": "<apex:page></apex:page>"}

        if entry.type == MetadataType.APEX_COMPONENT.value:
            return {
                "Name": name,
                "MasterLabel": name,
                "Markup": "<apex:component></apex:component>"
            }

        raise ValueError(f"Tipo sem stub: {entry.type}")

    def _trigger_sobject(self, entry: MetadataEntry) -> str:
        body = self.read_body(entry) if entry.local_path else ""
        match = _TRIGGER_SOBJECT.search(body)
        if not match:
            raise ValueError(f"Nao foi possivel identificar o objeto do trigger {entry.name}")
        return match.group(1)


def classify_path(path: str) -> Optional[Tuple[TypeInfo, str, str]]:
    """
    Identifica tipo e nome de um arquivo pelo caminho

    Returns:
        (tipo, nome, caminho da entrada) ou None para arquivos sem tipo
        conhecido e companions -meta.xml
    """
    parts = PurePosixPath(path).parts
    if not parts or parts[-1].endswith("-meta.xml"):
        return None

    for position, folder in enumerate(parts[:-1]):
        info = type_for_folder(folder)
        if info is None:
            continue

        if info.bundle:
            name = parts[position + 1]
            return info, name, "/".join(parts[:position + 2])

        filename = parts[-1]
        extension = f".{info.suffix}"
        if not filename.endswith(extension):
            return None
        return info, filename[:-len(extension)], "/".join(parts)

    return None


def _soql_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
