# -*- coding: utf-8 -*-
"""
Metadata Types
==============
Mapa estatico dos tipos de metadata conhecidos: pasta no projeto, extensao
dos arquivos, companion -meta.xml e tipo de membro do MetadataContainer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class MetadataType(str, Enum):
    """Tipos de metadata do Salesforce"""
    APEX_CLASS = "ApexClass"
    APEX_TRIGGER = "ApexTrigger"
    APEX_PAGE = "ApexPage"
    APEX_COMPONENT = "ApexComponent"
    STATIC_RESOURCE = "StaticResource"
    CUSTOM_OBJECT = "CustomObject"
    CUSTOM_TAB = "CustomTab"
    CUSTOM_APPLICATION = "CustomApplication"
    CUSTOM_LABELS = "CustomLabels"
    FLOW = "Flow"
    LAYOUT = "Layout"
    PROFILE = "Profile"
    PERMISSION_SET = "PermissionSet"
    REMOTE_SITE = "RemoteSiteSetting"
    NAMED_CREDENTIAL = "NamedCredential"
    LIGHTNING_COMPONENT = "LightningComponentBundle"
    AURA_COMPONENT = "AuraDefinitionBundle"


@dataclass(frozen=True)
class TypeInfo:
    """
    Descricao de um tipo de metadata

    Attributes:
        name: Nome do tipo na Metadata API
        folder: Pasta dentro de src/
        suffix: Extensao dos arquivos (sem ponto); None para bundles
        meta_file: Tipo exige companion <arquivo>-meta.xml
        member_type: Tipo de membro do MetadataContainer (None se o tipo
            nao pode ser enviado pela Tooling API)
        bundle: Componentes sao diretorios inteiros
    """
    name: str
    folder: str
    suffix: Optional[str] = None
    meta_file: bool = False
    member_type: Optional[str] = None
    bundle: bool = False


_TYPES = (
    TypeInfo("ApexClass", "classes", "cls", True, "ApexClassMember"),
    TypeInfo("ApexTrigger", "triggers", "trigger", True, "ApexTriggerMember"),
    TypeInfo("ApexPage", "pages", "page", True, "ApexPageMember"),
    TypeInfo("ApexComponent", "components", "component", True, "ApexComponentMember"),
    TypeInfo("StaticResource", "staticresources", "resource", True),
    TypeInfo("CustomObject", "objects", "object"),
    TypeInfo("CustomTab", "tabs", "tab"),
    TypeInfo("CustomApplication", "applications", "app"),
    TypeInfo("CustomLabels", "labels", "labels"),
    TypeInfo("Flow", "flows", "flow"),
    TypeInfo("Layout", "layouts", "layout"),
    TypeInfo("Profile", "profiles", "profile"),
    TypeInfo("PermissionSet", "permissionsets", "permissionset"),
    TypeInfo("RemoteSiteSetting", "remoteSiteSettings", "remoteSite"),
    TypeInfo("NamedCredential", "namedCredentials", "namedCredential"),
    TypeInfo("LightningComponentBundle", "lwc", bundle=True),
    TypeInfo("AuraDefinitionBundle", "aura", bundle=True),
)

TYPES_BY_NAME: Dict[str, TypeInfo] = {t.name: t for t in _TYPES}
TYPES_BY_FOLDER: Dict[str, TypeInfo] = {t.folder: t for t in _TYPES}

# Tipos que podem ser enviados em um MetadataContainer
MEMBER_TYPES: Dict[str, str] = {
    t.name: t.member_type for t in _TYPES if t.member_type
}

# Tipos tratados pela Tooling API fora do container
TOOLING_DIRECT_TYPES = frozenset({MetadataType.STATIC_RESOURCE.value})


def get_type(name: str) -> Optional[TypeInfo]:
    return TYPES_BY_NAME.get(name)


def type_for_folder(folder: str) -> Optional[TypeInfo]:
    return TYPES_BY_FOLDER.get(folder)


def is_metadata_folder(folder: str) -> bool:
    return folder in TYPES_BY_FOLDER
