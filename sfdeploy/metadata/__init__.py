# -*- coding: utf-8 -*-
"""
Metadata
========
Indice local dos componentes e mapa de tipos de metadata.
"""

from .index import MetadataEntry, MetadataIndex, classify_path
from .types import MEMBER_TYPES, MetadataType, TypeInfo, get_type, is_metadata_folder

__all__ = [
    'MetadataEntry',
    'MetadataIndex',
    'classify_path',
    'MEMBER_TYPES',
    'MetadataType',
    'TypeInfo',
    'get_type',
    'is_metadata_folder'
]
