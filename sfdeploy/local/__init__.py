# -*- coding: utf-8 -*-
"""
Local
=====
Descoberta dos arquivos locais do projeto.
"""

from .files import DEFAULT_PATTERNS, IGNORE_FILE, get_files, load_ignores

__all__ = ['DEFAULT_PATTERNS', 'IGNORE_FILE', 'get_files', 'load_ignores']
