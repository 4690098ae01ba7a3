# -*- coding: utf-8 -*-
"""
Local Files
===========
Seleciona os arquivos do projeto para deploy a partir de padroes glob,
descontando o que estiver listado em .sfdeployignore.

Exemplo de .sfdeployignore:
    # arquivos gerados
    src/staticresources/*.resource
    **/*.bak
"""

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = ("src/**/*",)
IGNORE_FILE = ".sfdeployignore"


def load_ignores(root: Union[str, Path]) -> List[str]:
    """Le os padroes de .sfdeployignore (linhas vazias e # sao ignoradas)"""
    ignore_path = Path(root) / IGNORE_FILE
    if not ignore_path.is_file():
        return []

    patterns = []
    for line in ignore_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line.rstrip("/"))
    return patterns


def is_ignored(path: str, ignores: Iterable[str]) -> bool:
    """
    Verifica se um caminho relativo casa com algum padrao de ignore

    Um padrao casa com o caminho inteiro, com o nome do arquivo ou com
    qualquer diretorio pai.
    """
    name = path.rsplit("/", 1)[-1]
    parents = [path[:i] for i, char in enumerate(path) if char == "/"]

    for pattern in ignores:
        if fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(name, pattern):
            return True
        if any(fnmatch.fnmatch(parent, pattern) for parent in parents):
            return True
    return False


def get_files(
    patterns: Optional[Iterable[str]] = None,
    root: Union[str, Path, None] = None,
    ignores: Optional[Iterable[str]] = None
) -> List[str]:
    """
    Lista os arquivos que casam com os padroes

    Args:
        patterns: Globs relativos ao projeto (default: src/**/*)
        root: Diretorio do projeto (default: diretorio atual)
        ignores: Padroes a descartar (default: conteudo de .sfdeployignore)

    Returns:
        Caminhos relativos (posix), ordenados e sem duplicatas, sem os
        companions -meta.xml
    """
    root = Path(root) if root else Path.cwd()
    patterns = list(patterns or DEFAULT_PATTERNS)
    ignores = list(load_ignores(root) if ignores is None else ignores)

    found = set()
    for pattern in patterns:
        for path in root.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if relative.endswith("-meta.xml") or is_ignored(relative, ignores):
                continue
            found.add(relative)

    files = sorted(found)
    logger.debug(f"{len(files)} arquivos encontrados para {patterns}")
    return files
