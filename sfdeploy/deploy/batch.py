# -*- coding: utf-8 -*-
"""
Batch Executor
==============
Executa uma operacao assincrona sobre uma lista de itens com limite de
concorrencia.

- No maximo `limit` operacoes em andamento
- Resultados na ordem da entrada
- Na primeira falha nenhum item novo e despachado; os que ja estao em
  andamento terminam normalmente (nao sao cancelados) e o primeiro erro e
  levantado como BatchItemError

Exemplo de uso:
    ids = await map_limit(entries, create_stub, limit=5)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from ..errors import BatchItemError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 5


async def map_limit(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[R]],
    limit: int = DEFAULT_CONCURRENCY
) -> List[R]:
    """
    Executa operation(item) para cada item com no maximo `limit` em paralelo

    Args:
        items: Itens de trabalho
        operation: Funcao async aplicada a cada item
        limit: Maximo de operacoes simultaneas

    Returns:
        Resultados na mesma ordem de items

    Raises:
        ValueError: Se limit < 1
        BatchItemError: Primeira falha, com o indice e o item que falhou
    """
    if limit < 1:
        raise ValueError("limit deve ser >= 1")

    items = list(items)
    if not items:
        return []

    semaphore = asyncio.Semaphore(limit)
    results: List[Any] = [None] * len(items)
    first_error: Optional[Tuple[int, T, Exception]] = None

    async def run_with_semaphore(index: int, item: T):
        nonlocal first_error
        async with semaphore:
            if first_error is not None:
                return
            try:
                results[index] = await operation(item)
            except Exception as e:
                if first_error is None:
                    first_error = (index, item, e)
                    logger.debug(f"Lote interrompido no item {index}: {e}")

    await asyncio.gather(*[run_with_semaphore(i, item) for i, item in enumerate(items)])

    if first_error is not None:
        index, item, error = first_error
        raise BatchItemError(index, item, error) from error

    return results
