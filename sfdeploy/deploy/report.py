# -*- coding: utf-8 -*-
"""
Result Reporter
===============
Normaliza os resultados dos dois caminhos de deploy (DeployDetails da
Tooling API e da Metadata API) em um DeployReport ordenado.

Exemplo de uso:
    report = build_report(details, DeployStrategy.METADATA, success=True,
                          include_coverage=True)
    render_report(report, output)
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    ComponentResult,
    CoverageEntry,
    DeployReport,
    DeployStrategy,
    Outcome,
    Problem,
    TestRunSummary,
)

logger = logging.getLogger(__name__)


# ==================== CLASSIFICACAO ====================

def classify_success(raw: Dict[str, Any]) -> Outcome:
    """
    Classifica um componentSuccess pelas flags created/changed/deleted

    Args:
        raw: Item de componentSuccesses (flags bool ou "true"/"false")

    Returns:
        CREATED, UPDATED, DELETED ou NO_CHANGE
    """
    if _flag(raw.get("created")):
        return Outcome.CREATED
    if _flag(raw.get("changed")):
        return Outcome.UPDATED
    if _flag(raw.get("deleted")):
        return Outcome.DELETED
    return Outcome.NO_CHANGE


def success_result(raw: Dict[str, Any]) -> ComponentResult:
    return ComponentResult(
        full_name=_text(raw.get("fullName")),
        component_type=_text(raw.get("componentType")),
        outcome=classify_success(raw)
    )


def failure_result(raw: Dict[str, Any]) -> ComponentResult:
    """
    Converte um componentFailure (Metadata API) ou CompilerError (Tooling
    API) em ComponentResult com o problema estruturado

    No CompilerError o tipo do componente vem em `extent`.
    """
    problem = Problem(
        type=_text(raw.get("problemType")) or "Error",
        line=_int(raw.get("lineNumber", raw.get("line"))),
        column=_int(raw.get("columnNumber", raw.get("column"))),
        message=_text(raw.get("problem"))
    )
    return ComponentResult(
        full_name=_text(raw.get("fullName") or raw.get("name")),
        component_type=_text(
            raw.get("componentType") or _first(raw.get("extent")) or raw.get("type")
        ),
        outcome=Outcome.FAILED,
        problem=problem
    )


# ==================== COVERAGE ====================

def compute_coverage(total: int, not_covered: int) -> float:
    """
    Percentual de linhas cobertas

    Zero linhas contam como 100% de cobertura.
    """
    if total == 0:
        return 100.0
    return 100.0 * (total - not_covered) / total


def coverage_entries(raw_coverage: Iterable[Dict[str, Any]]) -> List[CoverageEntry]:
    """Coverage por componente, em ordem decrescente de percentual"""
    entries = []
    for item in raw_coverage:
        total = _int(item.get("numLocations"))
        not_covered = _int(item.get("numLocationsNotCovered"))
        entries.append(CoverageEntry(
            type=_text(item.get("type")),
            name=_text(item.get("name")),
            covered_locations=total - not_covered,
            total_locations=total,
            coverage=compute_coverage(total, not_covered)
        ))
    # sorted e estavel: empates mantem a ordem da API
    return sorted(entries, key=lambda c: -c.coverage)


def build_test_run(raw: Dict[str, Any], include_coverage: bool = False) -> TestRunSummary:
    """
    Resume um runTestResult

    Args:
        raw: runTestResult da API
        include_coverage: Calcular coverage por componente
    """
    coverage = ()
    if include_coverage:
        coverage = tuple(coverage_entries(_as_list(raw.get("codeCoverage"))))

    warnings = tuple(
        _text(w.get("message")) if isinstance(w, dict) else _text(w)
        for w in _as_list(raw.get("codeCoverageWarnings"))
    )
    failure_messages = tuple(
        _text(f.get("message")) if isinstance(f, dict) else _text(f)
        for f in _as_list(raw.get("failures"))
    )

    return TestRunSummary(
        tests_run=_int(raw.get("numTestsRun")),
        failures=_int(raw.get("numFailures")),
        total_time_ms=_float(raw.get("totalTime")),
        coverage=coverage,
        coverage_warnings=warnings,
        failure_messages=failure_messages
    )


# ==================== RELATORIO ====================

def build_report(
    details: Optional[Dict[str, Any]],
    strategy: DeployStrategy,
    success: bool,
    include_coverage: bool = False,
    error_message: Optional[str] = None,
    successes: Optional[Iterable[ComponentResult]] = None,
    failures: Optional[Iterable[Dict[str, Any]]] = None
) -> DeployReport:
    """
    Monta o DeployReport a partir de DeployDetails

    Args:
        details: DeployDetails (componentSuccesses, componentFailures,
            runTestResult); pode ser None
        strategy: Caminho de deploy usado
        success: Resultado geral sinalizado pela API
        include_coverage: Incluir coverage por componente
        error_message: Mensagem de erro geral
        successes: Sucessos ja classificados, usados quando details nao
            traz componentSuccesses
        failures: Falhas brutas, usadas quando details nao traz
            componentFailures

    Returns:
        DeployReport com sucessos e falhas ordenados por (tipo, nome)
    """
    details = details or {}

    raw_successes = _as_list(details.get("componentSuccesses"))
    if raw_successes:
        success_list = [success_result(raw) for raw in raw_successes]
    else:
        success_list = list(successes or [])

    raw_failures = _as_list(details.get("componentFailures")) or list(failures or [])
    failure_list = [failure_result(raw) for raw in raw_failures]

    test_run = None
    raw_tests = details.get("runTestResult")
    if isinstance(raw_tests, dict):
        test_run = build_test_run(raw_tests, include_coverage)

    return DeployReport(
        strategy=strategy,
        success=success,
        successes=tuple(sorted(success_list, key=lambda c: c.sort_key)),
        failures=tuple(sorted(failure_list, key=lambda c: c.sort_key)),
        test_run=test_run,
        error_message=error_message
    )


def render_report(report: DeployReport, output) -> None:
    """
    Escreve o relatorio no Output da CLI

    Em falha, a lista de problemas vem antes dos sucessos.
    """
    if report.success:
        _render_successes(report, output)
        _render_failures(report, output)
    else:
        _render_failures(report, output)
        _render_successes(report, output)

    if report.test_run is not None:
        _render_test_run(report.test_run, output)


def _render_successes(report: DeployReport, output) -> None:
    if not report.successes:
        return

    output.success(f"component successes [{len(report.successes)}] ====>")
    for component in report.successes:
        if component.outcome == Outcome.CREATED:
            output.create(component.label)
        elif component.outcome == Outcome.UPDATED:
            output.update(component.label)
        elif component.outcome == Outcome.DELETED:
            output.destroy(component.label)
        else:
            output.no_change(component.label)


def _render_failures(report: DeployReport, output) -> None:
    if not report.failures:
        return

    output.error(f"component failures [{len(report.failures)}] ====>")
    for component in report.failures:
        problem = component.problem or Problem()
        output.list_error(
            f"[{component.label}] {problem.type} at "
            f"l:{problem.line}/c:{problem.column} => {problem.message}"
        )


def _render_test_run(test_run: TestRunSummary, output) -> None:
    if test_run.failures:
        output.error("test results ====>")
    else:
        output.success("test results ====>")

    output.list(f"tests run: {test_run.tests_run}")
    output.list(f"failures: {test_run.failures}")
    output.list(f"total time: {test_run.total_time_ms:g}")

    if test_run.coverage:
        output.success("code coverage results ====>")
        for c in test_run.coverage:
            output.list(
                f"{c.coverage:.2f}% => {c.type}:{c.name} "
                f"({c.covered_locations}/{c.total_locations})"
            )

    if test_run.coverage_warnings:
        output.error("code coverage warnings ====>")
        for warning in test_run.coverage_warnings:
            output.list(warning)

    for message in test_run.failure_messages:
        output.list_error(message)


# ==================== HELPERS ====================

def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
