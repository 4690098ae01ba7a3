# -*- coding: utf-8 -*-
"""
Deploy Models
=============
Tipos compartilhados pelos dois caminhos de deploy e pelo relatorio final.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DeployStrategy(str, Enum):
    """API usada na sessao de deploy"""
    TOOLING = "tooling"
    METADATA = "metadata"


class Outcome(str, Enum):
    """Resultado de um componente"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    NO_CHANGE = "noChange"
    FAILED = "failed"


class PollStatus(str, Enum):
    """Estado de um ContainerAsyncRequest"""
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    ERRORED = "Errored"

    @property
    def is_terminal(self) -> bool:
        return self in (PollStatus.COMPLETED, PollStatus.FAILED, PollStatus.ERRORED)

    @classmethod
    def from_state(cls, state: Optional[str]) -> "PollStatus":
        """Converte o campo State da Tooling API"""
        return _STATE_MAP.get((state or "").lower(), cls.IN_PROGRESS)


_STATE_MAP = {
    "queued": PollStatus.PENDING,
    "pending": PollStatus.PENDING,
    "inprogress": PollStatus.IN_PROGRESS,
    "completed": PollStatus.COMPLETED,
    "failed": PollStatus.FAILED,
    "error": PollStatus.ERRORED,
    "errored": PollStatus.ERRORED,
    "aborted": PollStatus.ERRORED,
    "invalidated": PollStatus.ERRORED,
}


@dataclass(frozen=True)
class Problem:
    """Problema de compilacao/validacao de um componente"""
    type: str = "Error"
    line: int = 0
    column: int = 0
    message: str = ""


@dataclass(frozen=True)
class ComponentResult:
    """Resultado de deploy de um componente"""
    full_name: str
    component_type: str
    outcome: Outcome
    problem: Optional[Problem] = None

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.component_type or "", self.full_name or "")

    @property
    def label(self) -> str:
        if self.component_type:
            return f"{self.component_type}: {self.full_name}"
        return self.full_name


@dataclass(frozen=True)
class CoverageEntry:
    """Coverage de uma classe ou trigger"""
    type: str
    name: str
    covered_locations: int
    total_locations: int
    coverage: float


@dataclass(frozen=True)
class TestRunSummary:
    """Resumo da execucao de testes"""
    tests_run: int = 0
    failures: int = 0
    total_time_ms: float = 0.0
    coverage: Tuple[CoverageEntry, ...] = ()
    coverage_warnings: Tuple[str, ...] = ()
    failure_messages: Tuple[str, ...] = ()

    # pytest nao deve coletar esta classe
    __test__ = False


@dataclass(frozen=True)
class DeployReport:
    """Relatorio final de uma sessao de deploy"""
    strategy: DeployStrategy
    success: bool
    successes: Tuple[ComponentResult, ...] = ()
    failures: Tuple[ComponentResult, ...] = ()
    test_run: Optional[TestRunSummary] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "strategy": self.strategy.value,
            "success": self.success,
            "successes": [
                {"fullName": c.full_name, "componentType": c.component_type, "outcome": c.outcome.value}
                for c in self.successes
            ],
            "failures": [
                {
                    "fullName": c.full_name,
                    "componentType": c.component_type,
                    "problemType": c.problem.type if c.problem else None,
                    "lineNumber": c.problem.line if c.problem else None,
                    "columnNumber": c.problem.column if c.problem else None,
                    "problem": c.problem.message if c.problem else None,
                }
                for c in self.failures
            ],
            "errorMessage": self.error_message,
        }
        if self.test_run is not None:
            data["testRun"] = {
                "testsRun": self.test_run.tests_run,
                "failures": self.test_run.failures,
                "totalTime": self.test_run.total_time_ms,
                "coverage": [
                    {"type": c.type, "name": c.name, "coverage": round(c.coverage, 2)}
                    for c in self.test_run.coverage
                ],
                "coverageWarnings": list(self.test_run.coverage_warnings),
                "failureMessages": list(self.test_run.failure_messages),
            }
        return data


# ==================== TOOLING ====================

@dataclass
class Container:
    """MetadataContainer efemero de uma sessao"""
    id: str
    name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class DeployArtifact:
    """Membro (ApexClassMember, ApexTriggerMember, ...) de um container"""
    member_type: str
    body: str
    content_entity_id: str
    full_name: str = ""


@dataclass
class ContainerStatus:
    """Resposta de polling de um ContainerAsyncRequest"""
    id: str
    state: PollStatus
    raw_state: str = ""
    error_message: Optional[str] = None
    compiler_errors: List[Dict[str, Any]] = field(default_factory=list)
    details: Optional[Dict[str, Any]] = None
