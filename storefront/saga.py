"""
Ordered multi-step transactions with mixed failure policy.

Steps run strictly in order. A failing non-critical step is logged and
skipped; a failing critical step stops the run and marks it FAILED.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class PurchaseState(str, enum.Enum):
    ORDER_CREATED = "ORDER_CREATED"
    CAPTURED = "CAPTURED"
    LICENSE_ISSUED = "LICENSE_ISSUED"
    INVOICE_SENT = "INVOICE_SENT"
    LICENSE_EMAIL_SENT = "LICENSE_EMAIL_SENT"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


@dataclass
class SagaStep:
    name: str
    action: Callable[[], object]
    critical: bool = False
    # state entered once the step succeeds
    on_success: Optional[PurchaseState] = None


@dataclass
class SagaResult:
    state: PurchaseState
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.state != PurchaseState.FAILED


class Saga:
    def __init__(
        self,
        name: str,
        steps: List[SagaStep],
        initial: PurchaseState,
        final: Optional[PurchaseState] = None,
    ):
        self.name = name
        self.steps = steps
        self.initial = initial
        self.final = final

    def run(self) -> SagaResult:
        result = SagaResult(state=self.initial)
        for step in self.steps:
            try:
                step.action()
            except Exception as e:
                if step.critical:
                    logger.error("%s: critical step %s failed: %s", self.name, step.name, e)
                    result.state = PurchaseState.FAILED
                    result.failed_step = step.name
                    result.error = e
                    return result
                logger.exception("%s: step %s failed, continuing", self.name, step.name)
                result.skipped.append(step.name)
                continue
            result.completed.append(step.name)
            if step.on_success is not None:
                result.state = step.on_success
        if self.final is not None:
            result.state = self.final
        return result
