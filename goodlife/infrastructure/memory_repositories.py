"""
In-memory keyed-map persistence.

Backs the REST API served by ``create_app``. Records are kept in their wire
(camelCase) form, validated through the domain models on every write, and handed
out as fresh model instances so callers never share state with the store.
"""

from typing import Any, Dict, List, Optional
import logging
import threading

from ..domain.errors import PersistenceError, SchemaError
from ..domain.models import DOMAIN_PLAN_UPDATABLE_FIELDS, DomainPlan, GoodLifePlan, now_utc
from ..domain.repositories import DomainPlanRepository, PlanRepository

logger = logging.getLogger(__name__)

PLAN_UPDATABLE = ('progress', 'status')


def _pick(changes: Dict[str, Any], allowed) -> Dict[str, Any]:
    if not isinstance(changes, dict):
        raise SchemaError("update body must be an object")
    ignored = set(changes) - set(allowed)
    if ignored:
        logger.debug(f"Ignoring non-updatable keys: {', '.join(sorted(ignored))}")
    return {key: value for key, value in changes.items() if key in allowed}


class InMemoryDomainPlanRepository(DomainPlanRepository):

    def __init__(self):
        self._records: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    async def list_by_plan(self, plan_id: int) -> List[DomainPlan]:
        with self._lock:
            records = [r for r in self._records.values() if r['planId'] == plan_id]
        return [DomainPlan.from_dict(r) for r in records]

    async def get_by_id(self, domain_plan_id: int) -> Optional[DomainPlan]:
        with self._lock:
            record = self._records.get(domain_plan_id)
        return DomainPlan.from_dict(record) if record is not None else None

    async def create(self, payload: Dict[str, Any]) -> DomainPlan:
        if not isinstance(payload, dict):
            raise SchemaError("domain plan must be an object")
        with self._lock:
            record = dict(payload, id=self._next_id, updatedAt=now_utc().isoformat())
            domain_plan = DomainPlan.from_dict(record, strict=True)
            for existing in self._records.values():
                if existing['planId'] == domain_plan.plan_id and existing['domain'] == domain_plan.domain.value:
                    raise PersistenceError(
                        f"Plan {domain_plan.plan_id} already has a {domain_plan.domain.value} domain plan",
                        status_code=409,
                    )
            self._records[domain_plan.id] = domain_plan.to_dict()
            self._next_id += 1
        logger.info(f"Created {domain_plan.domain.value} domain plan {domain_plan.id} for plan {domain_plan.plan_id}")
        return domain_plan

    async def update(self, domain_plan_id: int, changes: Dict[str, Any]) -> DomainPlan:
        updates = _pick(changes, DOMAIN_PLAN_UPDATABLE_FIELDS)
        with self._lock:
            current = self._records.get(domain_plan_id)
            if current is None:
                raise PersistenceError(f"Domain plan {domain_plan_id} not found", status_code=404)
            record = dict(current, **updates, updatedAt=now_utc().isoformat())
            domain_plan = DomainPlan.from_dict(record, strict=True)
            self._records[domain_plan_id] = domain_plan.to_dict()
        return domain_plan


class InMemoryPlanRepository(PlanRepository):

    def __init__(self):
        self._records: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    async def list_all(self) -> List[GoodLifePlan]:
        with self._lock:
            records = [self._records[key] for key in sorted(self._records)]
        return [GoodLifePlan.from_dict(record) for record in records]

    async def get_by_id(self, plan_id: int) -> Optional[GoodLifePlan]:
        with self._lock:
            record = self._records.get(plan_id)
        return GoodLifePlan.from_dict(record) if record is not None else None

    async def get_by_student(self, student_id: int) -> Optional[GoodLifePlan]:
        with self._lock:
            record = next((r for r in self._records.values() if r['studentId'] == student_id), None)
        return GoodLifePlan.from_dict(record) if record is not None else None

    async def create(self, payload: Dict[str, Any]) -> GoodLifePlan:
        if not isinstance(payload, dict):
            raise SchemaError("plan must be an object")
        with self._lock:
            timestamp = now_utc().isoformat()
            record = dict(payload, id=self._next_id, createdAt=timestamp, updatedAt=timestamp)
            plan = GoodLifePlan.from_dict(record)
            self._records[plan.id] = plan.to_dict()
            self._next_id += 1
        logger.info(f"Created plan {plan.id} for student {plan.student_id}")
        return plan

    async def update(self, plan_id: int, changes: Dict[str, Any]) -> GoodLifePlan:
        updates = _pick(changes, PLAN_UPDATABLE)
        with self._lock:
            current = self._records.get(plan_id)
            if current is None:
                raise PersistenceError(f"Plan {plan_id} not found", status_code=404)
            record = dict(current, **updates, updatedAt=now_utc().isoformat())
            plan = GoodLifePlan.from_dict(record)
            self._records[plan_id] = plan.to_dict()
        return plan


class InMemoryStore:
    """The repositories one application instance serves."""

    def __init__(self):
        self.plans = InMemoryPlanRepository()
        self.domain_plans = InMemoryDomainPlanRepository()
