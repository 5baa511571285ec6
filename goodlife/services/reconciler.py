"""
Optimistic Mutation Reconciler

Installs locally mutated domain plans on the board immediately, then persists
them in the background and reconciles the outcome:

- success: the plan's cached domain collection is invalidated and refetched so
  derived views pick up the canonical server copy;
- failure: a notification is published and the aggregate is marked dirty. The
  local copy stays ahead of the server unless ``rollback_on_failure`` is set or
  the caller invokes ``rollback()``; the pre-mutation snapshot is kept for that.

There is no retry and no per-aggregate lock. Two mutations racing for the same
aggregate are sent in submission order and the server keeps whichever lands last.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple
import logging

from ..domain.board import PlanBoard
from ..domain.errors import GoodLifeError, PersistenceError, SchemaError
from ..domain.models import DOMAIN_PLAN_UPDATABLE_FIELDS, Domain, DomainPlan
from ..domain.repositories import DomainPlanRepository
from ..utils.simple_cache import DomainCollectionCache
from .notifications import NotificationCenter

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one submitted batch."""
    persisted: List[DomainPlan] = field(default_factory=list)
    failed: List[Tuple[Domain, GoodLifeError]] = field(default_factory=list)
    refreshed: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


class OptimisticMutationReconciler:
    """Keeps a PlanBoard and the persistence collaborator in step."""

    def __init__(self, board: PlanBoard, repository: DomainPlanRepository,
                 notifications: Optional[NotificationCenter] = None,
                 cache: Optional[DomainCollectionCache] = None, cache_ttl_seconds: int = 60,
                 rollback_on_failure: bool = False):
        self.board = board
        self.repository = repository
        self.notifications = notifications or NotificationCenter()
        self.cache = cache or DomainCollectionCache(cache_ttl_seconds)
        self.rollback_on_failure = rollback_on_failure

        self._listeners: List[Callable[[], None]] = []
        self._in_flight: Dict[Domain, int] = {}
        self._snapshots: Dict[Domain, Optional[DomainPlan]] = {}
        self._dirty: Dict[Domain, Set[str]] = {}
        self._server_ids: Dict[Domain, int] = {
            dp.domain: dp.id for dp in board.domain_plans() if dp.id is not None
        }
        self._creating: Dict[Domain, asyncio.Future] = {}
        # Bumped on every local change; a refresh skips domains that moved under it.
        self._sequence: Dict[Domain, int] = {}

    # ---------------------- State inspection ----------------------
    def add_listener(self, listener: Callable[[], None]) -> None:
        """Called after every change to the board."""
        self._listeners.append(listener)

    def in_flight(self, domain: Domain) -> int:
        return self._in_flight.get(domain, 0)

    @property
    def has_pending(self) -> bool:
        return any(self._in_flight.values())

    def is_dirty(self, domain: Domain) -> bool:
        return domain in self._dirty

    def dirty_domains(self) -> List[Domain]:
        return list(self._dirty)

    def snapshot_of(self, domain: Domain) -> Optional[DomainPlan]:
        """Last server-confirmed state of ``domain`` kept for rollback, if any."""
        return self._snapshots.get(domain)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ---------------------- Mutation ----------------------
    def apply_local(self, aggregates: Iterable[DomainPlan]) -> List[DomainPlan]:
        """Install aggregates on the board; returns private copies to send."""
        outgoing = []
        for aggregate in aggregates:
            domain = aggregate.domain
            if domain not in self._snapshots:
                current = self.board.get(domain)
                self._snapshots[domain] = current.copy() if current is not None else None
            self.board.replace(aggregate)
            self._sequence[domain] = self._sequence.get(domain, 0) + 1
            outgoing.append(aggregate.copy())
        self._changed()
        return outgoing

    def submit(self, aggregates: Sequence[DomainPlan],
               fields: Optional[Sequence[str]] = None) -> 'asyncio.Task[ReconcileResult]':
        """Apply locally now and persist in the background.

        Must be called from inside a running event loop. ``fields`` limits the
        PATCH body for aggregates that already have a server identity; creates
        always send the full aggregate.
        """
        loop = asyncio.get_running_loop()
        outgoing = self.apply_local(aggregates)
        for aggregate in outgoing:
            self._in_flight[aggregate.domain] = self._in_flight.get(aggregate.domain, 0) + 1
        return loop.create_task(self._persist_batch(outgoing, tuple(fields) if fields else None))

    async def commit(self, aggregates: Sequence[DomainPlan],
                     fields: Optional[Sequence[str]] = None) -> ReconcileResult:
        """submit() and wait for the outcome."""
        return await self.submit(aggregates, fields)

    async def _persist_batch(self, outgoing: List[DomainPlan],
                             fields: Optional[Tuple[str, ...]]) -> ReconcileResult:
        outcomes = await asyncio.gather(*(self._persist_one(aggregate, fields) for aggregate in outgoing))
        result = ReconcileResult()
        for aggregate, outcome in zip(outgoing, outcomes):
            if isinstance(outcome, GoodLifeError):
                result.failed.append((aggregate.domain, outcome))
            else:
                result.persisted.append(outcome)
        if result.persisted:
            result.refreshed = await self.refresh()
        return result

    async def _persist_one(self, aggregate: DomainPlan, fields: Optional[Tuple[str, ...]]):
        domain = aggregate.domain
        sent_fields = fields or DOMAIN_PLAN_UPDATABLE_FIELDS
        try:
            server_id = await self._resolve_server_id(aggregate)
            if server_id is None:
                stored = await self._create(aggregate)
                sent_fields = DOMAIN_PLAN_UPDATABLE_FIELDS
            else:
                stored = await self.repository.update(server_id, aggregate.to_update_payload(fields))
        except (PersistenceError, SchemaError) as e:
            self._finish(domain)
            self._on_failure(domain, e, sent_fields)
            return e
        self._finish(domain)
        self._on_success(domain, stored, sent_fields)
        return stored

    async def _resolve_server_id(self, aggregate: DomainPlan) -> Optional[int]:
        if aggregate.id is not None:
            return aggregate.id
        known = self._server_ids.get(aggregate.domain)
        if known is not None:
            return known
        pending = self._creating.get(aggregate.domain)
        if pending is not None:
            # An earlier mutation is creating this aggregate; update what it creates.
            return await asyncio.shield(pending)
        return None

    async def _create(self, aggregate: DomainPlan) -> DomainPlan:
        domain = aggregate.domain
        future = asyncio.get_running_loop().create_future()
        self._creating[domain] = future
        try:
            stored = await self.repository.create(aggregate.to_create_payload())
        except BaseException:
            future.set_result(None)
            raise
        else:
            self._server_ids[domain] = stored.id
            future.set_result(stored.id)
            return stored
        finally:
            if self._creating.get(domain) is future:
                del self._creating[domain]

    def _finish(self, domain: Domain) -> None:
        remaining = self._in_flight.get(domain, 0) - 1
        if remaining > 0:
            self._in_flight[domain] = remaining
        else:
            self._in_flight.pop(domain, None)

    def _on_success(self, domain: Domain, stored: DomainPlan, sent_fields: Sequence[str]) -> None:
        current = self.board.get(domain)
        if current is not None and current.id is None and stored.id is not None:
            self.board.replace(replace(current, id=stored.id))
        dirty = self._dirty.get(domain)
        if dirty is not None:
            dirty.difference_update(sent_fields)
            if not dirty:
                del self._dirty[domain]
        if not self.in_flight(domain) and domain not in self._dirty:
            self._snapshots.pop(domain, None)
        logger.info(f"Persisted {domain.value} plan {stored.id} for plan {self.board.plan_id}")

    def _on_failure(self, domain: Domain, error: GoodLifeError, sent_fields: Sequence[str]) -> None:
        self._dirty.setdefault(domain, set()).update(sent_fields)
        logger.error(f"Failed to persist {domain.value} plan for plan {self.board.plan_id}: {error}")
        self.notifications.error(
            f"Failed to save changes to the {domain.label} plan. Please try again.",
            domain=domain,
        )
        if self.rollback_on_failure:
            self.rollback(domain)

    def rollback(self, domain: Domain) -> bool:
        """Restore the last server-confirmed state of ``domain``."""
        if domain not in self._snapshots:
            return False
        snapshot = self._snapshots.pop(domain)
        self._dirty.pop(domain, None)
        if snapshot is None:
            known = self._server_ids.get(domain)
            if known is None:
                self.board.discard_unsaved(domain)
            else:
                # Created on the server after all; fall back to an empty shell of it.
                self.board.replace(DomainPlan(plan_id=self.board.plan_id, domain=domain, id=known))
        else:
            self.board.replace(snapshot)
        logger.warning(f"Rolled back {domain.value} plan for plan {self.board.plan_id}")
        self._changed()
        return True

    # ---------------------- Refresh ----------------------
    async def domain_plans(self) -> List[DomainPlan]:
        """Server copy of the plan's domain collection, cached."""
        plan_id = self.board.plan_id
        cached = self.cache.get(plan_id)
        if cached is not None:
            return cached
        generation = self.cache.generation(plan_id)
        plans = await self.repository.list_by_plan(plan_id)
        if not self.cache.put(plan_id, plans, generation=generation):
            logger.debug(f"Dropped a superseded domain list read for plan {plan_id}")
        return plans

    def invalidate(self) -> None:
        self.cache.invalidate(self.board.plan_id)

    async def refresh(self) -> bool:
        """Invalidate the cached collection and pull the server copy.

        Aggregates with mutations still in flight, with unconfirmed local
        changes, or changed locally while the read was pending keep their
        local version.
        """
        self.invalidate()
        started = dict(self._sequence)
        try:
            plans = await self.domain_plans()
        except PersistenceError as e:
            logger.warning(f"Refreshing domains of plan {self.board.plan_id} failed: {e}")
            self.notifications.warning("Could not refresh the plan from the server.")
            return False

        seen: Set[Domain] = set()
        for domain_plan in plans:
            domain = domain_plan.domain
            if domain in seen:
                continue
            seen.add(domain)
            if domain_plan.id is not None:
                self._server_ids.setdefault(domain, domain_plan.id)
            if self.in_flight(domain) or domain in self._dirty:
                continue
            if self._sequence.get(domain, 0) != started.get(domain, 0):
                logger.debug(f"Skipping stale refresh of {domain.value} plan for plan {self.board.plan_id}")
                continue
            self.board.replace(domain_plan)
            self._snapshots.pop(domain, None)
        logger.debug(f"Refreshed {len(seen)} domain plans for plan {self.board.plan_id}")
        self._changed()
        return True
