"""
Repository interfaces for the domain layer.

These interfaces define the contracts for reaching the persistence collaborator
without coupling to a specific transport. The in-memory store behind the REST API
and the HTTP client used by the reconciler both implement them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any

from .models import DomainPlan, GoodLifePlan


class DomainPlanRepository(ABC):
    """Repository interface for DomainPlan aggregates."""

    @abstractmethod
    async def list_by_plan(self, plan_id: int) -> List[DomainPlan]:
        """Get every domain plan belonging to a plan."""
        pass

    @abstractmethod
    async def get_by_id(self, domain_plan_id: int) -> Optional[DomainPlan]:
        """Get a domain plan by ID."""
        pass

    @abstractmethod
    async def create(self, payload: Dict[str, Any]) -> DomainPlan:
        """Create a domain plan and return it with its assigned ID."""
        pass

    @abstractmethod
    async def update(self, domain_plan_id: int, changes: Dict[str, Any]) -> DomainPlan:
        """Apply a partial update and return the stored aggregate."""
        pass


class PlanRepository(ABC):
    """Repository interface for GoodLife plans."""

    @abstractmethod
    async def list_all(self) -> List[GoodLifePlan]:
        """Get every plan."""
        pass

    @abstractmethod
    async def get_by_id(self, plan_id: int) -> Optional[GoodLifePlan]:
        """Get a plan by ID."""
        pass

    @abstractmethod
    async def get_by_student(self, student_id: int) -> Optional[GoodLifePlan]:
        """Get the plan of a student."""
        pass

    @abstractmethod
    async def create(self, payload: Dict[str, Any]) -> GoodLifePlan:
        """Create a new plan."""
        pass

    @abstractmethod
    async def update(self, plan_id: int, changes: Dict[str, Any]) -> GoodLifePlan:
        """Apply a partial ``{progress, status}`` update."""
        pass
