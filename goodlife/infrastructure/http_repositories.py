"""
HTTP client for the GoodLife persistence collaborator.

Speaks the REST wire protocol (``/plans``, ``/domain-plans``) with ``requests``.
Calls are blocking, so the async repositories hand them to the default executor.
Any transport failure or non-success response is raised as PersistenceError.
"""

import asyncio
from typing import Any, Dict, List, Optional
import logging

import requests

from ..domain.errors import PersistenceError, SchemaError
from ..domain.models import DomainPlan, GoodLifePlan
from ..domain.repositories import DomainPlanRepository, PlanRepository

logger = logging.getLogger(__name__)


class GoodLifeApiClient:
    def __init__(self, base_url: str, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    def _url(self, path: str) -> str:
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.base_url}{path}"

    def request_sync(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        try:
            resp = self.session.request(method, url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise PersistenceError(f"{method} {url} failed: {e}")

        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = None
                if 200 <= resp.status_code < 300:
                    raise PersistenceError(f"{method} {url} returned invalid JSON", resp.status_code)

        if not 200 <= resp.status_code < 300:
            message = body.get('message') if isinstance(body, dict) else None
            raise PersistenceError(
                f"{method} {url} returned {resp.status_code}" + (f": {message}" if message else ''),
                status_code=resp.status_code,
                payload=body,
            )
        logger.debug(f"{method} {url} -> {resp.status_code}")
        return body

    async def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.request_sync, method, path, payload)


def _parse(factory, data: Any, what: str):
    try:
        return factory(data)
    except SchemaError as e:
        raise PersistenceError(f"Server returned an invalid {what}: {e}", payload=data)


class HttpDomainPlanRepository(DomainPlanRepository):
    """DomainPlan repository backed by the REST API."""

    def __init__(self, client: GoodLifeApiClient):
        self.client = client

    async def list_by_plan(self, plan_id: int) -> List[DomainPlan]:
        data = await self.client.request('GET', f'/plans/{plan_id}/domains')
        if not isinstance(data, list):
            raise PersistenceError(f"Expected a list of domain plans for plan {plan_id}", payload=data)
        return [_parse(DomainPlan.from_dict, item, 'domain plan') for item in data]

    async def get_by_id(self, domain_plan_id: int) -> Optional[DomainPlan]:
        try:
            data = await self.client.request('GET', f'/domain-plans/{domain_plan_id}')
        except PersistenceError as e:
            if e.status_code == 404:
                return None
            raise
        return _parse(DomainPlan.from_dict, data, 'domain plan')

    async def create(self, payload: Dict[str, Any]) -> DomainPlan:
        data = await self.client.request('POST', '/domain-plans', payload)
        return _parse(DomainPlan.from_dict, data, 'domain plan')

    async def update(self, domain_plan_id: int, changes: Dict[str, Any]) -> DomainPlan:
        data = await self.client.request('PATCH', f'/domain-plans/{domain_plan_id}', changes)
        return _parse(DomainPlan.from_dict, data, 'domain plan')


class HttpPlanRepository(PlanRepository):
    """GoodLifePlan repository backed by the REST API."""

    def __init__(self, client: GoodLifeApiClient):
        self.client = client

    async def _get_or_none(self, path: str) -> Optional[GoodLifePlan]:
        try:
            data = await self.client.request('GET', path)
        except PersistenceError as e:
            if e.status_code == 404:
                return None
            raise
        return _parse(GoodLifePlan.from_dict, data, 'plan')

    async def list_all(self) -> List[GoodLifePlan]:
        data = await self.client.request('GET', '/plans')
        if not isinstance(data, list):
            raise PersistenceError("Expected a list of plans", payload=data)
        return [_parse(GoodLifePlan.from_dict, item, 'plan') for item in data]

    async def get_by_id(self, plan_id: int) -> Optional[GoodLifePlan]:
        return await self._get_or_none(f'/plans/{plan_id}')

    async def get_by_student(self, student_id: int) -> Optional[GoodLifePlan]:
        return await self._get_or_none(f'/students/{student_id}/plan')

    async def create(self, payload: Dict[str, Any]) -> GoodLifePlan:
        data = await self.client.request('POST', '/plans', payload)
        return _parse(GoodLifePlan.from_dict, data, 'plan')

    async def update(self, plan_id: int, changes: Dict[str, Any]) -> GoodLifePlan:
        data = await self.client.request('PATCH', f'/plans/{plan_id}', changes)
        return _parse(GoodLifePlan.from_dict, data, 'plan')
