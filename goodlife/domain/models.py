"""
Domain models for GoodLife plans.

These models represent the planning entities independent of persistence concerns.
Goal records never travel on their own: they are always embedded in the ``goals``
field of their owning DomainPlan. Parsing a wire payload into these models is the
schema validation step at the persistence boundary.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, date, timezone
from typing import Optional, List, Dict, Any, Iterable
from enum import Enum
import logging
import uuid

from .errors import SchemaError

logger = logging.getLogger(__name__)

DEFAULT_VISION_AGE = 30
# Wire keys a PATCH /domain-plans/{id} may change.
DOMAIN_PLAN_UPDATABLE_FIELDS = ('vision', 'visionAge', 'visionMedia', 'goals', 'completed')


def now_utc() -> datetime:
    """Timezone-aware UTC now for default timestamps."""
    return datetime.now(timezone.utc)


def new_goal_id() -> str:
    return f"goal-{uuid.uuid4().hex[:12]}"


def new_dependency_id() -> str:
    return f"dep-{uuid.uuid4().hex[:12]}"


class Domain(Enum):
    """The six fixed life domains goals are bucketed into."""
    SAFE = "safe"
    HEALTHY = "healthy"
    ENGAGED = "engaged"
    CONNECTED = "connected"
    INDEPENDENT = "independent"
    INCLUDED = "included"

    @property
    def label(self) -> str:
        return DOMAIN_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> 'Domain':
        if isinstance(value, Domain):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown domain: {value!r}")


DOMAIN_LABELS: Dict[Domain, str] = {
    Domain.SAFE: "Safe",
    Domain.HEALTHY: "Healthy",
    Domain.ENGAGED: "Engaged",
    Domain.CONNECTED: "Connected",
    Domain.INDEPENDENT: "Independent",
    Domain.INCLUDED: "Included & Heard",
}

# Presentation order of the board columns.
DOMAIN_ORDER = tuple(Domain)
DOMAIN_COUNT = len(DOMAIN_ORDER)


class GoalStatus(Enum):
    """Goal status. A single "advance" action cycles through all three states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    def advance(self) -> 'GoalStatus':
        return _STATUS_CYCLE[self]

    @classmethod
    def parse(cls, value: Any) -> 'GoalStatus':
        if isinstance(value, GoalStatus):
            return value
        if value in (None, ''):
            return cls.NOT_STARTED
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown goal status: {value!r}")


_STATUS_CYCLE = {
    GoalStatus.NOT_STARTED: GoalStatus.IN_PROGRESS,
    GoalStatus.IN_PROGRESS: GoalStatus.COMPLETED,
    GoalStatus.COMPLETED: GoalStatus.NOT_STARTED,
}


class GoalPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> Optional['GoalPriority']:
        if value in (None, ''):
            return None
        if isinstance(value, GoalPriority):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown goal priority: {value!r}")


class PlanStatus(Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> 'PlanStatus':
        if isinstance(value, PlanStatus):
            return value
        if value in (None, ''):
            return cls.IN_PROGRESS
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown plan status: {value!r}")


def _optional_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if not isinstance(value, str):
        raise SchemaError(f"{key} must be a string")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise SchemaError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SchemaError(f"{key} must be an integer")


def _bool(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise SchemaError(f"{key} must be a boolean")
    return value


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise SchemaError(f"Invalid timestamp: {value!r}")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class GoalDependency:
    """A "must complete before" edge from the owning goal to ``goal_id``.

    ``description`` is a snapshot of the dependency's description taken when the
    edge was added. It is a cached label and goes stale when the referenced goal
    is later edited; see ``goodlife.domain.dependencies`` for live resolution.
    """
    id: str
    goal_id: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'goalId': self.goal_id,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GoalDependency':
        if not isinstance(data, dict):
            raise SchemaError("dependency must be an object")
        goal_id = data.get('goalId')
        if goal_id in (None, ''):
            raise SchemaError("dependency.goalId is required")
        edge_id = data.get('id') or data.get('dependencyId') or new_dependency_id()
        return cls(
            id=str(edge_id),
            goal_id=str(goal_id),
            description=str(data.get('description') or ''),
        )


@dataclass
class Goal:
    """A single actionable item inside a domain plan."""
    id: str
    description: str
    domain_id: Domain
    status: GoalStatus = GoalStatus.NOT_STARTED

    # Reframing: negatively framed descriptions are flagged for a positive rewrite
    needs_reframing: bool = False
    reframed_description: Optional[str] = None
    is_reframed: bool = False

    # Descriptive metadata, no invariants beyond type
    category: Optional[str] = None
    priority: Optional[GoalPriority] = None
    due_date: Optional[str] = None
    estimated_duration: Optional[str] = None
    collaborators: List[str] = field(default_factory=list)
    template_id: Optional[int] = None

    dependencies: List[GoalDependency] = field(default_factory=list)

    def __post_init__(self):
        if not self.description or not self.description.strip():
            raise SchemaError("Goal description must not be empty")

    @property
    def display_description(self) -> str:
        """Description shown to users: the reframed text once one exists."""
        if self.is_reframed and self.reframed_description:
            return self.reframed_description
        return self.description

    def advance_status(self) -> 'Goal':
        return replace(self, status=self.status.advance())

    def copy(self) -> 'Goal':
        """Copy with independent collaborator and dependency lists."""
        return replace(
            self,
            collaborators=list(self.collaborators),
            dependencies=[replace(dep) for dep in self.dependencies],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'status': self.status.value,
            'domainId': self.domain_id.value,
            'needsReframing': self.needs_reframing,
            'reframedDescription': self.reframed_description,
            'isReframed': self.is_reframed,
            'category': self.category,
            'priority': self.priority.value if self.priority else None,
            'dueDate': self.due_date,
            'estimatedDuration': self.estimated_duration,
            'collaborators': list(self.collaborators),
            'templateId': self.template_id,
            'dependencies': [dep.to_dict() for dep in self.dependencies],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], domain: Optional[Domain] = None,
                  id_prefix: Optional[str] = None) -> 'Goal':
        """Validate a stored or submitted goal record.

        ``domain`` is the domain of the containing plan; when given it wins over
        whatever ``domainId`` the record carries. Records without an id get a
        generated one (seeded goals are stored without ids).
        """
        if not isinstance(data, dict):
            raise SchemaError("goal must be an object")

        description = data.get('description')
        if not isinstance(description, str) or not description.strip():
            raise SchemaError("goal.description must be a non-empty string")

        if domain is not None:
            domain_id = domain
            raw_domain = data.get('domainId')
            if raw_domain not in (None, '') and raw_domain != domain.value:
                logger.warning(f"Goal {data.get('id')} claims domain {raw_domain!r} inside {domain.value!r}; normalizing")
        else:
            domain_id = Domain.parse(data.get('domainId'))

        goal_id = data.get('id')
        if goal_id in (None, ''):
            prefix = id_prefix or 'goal'
            goal_id = f"{prefix}-{uuid.uuid4().hex[:7]}"
        goal_id = str(goal_id)

        collaborators = data.get('collaborators') or []
        if not isinstance(collaborators, list) or not all(isinstance(c, str) for c in collaborators):
            raise SchemaError("goal.collaborators must be a list of strings")

        raw_dependencies = data.get('dependencies') or []
        if not isinstance(raw_dependencies, list):
            raise SchemaError("goal.dependencies must be a list")
        dependencies = []
        for raw in raw_dependencies:
            dep = GoalDependency.from_dict(raw)
            if dep.goal_id == goal_id:
                logger.warning(f"Dropping self-dependency edge {dep.id} on goal {goal_id}")
                continue
            dependencies.append(dep)

        return cls(
            id=goal_id,
            description=description,
            domain_id=domain_id,
            status=GoalStatus.parse(data.get('status')),
            needs_reframing=_bool(data, 'needsReframing'),
            reframed_description=_optional_text(data, 'reframedDescription'),
            is_reframed=_bool(data, 'isReframed'),
            category=_optional_text(data, 'category'),
            priority=GoalPriority.parse(data.get('priority')),
            due_date=_optional_text(data, 'dueDate'),
            estimated_duration=_optional_text(data, 'estimatedDuration'),
            collaborators=list(collaborators),
            template_id=_optional_int(data, 'templateId'),
            dependencies=dependencies,
        )


def parse_goal_list(raw: Any, domain: Domain, domain_plan_id: Any = None, strict: bool = False) -> List[Goal]:
    """Turn a stored ``goals`` field into Goal records.

    A field that is not a list (a raw object after lossy serialization, for
    example) is treated as an empty list. In lenient mode invalid entries are
    skipped with a warning; ``strict`` raises SchemaError instead, which is what
    the API layer wants for incoming payloads.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        if strict:
            raise SchemaError("goals must be a list")
        logger.warning(f"Malformed goals field for domain plan {domain_plan_id} ({domain.value}): {type(raw).__name__}; treating as empty")
        return []

    prefix = str(domain_plan_id) if domain_plan_id is not None else None
    goals: List[Goal] = []
    for entry in raw:
        try:
            goals.append(Goal.from_dict(entry, domain=domain, id_prefix=prefix))
        except SchemaError as e:
            if strict:
                raise
            logger.warning(f"Skipping invalid goal in domain plan {domain_plan_id} ({domain.value}): {e}")
    return goals


@dataclass
class GoalTemplate:
    """Catalog entry a goal can be created from."""
    id: int
    domain: Domain
    description: str
    category: Optional[str] = None
    estimated_duration: Optional[str] = None


@dataclass
class DomainPlan:
    """Per-domain container: a vision statement and an ordered list of goals.

    Invariants: every goal has ``domain_id == domain``; goal order is the
    presentation/priority order and is preserved across reconciliation.
    """
    plan_id: int
    domain: Domain
    id: Optional[int] = None
    vision: Optional[str] = None
    vision_age: int = DEFAULT_VISION_AGE
    vision_media: Optional[str] = None
    goals: List[Goal] = field(default_factory=list)
    completed: bool = False
    updated_at: Optional[datetime] = None

    @property
    def is_persisted(self) -> bool:
        """True once the server has assigned an identity."""
        return self.id is not None

    def copy(self) -> 'DomainPlan':
        return replace(self, goals=[goal.copy() for goal in self.goals])

    def find_goal_index(self, goal_id: str) -> Optional[int]:
        for index, goal in enumerate(self.goals):
            if goal.id == goal_id:
                return index
        return None

    def check_invariants(self) -> None:
        for goal in self.goals:
            if goal.domain_id is not self.domain:
                raise SchemaError(f"Goal {goal.id} has domain {goal.domain_id.value} inside {self.domain.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'planId': self.plan_id,
            'domain': self.domain.value,
            'vision': self.vision,
            'visionAge': self.vision_age,
            'visionMedia': self.vision_media,
            'goals': [goal.to_dict() for goal in self.goals],
            'completed': self.completed,
            'updatedAt': _iso(self.updated_at),
        }

    def to_create_payload(self) -> Dict[str, Any]:
        """Body for ``POST /domain-plans``."""
        return {
            'planId': self.plan_id,
            'domain': self.domain.value,
            'vision': self.vision,
            'visionAge': self.vision_age,
            'visionMedia': self.vision_media,
            'goals': [goal.to_dict() for goal in self.goals],
            'completed': self.completed,
        }

    def to_update_payload(self, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Body for ``PATCH /domain-plans/{id}`` restricted to ``fields``."""
        data = self.to_dict()
        full = {key: data[key] for key in DOMAIN_PLAN_UPDATABLE_FIELDS}
        if fields is None:
            return full
        wanted = set(fields)
        unknown = wanted - set(full)
        if unknown:
            raise SchemaError(f"Not updatable: {', '.join(sorted(unknown))}")
        return {key: value for key, value in full.items() if key in wanted}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], strict: bool = False) -> 'DomainPlan':
        if not isinstance(data, dict):
            raise SchemaError("domain plan must be an object")
        plan_id = _optional_int(data, 'planId')
        if plan_id is None:
            raise SchemaError("planId is required")
        domain = Domain.parse(data.get('domain'))
        vision_age = _optional_int(data, 'visionAge')
        return cls(
            id=_optional_int(data, 'id'),
            plan_id=plan_id,
            domain=domain,
            vision=_optional_text(data, 'vision'),
            vision_age=vision_age if vision_age is not None else DEFAULT_VISION_AGE,
            vision_media=_optional_text(data, 'visionMedia'),
            goals=parse_goal_list(data.get('goals'), domain, domain_plan_id=data.get('id'), strict=strict),
            completed=_bool(data, 'completed'),
            updated_at=_parse_timestamp(data.get('updatedAt')),
        )


@dataclass
class GoodLifePlan:
    """A student's plan; owns at most one DomainPlan per domain."""
    student_id: int
    id: Optional[int] = None
    status: PlanStatus = PlanStatus.IN_PROGRESS
    progress: int = 0
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        if not 0 <= self.progress <= 100:
            raise SchemaError("progress must be between 0 and 100")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'studentId': self.student_id,
            'status': self.status.value,
            'progress': self.progress,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GoodLifePlan':
        if not isinstance(data, dict):
            raise SchemaError("plan must be an object")
        student_id = _optional_int(data, 'studentId')
        if student_id is None:
            raise SchemaError("studentId is required")
        progress = _optional_int(data, 'progress')
        return cls(
            id=_optional_int(data, 'id'),
            student_id=student_id,
            status=PlanStatus.parse(data.get('status')),
            progress=progress if progress is not None else 0,
            created_at=_parse_timestamp(data.get('createdAt')) or now_utc(),
            updated_at=_parse_timestamp(data.get('updatedAt')) or now_utc(),
        )
