import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional

from .dates import iso, to_date, to_datetime, utcnow
from .errors import ValidationError


class TaskPriority(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'
    URGENT = 'URGENT'


class TaskStatus(str, Enum):
    TODO = 'TODO'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'


class ProjectStatus(str, Enum):
    PLANNING = 'PLANNING'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    ON_HOLD = 'ON_HOLD'


class UserRole(str, Enum):
    ADMIN = 'ADMIN'
    EDITOR = 'EDITOR'
    VIEWER = 'VIEWER'
    USER = 'USER'


def new_id(prefix):
    return f'{prefix}-{uuid.uuid4().hex[:12]}'


@dataclass(frozen=True)
class Member:
    """A user referenced by a project, with the role they hold in it."""
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: UserRole = UserRole.VIEWER

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'email': self.email,
                'image': self.image, 'role': self.role.value}

    @classmethod
    def from_dict(cls, d):
        return cls(id=str(d['id']), email=d['email'], name=d.get('name'),
                   image=d.get('image'), role=UserRole(d.get('role') or UserRole.VIEWER))


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    start_date: date
    end_date: date
    project_id: str
    description: Optional[str] = None
    progress: int = 0
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    assignee_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def duration_days(self):
        return (self.end_date - self.start_date).days + 1

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'startDate': iso(self.start_date),
            'endDate': iso(self.end_date),
            'progress': self.progress,
            'priority': self.priority.value,
            'status': self.status.value,
            'projectId': self.project_id,
            'assigneeId': self.assignee_id,
            'parentTaskId': self.parent_task_id,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, d):
        now = utcnow()
        return cls(
            id=str(d['id']),
            title=d['title'],
            description=d.get('description'),
            start_date=to_date(d['startDate']),
            end_date=to_date(d['endDate']),
            progress=int(d.get('progress') or 0),
            priority=TaskPriority(d.get('priority') or TaskPriority.MEDIUM),
            status=TaskStatus(d.get('status') or TaskStatus.TODO),
            project_id=str(d['projectId']),
            assignee_id=d.get('assigneeId'),
            parent_task_id=d.get('parentTaskId'),
            created_at=to_datetime(d['createdAt']) if d.get('createdAt') else now,
            updated_at=to_datetime(d['updatedAt']) if d.get('updatedAt') else now,
        )


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    members: tuple = ()
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Advisory only; live progress is always derived from the task collection
    task_count: Optional[int] = None
    completed_task_count: Optional[int] = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'startDate': iso(self.start_date),
            'endDate': iso(self.end_date),
            'status': self.status.value,
            'users': [m.to_dict() for m in self.members],
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
            'taskCount': self.task_count,
            'completedTaskCount': self.completed_task_count,
        }

    @classmethod
    def from_dict(cls, d):
        now = utcnow()
        return cls(
            id=str(d['id']),
            name=d['name'],
            description=d.get('description'),
            start_date=to_date(d['startDate']),
            end_date=to_date(d['endDate']),
            status=ProjectStatus(d.get('status') or ProjectStatus.PLANNING),
            members=tuple(Member.from_dict(m) for m in d.get('users') or []),
            created_at=to_datetime(d['createdAt']) if d.get('createdAt') else now,
            updated_at=to_datetime(d['updatedAt']) if d.get('updatedAt') else now,
            task_count=d.get('taskCount'),
            completed_task_count=d.get('completedTaskCount'),
        )


# --- Field parsing for create/update payloads ---
# Payload keys follow the JSON shape (camelCase); attributes are snake_case.
TASK_FIELDS = {
    'title': 'title',
    'description': 'description',
    'startDate': 'start_date',
    'endDate': 'end_date',
    'progress': 'progress',
    'priority': 'priority',
    'status': 'status',
    'assigneeId': 'assignee_id',
    'parentTaskId': 'parent_task_id',
}

PROJECT_FIELDS = {
    'name': 'name',
    'description': 'description',
    'startDate': 'start_date',
    'endDate': 'end_date',
    'status': 'status',
}


def parse_date(key, value):
    try:
        return to_date(value)
    except (TypeError, ValueError):
        raise ValidationError(key, f'Invalid date for {key}')


def _parse_enum(key, enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(e.value for e in enum_cls)
        raise ValidationError(key, f'{key} must be one of: {allowed}')


def _parse_text(key, value, required):
    text = (value or '').strip() if isinstance(value, str) or value is None else None
    if text is None:
        raise ValidationError(key, f'{key} must be a string')
    if required and not text:
        raise ValidationError(key, f'{key} is required')
    return text or None


def parse_task_fields(data, partial=False):
    """Translate a task payload into dataclass keyword arguments.

    With ``partial`` only the keys present are parsed; otherwise title and
    both dates are required.
    """
    out = {}
    if not partial:
        for key in ('title', 'startDate', 'endDate'):
            if data.get(key) in (None, ''):
                raise ValidationError(key, f'{key} is required')
    for key, attr in TASK_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if key == 'title':
            out[attr] = _parse_text(key, value, required=True)
        elif key == 'description':
            out[attr] = _parse_text(key, value, required=False)
        elif key in ('startDate', 'endDate'):
            out[attr] = parse_date(key, value)
        elif key == 'progress':
            try:
                progress = int(value)
            except (TypeError, ValueError):
                raise ValidationError(key, 'progress must be an integer')
            if not 0 <= progress <= 100:
                raise ValidationError(key, 'progress must be between 0 and 100')
            out[attr] = progress
        elif key == 'priority':
            out[attr] = _parse_enum(key, TaskPriority, value)
        elif key == 'status':
            out[attr] = _parse_enum(key, TaskStatus, value)
        else:
            out[attr] = str(value) if value not in (None, '') else None
    return out


def parse_project_fields(data, partial=False):
    out = {}
    if not partial:
        for key in ('name', 'startDate', 'endDate'):
            if data.get(key) in (None, ''):
                raise ValidationError(key, f'{key} is required')
    for key, attr in PROJECT_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if key == 'name':
            out[attr] = _parse_text(key, value, required=True)
        elif key == 'description':
            out[attr] = _parse_text(key, value, required=False)
        elif key in ('startDate', 'endDate'):
            out[attr] = parse_date(key, value)
        else:
            out[attr] = _parse_enum(key, ProjectStatus, value)
    return out


def merge(entity, changes):
    """Return a copy of ``entity`` with ``changes`` applied and ``updated_at`` refreshed."""
    known = {f.name for f in fields(entity)}
    unknown = set(changes) - known
    if unknown:
        raise ValidationError(sorted(unknown)[0], 'Unknown field')
    changes = dict(changes)
    changes.setdefault('updated_at', utcnow())
    return replace(entity, **changes)
