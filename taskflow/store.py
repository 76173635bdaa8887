"""Application state: the project and task collections plus UI selection.

``AppState`` is the only place entities are created, replaced or removed.
Views, the timeline controller and the dashboard hold an ``AppState``
reference and go through its action methods; every action replaces the
affected entity with a new instance before listeners are notified.
"""
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import date

import portalocker

from .dates import to_date
from .errors import ConstraintViolation, NotFound, ValidationError
from .models import (Member, Project, ProjectStatus, Task, TaskPriority, TaskStatus,
                     UserRole, merge, new_id, parse_project_fields, parse_task_fields)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskDraft:
    """Pre-filled values for the task creation dialog. Not persisted."""
    project_id: str
    start_date: date
    end_date: date

    def to_dict(self):
        return {'projectId': self.project_id,
                'startDate': self.start_date.isoformat(),
                'endDate': self.end_date.isoformat()}


class AppState:

    def __init__(self, projects=None, tasks=None):
        self.projects = list(projects or [])
        self.tasks = list(tasks or [])
        self.selected_project_id = None
        self.selected_task_id = None
        self.task_modal_open = False
        self.task_draft = None
        self._listeners = []

    # --- Change notification ---
    def subscribe(self, listener):
        """Register ``listener(state, event, entity_id)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _changed(self, event, entity_id=None):
        logger.debug('store change: %s %s', event, entity_id)
        for listener in list(self._listeners):
            listener(self, event, entity_id)

    # --- Lookups ---
    def get_project(self, project_id):
        for p in self.projects:
            if p.id == project_id:
                return p
        raise NotFound('Project', project_id)

    def get_task(self, task_id):
        for t in self.tasks:
            if t.id == task_id:
                return t
        raise NotFound('Task', task_id)

    @property
    def selected_project(self):
        if self.selected_project_id is None:
            return None
        return self.get_project(self.selected_project_id)

    @property
    def selected_task(self):
        if self.selected_task_id is None:
            return None
        return self.get_task(self.selected_task_id)

    def tasks_for_project(self, project_id):
        return [t for t in self.tasks if t.project_id == project_id]

    def find_tasks(self, status=None, priority=None, project_id=None, search=None):
        """Filtered task list ordered by end date (ties keep insertion order)."""
        out = []
        needle = (search or '').strip().lower()
        for t in self.tasks:
            if status and t.status.value != status:
                continue
            if priority and t.priority.value != priority:
                continue
            if project_id and t.project_id != project_id:
                continue
            if needle and needle not in t.title.lower():
                continue
            out.append(t)
        out.sort(key=lambda t: t.end_date)
        return out

    def _replace(self, collection, entity):
        for idx, existing in enumerate(collection):
            if existing.id == entity.id:
                collection[idx] = entity
                return entity
        raise NotFound(type(entity).__name__, entity.id)

    # --- Project actions ---
    def set_projects(self, projects):
        self.projects = list(projects)
        if self.selected_project_id and not any(p.id == self.selected_project_id for p in self.projects):
            self.selected_project_id = None
        self._changed('projects.set')

    def add_project(self, project):
        if any(p.id == project.id for p in self.projects):
            raise ValidationError('id', f'Project id already exists: {project.id}')
        self.projects.append(project)
        self._changed('project.added', project.id)
        return project

    def create_project(self, data, members=()):
        attrs = parse_project_fields(data)
        if attrs['end_date'] < attrs['start_date']:
            raise ValidationError('endDate', 'endDate must not be before startDate')
        project = Project(id=new_id('project'), members=tuple(members), **attrs)
        return self.add_project(project)

    def update_project(self, project_id, changes):
        project = self.get_project(project_id)
        start = changes.get('start_date', project.start_date)
        end = changes.get('end_date', project.end_date)
        if end < start:
            raise ConstraintViolation('Project end date would precede its start date')
        updated = self._replace(self.projects, merge(project, changes))
        self._changed('project.updated', project_id)
        return updated

    def update_project_from_payload(self, project_id, data):
        return self.update_project(project_id, parse_project_fields(data, partial=True))

    def delete_project(self, project_id):
        """Remove a project and its tasks; clears selections that pointed at them."""
        self.get_project(project_id)
        self.projects = [p for p in self.projects if p.id != project_id]
        removed = {t.id for t in self.tasks if t.project_id == project_id}
        self.tasks = [t for t in self.tasks if t.project_id != project_id]
        if self.selected_project_id == project_id:
            self.selected_project_id = None
        if self.selected_task_id in removed:
            self._clear_task_selection()
        if self.task_draft is not None and self.task_draft.project_id == project_id:
            self.task_draft = None
            self.task_modal_open = False
        self._changed('project.deleted', project_id)

    def select_project(self, project_id):
        if project_id is not None:
            self.get_project(project_id)
        self.selected_project_id = project_id
        self._changed('project.selected', project_id)

    def change_project_status(self, project_id, status):
        return self.update_project(project_id, {'status': ProjectStatus(status)})

    def add_member(self, project_id, member):
        project = self.get_project(project_id)
        if any(m.id == member.id or m.email.lower() == member.email.lower() for m in project.members):
            raise ValidationError('email', 'User is already a member of this project')
        return self.update_project(project_id, {'members': project.members + (member,)})

    def add_member_from_payload(self, project_id, data):
        email = (data.get('email') or '').strip()
        if '@' not in email or email.startswith('@') or email.endswith('@'):
            raise ValidationError('email', 'A valid email address is required')
        try:
            role = UserRole(data.get('role') or UserRole.VIEWER)
        except ValueError:
            raise ValidationError('role', 'Unknown role')
        member = Member(id=str(data.get('id') or new_id('user')), email=email,
                        name=data.get('name') or email.split('@')[0], image=data.get('image'),
                        role=role)
        return self.add_member(project_id, member)

    def remove_member(self, project_id, user_id):
        project = self.get_project(project_id)
        members = tuple(m for m in project.members if m.id != user_id)
        if len(members) == len(project.members):
            raise NotFound('Member', user_id)
        return self.update_project(project_id, {'members': members})

    # --- Task actions ---
    def set_tasks(self, tasks):
        self.tasks = list(tasks)
        if self.selected_task_id and not any(t.id == self.selected_task_id for t in self.tasks):
            self._clear_task_selection()
        self._changed('tasks.set')

    def add_task(self, task):
        self.get_project(task.project_id)
        if task.end_date < task.start_date:
            raise ValidationError('endDate', 'endDate must not be before startDate')
        if any(t.id == task.id for t in self.tasks):
            raise ValidationError('id', f'Task id already exists: {task.id}')
        self.tasks.append(task)
        self._changed('task.added', task.id)
        return task

    def create_task(self, project_id, data):
        self.get_project(project_id)
        attrs = parse_task_fields(data)
        if attrs['end_date'] < attrs['start_date']:
            raise ValidationError('endDate', 'endDate must not be before startDate')
        task = self.add_task(Task(id=new_id('task'), project_id=project_id, **attrs))
        if self.task_draft is not None and self.task_draft.project_id == project_id:
            self.task_draft = None
            self.task_modal_open = False
        return task

    def update_task(self, task_id, changes):
        task = self.get_task(task_id)
        start = changes.get('start_date', task.start_date)
        end = changes.get('end_date', task.end_date)
        if end < start:
            raise ConstraintViolation(f'Task {task_id}: end date would precede start date')
        if 'project_id' in changes:
            self.get_project(changes['project_id'])
        updated = self._replace(self.tasks, merge(task, changes))
        self._changed('task.updated', task_id)
        return updated

    def update_task_from_payload(self, task_id, data):
        return self.update_task(task_id, parse_task_fields(data, partial=True))

    def delete_task(self, task_id):
        self.get_task(task_id)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        if self.selected_task_id == task_id:
            self._clear_task_selection()
        self._changed('task.deleted', task_id)

    def move_task(self, task_id, new_start, new_end):
        return self.update_task(task_id, {'start_date': to_date(new_start), 'end_date': to_date(new_end)})

    def resize_task(self, task_id, start=None, end=None):
        changes = {}
        if start is not None:
            changes['start_date'] = to_date(start)
        if end is not None:
            changes['end_date'] = to_date(end)
        return self.update_task(task_id, changes)

    def change_task_status(self, task_id, status):
        return self.update_task(task_id, {'status': TaskStatus(status)})

    def change_task_priority(self, task_id, priority):
        return self.update_task(task_id, {'priority': TaskPriority(priority)})

    def change_task_assignee(self, task_id, assignee_id):
        return self.update_task(task_id, {'assignee_id': assignee_id})

    # --- Task dialog / selection ---
    def select_task(self, task_id):
        if task_id is not None:
            self.get_task(task_id)
        self.selected_task_id = task_id
        self._changed('task.selected', task_id)

    def open_task_detail(self, task_id):
        self.select_task(task_id)
        self.task_draft = None
        self.task_modal_open = True

    def open_task_creation(self, draft):
        self.get_project(draft.project_id)
        self.selected_task_id = None
        self.task_draft = draft
        self.task_modal_open = True
        self._changed('task.draft', None)

    def close_task_modal(self):
        self.task_modal_open = False
        self.task_draft = None

    def _clear_task_selection(self):
        self.selected_task_id = None
        if self.task_draft is None:
            self.task_modal_open = False

    # --- Serialization ---
    def to_dict(self):
        return {
            'projects': [p.to_dict() for p in self.projects],
            'tasks': [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            projects=[Project.from_dict(p) for p in data.get('projects') or []],
            tasks=[Task.from_dict(t) for t in data.get('tasks') or []],
        )

    def save(self, path):
        lock_path = path + '.lock'
        with open(lock_path, 'w') as lock_f:
            portalocker.lock(lock_f, portalocker.LOCK_EX)
            try:
                _atomic_write_json(path, self.to_dict())
            finally:
                portalocker.unlock(lock_f)
        logger.debug('saved %d projects / %d tasks to %s', len(self.projects), len(self.tasks), path)

    @classmethod
    def load(cls, path):
        if not os.path.exists(path):
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            portalocker.lock(f, portalocker.LOCK_SH)
            try:
                data = json.load(f)
            finally:
                portalocker.unlock(f)
        if not isinstance(data, dict):
            raise ValueError(f'{path}: expected an object keyed by collection name')
        return cls.from_dict(data)


def _atomic_write_json(path, data):
    """Write JSON atomically to avoid partial writes (write temp then replace)."""
    dir_ = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_, prefix='.tmp_', suffix='.json')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as tmp_f:
            json.dump(data, tmp_f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
