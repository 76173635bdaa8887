"""Derived numbers for the dashboard and project pages.

Every function takes the collections it reads as arguments; nothing here
reaches into an ``AppState`` on its own. ``Dashboard`` is the one place
that binds the functions to a live store.
"""
import logging
from dataclasses import dataclass, field

from .dates import add_days, to_date, to_datetime, utcnow
from .models import ProjectStatus, TaskStatus

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7
UPCOMING_LIMIT = 5
RECENT_PROJECTS = 2
RECENT_TASKS = 3

TASK_ACTIONS = {
    TaskStatus.COMPLETED: 'completed',
    TaskStatus.IN_PROGRESS: 'in progress',
}


def _percent(part, whole):
    # half-up, so 50.5 -> 51 like the timeline's rounding
    return int(part * 100 / whole + 0.5)


def project_progress(project, tasks=None):
    """Completed share of a project's tasks as an integer percent.

    ``tasks`` is the live task collection (any project; filtered here). Only
    when it is unavailable (None) do the project's advisory count fields
    stand in.
    """
    if tasks is None:
        total = project.task_count or 0
        done = project.completed_task_count or 0
        return _percent(done, total) if total else 0
    mine = [t for t in tasks if t.project_id == project.id]
    done = sum(1 for t in mine if t.status is TaskStatus.COMPLETED)
    if project.task_count is not None and (project.task_count, project.completed_task_count) != (len(mine), done):
        logger.info('project %s advisory counts %s/%s disagree with live tasks %d/%d',
                    project.id, project.completed_task_count, project.task_count, done, len(mine))
    if not mine:
        return 0
    return _percent(done, len(mine))


def upcoming_deadlines(tasks, today, window_days=UPCOMING_WINDOW_DAYS, limit=UPCOMING_LIMIT):
    today = to_date(today)
    horizon = add_days(today, window_days)
    due = [t for t in tasks
           if t.status is not TaskStatus.COMPLETED and today <= to_date(t.end_date) <= horizon]
    due.sort(key=lambda t: to_date(t.end_date))
    return due[:limit]


@dataclass(frozen=True)
class ActivityEntry:
    id: str
    action: str
    subject: str
    user: str
    timestamp: object

    def to_dict(self):
        return {'id': self.id, 'action': self.action, 'subject': self.subject,
                'user': self.user, 'timestamp': self.timestamp.isoformat()}


def activity_feed(projects, tasks, user_name):
    """Recent-activity list synthesized from entity timestamps (nothing is logged)."""
    entries = []
    recent_projects = sorted(projects, key=lambda p: to_datetime(p.created_at), reverse=True)[:RECENT_PROJECTS]
    for p in recent_projects:
        entries.append(ActivityEntry(f'project-{p.id}', 'project created', p.name, user_name,
                                     to_datetime(p.created_at)))
    recent_tasks = sorted(tasks, key=lambda t: to_datetime(t.created_at), reverse=True)[:RECENT_TASKS]
    for t in recent_tasks:
        entries.append(ActivityEntry(f'task-{t.id}', TASK_ACTIONS.get(t.status, 'created'), t.title,
                                     user_name, to_datetime(t.updated_at)))
    entries.sort(key=lambda e: e.timestamp, reverse=True)
    return entries


def project_stats(projects):
    return {
        'total': len(projects),
        'active': sum(1 for p in projects if p.status is ProjectStatus.IN_PROGRESS),
        'completed': sum(1 for p in projects if p.status is ProjectStatus.COMPLETED),
        'planning': sum(1 for p in projects if p.status is ProjectStatus.PLANNING),
    }


def task_stats(tasks):
    return {
        'total': len(tasks),
        'todo': sum(1 for t in tasks if t.status is TaskStatus.TODO),
        'inProgress': sum(1 for t in tasks if t.status is TaskStatus.IN_PROGRESS),
        'completed': sum(1 for t in tasks if t.status is TaskStatus.COMPLETED),
    }


def schedule_progress(start, end, progress, now=None):
    """Compare actual progress with the share of the schedule already elapsed."""
    start, end = to_datetime(start), to_datetime(end)
    now = to_datetime(now) if now is not None else utcnow()
    total = (end - start).total_seconds()
    if total <= 0:
        expected = 100 if now >= end else 0
    else:
        elapsed = (now - start).total_seconds()
        expected = min(100, max(0, _percent(elapsed, total) if elapsed > 0 else 0))
    return {
        'expectedProgress': expected,
        'actualProgress': progress,
        'isAhead': progress > expected,
        'isBehind': progress < expected,
        'diff': progress - expected,
    }


@dataclass
class DashboardSnapshot:
    projects: dict = field(default_factory=dict)
    tasks: dict = field(default_factory=dict)
    progress: dict = field(default_factory=dict)
    upcoming: list = field(default_factory=list)
    activity: list = field(default_factory=list)

    def to_dict(self):
        return {
            'projectStats': self.projects,
            'taskStats': self.tasks,
            'projectProgress': self.progress,
            'upcomingDeadlines': [t.to_dict() for t in self.upcoming],
            'activity': [e.to_dict() for e in self.activity],
        }


class Dashboard:
    """Keeps a dashboard snapshot current by recomputing on every store change."""

    def __init__(self, state, today_fn, user_name='User'):
        self.state = state
        self.today_fn = today_fn
        self.user_name = user_name
        self.snapshot = DashboardSnapshot()
        self.refresh()
        self._unsubscribe = state.subscribe(self._on_change)

    def _on_change(self, state, event, entity_id):
        self.refresh()

    def refresh(self):
        projects, tasks = self.state.projects, self.state.tasks
        self.as_of = self.today_fn()
        self.snapshot = DashboardSnapshot(
            projects=project_stats(projects),
            tasks=task_stats(tasks),
            progress={p.id: project_progress(p, tasks) for p in projects},
            upcoming=upcoming_deadlines(tasks, self.as_of),
            activity=activity_feed(projects, tasks, self.user_name),
        )
        return self.snapshot

    def close(self):
        self._unsubscribe()
