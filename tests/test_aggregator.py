from datetime import date, datetime, UTC

import pytest

from taskflow.aggregator import (Dashboard, activity_feed, project_progress, schedule_progress,
                                 task_stats, upcoming_deadlines)
from taskflow.models import Project, Task, TaskStatus
from taskflow.notifications import NotificationQueue
from taskflow.store import AppState


def _task(tid, end, status=TaskStatus.TODO, project_id='p1', created=None):
    stamp = created or datetime(2024, 1, 1, tzinfo=UTC)
    return Task(id=tid, title=tid, start_date=date(2024, 1, 1), end_date=end, project_id=project_id,
                status=status, created_at=stamp, updated_at=stamp)


@pytest.fixture()
def project():
    return Project(id='p1', name='Launch', start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))


def test_progress_half_done(project):
    tasks = [_task('a', date(2024, 1, 5), TaskStatus.COMPLETED), _task('b', date(2024, 1, 6))]
    assert project_progress(project, tasks) == 50
    # same inputs, same answer
    assert project_progress(project, tasks) == 50


def test_progress_edges(project):
    assert project_progress(project, []) == 0
    assert project_progress(project, [_task('a', date(2024, 1, 5), TaskStatus.COMPLETED)]) == 100
    other = [_task('x', date(2024, 1, 5), TaskStatus.COMPLETED, project_id='p9')]
    assert project_progress(project, other) == 0


def test_progress_rounds_half_up(project):
    tasks = [_task('a', date(2024, 1, 5), TaskStatus.COMPLETED),
             _task('b', date(2024, 1, 5), TaskStatus.COMPLETED),
             _task('c', date(2024, 1, 5))]
    assert project_progress(project, tasks) == 67


def test_progress_prefers_live_tasks_over_counts(project):
    stale = Project(id='p1', name='Launch', start_date=date(2024, 1, 1), end_date=date(2024, 3, 31),
                    task_count=4, completed_task_count=1)
    assert project_progress(stale) == 25
    assert project_progress(stale, [_task('a', date(2024, 1, 5), TaskStatus.COMPLETED)]) == 100


def test_upcoming_deadlines_window():
    today = date(2024, 1, 10)
    tasks = [
        _task('late', date(2024, 1, 9)),
        _task('week', date(2024, 1, 17)),
        _task('today', date(2024, 1, 10)),
        _task('far', date(2024, 1, 18)),
        _task('done', date(2024, 1, 12), TaskStatus.COMPLETED),
    ]
    assert [t.id for t in upcoming_deadlines(tasks, today)] == ['today', 'week']


def test_upcoming_deadlines_limit():
    tasks = [_task(f't{i}', date(2024, 1, 10 + i)) for i in range(7)]
    assert [t.id for t in upcoming_deadlines(tasks, date(2024, 1, 10))] == ['t0', 't1', 't2', 't3', 't4']


def test_activity_feed_newest_first():
    tasks = [
        _task('old', date(2024, 1, 5), created=datetime(2024, 1, 2, tzinfo=UTC)),
        _task('new', date(2024, 1, 5), TaskStatus.COMPLETED, created=datetime(2024, 1, 4, tzinfo=UTC)),
    ]
    projects = [Project(id='p1', name='Launch', start_date=date(2024, 1, 1), end_date=date(2024, 3, 31),
                        created_at=datetime(2024, 1, 3, tzinfo=UTC))]
    feed = activity_feed(projects, tasks, 'Kim')
    assert [e.subject for e in feed] == ['new', 'Launch', 'old']
    assert feed[0].action == 'completed'
    assert feed[1].action == 'project created'
    assert all(e.user == 'Kim' for e in feed)


def test_task_stats():
    tasks = [_task('a', date(2024, 1, 5), TaskStatus.COMPLETED), _task('b', date(2024, 1, 5)),
             _task('c', date(2024, 1, 5), TaskStatus.IN_PROGRESS)]
    assert task_stats(tasks) == {'total': 3, 'todo': 1, 'inProgress': 1, 'completed': 1}


def test_schedule_progress():
    out = schedule_progress(date(2024, 1, 1), date(2024, 1, 11), 30, now=date(2024, 1, 6))
    assert out['expectedProgress'] == 50
    assert out['isBehind'] and not out['isAhead']
    assert out['diff'] == -20
    assert schedule_progress(date(2024, 1, 1), date(2024, 1, 11), 0, now=date(2023, 1, 1))['expectedProgress'] == 0


def test_dashboard_follows_store(project):
    state = AppState(projects=[project])
    dash = Dashboard(state, lambda: date(2024, 1, 10))
    assert dash.snapshot.tasks['total'] == 0
    state.create_task('p1', {'title': 'Ship', 'startDate': '2024-01-08', 'endDate': '2024-01-12',
                             'status': 'COMPLETED'})
    assert dash.snapshot.tasks['completed'] == 1
    assert dash.snapshot.progress == {'p1': 100}
    dash.close()
    state.create_task('p1', {'title': 'Later', 'startDate': '2024-01-08', 'endDate': '2024-01-12'})
    assert dash.snapshot.tasks['total'] == 1


def test_notification_expiry():
    now = [0.0]
    queue = NotificationQueue(clock=lambda: now[0])
    queue.enqueue('short', duration_ms=1000)
    queue.enqueue('long', 'success', duration_ms=5000)
    now[0] = 2.0
    assert [n.message for n in queue.active()] == ['long']
    assert len(queue.drain()) == 1
    assert len(queue) == 0
    with pytest.raises(ValueError):
        queue.enqueue('x', severity='loud')
