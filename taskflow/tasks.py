from flask import Blueprint, jsonify, request
from flask_login import login_required

from .errors import ValidationError
from .workspace import get_workspace

tasks_bp = Blueprint('tasks', __name__, url_prefix='/api/tasks')

FILTER_ALL = 'ALL'


def _filter_arg(name):
    value = request.args.get(name, '').strip()
    return None if value in ('', FILTER_ALL) else value


@tasks_bp.get('')
@login_required
def list_tasks():
    ws = get_workspace()
    found = ws.state.find_tasks(
        status=_filter_arg('status'),
        priority=_filter_arg('priority'),
        project_id=_filter_arg('project_id'),
        search=request.args.get('search'),
    )
    names = {p.id: p.name for p in ws.state.projects}
    out = []
    for t in found:
        d = t.to_dict()
        d['projectName'] = names.get(t.project_id, 'Unknown project')
        out.append(d)
    return jsonify(out)


@tasks_bp.post('')
@login_required
def create_task():
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    project_id = data.get('projectId')
    if not project_id:
        raise ValidationError('projectId', 'projectId is required')
    task = ws.state.create_task(project_id, data)
    ws.notifications.enqueue('Task created.', 'success')
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@tasks_bp.get('/<task_id>')
@login_required
def get_task(task_id):
    return jsonify(get_workspace().state.get_task(task_id).to_dict())


@tasks_bp.patch('/<task_id>')
@login_required
def update_task(task_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    task = ws.state.update_task_from_payload(task_id, data)
    ws.notifications.enqueue('Task updated.', 'success')
    return jsonify({'success': True, 'task': task.to_dict()})


@tasks_bp.delete('/<task_id>')
@login_required
def delete_task(task_id):
    ws = get_workspace()
    ws.state.delete_task(task_id)
    ws.notifications.enqueue('Task deleted.', 'success')
    return jsonify({'success': True})


@tasks_bp.post('/modal/close')
@login_required
def close_modal():
    get_workspace().state.close_task_modal()
    return jsonify({'success': True})
