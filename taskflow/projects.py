from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from .aggregator import project_progress, schedule_progress
from .workspace import get_workspace

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


def project_view(project, tasks):
    out = project.to_dict()
    mine = [t for t in tasks if t.project_id == project.id]
    out['progress'] = project_progress(project, tasks)
    out['taskCount'] = len(mine)
    out['completedTaskCount'] = sum(1 for t in mine if t.status.value == 'COMPLETED')
    return out


@projects_bp.get('')
@login_required
def list_projects():
    ws = get_workspace()
    return jsonify([project_view(p, ws.state.tasks) for p in ws.state.projects])


@projects_bp.post('')
@login_required
def create_project():
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    project = ws.state.create_project(data)
    for member in data.get('users') or []:
        ws.state.add_member_from_payload(project.id, member)
    project = ws.state.get_project(project.id)
    ws.notifications.enqueue('Project created.', 'success')
    current_app.logger.info('created project %s', project.id)
    return jsonify({'success': True, 'project': project_view(project, ws.state.tasks)}), 201


@projects_bp.get('/<project_id>')
@login_required
def get_project(project_id):
    ws = get_workspace()
    project = ws.state.get_project(project_id)
    out = project_view(project, ws.state.tasks)
    out['tasks'] = [t.to_dict() for t in ws.state.tasks_for_project(project_id)]
    out['schedule'] = schedule_progress(project.start_date, project.end_date, out['progress'])
    return jsonify(out)


@projects_bp.patch('/<project_id>')
@login_required
def update_project(project_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    project = ws.state.update_project_from_payload(project_id, data)
    ws.notifications.enqueue('Project updated.', 'success')
    return jsonify({'success': True, 'project': project_view(project, ws.state.tasks)})


@projects_bp.delete('/<project_id>')
@login_required
def delete_project(project_id):
    ws = get_workspace()
    ws.state.delete_project(project_id)
    ws.zoom.pop(project_id, None)
    ws.notifications.enqueue('Project deleted.', 'success')
    current_app.logger.info('deleted project %s', project_id)
    return jsonify({'success': True, 'redirect': '/projects'})


@projects_bp.post('/<project_id>/status')
@login_required
def change_status(project_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    project = ws.state.update_project_from_payload(project_id, {'status': data.get('status')})
    return jsonify({'success': True, 'project': project_view(project, ws.state.tasks)})


@projects_bp.post('/<project_id>/members')
@login_required
def add_member(project_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    project = ws.state.add_member_from_payload(project_id, data)
    return jsonify({'success': True, 'project': project_view(project, ws.state.tasks)}), 201


@projects_bp.delete('/<project_id>/members/<user_id>')
@login_required
def remove_member(project_id, user_id):
    ws = get_workspace()
    project = ws.state.remove_member(project_id, user_id)
    return jsonify({'success': True, 'project': project_view(project, ws.state.tasks)})


@projects_bp.post('/select')
@login_required
def select_project():
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    ws.state.select_project(data.get('projectId'))
    return jsonify({'success': True, 'selectedProjectId': ws.state.selected_project_id})
