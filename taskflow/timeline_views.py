from flask import Blueprint, Response, jsonify, request
from flask_login import login_required

from .errors import ValidationError
from .models import parse_date
from .timeline.grid import DateGrid, apply_wheel_zoom, zoom_in, zoom_out
from .timeline.layout import canvas_size, layout_tasks
from .timeline.render import render_gantt_png
from .workspace import get_workspace

timeline_bp = Blueprint('timeline', __name__, url_prefix='/api/projects/<project_id>')


def _number(data, key, default=None):
    value = data.get(key, default)
    if value is None:
        raise ValidationError(key, f'{key} is required')
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(key, f'{key} must be a number')


def _build(ws, project_id, start=None, end=None):
    ws.state.get_project(project_id)
    start = parse_date('start', start) if start else None
    end = parse_date('end', end) if end else None
    if start and end and start > end:
        raise ValidationError('end', 'end must not be before start')
    tasks = ws.state.tasks_for_project(project_id)
    grid = DateGrid.for_tasks(tasks, zoom=ws.zoom_for(project_id), start=start, end=end, today=ws.today())
    return grid, tasks, layout_tasks(grid, tasks)


@timeline_bp.get('/timeline')
@login_required
def timeline(project_id):
    ws = get_workspace()
    if 'zoom' in request.args:
        ws.set_zoom(project_id, _number(request.args, 'zoom'))
    start, end = request.args.get('start'), request.args.get('end')
    grid, tasks, bars = _build(ws, project_id, start or None, end or None)
    width, height = canvas_size(grid, bars)
    state = ws.state
    return jsonify({
        'grid': grid.to_dict(today=ws.today()),
        'bars': [b.to_dict() for b in bars],
        'tasks': [t.to_dict() for t in tasks],
        'canvas': {'width': width, 'height': height},
        'gesture': ws.controller.gesture.to_dict(),
        'modal': {
            'open': state.task_modal_open,
            'selectedTaskId': state.selected_task_id,
            'draft': state.task_draft.to_dict() if state.task_draft else None,
        },
    })


@timeline_bp.post('/timeline/zoom')
@login_required
def zoom(project_id):
    ws = get_workspace()
    ws.state.get_project(project_id)
    data = request.get_json(force=True, silent=True) or {}
    current = ws.zoom_for(project_id)
    if 'zoom' in data:
        value = _number(data, 'zoom')
    elif data.get('step') == 'in':
        value = zoom_in(current)
    elif data.get('step') == 'out':
        value = zoom_out(current)
    else:
        value = apply_wheel_zoom(current, _number(data, 'deltaY'), bool(data.get('ctrlKey')))
    return jsonify({'success': True, 'zoom': ws.set_zoom(project_id, value)})


@timeline_bp.post('/timeline/click')
@login_required
def click(project_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    grid, _, _ = _build(ws, project_id, data.get('start'), data.get('end'))
    outcome = ws.controller.click_empty(grid, project_id, _number(data, 'x'), _number(data, 'scrollLeft', 0))
    return jsonify({'success': True, 'outcome': outcome.to_dict()})


@timeline_bp.post('/timeline/pointer')
@login_required
def pointer(project_id):
    ws = get_workspace()
    data = request.get_json(force=True, silent=True) or {}
    event = data.get('event')
    ctl = ws.controller
    if event == 'press':
        grid, _, bars = _build(ws, project_id, data.get('start'), data.get('end'))
        outcome = ctl.press(grid, bars, project_id, _number(data, 'x'), _number(data, 'y'),
                            _number(data, 'scrollLeft', 0))
    elif event == 'down':
        grid, _, _ = _build(ws, project_id, data.get('start'), data.get('end'))
        outcome = ctl.pointer_down(data.get('taskId'), _number(data, 'x'), data.get('region', 'body'), grid.day_width)
    elif event == 'move':
        outcome = ctl.pointer_move(_number(data, 'x'))
    elif event == 'up':
        outcome = ctl.pointer_up(_number(data, 'x'))
    elif event == 'cancel':
        outcome = ctl.cancel()
    else:
        raise ValidationError('event', 'event must be one of: press, down, move, up, cancel')
    return jsonify({'success': True, 'outcome': outcome.to_dict(), 'gesture': ctl.gesture.to_dict()})


@timeline_bp.get('/gantt.png')
@login_required
def gantt_png(project_id):
    ws = get_workspace()
    grid, tasks, bars = _build(ws, project_id, request.args.get('start'), request.args.get('end'))
    return Response(render_gantt_png(grid, bars, tasks, today=ws.today()), mimetype='image/png')
