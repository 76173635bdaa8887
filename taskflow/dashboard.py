from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from .workspace import get_workspace

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api')


@dashboard_bp.get('/dashboard')
@login_required
def dashboard():
    ws = get_workspace()
    name = current_user.name or current_user.email
    if ws.dashboard.user_name != name or ws.dashboard.as_of != ws.today():
        ws.dashboard.user_name = name
        ws.dashboard.refresh()
    return jsonify(ws.dashboard.snapshot.to_dict())


@dashboard_bp.get('/notifications')
@login_required
def notifications():
    return jsonify([n.to_dict() for n in get_workspace().notifications.drain()])
