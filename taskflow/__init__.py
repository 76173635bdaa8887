import logging
import os

from flask import Flask, jsonify
from flask_login import LoginManager

from .db import UserDB, db, ensure_admin_user
from .errors import NotFound, TaskflowError
from .workspace import Workspace

login_manager = LoginManager()

FALLBACK_VIEWS = {'Project': '/projects', 'Task': '/tasks'}


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(UserDB, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'Authentication required'}), 401


def _configure_logging(app):
    level = app.config.get('LOG_LEVEL', 'INFO')
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('taskflow').setLevel(level)
    app.logger.setLevel(level)


def _register_error_handlers(app):
    @app.errorhandler(TaskflowError)
    def handle_taskflow_error(exc):
        body = exc.to_dict()
        if isinstance(exc, NotFound) and exc.kind in FALLBACK_VIEWS:
            body['redirect'] = FALLBACK_VIEWS[exc.kind]
        app.logger.info('%s: %s', type(exc).__name__, exc)
        return jsonify(body), exc.status_code


def create_app(testing=False, config=None):
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-insecure-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('TASKFLOW_DATABASE_URL') or 'sqlite:///taskflow.db'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['DATA_FILE'] = os.environ.get('TASKFLOW_DATA_FILE') or os.path.join(app.instance_path, 'taskflow.json')
    app.config['TIMEZONE'] = os.environ.get('TASKFLOW_TIMEZONE', 'UTC')
    app.config['ADMIN_PASSWORD'] = os.environ.get('TASKFLOW_ADMIN_PASSWORD', 'ChangeMe123!')
    app.config['LOG_LEVEL'] = os.environ.get('TASKFLOW_LOG_LEVEL', 'INFO')
    if testing:
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
        app.config['DATA_FILE'] = None
    if config:
        app.config.update(config)

    _configure_logging(app)
    db.init_app(app)
    login_manager.init_app(app)

    data_file = app.config['DATA_FILE']
    if data_file:
        app.extensions['taskflow'] = Workspace.from_file(data_file, tz_name=app.config['TIMEZONE'])
    else:
        app.extensions['taskflow'] = Workspace(tz_name=app.config['TIMEZONE'])

    from .auth import auth_bp
    from .dashboard import dashboard_bp
    from .projects import projects_bp
    from .tasks import tasks_bp
    from .timeline_views import timeline_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(timeline_bp)
    app.register_blueprint(dashboard_bp)
    _register_error_handlers(app)

    with app.app_context():
        db.create_all()
        if not testing:
            ensure_admin_user(db.session, app.config['ADMIN_PASSWORD'])

    @app.get('/')
    def index():
        return 'TaskFlow OK'  # health check

    return app
