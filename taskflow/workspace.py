import logging

from flask import current_app

from . import dates
from .aggregator import Dashboard
from .notifications import NotificationQueue
from .store import AppState
from .timeline.grid import DEFAULT_ZOOM, clamp_zoom
from .timeline.interaction import InteractionController

logger = logging.getLogger(__name__)

# selection/dialog events change nothing that is saved
TRANSIENT_EVENTS = ('project.selected', 'task.selected', 'task.draft')


class Workspace:
    """Everything one running app shares: store, toasts, gesture controller, dashboard."""

    def __init__(self, state=None, data_file=None, tz_name='UTC'):
        self.state = state if state is not None else AppState()
        self.data_file = data_file
        self.tz_name = tz_name
        self.notifications = NotificationQueue()
        self.controller = InteractionController(self.state, self.notifications)
        self.dashboard = Dashboard(self.state, self.today)
        self.zoom = {}
        if data_file:
            self.state.subscribe(self._persist)

    @classmethod
    def from_file(cls, data_file, tz_name='UTC'):
        return cls(AppState.load(data_file), data_file=data_file, tz_name=tz_name)

    def today(self):
        return dates.today(self.tz_name)

    def zoom_for(self, project_id):
        return self.zoom.get(project_id, DEFAULT_ZOOM)

    def set_zoom(self, project_id, value):
        self.zoom[project_id] = clamp_zoom(value)
        return self.zoom[project_id]

    def _persist(self, state, event, entity_id):
        if event in TRANSIENT_EVENTS:
            return
        try:
            state.save(self.data_file)
        except OSError:
            logger.exception('failed to save snapshot to %s', self.data_file)
            raise


def get_workspace():
    return current_app.extensions['taskflow']
