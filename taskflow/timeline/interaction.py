"""Pointer gesture handling for the timeline.

A single ``InteractionController`` holds the one gesture that may be in
flight. Its state is an explicit ``GestureState`` value that each handler
reads and replaces; nothing about a gesture lives anywhere else.

    IDLE --down(body)--> DRAGGING --up--> IDLE
    IDLE --down(edge)--> RESIZING(left|right) --move*--> ... --up--> IDLE

Dragging only writes to the store on release (both dates shift, duration
kept). Resizing writes on every move so the bar previews live; frames that
would invert start/end are dropped.
"""
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..dates import add_days
from ..errors import ConstraintViolation, NotFound, ValidationError
from ..store import TaskDraft
from .layout import hit_test

logger = logging.getLogger(__name__)

DEFAULT_SPAN_DAYS = 3
TOAST_DURATION_MS = 2000


class GestureKind(str, Enum):
    IDLE = 'idle'
    DRAGGING = 'dragging'
    RESIZING = 'resizing'


@dataclass(frozen=True)
class GestureState:
    kind: GestureKind = GestureKind.IDLE
    side: Optional[str] = None
    task_id: Optional[str] = None
    origin_x: float = 0.0
    origin_start: object = None
    origin_end: object = None
    day_width: float = 0.0
    applied_delta: int = 0

    @property
    def active(self):
        return self.kind is not GestureKind.IDLE

    def to_dict(self):
        return {'kind': self.kind.value, 'side': self.side, 'taskId': self.task_id,
                'appliedDelta': self.applied_delta}


IDLE = GestureState()


@dataclass(frozen=True)
class GestureOutcome:
    action: str
    task_id: Optional[str] = None
    delta: int = 0
    draft: Optional[TaskDraft] = None
    reason: Optional[str] = None

    def to_dict(self):
        out = {'action': self.action, 'taskId': self.task_id, 'delta': self.delta}
        if self.draft is not None:
            out['draft'] = self.draft.to_dict()
        if self.reason:
            out['reason'] = self.reason
        return out


def snap_days(dx, day_width):
    """Pixel displacement to whole days, rounding halves up."""
    return math.floor(dx / day_width + 0.5)


def _days_label(delta):
    sign = '+' if delta > 0 else ''
    unit = 'day' if abs(delta) == 1 else 'days'
    return f'{sign}{delta} {unit}'


class InteractionController:

    def __init__(self, state, notifications):
        self.state = state
        self.notifications = notifications
        self.gesture = IDLE

    # --- Entry points ---
    def press(self, grid, bars, project_id, x, y, scroll_left=0):
        """Pointer pressed somewhere on the grid; routes to a bar or to click-to-create."""
        if self.gesture.active:
            return self._ignored('gesture already active')
        content_x = x + scroll_left
        bar, region = hit_test(bars, content_x, y)
        if bar is None:
            return self.click_empty(grid, project_id, x, scroll_left)
        # deltas are measured in pointer coordinates; scroll only matters for the hit test
        return self.pointer_down(bar.task_id, x, region, grid.day_width)

    def click_empty(self, grid, project_id, x, scroll_left=0):
        if self.gesture.active:
            return self._ignored('gesture already active')
        idx = math.floor((x + scroll_left) / grid.day_width)
        if not 0 <= idx < grid.total_days:
            return self._ignored('outside grid')
        start = add_days(grid.start, idx)
        draft = TaskDraft(project_id, start, add_days(start, DEFAULT_SPAN_DAYS - 1))
        self.state.open_task_creation(draft)
        logger.debug('task draft for %s at day %d (%s)', project_id, idx, start)
        return GestureOutcome('draft', draft=draft)

    def pointer_down(self, task_id, x, region, day_width):
        if self.gesture.active:
            logger.debug('pointer down on %s ignored; %s holds capture', task_id, self.gesture.task_id)
            return self._ignored('gesture already active')
        if region not in ('body', 'left', 'right'):
            raise ValidationError('region', f'unknown bar region: {region}')
        task = self.state.get_task(task_id)
        kind = GestureKind.DRAGGING if region == 'body' else GestureKind.RESIZING
        self.gesture = GestureState(
            kind=kind,
            side=None if region == 'body' else region,
            task_id=task_id,
            origin_x=x,
            origin_start=task.start_date,
            origin_end=task.end_date,
            day_width=day_width,
        )
        return GestureOutcome('captured', task_id=task_id)

    def pointer_move(self, x):
        g = self.gesture
        if not g.active:
            return self._ignored('no active gesture')
        delta = snap_days(x - g.origin_x, g.day_width)
        if g.kind is GestureKind.DRAGGING:
            return GestureOutcome('preview', task_id=g.task_id, delta=delta)
        return self._resize_frame(delta)

    def pointer_up(self, x):
        g = self.gesture
        if not g.active:
            return self._ignored('no active gesture')
        try:
            if g.kind is GestureKind.DRAGGING:
                return self._finish_drag(snap_days(x - g.origin_x, g.day_width))
            return self._finish_resize(snap_days(x - g.origin_x, g.day_width))
        except NotFound:
            logger.info('task %s disappeared mid-gesture', g.task_id)
            return GestureOutcome('cancelled', task_id=g.task_id, reason='task not found')
        finally:
            self.gesture = IDLE

    def cancel(self):
        g = self.gesture
        self.gesture = IDLE
        if not g.active:
            return self._ignored('no active gesture')
        return GestureOutcome('cancelled', task_id=g.task_id, delta=g.applied_delta)

    # --- Internals ---
    def _ignored(self, reason):
        return GestureOutcome('ignored', reason=reason)

    def _finish_drag(self, delta):
        g = self.gesture
        if delta == 0:
            self.state.open_task_detail(g.task_id)
            return GestureOutcome('opened', task_id=g.task_id)
        self.state.move_task(g.task_id, add_days(g.origin_start, delta), add_days(g.origin_end, delta))
        self.notifications.enqueue(f'Task moved: {_days_label(delta)}', 'info', TOAST_DURATION_MS)
        return GestureOutcome('moved', task_id=g.task_id, delta=delta)

    def _resize_frame(self, delta):
        g = self.gesture
        try:
            task = self.state.get_task(g.task_id)
        except NotFound:
            self.gesture = IDLE
            return GestureOutcome('cancelled', task_id=g.task_id, reason='task not found')
        try:
            if g.side == 'left':
                proposed = add_days(g.origin_start, delta)
                if proposed >= task.end_date:
                    raise ConstraintViolation(f'start {proposed} would not precede end {task.end_date}')
                if proposed != task.start_date:
                    self.state.resize_task(g.task_id, start=proposed)
            else:
                proposed = add_days(g.origin_end, delta)
                if proposed <= task.start_date:
                    raise ConstraintViolation(f'end {proposed} would not follow start {task.start_date}')
                if proposed != task.end_date:
                    self.state.resize_task(g.task_id, end=proposed)
        except ConstraintViolation as exc:
            logger.debug('resize frame rejected for %s: %s', g.task_id, exc)
            return GestureOutcome('rejected', task_id=g.task_id, delta=g.applied_delta, reason=str(exc))
        self.gesture = replace(g, applied_delta=delta)
        return GestureOutcome('preview', task_id=g.task_id, delta=delta)

    def _finish_resize(self, delta):
        frame = self._resize_frame(delta)
        g = self.gesture
        if frame.action == 'cancelled':
            return frame
        if g.applied_delta == 0:
            if frame.action == 'rejected':
                return self._ignored(frame.reason)
            self.state.open_task_detail(g.task_id)
            return GestureOutcome('opened', task_id=g.task_id)
        label = 'Start date adjusted' if g.side == 'left' else 'End date adjusted'
        self.notifications.enqueue(f'{label}: {_days_label(g.applied_delta)}', 'info', TOAST_DURATION_MS)
        return GestureOutcome('resized', task_id=g.task_id, delta=g.applied_delta)
