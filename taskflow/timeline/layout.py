from dataclasses import dataclass

from ..dates import days_between
from ..models import TaskPriority

ROW_HEIGHT = 40
BAR_HEIGHT = 38
BAR_TOP_PAD = 1
EDGE_HANDLE_WIDTH = 12
MIN_CANVAS_HEIGHT = 200
CANVAS_BOTTOM_PAD = 20

PRIORITY_COLORS = {
    TaskPriority.LOW: '#3b82f6',
    TaskPriority.MEDIUM: '#22c55e',
    TaskPriority.HIGH: '#f59e0b',
    TaskPriority.URGENT: '#ef4444',
}


@dataclass(frozen=True)
class TaskBar:
    task_id: str
    row: int
    left: float
    width: float
    top: float
    height: float = BAR_HEIGHT
    color: str = PRIORITY_COLORS[TaskPriority.MEDIUM]

    @property
    def right(self):
        return self.left + self.width

    @property
    def bottom(self):
        return self.top + self.height

    def contains(self, x, y):
        return self.left <= x < self.right and self.top <= y < self.bottom

    def region_at(self, x):
        """Which part of the bar ``x`` falls on: 'left', 'right' or 'body'."""
        if x - self.left < EDGE_HANDLE_WIDTH:
            return 'left'
        if self.right - x <= EDGE_HANDLE_WIDTH:
            return 'right'
        return 'body'

    def to_dict(self):
        return {'taskId': self.task_id, 'row': self.row, 'left': self.left, 'width': self.width,
                'top': self.top, 'height': self.height, 'color': self.color}


def bar_for(grid, task, row):
    # Tasks starting before the grid get a negative left and render off-canvas.
    left = days_between(grid.start, task.start_date) * grid.day_width
    width = (days_between(task.start_date, task.end_date) + 1) * grid.day_width
    return TaskBar(
        task_id=task.id,
        row=row,
        left=left,
        width=width,
        top=row * ROW_HEIGHT + BAR_TOP_PAD,
        color=PRIORITY_COLORS.get(task.priority, PRIORITY_COLORS[TaskPriority.MEDIUM]),
    )


def layout_tasks(grid, tasks):
    """One bar per task, one row per task, in list order."""
    return [bar_for(grid, task, row) for row, task in enumerate(tasks)]


def canvas_size(grid, bars):
    return grid.width, max(len(bars) * ROW_HEIGHT + CANVAS_BOTTOM_PAD, MIN_CANVAS_HEIGHT)


def hit_test(bars, x, y):
    """(bar, region) under the point, or (None, None) for empty grid."""
    for bar in bars:
        if bar.contains(x, y):
            return bar, bar.region_at(x)
    return None, None
