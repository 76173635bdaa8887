import math
from dataclasses import dataclass

from ..dates import add_days, days_between, each_day, end_of_week, start_of_week, to_date

BASE_DAY_WIDTH = 50
MIN_ZOOM = 50
MAX_ZOOM = 200
DEFAULT_ZOOM = 100
ZOOM_STEP = 10
# wheel delta units per zoom percent
WHEEL_DIVISOR = 10
EMPTY_WINDOW_DAYS = 30


def clamp_zoom(value):
    return min(MAX_ZOOM, max(MIN_ZOOM, value))


def apply_wheel_zoom(zoom, delta_y, modifier):
    """Zoom after a wheel event. Without the modifier key the wheel scrolls instead."""
    if not modifier:
        return zoom
    return clamp_zoom(zoom - delta_y / WHEEL_DIVISOR)


def zoom_in(zoom):
    return clamp_zoom(zoom + ZOOM_STEP)


def zoom_out(zoom):
    return clamp_zoom(zoom - ZOOM_STEP)


def day_width_for(zoom):
    return BASE_DAY_WIDTH * clamp_zoom(zoom) / 100


def compute_date_range(tasks, start=None, end=None, today=None):
    """Visible (start, end) for a set of tasks.

    Explicit bounds win when both are given. An empty task set shows the
    weeks covering the next 30 days; otherwise the range is widened to whole
    weeks around the earliest start and the latest end.
    """
    if start is not None and end is not None:
        return to_date(start), to_date(end)
    if not tasks:
        if today is None:
            raise ValueError('today is required when there are no tasks')
        return start_of_week(today), end_of_week(add_days(today, EMPTY_WINDOW_DAYS))
    earliest = min(to_date(t.start_date) for t in tasks)
    latest = max(to_date(t.end_date) for t in tasks)
    return start_of_week(earliest), end_of_week(latest)


@dataclass(frozen=True)
class DateGrid:
    start: object
    end: object
    zoom: float = DEFAULT_ZOOM

    @classmethod
    def for_tasks(cls, tasks, zoom=DEFAULT_ZOOM, start=None, end=None, today=None):
        range_start, range_end = compute_date_range(tasks, start, end, today)
        return cls(range_start, range_end, clamp_zoom(zoom))

    @property
    def day_width(self):
        return day_width_for(self.zoom)

    @property
    def days(self):
        return each_day(self.start, self.end)

    @property
    def total_days(self):
        return days_between(self.start, self.end) + 1

    @property
    def width(self):
        return self.total_days * self.day_width

    def day_index(self, d):
        return days_between(self.start, d)

    def offset_of(self, d):
        return self.day_index(d) * self.day_width

    def day_at(self, x):
        """Calendar day under pixel ``x``, or None outside the grid."""
        idx = math.floor(x / self.day_width)
        if 0 <= idx < self.total_days:
            return add_days(self.start, idx)
        return None

    def with_zoom(self, zoom):
        return DateGrid(self.start, self.end, clamp_zoom(zoom))

    # --- Header helpers ---
    def month_spans(self):
        """(label, first_day_index, pixel_width) for each month run in the range."""
        spans = []
        days = self.days
        run_start = 0
        for idx in range(1, len(days) + 1):
            if idx == len(days) or (days[idx].year, days[idx].month) != (days[run_start].year, days[run_start].month):
                first = days[run_start]
                spans.append((first.strftime('%Y-%m'), run_start, (idx - run_start) * self.day_width))
                run_start = idx
        return spans

    def header_days(self):
        return [
            {'date': d.isoformat(), 'day': d.day, 'weekday': d.strftime('%a'),
             'weekend': d.weekday() >= 5, 'left': i * self.day_width}
            for i, d in enumerate(self.days)
        ]

    def today_marker(self, today):
        diff = self.day_index(today)
        if 0 <= diff <= self.total_days:
            return diff * self.day_width
        return None

    def to_dict(self, today=None):
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'zoom': self.zoom,
            'dayWidth': self.day_width,
            'totalDays': self.total_days,
            'width': self.width,
            'months': [{'label': label, 'index': idx, 'width': w} for label, idx, w in self.month_spans()],
            'days': self.header_days(),
            'todayOffset': self.today_marker(today) if today is not None else None,
        }
