from datetime import date

import pytest

from taskflow.dates import to_date
from taskflow.errors import ValidationError
from taskflow.models import Project, Task, TaskPriority
from taskflow.notifications import NotificationQueue
from taskflow.store import AppState
from taskflow.timeline.grid import DateGrid
from taskflow.timeline.interaction import GestureKind, InteractionController, snap_days
from taskflow.timeline.layout import PRIORITY_COLORS, canvas_size, hit_test, layout_tasks


def _task(tid, start, end, **kw):
    return Task(id=tid, title=tid.upper(), start_date=to_date(start), end_date=to_date(end),
                project_id='p1', **kw)


@pytest.fixture()
def state():
    s = AppState(projects=[Project(id='p1', name='Launch', start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))])
    s.add_task(_task('t1', '2024-01-05', '2024-01-08'))
    s.add_task(_task('t2', '2024-01-10', '2024-01-12', priority=TaskPriority.URGENT))
    return s


@pytest.fixture()
def grid():
    return DateGrid(date(2024, 1, 1), date(2024, 1, 31))


@pytest.fixture()
def ctl(state):
    return InteractionController(state, NotificationQueue())


# --- Layout ---
def test_bars_follow_dates_and_rows(grid, state):
    bars = layout_tasks(grid, state.tasks)
    assert bars[0].left == 200 and bars[0].width == 200
    assert bars[0].top == 1 and bars[1].top == 41
    assert bars[1].color == PRIORITY_COLORS[TaskPriority.URGENT]


def test_single_day_bar_is_one_day_wide(grid):
    bar = layout_tasks(grid, [_task('x', '2024-01-02', '2024-01-02')])[0]
    assert bar.width == grid.day_width


def test_task_before_grid_has_negative_offset(grid):
    bar = layout_tasks(grid, [_task('x', '2023-12-30', '2024-01-02')])[0]
    assert bar.left == -100
    assert bar.width == 200


def test_canvas_height_has_floor(grid, state):
    assert canvas_size(grid, layout_tasks(grid, state.tasks)) == (31 * 50, 200)
    many = [_task(f't{i}', '2024-01-01', '2024-01-02') for i in range(10)]
    assert canvas_size(grid, layout_tasks(grid, many))[1] == 420


def test_hit_test_regions(grid, state):
    bars = layout_tasks(grid, state.tasks)
    assert hit_test(bars, 205, 20)[1] == 'left'
    assert hit_test(bars, 300, 20)[1] == 'body'
    assert hit_test(bars, 395, 20)[1] == 'right'
    assert hit_test(bars, 300, 60) == (None, None)


# --- Snapping ---
def test_snap_rounds_halves_up():
    assert snap_days(24, 50) == 0
    assert snap_days(25, 50) == 1
    assert snap_days(-25, 50) == 0
    assert snap_days(-26, 50) == -1


# --- Click to create ---
def test_click_empty_day_opens_three_day_draft(ctl, state, grid):
    out = ctl.click_empty(grid, 'p1', 10 * 50 + 5)
    assert out.action == 'draft'
    assert out.draft.start_date == date(2024, 1, 11)
    assert out.draft.end_date == date(2024, 1, 13)
    assert state.task_modal_open and state.task_draft == out.draft


def test_click_honours_scroll_offset(ctl, grid):
    out = ctl.click_empty(grid, 'p1', 5, scroll_left=100)
    assert out.draft.start_date == date(2024, 1, 3)


def test_click_outside_grid_is_ignored(ctl, state, grid):
    assert ctl.click_empty(grid, 'p1', 40 * 50).action == 'ignored'
    assert state.task_draft is None


def test_press_on_empty_row_creates_draft(ctl, state, grid):
    bars = layout_tasks(grid, state.tasks)
    out = ctl.press(grid, bars, 'p1', 300, 150)
    assert out.action == 'draft'
    assert ctl.gesture.kind is GestureKind.IDLE


# --- Dragging ---
def test_drag_back_two_days_keeps_duration(ctl, state):
    ctl.pointer_down('t1', 300, 'body', 50)
    assert ctl.pointer_move(200).action == 'preview'
    # nothing written until release
    assert state.get_task('t1').start_date == date(2024, 1, 5)
    out = ctl.pointer_up(200)
    assert out.action == 'moved' and out.delta == -2
    task = state.get_task('t1')
    assert (task.start_date, task.end_date) == (date(2024, 1, 3), date(2024, 1, 6))
    assert task.duration_days == 4
    assert [n.message for n in ctl.notifications.drain()] == ['Task moved: -2 days']
    assert ctl.gesture.kind is GestureKind.IDLE


def test_drag_without_movement_opens_detail(ctl, state):
    ctl.pointer_down('t1', 300, 'body', 50)
    assert ctl.pointer_up(310).action == 'opened'
    assert state.selected_task_id == 't1' and state.task_modal_open
    assert len(ctl.notifications) == 0


def test_press_on_bar_captures_gesture(ctl, state, grid):
    bars = layout_tasks(grid, state.tasks)
    ctl.press(grid, bars, 'p1', 300, 20)
    assert ctl.gesture.kind is GestureKind.DRAGGING
    assert ctl.gesture.task_id == 't1'


def test_second_pointer_down_is_ignored(ctl):
    ctl.pointer_down('t1', 300, 'body', 50)
    assert ctl.pointer_down('t2', 500, 'left', 50).action == 'ignored'
    assert ctl.gesture.task_id == 't1'


def test_unknown_region_is_rejected(ctl):
    with pytest.raises(ValidationError):
        ctl.pointer_down('t1', 300, 'middle', 50)


def test_task_deleted_mid_gesture_cancels(ctl, state):
    ctl.pointer_down('t1', 300, 'body', 50)
    state.delete_task('t1')
    assert ctl.pointer_up(400).action == 'cancelled'
    assert ctl.gesture.kind is GestureKind.IDLE


# --- Resizing ---
def test_left_resize_previews_live(ctl, state):
    ctl.pointer_down('t1', 200, 'left', 50)
    assert ctl.pointer_move(300).action == 'preview'
    assert state.get_task('t1').start_date == date(2024, 1, 7)
    out = ctl.pointer_up(300)
    assert out.action == 'resized' and out.delta == 2
    assert state.get_task('t1').end_date == date(2024, 1, 8)
    assert ctl.notifications.drain()[0].message == 'Start date adjusted: +2 days'


def test_left_resize_cannot_reach_end(ctl, state):
    ctl.pointer_down('t1', 200, 'left', 50)
    out = ctl.pointer_move(350)
    assert out.action == 'rejected'
    assert state.get_task('t1').start_date == date(2024, 1, 5)


def test_right_resize_cannot_reach_start(ctl, state):
    ctl.pointer_down('t1', 400, 'right', 50)
    assert ctl.pointer_move(200).action == 'rejected'
    assert ctl.pointer_move(350).action == 'preview'
    assert state.get_task('t1').end_date == date(2024, 1, 7)
    out = ctl.pointer_up(350)
    assert out.delta == -1
    assert ctl.notifications.drain()[0].message == 'End date adjusted: -1 day'


def test_resize_returned_to_origin_opens_detail(ctl, state):
    ctl.pointer_down('t1', 200, 'left', 50)
    ctl.pointer_move(300)
    ctl.pointer_move(200)
    assert state.get_task('t1').start_date == date(2024, 1, 5)
    assert ctl.pointer_up(200).action == 'opened'
    assert state.task_modal_open


def test_cancel_resets_gesture(ctl):
    ctl.pointer_down('t1', 200, 'left', 50)
    assert ctl.cancel().action == 'cancelled'
    assert ctl.pointer_move(300).action == 'ignored'


def test_press_on_scrolled_timeline_without_motion_opens_detail(ctl, state, grid):
    bars = layout_tasks(grid, state.tasks)
    assert ctl.press(grid, bars, 'p1', 200, 20, scroll_left=100).action == 'captured'
    assert ctl.pointer_up(200).action == 'opened'
    assert state.get_task('t1').start_date == date(2024, 1, 5)


def test_drag_on_scrolled_timeline_uses_pointer_delta(ctl, state, grid):
    bars = layout_tasks(grid, state.tasks)
    ctl.press(grid, bars, 'p1', 200, 20, scroll_left=100)
    out = ctl.pointer_up(300)
    assert out.action == 'moved' and out.delta == 2
    assert state.get_task('t1').start_date == date(2024, 1, 7)


def test_resize_rejected_on_release_changes_nothing(ctl, state):
    ctl.pointer_down('t1', 400, 'right', 50)
    out = ctl.pointer_up(200)
    assert out.action == 'ignored'
    assert state.get_task('t1').end_date == date(2024, 1, 8)
    assert len(ctl.notifications) == 0
    assert not state.task_modal_open
    assert ctl.gesture.kind is GestureKind.IDLE
