from .grid import DateGrid, apply_wheel_zoom, clamp_zoom, compute_date_range
from .interaction import GestureKind, GestureState, InteractionController, snap_days
from .layout import TaskBar, canvas_size, hit_test, layout_tasks
