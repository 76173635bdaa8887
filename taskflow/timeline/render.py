import io

import matplotlib
matplotlib.use('Agg')  # Use non-GUI backend for server
import matplotlib.dates as mdates
import matplotlib.patches as mpatches
import matplotlib.pyplot as plt

from ..models import TaskPriority
from .layout import PRIORITY_COLORS

REMAINING_ALPHA = 0.35


def render_gantt_png(grid, bars, tasks, today=None, figsize=(16, 8)):
    """Static PNG of the same layout the interactive timeline shows.

    Rows follow ``bars``; each bar is split into a completed portion (task
    progress) and a lighter remaining portion, colored by priority.
    """
    by_id = {t.id: t for t in tasks}
    fig, ax = plt.subplots(figsize=figsize)
    try:
        if not bars:
            ax.text(0.5, 0.5, 'No tasks to display', ha='center', va='center', fontsize=16,
                    color='gray', transform=ax.transAxes)
        for bar in bars:
            task = by_id[bar.task_id]
            start = mdates.date2num(task.start_date)
            dur = task.duration_days
            done = dur * max(0, min(task.progress, 100)) / 100.0
            if done > 0:
                ax.barh(bar.row, done, left=start, height=0.6, align='center',
                        color=bar.color, edgecolor='black')
            if done < dur:
                ax.barh(bar.row, dur - done, left=start + done, height=0.6, align='center',
                        color=bar.color, alpha=REMAINING_ALPHA, edgecolor='black')
        ax.set_yticks([b.row for b in bars])
        ax.set_yticklabels([by_id[b.task_id].title for b in bars])
        ax.set_xlim(mdates.date2num(grid.start), mdates.date2num(grid.end) + 1)
        ax.xaxis.set_major_locator(mdates.AutoDateLocator())
        ax.xaxis.set_major_formatter(mdates.DateFormatter('%Y-%m-%d'))
        ax.set_xlabel('Date')
        ax.grid(True, axis='x', linestyle='--', alpha=0.6)
        ax.invert_yaxis()
        if today is not None and grid.today_marker(today) is not None:
            ax.axvline(mdates.date2num(today), color='red', lw=2)
        legend = [mpatches.Patch(color=PRIORITY_COLORS[p], label=p.value.title()) for p in TaskPriority]
        ax.legend(handles=legend, loc='upper left', bbox_to_anchor=(1.01, 1), frameon=True, title='Priority')
        fig.autofmt_xdate()
        fig.tight_layout()
        buf = io.BytesIO()
        fig.savefig(buf, format='png')
        return buf.getvalue()
    finally:
        plt.close(fig)
