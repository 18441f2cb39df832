import tkinter as tk
from tkinter import messagebox, ttk

from errors import ValidationError
from state import TimerMode


def open_timer_settings(app, workspace, on_saved=None):
    """Modal dialog editing the three timer durations in minutes."""
    dialog = tk.Toplevel(app)
    dialog.title('Timer Settings')
    dialog.transient(app)
    dialog.resizable(False, False)

    current = workspace.timer_settings
    fields = (
        ('Focus', TimerMode.FOCUS),
        ('Short Break', TimerMode.SHORT_BREAK),
        ('Long Break', TimerMode.LONG_BREAK),
    )
    values = {}
    for row, (label, mode) in enumerate(fields):
        ttk.Label(dialog, text=f'{label} (minutes)').grid(row=row, column=0, sticky='w', padx=10, pady=4)
        var = tk.IntVar(value=current[mode] // 60)
        ttk.Spinbox(dialog, from_=1, to=120, textvariable=var, width=6).grid(row=row, column=1, padx=10, pady=4)
        values[mode] = var

    def _save():
        try:
            workspace.update_timer_settings(
                values[TimerMode.FOCUS].get(),
                values[TimerMode.SHORT_BREAK].get(),
                values[TimerMode.LONG_BREAK].get(),
            )
        except (ValidationError, tk.TclError) as e:
            messagebox.showerror('Timer Settings', str(e), parent=dialog)
            return
        dialog.destroy()
        if on_saved:
            on_saved()

    buttons = ttk.Frame(dialog)
    buttons.grid(row=len(fields), column=0, columnspan=2, pady=10)
    ttk.Button(buttons, text='Cancel', command=dialog.destroy).pack(side='right', padx=4)
    ttk.Button(buttons, text='Save', command=_save).pack(side='right', padx=4)
    dialog.grab_set()
    return dialog


__all__ = ['open_timer_settings']
