import tkinter as tk
from tkinter import ttk

from ttkbootstrap import Style
from ttkbootstrap.toast import ToastNotification

from logic.workspace import Workspace
from state import TimerMode
from ui.events import UIEvents
from ui.status_bar import StatusBar


def _task_panel(parent):
    frame = ttk.LabelFrame(parent, text='Tasks', padding=8)
    tree = ttk.Treeview(frame, columns=('title', 'progress', 'done'), show='headings', selectmode='browse')
    tree.heading('title', text='Task')
    tree.heading('progress', text='Done / Est')
    tree.heading('done', text='✓')
    tree.column('title', width=200)
    tree.column('progress', width=80, anchor='center')
    tree.column('done', width=30, anchor='center')
    tree.pack(fill='both', expand=True)

    add_row = ttk.Frame(frame)
    add_row.pack(fill='x', pady=(6, 0))
    title_var = tk.StringVar()
    est_var = tk.IntVar(value=1)
    title_entry = ttk.Entry(add_row, textvariable=title_var)
    title_entry.pack(side='left', fill='x', expand=True)
    ttk.Spinbox(add_row, from_=1, to=10, textvariable=est_var, width=4).pack(side='left', padx=4)
    add_btn = ttk.Button(add_row, text='Add')
    add_btn.pack(side='left')

    actions = ttk.Frame(frame)
    actions.pack(fill='x', pady=(6, 0))
    buttons = {}
    for key, text in (('focus', 'Focus'), ('done', 'Done'), ('note', 'Note'),
                      ('up', '▲'), ('down', '▼'), ('delete', 'Delete')):
        buttons[key] = ttk.Button(actions, text=text, width=6)
        buttons[key].pack(side='left', padx=1)

    return frame, {
        'tree': tree,
        'title_var': title_var,
        'est_var': est_var,
        'title_entry': title_entry,
        'add_btn': add_btn,
        **{f'{k}_btn': b for k, b in buttons.items()},
    }


def _timer_panel(parent):
    frame = ttk.Frame(parent, padding=16)
    modes = ttk.Frame(frame)
    modes.pack(pady=(0, 12))
    mode_btns = {}
    for mode, text in ((TimerMode.FOCUS, 'Pomodoro'), (TimerMode.SHORT_BREAK, 'Short Break'),
                       (TimerMode.LONG_BREAK, 'Long Break')):
        mode_btns[mode] = ttk.Button(modes, text=text)
        mode_btns[mode].pack(side='left', padx=2)
    clock_var = tk.StringVar(value='25:00')
    ttk.Label(frame, textvariable=clock_var, font=('Helvetica', 56, 'bold')).pack(pady=10)
    start_btn = ttk.Button(frame, text='START', width=12)
    start_btn.pack(pady=6)
    active_var = tk.StringVar()
    ttk.Label(frame, textvariable=active_var, wraplength=320, justify='center').pack(pady=10)
    settings_btn = ttk.Button(frame, text='⚙️ Settings')
    settings_btn.pack(side='bottom', pady=6)
    return frame, {
        'mode_btns': mode_btns,
        'clock_var': clock_var,
        'start_btn': start_btn,
        'active_var': active_var,
        'settings_btn': settings_btn,
    }


def _chat_panel(parent):
    frame = ttk.LabelFrame(parent, text='Assistant', padding=8)
    log = tk.Text(frame, wrap='word', height=18, state='disabled')
    log.pack(fill='both', expand=True)

    sugg = ttk.Treeview(frame, columns=('title', 'est', 'status'), show='headings', height=5, selectmode='browse')
    sugg.heading('title', text='Suggested task')
    sugg.heading('est', text='Est')
    sugg.heading('status', text='')
    sugg.column('title', width=200)
    sugg.column('est', width=40, anchor='center')
    sugg.column('status', width=60, anchor='center')
    sugg.pack(fill='x', pady=(6, 0))
    sugg_actions = ttk.Frame(frame)
    sugg_actions.pack(fill='x')
    accept_btn = ttk.Button(sugg_actions, text='Add to tasks')
    accept_btn.pack(side='left')
    minus_btn = ttk.Button(sugg_actions, text='−', width=3)
    minus_btn.pack(side='left', padx=2)
    plus_btn = ttk.Button(sugg_actions, text='+', width=3)
    plus_btn.pack(side='left')
    rename_btn = ttk.Button(sugg_actions, text='Rename')
    rename_btn.pack(side='left', padx=2)

    input_row = ttk.Frame(frame)
    input_row.pack(fill='x', pady=(6, 0))
    input_var = tk.StringVar()
    entry = ttk.Entry(input_row, textvariable=input_var)
    entry.pack(side='left', fill='x', expand=True)
    send_btn = ttk.Button(input_row, text='Send')
    send_btn.pack(side='left', padx=2)
    clear_btn = ttk.Button(input_row, text='Clear')
    clear_btn.pack(side='left')
    return frame, {
        'log': log,
        'suggestions': sugg,
        'accept_btn': accept_btn,
        'minus_btn': minus_btn,
        'plus_btn': plus_btn,
        'rename_btn': rename_btn,
        'input_var': input_var,
        'input_entry': entry,
        'send_btn': send_btn,
        'clear_btn': clear_btn,
    }


def launch_ui(ctx):
    app = tk.Tk()
    app.title('Tomatodo')
    app.geometry('1200x680')
    Style(ctx.settings['theme'])

    def toast(title, body):
        ToastNotification(title=title, message=body, duration=4000).show_toast()

    ctx.alerts.notifier = toast
    ctx.alerts.player = app.bell

    workspace = Workspace(ctx, scheduler=app)
    workspace.load()

    panes = ttk.Panedwindow(app, orient='horizontal')
    panes.pack(fill='both', expand=True, padx=10, pady=10)
    task_frame, task_widgets = _task_panel(panes)
    timer_frame, timer_widgets = _timer_panel(panes)
    chat_frame, chat_widgets = _chat_panel(panes)
    panes.add(task_frame, weight=1)
    panes.add(timer_frame, weight=1)
    panes.add(chat_frame, weight=1)

    status_bar = StatusBar(app)
    events = UIEvents(app, ctx, workspace, {**task_widgets, **timer_widgets, **chat_widgets}, status_bar)

    def on_close():
        events.shutdown()
        app.destroy()

    app.protocol('WM_DELETE_WINDOW', on_close)
    app.mainloop()


__all__ = ['launch_ui']
