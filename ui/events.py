import threading
import tkinter as tk
from tkinter import messagebox, simpledialog

from errors import ValidationError
from logging_bus import emit, subscribe, unsubscribe
from state import Role, TimerMode
from ui.settings_panel import open_timer_settings


class UIEvents:
    """Forwards widget events to the Workspace and redraws from its state."""

    def __init__(self, app, ctx, workspace, widgets, status_bar):
        self.app = app
        self.ctx = ctx
        self.workspace = workspace
        self.widgets = widgets
        self.status_bar = status_bar
        self.in_flight = False
        self.shown_message_id = None

        w = widgets
        w['add_btn'].config(command=self.add_task)
        w['title_entry'].bind('<Return>', lambda _e: self.add_task())
        w['focus_btn'].config(command=self.focus_task)
        w['done_btn'].config(command=self.toggle_task)
        w['note_btn'].config(command=self.edit_note)
        w['up_btn'].config(command=lambda: self.move_task(-1))
        w['down_btn'].config(command=lambda: self.move_task(1))
        w['delete_btn'].config(command=self.delete_task)
        w['tree'].bind('<Double-1>', lambda _e: self.rename_task())
        for mode, btn in w['mode_btns'].items():
            btn.config(command=lambda m=mode: self.switch_mode(m))
        w['start_btn'].config(command=self.toggle_timer)
        w['settings_btn'].config(command=lambda: open_timer_settings(app, workspace, self.refresh_timer))
        w['send_btn'].config(command=self.send_message)
        w['input_entry'].bind('<Return>', lambda _e: self.send_message())
        w['clear_btn'].config(command=self.clear_chat)
        w['accept_btn'].config(command=self.accept_suggestion)
        w['plus_btn'].config(command=lambda: self.adjust_suggestion(1))
        w['minus_btn'].config(command=lambda: self.adjust_suggestion(-1))
        w['rename_btn'].config(command=self.rename_suggestion)

        workspace.timer.add_tick_listener(self.refresh_timer)
        workspace.timer.add_listener(lambda _evt: self.refresh_all())
        subscribe(self._on_log_event)
        self.refresh_all()

    def _on_log_event(self, evt):
        if evt.level == 'INFO' and evt.kind != 'ALERT':
            return
        text = f"{evt.msg} {evt.meta.get('body', '')}".strip()
        if evt.level != 'INFO':
            text = f"⚠️ {text}"
        self.app.after(0, lambda: self.status_bar.set_status(text))

    def shutdown(self):
        unsubscribe(self._on_log_event)
        self.workspace.close()

    # --- Tasks ---
    def _selected_index(self):
        sel = self.widgets['tree'].selection()
        if not sel:
            return None
        return self.widgets['tree'].index(sel[0])

    def _selected_task_id(self):
        sel = self.widgets['tree'].selection()
        return sel[0] if sel else None

    def add_task(self):
        title = self.widgets['title_var'].get()
        try:
            est = int(self.widgets['est_var'].get())
            self.workspace.add_task(title, est)
        except (ValidationError, tk.TclError, ValueError) as e:
            self.status_bar.set_status(f"⚠️ {e}")
            return
        self.widgets['title_var'].set('')
        self.widgets['est_var'].set(1)
        self.refresh_tasks()

    def focus_task(self):
        task_id = self._selected_task_id()
        if task_id:
            self.workspace.select_task(task_id)
            self.refresh_tasks()
            self.refresh_timer()

    def toggle_task(self):
        task_id = self._selected_task_id()
        if task_id:
            self.workspace.toggle_task(task_id)
            self.refresh_tasks()

    def delete_task(self):
        task_id = self._selected_task_id()
        if task_id:
            self.workspace.delete_task(task_id)
            self.refresh_all()

    def move_task(self, offset: int):
        index = self._selected_index()
        if index is None:
            return
        target = index + offset
        if not 0 <= target < len(self.workspace.tasks):
            return
        self.workspace.move_task(index, target)
        self.refresh_tasks()

    def rename_task(self):
        task_id = self._selected_task_id()
        if not task_id:
            return
        task = self.workspace.tasks.get(task_id)
        title = simpledialog.askstring('Rename Task', 'Title:', initialvalue=task.title, parent=self.app)
        if title is None:
            return
        try:
            self.workspace.update_task(task_id, title=title)
        except ValidationError as e:
            self.status_bar.set_status(f"⚠️ {e}")
        self.refresh_all()

    def edit_note(self):
        task_id = self._selected_task_id()
        if not task_id:
            return
        task = self.workspace.tasks.get(task_id)
        note = simpledialog.askstring('Task Note', 'Note:', initialvalue=task.note or '', parent=self.app)
        if note is not None:
            self.workspace.update_task(task_id, note=note)
            self.refresh_all()

    # --- Timer ---
    def toggle_timer(self):
        timer = self.workspace.timer
        if timer.is_running:
            timer.pause()
        else:
            timer.start()
        self.refresh_timer()

    def switch_mode(self, mode: TimerMode):
        self.workspace.timer.switch_mode(mode)
        self.refresh_timer()

    # --- Chat ---
    def send_message(self):
        if self.in_flight:
            return
        text = self.widgets['input_var'].get()
        try:
            request = self.workspace.begin_chat(text)
        except ValidationError:
            return
        self.widgets['input_var'].set('')
        self.in_flight = True
        self.widgets['send_btn'].config(state='disabled')
        self.status_bar.set_status('Thinking…')
        self.refresh_chat()

        def worker():
            result = self.workspace.resolve_chat(request)
            self.app.after(0, lambda: self._on_reply(request, result))

        threading.Thread(target=worker, daemon=True).start()

    def _on_reply(self, request, result):
        self.in_flight = False
        self.widgets['send_btn'].config(state='normal')
        message = self.workspace.apply_chat(request, result)
        self.status_bar.set_status('Ready' if result.ok else '⚠️ Assistant unavailable')
        if message is not None and message.suggestions:
            self.shown_message_id = message.id
        self.refresh_chat()

    def clear_chat(self):
        if not messagebox.askyesno('Clear Chat', 'Start a new conversation? This clears the chat history.'):
            return
        self.workspace.clear_chat()
        self.shown_message_id = None
        self.refresh_chat()

    def _selected_suggestion(self):
        sel = self.widgets['suggestions'].selection()
        if not sel or self.shown_message_id is None:
            return None
        return self.widgets['suggestions'].index(sel[0])

    def accept_suggestion(self):
        index = self._selected_suggestion()
        if index is None:
            return
        item = self.workspace.suggestions.suggestion(self.shown_message_id, index)
        if self.workspace.suggestion_added(item.title):
            self.status_bar.set_status('Already in your task list')
            return
        self.workspace.accept_suggestion(self.shown_message_id, index)
        self.refresh_tasks()
        self.refresh_suggestions(keep=index)

    def adjust_suggestion(self, delta: int):
        index = self._selected_suggestion()
        if index is None:
            return
        self.workspace.suggestions.adjust_estimate(self.shown_message_id, index, delta)
        self.refresh_suggestions(keep=index)

    def rename_suggestion(self):
        index = self._selected_suggestion()
        if index is None:
            return
        item = self.workspace.suggestions.suggestion(self.shown_message_id, index)
        title = simpledialog.askstring('Edit Suggestion', 'Title:', initialvalue=item.title, parent=self.app)
        if title is None:
            return
        try:
            self.workspace.suggestions.edit_title(self.shown_message_id, index, title)
        except ValidationError as e:
            self.status_bar.set_status(f"⚠️ {e}")
        self.refresh_suggestions(keep=index)

    # --- Rendering ---
    def refresh_all(self):
        self.refresh_tasks()
        self.refresh_timer()
        self.refresh_chat()

    def refresh_tasks(self):
        tree = self.widgets['tree']
        selected = self._selected_task_id()
        tree.delete(*tree.get_children())
        active_id = self.workspace.tasks.active_task_id
        for task in self.workspace.tasks:
            title = f"▶ {task.title}" if task.id == active_id else task.title
            tree.insert('', 'end', iid=task.id, values=(
                title, f"{task.completed_units} / {task.estimated_units}", '✓' if task.is_done else ''))
        if selected and tree.exists(selected):
            tree.selection_set(selected)

    def refresh_timer(self):
        timer = self.workspace.timer
        self.widgets['clock_var'].set(timer.clock())
        self.widgets['start_btn'].config(text='PAUSE' if timer.is_running else 'START')
        active = self.workspace.tasks.active_task
        self.widgets['active_var'].set(f"Working on: {active.title}" if active else 'No task selected')
        self.app.title(f"{timer.clock()} - Tomatodo")
        self.status_bar.update_sessions(timer, self.workspace.timer.long_break_interval)

    def refresh_chat(self):
        log = self.widgets['log']
        log.config(state='normal')
        log.delete('1.0', tk.END)
        for message in self.workspace.transcript.messages:
            who = 'You' if message.role is Role.USER else 'Assistant'
            log.insert(tk.END, f"{who}: {message.text}\n\n")
        if self.in_flight:
            log.insert(tk.END, 'Assistant is typing…\n')
        log.config(state='disabled')
        log.see(tk.END)
        if self.shown_message_id is None:
            last = self.workspace.transcript.last(Role.ASSISTANT)
            if last is not None and last.suggestions:
                self.shown_message_id = last.id
        self.refresh_suggestions()

    def refresh_suggestions(self, keep=None):
        tree = self.widgets['suggestions']
        tree.delete(*tree.get_children())
        if self.shown_message_id is None:
            return
        try:
            message = self.workspace.transcript.find(self.shown_message_id)
        except KeyError:
            self.shown_message_id = None
            emit('WARN', 'CHAT', 'Suggestion source message vanished')
            return
        for item in message.suggestions or []:
            added = self.workspace.suggestion_added(item.title)
            tree.insert('', 'end', values=(item.title, item.est_pomodoros, 'Added' if added else ''))
        children = tree.get_children()
        if keep is not None and keep < len(children):
            tree.selection_set(children[keep])


__all__ = ['UIEvents']
