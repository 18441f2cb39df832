import tkinter as tk


class StatusBar:
    def __init__(self, root):
        self.status_var = tk.StringVar(value='Ready')
        self.session_var = tk.StringVar()
        frame = tk.Frame(root)
        frame.pack(side='bottom', fill='x')
        tk.Label(frame, textvariable=self.status_var).pack(side='left', padx=10)
        tk.Label(frame, textvariable=self.session_var).pack(side='right', padx=10)

    def set_status(self, text: str):
        self.status_var.set(text)

    def update_sessions(self, timer, interval: int):
        done = timer.completed_focus_count
        self.session_var.set(f"Focus sessions this cycle: {done} / {interval}")


__all__ = ['StatusBar']
