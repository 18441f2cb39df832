from typing import Callable, Optional

from logging_bus import emit


class Alerts:
    """Desktop notification and sound side channels.

    Both calls are fire-and-forget: a missing or failing backend is logged and
    otherwise ignored.
    """

    def __init__(self, notifier: Optional[Callable[[str, str], None]] = None,
                 player: Optional[Callable[[], None]] = None,
                 enabled: bool = True, sound: bool = True):
        self.notifier = notifier
        self.player = player
        self.enabled = enabled
        self.sound = sound

    def notify(self, title: str, body: str) -> None:
        emit("INFO", "ALERT", title, body=body)
        if not self.enabled or self.notifier is None:
            return
        try:
            self.notifier(title, body)
        except Exception as e:
            emit("WARN", "ALERT", "Notification failed", error=str(e))

    def play_sound(self) -> None:
        if not self.sound or self.player is None:
            return
        try:
            self.player()
        except Exception as e:
            emit("WARN", "ALERT", "Sound failed", error=str(e))


__all__ = ["Alerts"]
