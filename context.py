import json
import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from logging_bus import KINDS, emit, set_file_logger, set_kind_filter, set_log_level_filter, set_ring_limit, set_verbose
from persistence import open_store
from services.alerts import Alerts
from services.openai_helper import DEFAULT_MODEL, WINDOW_SIZE, OpenAIChatClient

LOG_LEVELS = ('INFO', 'WARN', 'ERROR')


class AppSettings(BaseModel):
    """Shape of ``settings.json``; unknown keys are carried through untouched."""

    model_config = ConfigDict(extra='allow')

    data_dir: str = '~/.tomatodo'
    storage_backend: Literal['file', 'sqlite', 'memory'] = 'file'
    model: str = DEFAULT_MODEL
    window_size: int = Field(WINDOW_SIZE, ge=1)
    long_break_interval: int = Field(4, ge=1)
    theme: str = 'minty'
    notifications: bool = True
    sound: bool = True
    verbose: bool = True
    activity_log_file: Optional[str] = None
    log_ring_limit: int = Field(2000, ge=200)
    muted_log_kinds: List[str] = Field(default_factory=list)
    muted_log_levels: List[str] = Field(default_factory=list)


DEFAULT_SETTINGS = AppSettings().model_dump()


class AppContext:
    """Settings and the shared services built from them.

    Passed explicitly to whatever needs the store, the completion client or
    the alert channels; tests hand in fakes through the keyword arguments.
    Each settings layer is validated as a whole; an invalid layer is skipped.
    """

    def __init__(self, data_dir=None, settings=None, store=None, client=None, alerts=None,
                 load_env=True):
        if load_env:
            load_dotenv()
        self.settings = dict(DEFAULT_SETTINGS)
        env_dir = os.getenv('TOMATODO_DATA_DIR')
        if env_dir:
            self.settings['data_dir'] = env_dir
        if data_dir is not None:
            self.settings['data_dir'] = str(data_dir)
        self.settings_path = Path(self.settings['data_dir']).expanduser() / 'settings.json'
        self._load_settings()
        if os.getenv('TOMATODO_MODEL'):
            self._merge({'model': os.getenv('TOMATODO_MODEL')}, 'environment')
        if settings:
            self._merge(settings, 'overrides')

        self._configure_logging()
        self.store = store if store is not None else open_store(self.settings)
        self.client = client if client is not None else OpenAIChatClient(self.settings['model'])
        self.alerts = alerts if alerts is not None else Alerts(
            enabled=self.settings['notifications'],
            sound=self.settings['sound'],
        )

    def _merge(self, layer: dict, source: str) -> bool:
        try:
            checked = AppSettings.model_validate({**self.settings, **layer})
        except SchemaError as e:
            emit('WARN', 'SYSTEM', 'Ignoring invalid settings', source=source,
                 error=str(e.errors()[0]['msg']), field=str(e.errors()[0]['loc']))
            return False
        self.settings = checked.model_dump()
        return True

    def _load_settings(self) -> None:
        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            emit('WARN', 'SYSTEM', 'Ignoring unreadable settings', path=str(self.settings_path), error=str(e))
            return
        if not isinstance(data, dict):
            emit('WARN', 'SYSTEM', 'Ignoring unreadable settings', path=str(self.settings_path),
                 error='expected a JSON object')
            return
        self._merge(data, str(self.settings_path))

    def _configure_logging(self) -> None:
        muted_kinds = set(self.settings['muted_log_kinds'])
        muted_levels = set(self.settings['muted_log_levels'])
        set_verbose(self.settings['verbose'])
        set_ring_limit(self.settings['log_ring_limit'])
        set_kind_filter({k: k not in muted_kinds for k in KINDS})
        set_log_level_filter({lvl: lvl not in muted_levels for lvl in LOG_LEVELS})
        set_file_logger(self.settings['activity_log_file'])

    def save_settings(self) -> bool:
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2)
        except OSError as e:
            emit('ERROR', 'SYSTEM', 'Settings not saved', error=str(e))
            return False
        return True


__all__ = ['AppContext', 'AppSettings', 'DEFAULT_SETTINGS']
