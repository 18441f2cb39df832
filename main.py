"""Entry point wiring the Tomatodo desktop application."""
from context import AppContext
from logging_bus import emit
from ui.layout import launch_ui


def main() -> None:
    ctx = AppContext()
    emit('INFO', 'SYSTEM', 'Starting', data_dir=ctx.settings['data_dir'], backend=ctx.settings['storage_backend'])
    launch_ui(ctx)


if __name__ == '__main__':
    main()
