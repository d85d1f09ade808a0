"""weapp-notify — mini program message push gateway."""

__version__ = "0.1.0"


def main() -> None:
    """CLI entrypoint for the notification gateway."""
    from weapp_notify.server import run_server_sync

    run_server_sync()
