"""Exceptions raised by the configuration layer."""


class ConfigError(Exception):
    """Raised when a config file, environment override or CLI override is unusable.

    The CLI turns this into a ``click.ClickException``; library callers see it
    from ``ConfigManager.load`` and ``resolve_with_precedence``.
    """
