from attestgate.observability.logs import JsonLogFormatter, configure_logging

__all__ = ["JsonLogFormatter", "configure_logging"]
