"""parkwatch: theme park wait-time poller with threshold alerts."""

__version__ = "0.1.0"
