"""PhotoQueue server - upload reconciliation, push fanout and shell hosting."""

__version__ = "0.1.0"
