"""Server exceptions."""


class VapidConfigError(Exception):
    """Raised at startup when no usable VAPID key pair is configured."""
