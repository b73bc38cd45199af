"""Static hosting of the client application shell."""

from photoqueue_server.web.shell import create_shell_router

__all__ = ["create_shell_router"]
