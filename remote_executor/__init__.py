"""Token-guarded HTTP gateway for sandboxed file and shell actions."""

__version__ = "1.0.0"
