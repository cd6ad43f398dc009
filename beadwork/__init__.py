"""Terminal writer, intent replay and the bw-upgrade command for the bw issue tracker."""

__version__ = "0.6.0"
__all__ = ["intent", "upgrade", "writer"]