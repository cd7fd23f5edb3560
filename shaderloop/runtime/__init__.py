"""ShaderLoop - Preview Runtime"""

from .state import Runtime, RuntimeState
from .watcher import CodeWatcher, FileEvent

__all__ = [
    'Runtime',
    'RuntimeState',
    'CodeWatcher',
    'FileEvent',
]
