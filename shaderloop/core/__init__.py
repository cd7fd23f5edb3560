"""ShaderLoop - Source Preprocessing and Frame Timing"""

from .annotations import AnnotatedGLSL, Directives, load_source, strip_comments
from .timeline import Clock, SystemClock, Timeline

__all__ = [
    'AnnotatedGLSL',
    'Directives',
    'load_source',
    'strip_comments',
    'Clock',
    'SystemClock',
    'Timeline',
]
