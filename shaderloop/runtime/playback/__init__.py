"""ShaderLoop - Off-screen Rendering and Presentation"""

from .gl_resources import GLContext
from .canvas import SimpleCanvas, FeedbackCanvas, create_canvas
from .player import CanvasPlayer
from .texture_manager import NamedTexture, load_named_textures

__all__ = [
    'GLContext',
    'SimpleCanvas',
    'FeedbackCanvas',
    'create_canvas',
    'CanvasPlayer',
    'NamedTexture',
    'load_named_textures',
]
