"""
ShaderLoop - Canvas Player
==========================
Drives one canvas from one timeline.

Each refresh asks the timeline whether a new frame is due and, if so,
renders and presents it. The caller swaps the window buffers only when
refresh() reports that something was presented.
"""

import contextlib
import logging
from typing import Sequence, Tuple

from shaderloop.core.timeline import Timeline
from shaderloop.errors import BindingError
from shaderloop.runtime.playback.canvas import FeedbackCanvas, create_canvas
from shaderloop.runtime.playback.gl_resources import GLContext
from shaderloop.runtime.playback.texture_manager import NamedTexture

LOG = logging.getLogger(__name__)


class CanvasPlayer:
    """
    A canvas bound to a timeline.
    """

    def __init__(
        self,
        context: GLContext,
        timeline: Timeline,
        code: str,
        textures: Sequence[NamedTexture],
        resolution: Tuple[int, int],
        feedback: bool
    ):
        """
        Initialize player.

        Args:
            context: Shared GL context
            timeline: Fresh (not yet started) timeline
            code: Cleaned fragment program
            textures: Input textures, owned by the player from now on
            resolution: Render target size
            feedback: Whether to build a FeedbackCanvas
        """
        self.context = context
        self.timeline = timeline
        self.canvas = create_canvas(context, code, textures, resolution, feedback)

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.canvas.resolution

    @property
    def feedback(self) -> bool:
        return isinstance(self.canvas, FeedbackCanvas)

    def _set_optional_uniform(self, name: str, value):
        # Programs are free to not use time/frame, or to declare them with another type
        with contextlib.suppress(BindingError, *self.context.backend_errors):
            self.canvas.set_uniform(name, value)

    def refresh(self) -> bool:
        """
        Render and present the next frame if one is due.

        Returns:
            True if a frame was presented
        """
        frame = self.timeline.advance()
        if frame is None:
            return False

        if frame == 0 and isinstance(self.canvas, FeedbackCanvas):
            self.canvas.reset()

        self._set_optional_uniform("time", self.timeline.time())
        self._set_optional_uniform("frame", frame)
        self.canvas.render()
        self.canvas.blit((0, 0), self.context.gl.GL_COLOR_BUFFER_BIT)
        return True

    def cleanup(self):
        self.canvas.cleanup()
