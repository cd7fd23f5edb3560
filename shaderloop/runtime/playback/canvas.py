"""
ShaderLoop - Render Targets
===========================
Runs a fragment program over an off-screen buffer and presents it.

Two kinds of canvas share the same surface:
- SimpleCanvas: one color buffer, input textures on units 0..k
- FeedbackCanvas: two color buffers in ping-pong; the buffer written on
  the previous frame is readable as `previous` on unit 0, input
  textures start at unit 1

Both present through a blit program that copies the current color
buffer to the default framebuffer.
"""

import logging
from typing import List, Sequence, Tuple

from shaderloop.core.annotations import FEEDBACK_SAMPLER
from shaderloop.runtime.playback.gl_resources import (
    ColorBuffer,
    ColorBuffers,
    GLContext,
    QuadGeometry,
    ShaderProgram,
)
from shaderloop.runtime.playback.shaders import BLIT_FRAGMENT_SHADER, QUAD_VERTEX_SHADER
from shaderloop.runtime.playback.texture_manager import NamedTexture

LOG = logging.getLogger(__name__)

CORNERS_ATTRIBUTE = "corners"


class QuadProgram:
    """A fragment program drawn over the full-screen quad."""

    def __init__(self, quad: QuadGeometry, name: str, fragment_source: str):
        self.quad = quad
        self.program = ShaderProgram(quad.context, name, QUAD_VERTEX_SHADER, fragment_source)
        try:
            location = self.program.attribute_location(CORNERS_ATTRIBUTE)
            self.vao = quad.attach(location)
        except Exception:
            self.program.cleanup()
            raise

    def use(self):
        self.program.use()

    def set_uniform(self, name: str, value):
        self.program.set_uniform(name, value)

    def draw(self):
        self.quad.draw(self.vao)

    def cleanup(self):
        if self.vao:
            self.quad.context.gl.glDeleteVertexArrays(1, [self.vao])
            self.vao = 0
        self.program.cleanup()


class Sampler:
    """A named texture assigned to a texture unit."""

    def __init__(self, texture: NamedTexture, unit: int):
        self.texture = texture
        self.unit = unit

    def bind(self):
        self.texture.context.active_texture(self.unit)
        self.texture.bind()


class _Canvas:
    """
    Shared construction and presentation logic.

    Subclasses own their color buffer(s) and implement render().
    """

    first_texture_unit = 0

    def __init__(
        self,
        context: GLContext,
        code: str,
        textures: Sequence[NamedTexture],
        resolution: Tuple[int, int]
    ):
        """
        Build programs, samplers and geometry.

        Args:
            context: Shared GL context
            code: Cleaned fragment program
            textures: Input textures in declaration order
            resolution: Render target size (width, height)

        Raises:
            CompileError, LinkError: If a program fails to build
            BindingError: If a sampler or the corner attribute is inactive
            BackendError: If the driver rejects a buffer
        """
        self.context = context
        self._resolution = (int(resolution[0]), int(resolution[1]))
        self.textures: List[NamedTexture] = list(textures)
        self.samplers: List[Sampler] = []
        self.main = None
        self.blitter = None

        self.quad = QuadGeometry(context)
        try:
            self.main = QuadProgram(self.quad, "main", code)
            self.main.use()
            self._bind_reserved_samplers()
            for index, texture in enumerate(self.textures):
                unit = index + self.first_texture_unit
                self.main.set_uniform(texture.name, unit)
                self.samplers.append(Sampler(texture, unit))

            self.blitter = QuadProgram(self.quad, "blit", BLIT_FRAGMENT_SHADER)
            self.blitter.use()
            self.blitter.set_uniform("image", 0)

            self._create_buffers()
        except Exception:
            self.cleanup()
            raise

        LOG.debug("%s ready (%d×%d, %d sampler(s))",
                  type(self).__name__, *self._resolution, len(self.samplers))

    def _bind_reserved_samplers(self):
        pass

    def _create_buffers(self):
        raise NotImplementedError

    def _current_buffer(self) -> ColorBuffer:
        raise NotImplementedError

    @property
    def resolution(self) -> Tuple[int, int]:
        return self._resolution

    def set_uniform(self, name: str, value):
        """
        Set a uniform on the user program.

        Raises:
            BindingError: If the program has no active uniform `name`
        """
        self.main.use()
        self.main.set_uniform(name, value)

    def _bind_samplers(self):
        for sampler in self.samplers:
            sampler.bind()

    def _draw_main(self):
        self.main.use()
        self.context.set_viewport((0, 0), self._resolution)
        self.main.draw()

    def render(self):
        raise NotImplementedError

    def blit(self, origin: Tuple[int, int], clear_mask: int):
        """
        Present the current color buffer on the default framebuffer.

        Args:
            origin: Lower-left corner of the viewport on the surface
            clear_mask: Bits passed to glClear before drawing
        """
        self.context.bind_default_framebuffer()
        self.context.clear(clear_mask)
        self.context.set_viewport(origin, self._resolution)
        self.context.active_texture(0)
        self._current_buffer().bind_texture()
        self.blitter.use()
        self.blitter.draw()

    def _release_buffers(self):
        raise NotImplementedError

    def cleanup(self):
        """Release programs, buffers, geometry and input textures."""
        self._release_buffers()
        for program in (self.main, self.blitter):
            if program is not None:
                program.cleanup()
        self.main = None
        self.blitter = None
        for texture in self.textures:
            texture.cleanup()
        self.samplers.clear()
        self.quad.cleanup()


class SimpleCanvas(_Canvas):
    """Single-pass canvas."""

    def _create_buffers(self):
        self.colorbuffer = ColorBuffer(self.context, self._resolution)

    def _current_buffer(self) -> ColorBuffer:
        return self.colorbuffer

    def render(self):
        self._bind_samplers()
        self.colorbuffer.clear()
        self._draw_main()

    def _release_buffers(self):
        colorbuffer = getattr(self, 'colorbuffer', None)
        if colorbuffer is not None:
            colorbuffer.cleanup()
            self.colorbuffer = None


class FeedbackCanvas(_Canvas):
    """
    Double-buffered canvas exposing the previous frame as `previous`.

    The cursor selects the buffer being written; it only moves inside
    render() and reset().
    """

    first_texture_unit = 1

    def _bind_reserved_samplers(self):
        self.main.set_uniform(FEEDBACK_SAMPLER, 0)

    def _create_buffers(self):
        self.colorbuffers = ColorBuffers(self.context, self._resolution, count=2)

    def _current_buffer(self) -> ColorBuffer:
        return self.colorbuffers[self.colorbuffers.cursor]

    @property
    def cursor(self) -> int:
        return self.colorbuffers.cursor

    def reset(self):
        """Clear both buffers and rewind to buffer 0."""
        self.colorbuffers.reset()

    def render(self):
        self.colorbuffers.next()
        self._bind_samplers()

        cursor = self.colorbuffers.cursor
        self.colorbuffers[cursor].clear()

        self.context.active_texture(0)
        self.colorbuffers[1 - cursor].bind_texture()
        self._draw_main()

    def _release_buffers(self):
        colorbuffers = getattr(self, 'colorbuffers', None)
        if colorbuffers is not None:
            colorbuffers.cleanup()
            self.colorbuffers = None


def create_canvas(
    context: GLContext,
    code: str,
    textures: Sequence[NamedTexture],
    resolution: Tuple[int, int],
    feedback: bool
) -> _Canvas:
    """Build the canvas kind a shader asks for."""
    if feedback:
        return FeedbackCanvas(context, code, textures, resolution)
    return SimpleCanvas(context, code, textures, resolution)
