"""
ShaderLoop - OpenGL Resources
=============================
Thin wrappers around the OpenGL objects the preview needs.

Responsibilities:
- Share one GL function namespace (the context handle) between objects
- Compile and link shader programs, resolve attribute/uniform locations
- Own the full-screen quad geometry
- Create off-screen color buffers (framebuffer + float texture)

Every wrapper keeps a reference to the GLContext it was created with and
deletes its own GL names in cleanup(). This module does NOT decide what
to draw; see canvas.py.
"""

import ctypes
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from shaderloop.errors import BackendError, BindingError, CompileError, LinkError

LOG = logging.getLogger(__name__)

QUAD_CORNERS = np.array([
    -1.0, -1.0,
    -1.0,  1.0,
     1.0,  1.0,
     1.0, -1.0
], dtype=np.float32)

QUAD_INDICES = np.array([0, 1, 2, 0, 3, 2], dtype=np.uint8)

_GL_ERROR_DESCRIPTIONS = {
    'GL_INVALID_ENUM': "An unacceptable value is specified for an enumerated argument",
    'GL_INVALID_VALUE': "A numeric argument is out of range",
    'GL_INVALID_OPERATION': "The specified operation is not allowed in the current state",
    'GL_INVALID_FRAMEBUFFER_OPERATION': "The framebuffer object is not complete",
    'GL_OUT_OF_MEMORY': "There is not enough memory left to execute the command",
}

_FRAMEBUFFER_STATUS_DESCRIPTIONS = {
    'GL_FRAMEBUFFER_UNDEFINED': "Default framebuffer does not exist",
    'GL_FRAMEBUFFER_INCOMPLETE_ATTACHMENT': "Some framebuffer attachment points are incomplete",
    'GL_FRAMEBUFFER_INCOMPLETE_MISSING_ATTACHMENT': "Framebuffer has no image attached",
    'GL_FRAMEBUFFER_UNSUPPORTED': "Attached image formats are not supported together",
    'GL_FRAMEBUFFER_INCOMPLETE_MULTISAMPLE': "Attachments have mismatched sample counts",
}


class GLContext:
    """
    Shared handle to the OpenGL function namespace.

    Args:
        gl: Module-like object exposing gl* functions and GL_* constants
            (default: PyOpenGL's OpenGL.GL, imported lazily)
        backend_errors: Exception types the backend raises on its own
            (default: PyOpenGL's GLError when gl is not given)
    """

    def __init__(self, gl=None, backend_errors: Optional[Tuple[type, ...]] = None):
        if gl is None:
            from OpenGL import GL as gl
            from OpenGL.error import GLError
            if backend_errors is None:
                backend_errors = (GLError,)
        self.gl = gl
        self.backend_errors: Tuple[type, ...] = tuple(backend_errors or ())

    @property
    def version(self) -> str:
        return _decode_log(self.gl.glGetString(self.gl.GL_VERSION))

    @property
    def renderer(self) -> str:
        return _decode_log(self.gl.glGetString(self.gl.GL_RENDERER))

    def _describe(self, code: int, table: Dict[str, str], fallback: str) -> str:
        for name, description in table.items():
            if getattr(self.gl, name, None) == code:
                return f"{description} ({name})"
        return f"{fallback} ({code})"

    def check_error(self):
        """
        Raise if the driver has an error flag set.

        Raises:
            BackendError: With a description of the GL error code
        """
        code = self.gl.glGetError()
        if code != self.gl.GL_NO_ERROR:
            raise BackendError(self._describe(code, _GL_ERROR_DESCRIPTIONS, "Unknown OpenGL error"))

    def clear_errors(self):
        """Discard a stale error flag so the next check_error() is meaningful."""
        self.gl.glGetError()

    def describe_framebuffer_status(self, status: int) -> str:
        return self._describe(status, _FRAMEBUFFER_STATUS_DESCRIPTIONS, "Unknown framebuffer error")

    def bind_default_framebuffer(self):
        self.gl.glBindFramebuffer(self.gl.GL_FRAMEBUFFER, 0)

    def clear(self, mask: int):
        self.gl.glClear(mask)

    def active_texture(self, unit: int):
        self.gl.glActiveTexture(self.gl.GL_TEXTURE0 + unit)

    def set_viewport(self, origin: Sequence[int], resolution: Sequence[int]):
        self.gl.glViewport(int(origin[0]), int(origin[1]), int(resolution[0]), int(resolution[1]))


class ShaderProgram:
    """Encapsulates a compiled and linked OpenGL shader program."""

    def __init__(self, context: GLContext, name: str, vertex_source: str, fragment_source: str):
        """
        Compile and link shader program.

        Args:
            context: Shared GL context
            name: Program name (for logging)
            vertex_source: Vertex shader GLSL source
            fragment_source: Fragment shader GLSL source

        Raises:
            CompileError: If either stage fails to compile
            LinkError: If the program fails to link
        """
        self.context = context
        self.name = name
        self.program_id = 0
        gl = context.gl

        shaders = []
        try:
            shaders.append(self._compile_shader(vertex_source, gl.GL_VERTEX_SHADER, "vertex"))
            shaders.append(self._compile_shader(fragment_source, gl.GL_FRAGMENT_SHADER, "fragment"))

            self.program_id = gl.glCreateProgram()
            for shader in shaders:
                gl.glAttachShader(self.program_id, shader)
            gl.glLinkProgram(self.program_id)
            for shader in shaders:
                gl.glDetachShader(self.program_id, shader)

            if not gl.glGetProgramiv(self.program_id, gl.GL_LINK_STATUS):
                log = _decode_log(gl.glGetProgramInfoLog(self.program_id))
                gl.glDeleteProgram(self.program_id)
                self.program_id = 0
                raise LinkError(log or f"Unknown program linking error ({name})")
        finally:
            # Shaders are no longer needed once linked (or failed)
            for shader in shaders:
                gl.glDeleteShader(shader)

        LOG.debug("Compiled and linked: %s", name)

    def _compile_shader(self, source: str, shader_type: int, type_name: str) -> int:
        """Compile a shader and check for errors."""
        gl = self.context.gl
        shader = gl.glCreateShader(shader_type)
        gl.glShaderSource(shader, source)
        gl.glCompileShader(shader)

        if not gl.glGetShaderiv(shader, gl.GL_COMPILE_STATUS):
            log = _decode_log(gl.glGetShaderInfoLog(shader))
            gl.glDeleteShader(shader)
            raise CompileError(log or f"Unknown {type_name} shader compilation error ({self.name})")

        return shader

    def use(self):
        """Activate this shader program."""
        self.context.gl.glUseProgram(self.program_id)

    def attribute_location(self, name: str) -> int:
        location = self.context.gl.glGetAttribLocation(self.program_id, name)
        if location < 0:
            raise BindingError(
                f"Attribute `{name}` is not an active attribute in program '{self.name}'"
            )
        return location

    def uniform_location(self, name: str) -> int:
        location = self.context.gl.glGetUniformLocation(self.program_id, name)
        if location < 0:
            raise BindingError(
                f"Uniform `{name}` does not correspond to an active uniform in program '{self.name}'"
            )
        return location

    def set_uniform(self, name: str, value):
        """
        Set a uniform on this (already active) program.

        Supported values: bool, int, float and 2/3/4-tuples of floats.

        Raises:
            BindingError: If the uniform is not active
        """
        gl = self.context.gl
        location = self.uniform_location(name)

        if isinstance(value, bool):
            gl.glUniform1i(location, 1 if value else 0)
        elif isinstance(value, (int, np.integer)):
            gl.glUniform1i(location, int(value))
        elif isinstance(value, (float, np.floating)):
            gl.glUniform1f(location, float(value))
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            gl.glUniform2f(location, *map(float, value))
        elif isinstance(value, (tuple, list)) and len(value) == 3:
            gl.glUniform3f(location, *map(float, value))
        elif isinstance(value, (tuple, list)) and len(value) == 4:
            gl.glUniform4f(location, *map(float, value))
        else:
            raise TypeError(f"Unsupported uniform value for `{name}`: {value!r}")

    def cleanup(self):
        """Delete shader program."""
        if self.program_id:
            self.context.gl.glDeleteProgram(self.program_id)
            self.program_id = 0


class QuadGeometry:
    """
    Full-screen quad: 4 corner vertices and a 6-index triangle list.

    The buffers are shared by every program that draws the quad; each
    program records its own vertex array with attach().
    """

    def __init__(self, context: GLContext):
        self.context = context
        gl = context.gl

        self.vbo = gl.glGenBuffers(1)
        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, self.vbo)
        gl.glBufferData(gl.GL_ARRAY_BUFFER, QUAD_CORNERS.nbytes, QUAD_CORNERS, gl.GL_STATIC_DRAW)

        self.ebo = gl.glGenBuffers(1)
        gl.glBindBuffer(gl.GL_ELEMENT_ARRAY_BUFFER, self.ebo)
        gl.glBufferData(gl.GL_ELEMENT_ARRAY_BUFFER, QUAD_INDICES.nbytes, QUAD_INDICES, gl.GL_STATIC_DRAW)

        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, 0)

    def attach(self, location: int) -> int:
        """
        Create a vertex array feeding the corners to an attribute.

        Args:
            location: Attribute location of the 2D corner input

        Returns:
            Vertex array object name

        Raises:
            BackendError: If the driver rejects the attribute setup
        """
        gl = self.context.gl
        self.context.clear_errors()

        vao = gl.glGenVertexArrays(1)
        gl.glBindVertexArray(vao)
        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, self.vbo)
        gl.glBindBuffer(gl.GL_ELEMENT_ARRAY_BUFFER, self.ebo)
        gl.glEnableVertexAttribArray(location)
        gl.glVertexAttribPointer(location, 2, gl.GL_FLOAT, gl.GL_FALSE, 0, ctypes.c_void_p(0))
        gl.glBindVertexArray(0)

        try:
            self.context.check_error()
        except BackendError:
            gl.glDeleteVertexArrays(1, [vao])
            raise
        return vao

    def draw(self, vao: int):
        gl = self.context.gl
        gl.glBindVertexArray(vao)
        gl.glDrawElements(gl.GL_TRIANGLES, len(QUAD_INDICES), gl.GL_UNSIGNED_BYTE, ctypes.c_void_p(0))

    def cleanup(self):
        if self.vbo or self.ebo:
            self.context.gl.glDeleteBuffers(2, [self.vbo, self.ebo])
            self.vbo = 0
            self.ebo = 0


class ColorBuffer:
    """Off-screen framebuffer with a single RGBA32F color texture."""

    def __init__(self, context: GLContext, resolution: Tuple[int, int]):
        """
        Create framebuffer and color texture.

        Args:
            context: Shared GL context
            resolution: (width, height)

        Raises:
            BackendError: If the framebuffer is incomplete
        """
        self.context = context
        self.resolution = resolution
        gl = context.gl
        width, height = resolution

        self.fbo = gl.glGenFramebuffers(1)
        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, self.fbo)

        self.texture = gl.glGenTextures(1)
        gl.glBindTexture(gl.GL_TEXTURE_2D, self.texture)
        gl.glTexImage2D(gl.GL_TEXTURE_2D, 0, gl.GL_RGBA32F, width, height, 0, gl.GL_RGBA, gl.GL_FLOAT, None)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_S, gl.GL_CLAMP_TO_EDGE)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_T, gl.GL_CLAMP_TO_EDGE)

        gl.glFramebufferTexture2D(gl.GL_FRAMEBUFFER, gl.GL_COLOR_ATTACHMENT0, gl.GL_TEXTURE_2D, self.texture, 0)

        status = gl.glCheckFramebufferStatus(gl.GL_FRAMEBUFFER)
        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, 0)
        if status != gl.GL_FRAMEBUFFER_COMPLETE:
            self.cleanup()
            raise BackendError(f"Framebuffer incomplete: {context.describe_framebuffer_status(status)}")

    def bind_framebuffer(self):
        self.context.gl.glBindFramebuffer(self.context.gl.GL_FRAMEBUFFER, self.fbo)

    def bind_texture(self):
        self.context.gl.glBindTexture(self.context.gl.GL_TEXTURE_2D, self.texture)

    def clear(self):
        self.bind_framebuffer()
        self.context.clear(self.context.gl.GL_COLOR_BUFFER_BIT)

    def cleanup(self):
        gl = self.context.gl
        if self.fbo:
            gl.glDeleteFramebuffers(1, [self.fbo])
            self.fbo = 0
        if self.texture:
            gl.glDeleteTextures([self.texture])
            self.texture = 0


class ColorBuffers:
    """
    Ring of color buffers with a write cursor.

    With two buffers this is a ping-pong pair: the buffer at the cursor
    is written, the other one is read.
    """

    def __init__(self, context: GLContext, resolution: Tuple[int, int], count: int = 2):
        if count <= 0:
            raise ValueError("ColorBuffers needs at least one buffer")
        self.buffers: List[ColorBuffer] = []
        try:
            for _ in range(count):
                self.buffers.append(ColorBuffer(context, resolution))
        except BackendError:
            self.cleanup()
            raise
        self.cursor = 0

    def __getitem__(self, index: int) -> ColorBuffer:
        return self.buffers[index]

    def __len__(self) -> int:
        return len(self.buffers)

    def next(self):
        self.cursor = (self.cursor + 1) % len(self.buffers)

    def reset(self):
        """Clear every buffer and rewind the cursor (no reallocation)."""
        for buffer in self.buffers:
            buffer.clear()
        self.cursor = 0

    def cleanup(self):
        for buffer in self.buffers:
            buffer.cleanup()
        self.buffers.clear()


def _decode_log(log) -> str:
    if isinstance(log, bytes):
        log = log.decode('utf-8', errors='replace')
    return (log or "").strip()
