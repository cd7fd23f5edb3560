"""
ShaderLoop - Input Textures
===========================
Uploads decoded pictures to named OpenGL textures.

Responsibilities:
- Pick the GL format/type matching a picture's depth and channel count
- Upload pixels and manage texture lifetime
- Resolve a shader's texture bindings relative to its directory

This module does NOT decide which texture unit a sampler uses; the
canvas assigns units.
"""

import logging
from pathlib import Path
from typing import List, Mapping

import numpy as np

from shaderloop.errors import ResourceError
from shaderloop.runtime.pictures import Picture, load_picture
from shaderloop.runtime.playback.gl_resources import GLContext

LOG = logging.getLogger(__name__)

# channels -> pixel format
_FORMATS = {1: 'GL_RED', 2: 'GL_RG', 3: 'GL_RGB', 4: 'GL_RGBA'}

# (dtype, channels) -> internal format
_INTERNAL_FORMATS = {
    (np.uint8, 1): 'GL_R8', (np.uint8, 2): 'GL_RG8',
    (np.uint8, 3): 'GL_RGB8', (np.uint8, 4): 'GL_RGBA8',
    (np.uint16, 1): 'GL_R16', (np.uint16, 2): 'GL_RG16',
    (np.uint16, 3): 'GL_RGB16', (np.uint16, 4): 'GL_RGBA16',
    (np.float32, 1): 'GL_R32F', (np.float32, 2): 'GL_RG32F',
    (np.float32, 3): 'GL_RGB32F', (np.float32, 4): 'GL_RGBA32F',
}

# dtype -> component type
_TYPES = {np.uint8: 'GL_UNSIGNED_BYTE', np.uint16: 'GL_UNSIGNED_SHORT', np.float32: 'GL_FLOAT'}


class NamedTexture:
    """
    An input texture bound to a sampler uniform by name.
    """

    def __init__(self, context: GLContext, picture: Picture, name: str):
        """
        Upload a picture.

        Args:
            context: Shared GL context
            picture: Decoded pixels (bottom row first)
            name: Sampler uniform name

        Raises:
            ResourceError: If the sample depth or channel count is unsupported
        """
        self.context = context
        self.name = name
        self.resolution = picture.resolution
        self.texture_id = 0

        dtype = picture.pixels.dtype.type
        key = (dtype, picture.channels)
        if key not in _INTERNAL_FORMATS:
            raise ResourceError(
                f"Unsupported texture layout for '{name}': {picture.channels} × {picture.pixels.dtype}"
            )

        gl = context.gl
        internal_format = getattr(gl, _INTERNAL_FORMATS[key])
        pixel_format = getattr(gl, _FORMATS[picture.channels])
        component_type = getattr(gl, _TYPES[dtype])
        width, height = picture.resolution

        self.texture_id = gl.glGenTextures(1)
        gl.glBindTexture(gl.GL_TEXTURE_2D, self.texture_id)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_S, gl.GL_CLAMP_TO_EDGE)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_T, gl.GL_CLAMP_TO_EDGE)

        # Rows are tightly packed regardless of width
        gl.glPixelStorei(gl.GL_UNPACK_ALIGNMENT, 1)
        gl.glTexImage2D(
            gl.GL_TEXTURE_2D, 0, internal_format, width, height, 0,
            pixel_format, component_type, picture.pixels
        )
        gl.glBindTexture(gl.GL_TEXTURE_2D, 0)

        LOG.debug("Uploaded texture '%s' (%d×%d, %d channels, %s)",
                  name, width, height, picture.channels, picture.pixels.dtype)

    def bind(self):
        self.context.gl.glBindTexture(self.context.gl.GL_TEXTURE_2D, self.texture_id)

    def cleanup(self):
        if self.texture_id:
            self.context.gl.glDeleteTextures([self.texture_id])
            self.texture_id = 0

    def __repr__(self) -> str:
        width, height = self.resolution
        return f"NamedTexture({self.name!r}, {width}×{height})"


def load_named_textures(
    context: GLContext,
    texture_paths: Mapping[str, Path],
    root: Path
) -> List[NamedTexture]:
    """
    Load every texture binding of a shader.

    Args:
        context: Shared GL context
        texture_paths: Uniform name -> path as written in the source
        root: Directory relative paths are resolved against

    Returns:
        Textures in declaration order

    Raises:
        ResourceError: If any texture fails to load (already uploaded
            textures are released first)
    """
    textures: List[NamedTexture] = []
    try:
        for name, path in texture_paths.items():
            picture = load_picture(Path(root) / path)
            textures.append(NamedTexture(context, picture, name))
    except Exception:
        for texture in textures:
            texture.cleanup()
        raise

    if textures:
        LOG.info("Loaded %d texture(s): %s", len(textures), ", ".join(t.name for t in textures))
    return textures
