"""
ShaderLoop - Runtime State
==========================
Keeps exactly one CanvasPlayer alive and recovers from bad sources.

States:
- RUNNING: the player renders the user's shader
- ERRORED: the player renders a built-in animated diagnostic program;
  the message says why

Every reload failure (unreadable or non-ASCII source, bad directive,
bad texture, compile/link/binding/driver error) lands in ERRORED. The
next successful reload returns to RUNNING. No state is terminal.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from shaderloop.core.annotations import DEFAULT_RESOLUTION, AnnotatedGLSL, load_source
from shaderloop.core.timeline import Clock, Timeline
from shaderloop.errors import ShaderLoopError
from shaderloop.runtime.playback.gl_resources import GLContext
from shaderloop.runtime.playback.player import CanvasPlayer
from shaderloop.runtime.playback.shaders import ERROR_FRAGMENT_SHADER
from shaderloop.runtime.playback.texture_manager import NamedTexture, load_named_textures

LOG = logging.getLogger(__name__)


class RuntimeState(str, Enum):
    """Runtime states."""
    RUNNING = "running"
    ERRORED = "errored"


@dataclass
class RuntimeSetup:
    """Everything a CanvasPlayer needs besides the code."""
    resolution: Tuple[int, int]
    feedback: bool
    timeline: Timeline
    textures: List[NamedTexture] = field(default_factory=list)


def runtime_setup(
    context: GLContext,
    annotated: AnnotatedGLSL,
    root: Path,
    clock: Optional[Clock] = None
) -> RuntimeSetup:
    """
    Resolve a shader's directives into player inputs.

    Args:
        context: Shared GL context (textures are uploaded on it)
        annotated: Preprocessed shader
        root: Directory texture paths are relative to
        clock: Time source for the timeline (default: system clock)

    Raises:
        ResourceError: If a texture fails to load
    """
    directives = annotated.directives
    return RuntimeSetup(
        resolution=directives.resolution,
        feedback=directives.feedback,
        timeline=Timeline(directives.rate, directives.loop, clock=clock),
        textures=load_named_textures(context, directives.texture_paths, root)
    )


class Runtime:
    """
    Running/Errored state machine around a CanvasPlayer.
    """

    def __init__(self, context: GLContext, clock: Optional[Clock] = None):
        """
        Start in ERRORED with an empty message (nothing loaded yet).

        Args:
            context: Shared GL context
            clock: Time source for every timeline (default: system clock)

        Raises:
            ShaderLoopError: If the diagnostic player cannot be built;
                the context is unusable in that case
        """
        self.context = context
        self.clock = clock
        self.state = RuntimeState.ERRORED
        self.message = ""
        self.player: CanvasPlayer = self._errored_player()

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.player.resolution

    @property
    def running(self) -> bool:
        return self.state is RuntimeState.RUNNING

    @property
    def recoverable_errors(self) -> Tuple[type, ...]:
        """Failures that put the runtime into ERRORED instead of propagating."""
        return (ShaderLoopError, OSError) + self.context.backend_errors

    def _errored_player(self) -> CanvasPlayer:
        return CanvasPlayer(
            self.context,
            Timeline(clock=self.clock),
            ERROR_FRAGMENT_SHADER,
            [],
            DEFAULT_RESOLUTION,
            False
        )

    def _release_player(self):
        player, self.player = self.player, None
        if player is not None:
            player.cleanup()

    def reload(self, path) -> bool:
        """
        Rebuild the player from a source file.

        Args:
            path: Shader source path; textures resolve relative to its directory

        Returns:
            True if the runtime is RUNNING afterwards
        """
        path = Path(path)
        try:
            annotated = AnnotatedGLSL.parse(load_source(path))
            setup = runtime_setup(self.context, annotated, path.parent, self.clock)
        except self.recoverable_errors as error:
            self.into_errored(error)
            return False
        return self.restart(annotated, setup)

    def restart(self, annotated: AnnotatedGLSL, setup: RuntimeSetup) -> bool:
        """
        Replace the current player with one running `annotated`.

        The previous player is released before the new one is built. If
        the new one cannot be built, the runtime switches to ERRORED and
        the textures in `setup` are released.

        Returns:
            True if the runtime is RUNNING afterwards
        """
        self._release_player()
        try:
            player = CanvasPlayer(
                self.context,
                setup.timeline,
                annotated.code,
                setup.textures,
                setup.resolution,
                setup.feedback
            )
        except self.recoverable_errors as error:
            for texture in setup.textures:
                texture.cleanup()
            self.into_errored(error)
            return False

        self.player = player
        self.state = RuntimeState.RUNNING
        self.message = ""

        directives = annotated.directives
        LOG.info(
            "Running: %d×%d @ %d fps, loop %s, feedback %s",
            directives.resolution[0], directives.resolution[1], directives.rate,
            directives.loop or "endless", "on" if directives.feedback else "off"
        )
        return True

    def into_errored(self, error):
        """
        Switch to the diagnostic player.

        Args:
            error: Exception or message explaining the failure
        """
        message = str(error)
        LOG.error("Shader error:\n%s", message)
        self._release_player()
        self.player = self._errored_player()
        self.state = RuntimeState.ERRORED
        self.message = message

    def refresh(self) -> bool:
        """
        Tick the current player.

        Returns:
            True if a frame was presented (the caller should swap buffers)
        """
        try:
            return self.player.refresh()
        except self.recoverable_errors as error:
            self.into_errored(error)
        return self.player.refresh()

    def cleanup(self):
        self._release_player()
