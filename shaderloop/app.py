"""
ShaderLoop - Application
========================
Wires the window, the source watcher and the runtime together and owns
the tick loop.

Each tick:
1. Poll window events
2. Drain at most one watcher event; reload on modification
3. Refresh the runtime; swap buffers if a frame was presented
"""

import logging
from typing import Optional

from shaderloop.config import PreviewConfig
from shaderloop.runtime.playback.gl_resources import GLContext
from shaderloop.runtime.state import Runtime
from shaderloop.runtime.watcher import CodeWatcher, FileEvent

LOG = logging.getLogger(__name__)


class ShaderLoopApp:
    """
    Live preview of one shader source.
    """

    def __init__(
        self,
        config: PreviewConfig,
        window,
        runtime: Runtime,
        watcher: Optional[CodeWatcher] = None
    ):
        """
        Initialize application.

        Args:
            config: Preview configuration
            window: PreviewWindow (or anything with the same surface)
            runtime: Runtime bound to the window's context
            watcher: Source watcher, or None to never reload
        """
        self.config = config
        self.window = window
        self.runtime = runtime
        self.watcher = watcher

    @classmethod
    def create(cls, config: PreviewConfig) -> "ShaderLoopApp":
        """
        Open the window and build the runtime.

        Raises:
            RuntimeError: If the window, the context or the diagnostic
                program cannot be created
        """
        # Window must exist first: it makes the GL context current
        from shaderloop.runtime.playback.window import PreviewWindow

        window = PreviewWindow(title=config.title, vsync=config.vsync, gl_version=config.gl_version)
        try:
            context = GLContext()
            LOG.info("OpenGL %s (%s)", context.version, context.renderer)
            runtime = Runtime(context)
        except Exception:
            window.close()
            raise

        watcher = None
        if config.has_source:
            watcher = CodeWatcher(config.source)
        else:
            LOG.warning("No readable source file (%s); showing the diagnostic program", config.source)
        return cls(config, window, runtime, watcher)

    def reload(self) -> bool:
        """
        Reload the source.

        The window is fitted to the new resolution only when the reload
        succeeds; a failed edit keeps the current size.
        """
        loaded = self.runtime.reload(self.config.source)
        if loaded:
            self.window.set_size(self.runtime.resolution)
        return loaded

    def start(self):
        """Load the source once, show the window and start watching."""
        if self.watcher is not None:
            self.config.source = self.watcher.path
            self.runtime.reload(self.config.source)
            self.watcher.start()
        self.window.set_size(self.runtime.resolution)
        self.window.set_visible(True)

    def refresh(self) -> bool:
        """
        Run one tick.

        Returns:
            True if a frame was presented
        """
        if self.watcher is not None:
            event = self.watcher.refresh()
            if event is FileEvent.MODIFIED:
                self.reload()
            elif event is FileEvent.RENAMED:
                # Keep rendering; later edits reload from the new path
                self.config.source = self.watcher.path

        presented = self.runtime.refresh()
        if presented:
            self.window.swap_buffers()
        return presented

    def run(self):
        """Run until the window is closed."""
        self.start()
        try:
            while not self.window.should_close():
                self.window.poll_events()
                self.refresh()
        finally:
            self.cleanup()

    def cleanup(self):
        if self.watcher is not None:
            self.watcher.stop()
        self.runtime.cleanup()
        self.window.close()
