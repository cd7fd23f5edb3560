"""
ShaderLoop - Preview Window & OpenGL Context
============================================
Minimal windowing module for the shader preview.

Responsibilities:
- Create a borderless desktop window (GLFW)
- Initialize an OpenGL 3.3+ core context
- Move the window by dragging it with the left mouse button
- Close on ESC

The window starts hidden; the application sizes it to the shader's
resolution and then shows it. This module does NOT render anything.
"""

import logging
from typing import Optional, Tuple

import glfw

LOG = logging.getLogger(__name__)


class PreviewWindow:
    """
    Undecorated desktop window with an OpenGL core context.
    """

    def __init__(
        self,
        width: int = 500,
        height: int = 500,
        title: str = "ShaderLoop",
        vsync: bool = False,
        gl_version: Tuple[int, int] = (3, 3)
    ):
        """
        Initialize preview window.

        Args:
            width: Initial window width
            height: Initial window height
            title: Window title
            vsync: Enable V-sync (swap interval = 1)
            gl_version: Minimum OpenGL core version (major, minor)

        Raises:
            RuntimeError: If GLFW or OpenGL context creation fails
        """
        self.title = title
        self.vsync = vsync
        self.window = None
        self._drag_origin: Optional[Tuple[float, float]] = None

        if not glfw.init():
            raise RuntimeError("Failed to initialize GLFW")

        glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, gl_version[0])
        glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, gl_version[1])
        glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
        glfw.window_hint(glfw.OPENGL_FORWARD_COMPAT, glfw.TRUE)  # macOS compatibility
        glfw.window_hint(glfw.DECORATED, glfw.FALSE)
        glfw.window_hint(glfw.RESIZABLE, glfw.FALSE)
        glfw.window_hint(glfw.VISIBLE, glfw.FALSE)

        self.window = glfw.create_window(width, height, title, None, None)
        if not self.window:
            glfw.terminate()
            raise RuntimeError(
                f"Failed to create GLFW window with an OpenGL {gl_version[0]}.{gl_version[1]} core context"
            )

        glfw.make_context_current(self.window)
        glfw.swap_interval(1 if vsync else 0)

        glfw.set_key_callback(self.window, self._key_callback)
        glfw.set_mouse_button_callback(self.window, self._mouse_button_callback)
        glfw.set_cursor_pos_callback(self.window, self._cursor_pos_callback)

        LOG.info("Window created: %d×%d (v-sync %s)", width, height, "on" if vsync else "off")

    def _key_callback(self, window, key: int, scancode: int, action: int, mods: int):
        if key == glfw.KEY_ESCAPE and action == glfw.PRESS:
            glfw.set_window_should_close(self.window, True)
            LOG.debug("ESC pressed, closing")

    def _mouse_button_callback(self, window, button: int, action: int, mods: int):
        if button != glfw.MOUSE_BUTTON_LEFT:
            return
        if action == glfw.PRESS:
            self._drag_origin = glfw.get_cursor_pos(self.window)
        elif action == glfw.RELEASE:
            self._drag_origin = None

    def _cursor_pos_callback(self, window, x: float, y: float):
        # Cursor position is relative to the window, so the grab point
        # stays under the cursor while the window follows it
        if self._drag_origin is None:
            return
        left, top = glfw.get_window_pos(self.window)
        glfw.set_window_pos(
            self.window,
            int(left + x - self._drag_origin[0]),
            int(top + y - self._drag_origin[1])
        )

    def should_close(self) -> bool:
        return glfw.window_should_close(self.window)

    def set_size(self, resolution: Tuple[int, int]):
        """Resize the window to (width, height)."""
        width, height = resolution
        if glfw.get_window_size(self.window) != (width, height):
            glfw.set_window_size(self.window, int(width), int(height))
            LOG.debug("Window resized: %d×%d", width, height)

    def set_visible(self, visible: bool):
        if visible:
            glfw.show_window(self.window)
        else:
            glfw.hide_window(self.window)

    def poll_events(self):
        """Poll window events (keyboard, mouse, etc.)."""
        glfw.poll_events()

    def swap_buffers(self):
        """Swap front and back buffers (present frame)."""
        glfw.swap_buffers(self.window)

    def close(self):
        """Destroy the window and terminate GLFW."""
        if self.window:
            glfw.destroy_window(self.window)
            self.window = None
            glfw.terminate()
            LOG.info("Window destroyed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
