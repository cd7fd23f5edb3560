"""
ShaderLoop - Error Types
========================
Every failure a reload can hit has its own exception type.

All of them derive from ShaderLoopError so the runtime can convert any
of them into the errored state at a single boundary.
"""


class ShaderLoopError(RuntimeError):
    """Base class for all ShaderLoop errors."""


class SourceReadError(ShaderLoopError, OSError):
    """The shader source file could not be read."""


class EncodingError(ShaderLoopError):
    """The shader source contains non-ASCII characters."""


class DirectiveParseError(ShaderLoopError):
    """A `#define size/rate/loop` value or a texture binding is malformed."""


class ResourceError(ShaderLoopError):
    """A texture could not be decoded or has an unsupported format."""


class CompileError(ShaderLoopError):
    """Shader compilation failed; the message is the driver's info log."""


class LinkError(ShaderLoopError):
    """Program linking failed; the message is the driver's info log."""


class BindingError(ShaderLoopError):
    """An attribute or uniform is not active in the compiled program."""


class BackendError(ShaderLoopError):
    """The graphics driver reported an error code."""
