import functools
import itertools
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytest

from shaderloop.runtime.playback.gl_resources import GLContext

_UNIFORM = re.compile(r"uniform\s+\w+\s+(\w+)\s*;")
_INPUT = re.compile(r"^\s*in\s+\w+\s+(\w+)\s*;", re.MULTILINE)
_ERROR_DIRECTIVE = re.compile(r"#error(.*)")


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def get_time(self) -> float:
        return self.now

    def set_frame(self, frame: int, fps: int = 60) -> None:
        """Move to the middle of a frame period, away from rounding edges."""
        self.now = (frame + 0.5) / fps


class FakeObserver:
    """Stand-in for a watchdog Observer that never starts a thread."""

    def __init__(self) -> None:
        self.scheduled = []
        self.unscheduled = []
        self.started = False
        self.stopped = False
        self.joined = False

    def schedule(self, handler, path: str, recursive: bool = False):
        watch = (path, recursive)
        self.scheduled.append(watch)
        return watch

    def unschedule(self, watch) -> None:
        self.unscheduled.append(watch)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self) -> None:
        self.joined = True


@dataclass
class Draw:
    program: int
    framebuffer: int
    viewport: Tuple[int, ...]
    # texture unit -> what the bound texture holds ("cleared", "drawn", "image", ...)
    inputs: Dict[int, Optional[str]]
    uniforms: Dict[str, object] = field(default_factory=dict)


class FakeGL:
    """
    Recording stand-in for the OpenGL.GL namespace.

    Programs expose every declared `uniform` as active and every vertex
    `in` as an attribute. A shader containing `#error <text>` fails to
    compile with `<text>` in its log; a shader without `main(` fails to
    link. Texture contents are tracked symbolically so tests can tell
    what a draw sampled.
    """

    GL_NO_ERROR = 0
    GL_FALSE = 0
    GL_TRUE = 1
    GL_TEXTURE0 = 0x84C0
    GL_FRAMEBUFFER_COMPLETE = 0x8CD5

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.errors: List[int] = []
        self.framebuffer_status: Optional[int] = None
        self._constants: Dict[str, int] = {}
        self._names = itertools.count(1)
        self._locations = itertools.count(0)

        self.live: Dict[int, str] = {}
        self.shaders: Dict[int, dict] = {}
        self.programs: Dict[int, dict] = {}
        self.location_names: Dict[int, Tuple[int, str]] = {}
        self.uniform_values: Dict[Tuple[int, str], object] = {}

        self.current_program = 0
        self.active_unit = 0
        self.unit_textures: Dict[int, int] = {}
        self.framebuffer = 0
        self.framebuffer_textures: Dict[int, int] = {}
        self.contents: Dict[int, str] = {}
        self.viewport: Tuple[int, ...] = (0, 0, 0, 0)
        self.clears: List[int] = []
        self.draws: List[Draw] = []

    def __getattr__(self, name):
        if name.startswith("GL_"):
            return self._constants.setdefault(name, 0x10000 + len(self._constants))
        raise AttributeError(name)

    def _new(self, kind: str) -> int:
        name = next(self._names)
        self.live[name] = kind
        return name

    def _delete(self, names) -> None:
        for name in names:
            self.live.pop(int(name), None)

    def live_names(self, kind: str) -> List[int]:
        return [name for name, live_kind in self.live.items() if live_kind == kind]

    def count(self, function: str) -> int:
        return sum(1 for name, _ in self.calls if name == function)

    # errors / queries

    def glGetError(self):
        return self.errors.pop(0) if self.errors else self.GL_NO_ERROR

    def glGetString(self, name):
        return b"3.3.0 Fake"

    # shaders

    def glCreateShader(self, shader_type):
        shader = self._new("shader")
        self.shaders[shader] = {"type": shader_type, "source": ""}
        return shader

    def glShaderSource(self, shader, source):
        self.shaders[shader]["source"] = source

    def glCompileShader(self, shader):
        pass

    def glGetShaderiv(self, shader, pname):
        return 0 if _ERROR_DIRECTIVE.search(self.shaders[shader]["source"]) else 1

    def glGetShaderInfoLog(self, shader):
        match = _ERROR_DIRECTIVE.search(self.shaders[shader]["source"])
        return f"0:1(1): error: {match.group(1).strip()}\n".encode() if match else b""

    def glDeleteShader(self, shader):
        self._delete([shader])

    def glCreateProgram(self):
        program = self._new("program")
        self.programs[program] = {"shaders": [], "linked": False, "attributes": [], "uniforms": {}}
        return program

    def glAttachShader(self, program, shader):
        self.programs[program]["shaders"].append(shader)

    def glDetachShader(self, program, shader):
        self.programs[program]["shaders"].remove(shader)

    def glLinkProgram(self, program):
        state = self.programs[program]
        stages = [self.shaders[shader] for shader in state["shaders"]]
        state["linked"] = all("main(" in stage["source"] for stage in stages)
        for stage in stages:
            if stage["type"] == self.GL_VERTEX_SHADER:
                state["attributes"] = _INPUT.findall(stage["source"])
            for name in _UNIFORM.findall(stage["source"]):
                if name not in state["uniforms"]:
                    location = next(self._locations)
                    state["uniforms"][name] = location
                    self.location_names[location] = (program, name)

    def glGetProgramiv(self, program, pname):
        return 1 if self.programs[program]["linked"] else 0

    def glGetProgramInfoLog(self, program):
        return b"error: no function with name 'main'\n"

    def glDeleteProgram(self, program):
        self._delete([program])

    def glUseProgram(self, program):
        self.current_program = program

    def glGetAttribLocation(self, program, name):
        attributes = self.programs[program]["attributes"]
        return attributes.index(name) if name in attributes else -1

    def glGetUniformLocation(self, program, name):
        return self.programs[program]["uniforms"].get(name, -1)

    def _set_uniform(self, location, value):
        program, name = self.location_names[location]
        assert program == self.current_program, f"uniform {name} set on an inactive program"
        self.uniform_values[(program, name)] = value

    def glUniform1i(self, location, value):
        self._set_uniform(location, value)

    def glUniform1f(self, location, value):
        self._set_uniform(location, value)

    def glUniform2f(self, location, *values):
        self._set_uniform(location, values)

    def glUniform3f(self, location, *values):
        self._set_uniform(location, values)

    def glUniform4f(self, location, *values):
        self._set_uniform(location, values)

    # geometry

    def glGenBuffers(self, count):
        return self._new("buffer")

    def glBindBuffer(self, target, buffer):
        pass

    def glBufferData(self, target, size, data, usage):
        pass

    def glDeleteBuffers(self, count, buffers):
        self._delete(buffers)

    def glGenVertexArrays(self, count):
        return self._new("vertex array")

    def glBindVertexArray(self, vao):
        pass

    def glDeleteVertexArrays(self, count, arrays):
        self._delete(arrays)

    def glEnableVertexAttribArray(self, location):
        pass

    def glVertexAttribPointer(self, location, size, component_type, normalized, stride, pointer):
        pass

    def glDrawElements(self, mode, count, index_type, pointer):
        program = self.current_program
        self.draws.append(Draw(
            program=program,
            framebuffer=self.framebuffer,
            viewport=self.viewport,
            inputs={unit: self.contents.get(texture) for unit, texture in self.unit_textures.items()},
            uniforms={name: value for (owner, name), value in self.uniform_values.items() if owner == program},
        ))
        if self.framebuffer:
            self.contents[self.framebuffer_textures[self.framebuffer]] = "drawn"

    # framebuffers and textures

    def glGenFramebuffers(self, count):
        return self._new("framebuffer")

    def glBindFramebuffer(self, target, framebuffer):
        self.framebuffer = framebuffer

    def glFramebufferTexture2D(self, target, attachment, texture_target, texture, level):
        self.framebuffer_textures[self.framebuffer] = texture

    def glCheckFramebufferStatus(self, target):
        if self.framebuffer_status is not None:
            return self.framebuffer_status
        return self.GL_FRAMEBUFFER_COMPLETE

    def glDeleteFramebuffers(self, count, framebuffers):
        self._delete(framebuffers)

    def glGenTextures(self, count):
        return self._new("texture")

    def glActiveTexture(self, unit):
        self.active_unit = unit - self.GL_TEXTURE0

    def glBindTexture(self, target, texture):
        self.unit_textures[self.active_unit] = texture

    def glTexImage2D(self, target, level, internal_format, width, height, border, pixel_format, component_type, data):
        texture = self.unit_textures.get(self.active_unit)
        self.contents[texture] = "empty" if data is None else "image"

    def glTexParameteri(self, target, pname, value):
        pass

    def glPixelStorei(self, pname, value):
        pass

    def glDeleteTextures(self, textures):
        self._delete(textures)

    def glClear(self, mask):
        self.clears.append(self.framebuffer)
        if self.framebuffer:
            self.contents[self.framebuffer_textures[self.framebuffer]] = "cleared"

    def glViewport(self, x, y, width, height):
        self.viewport = (x, y, width, height)


def _recorded(method):
    @functools.wraps(method)
    def wrapper(self, *args):
        self.calls.append((method.__name__, args))
        return method(self, *args)
    return wrapper


for _name, _value in list(vars(FakeGL).items()):
    if _name.startswith("gl") and callable(_value):
        setattr(FakeGL, _name, _recorded(_value))


FRAGMENT_HEADER = """
#version 330 core
in vec2 st;
out vec4 color;
"""


def fragment(body: str = "color = vec4(st, 0.0, 1.0);", uniforms: str = "") -> str:
    """Build a small fragment program."""
    return f"{FRAGMENT_HEADER}{uniforms}\nvoid main()\n{{\n    {body}\n}}\n"


@pytest.fixture
def gl() -> FakeGL:
    return FakeGL()


@pytest.fixture
def context(gl: FakeGL) -> GLContext:
    return GLContext(gl, backend_errors=())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
