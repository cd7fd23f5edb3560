import logging
from pathlib import Path

import pytest
from watchdog.events import FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from conftest import FakeClock, FakeGL, FakeObserver, fragment
from shaderloop import __main__ as entry
from shaderloop.app import ShaderLoopApp
from shaderloop.config import PreviewConfig
from shaderloop.runtime.playback.gl_resources import GLContext
from shaderloop.runtime.state import Runtime, RuntimeState
from shaderloop.runtime.watcher import CodeWatcher


class FakeWindow:
    def __init__(self, frames: int = 3) -> None:
        self.size = None
        self.visible = False
        self.swaps = 0
        self.polls = 0
        self.frames = frames
        self.closed = False

    def set_size(self, resolution) -> None:
        self.size = tuple(resolution)

    def set_visible(self, visible: bool) -> None:
        self.visible = visible

    def swap_buffers(self) -> None:
        self.swaps += 1

    def poll_events(self) -> None:
        self.polls += 1

    def should_close(self) -> bool:
        return self.polls >= self.frames

    def close(self) -> None:
        self.closed = True


def shader(size: str) -> str:
    return fragment(uniforms=f"#define size {size}\nuniform float time;")


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "shader.frag"
    path.write_text(shader("120 80"))
    return path


@pytest.fixture
def observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def app(source: Path, context: GLContext, clock: FakeClock, observer: FakeObserver) -> ShaderLoopApp:
    config = PreviewConfig(source=source)
    return ShaderLoopApp(config, FakeWindow(), Runtime(context, clock=clock), CodeWatcher(source, observer=observer))


def test_start_loads_and_shows(app: ShaderLoopApp, observer: FakeObserver) -> None:
    app.start()

    assert app.runtime.state is RuntimeState.RUNNING
    assert app.window.size == (120, 80)
    assert app.window.visible
    assert observer.started


def test_start_without_source(context: GLContext, clock: FakeClock) -> None:
    app = ShaderLoopApp(PreviewConfig(), FakeWindow(), Runtime(context, clock=clock))

    app.start()

    assert app.runtime.state is RuntimeState.ERRORED
    assert app.window.size == (500, 500)
    assert app.window.visible
    assert app.refresh() is True


def test_swap_only_when_presented(app: ShaderLoopApp, clock: FakeClock) -> None:
    app.start()

    assert app.refresh() is True
    assert app.refresh() is False
    assert app.window.swaps == 1

    clock.set_frame(1)
    assert app.refresh() is True
    assert app.window.swaps == 2


def test_modification_reloads_and_resizes(app: ShaderLoopApp, source: Path) -> None:
    app.start()
    source.write_text(shader("64 32"))
    app.watcher.handler.on_modified(FileModifiedEvent(str(app.watcher.path)))

    app.refresh()

    assert app.window.size == (64, 32)
    assert app.runtime.resolution == (64, 32)


def test_broken_edit_shows_diagnostic_and_keeps_size(app: ShaderLoopApp, source: Path) -> None:
    app.start()
    source.write_text(fragment(body="#error unexpected end of file"))
    app.watcher.handler.on_modified(FileModifiedEvent(str(app.watcher.path)))

    app.refresh()

    assert app.runtime.state is RuntimeState.ERRORED
    assert "unexpected end of file" in app.runtime.message
    assert app.window.size == (120, 80)

    source.write_text(shader("64 32"))
    app.watcher.handler.on_modified(FileModifiedEvent(str(app.watcher.path)))
    app.refresh()
    assert app.window.size == (64, 32)


def test_broken_source_at_start_sizes_to_diagnostic(app: ShaderLoopApp, source: Path) -> None:
    source.write_text(fragment(body="#error unexpected end of file"))

    app.start()

    assert app.runtime.state is RuntimeState.ERRORED
    assert app.window.size == (500, 500)
    assert app.window.visible


def test_removal_keeps_last_good_state(app: ShaderLoopApp, gl: FakeGL) -> None:
    app.start()
    programs = gl.count("glCreateProgram")
    app.watcher.handler.on_deleted(FileDeletedEvent(str(app.watcher.path)))

    app.refresh()

    assert app.runtime.state is RuntimeState.RUNNING
    assert gl.count("glCreateProgram") == programs


def test_rename_follows_the_file(app: ShaderLoopApp, source: Path) -> None:
    app.start()
    renamed = source.with_name("renamed.frag")
    source.rename(renamed)
    app.watcher.handler.on_moved(FileMovedEvent(str(app.watcher.path), str(renamed)))
    app.refresh()

    assert app.config.source == renamed.resolve()
    assert app.runtime.state is RuntimeState.RUNNING

    renamed.write_text(shader("16 16"))
    app.watcher.handler.on_modified(FileModifiedEvent(str(renamed.resolve())))
    app.refresh()
    assert app.window.size == (16, 16)


def test_run_cleans_up(app: ShaderLoopApp, gl: FakeGL, observer: FakeObserver) -> None:
    app.run()

    assert app.window.polls == 3
    assert app.window.closed
    assert observer.stopped
    assert gl.live == {}


def test_config_from_args(source: Path) -> None:
    config = PreviewConfig.from_args(entry.parse_args([str(source), "--vsync", "--log-level", "debug"]))

    assert config.source == source
    assert config.title == "ShaderLoop - shader.frag"
    assert config.vsync is True
    assert config.logging_level == logging.DEBUG
    assert config.has_source
    assert config.gl_version == (3, 3)


def test_config_without_file() -> None:
    config = PreviewConfig.from_args(entry.parse_args(["--title", "Preview"]))

    assert config.source is None
    assert config.title == "Preview"
    assert not config.has_source


def test_config_rejects_unknown_log_level() -> None:
    with pytest.raises(ValueError):
        PreviewConfig(log_level="LOUD").logging_level


def test_startup_failure_exits_with_status_1(monkeypatch, caplog) -> None:
    def fail(config):
        raise RuntimeError("Failed to initialize GLFW")

    monkeypatch.setattr(ShaderLoopApp, "create", staticmethod(fail))

    assert entry.main([]) == 1
    assert "Failed to initialize GLFW" in caplog.text
