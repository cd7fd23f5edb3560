import pytest

from conftest import FakeClock
from shaderloop.core.timeline import SystemClock, Timeline


def test_first_advance_starts_at_zero(clock: FakeClock) -> None:
    clock.now = 12.3
    timeline = Timeline(60, clock=clock)

    assert not timeline.started
    assert timeline.advance() == 0
    assert timeline.started
    assert timeline.time() == 0.0


def test_duplicates_are_suppressed(clock: FakeClock) -> None:
    timeline = Timeline(60, clock=clock)
    assert timeline.advance() == 0

    clock.now = 0.001
    assert timeline.advance() is None
    clock.now = 0.01
    assert timeline.advance() is None

    clock.set_frame(1)
    assert timeline.advance() == 1
    assert timeline.advance() is None


def test_frames_are_dropped_not_queued(clock: FakeClock) -> None:
    timeline = Timeline(60, clock=clock)
    timeline.advance()

    clock.set_frame(5)
    assert timeline.advance() == 5
    # Frames 1-4 were never yielded and are not replayed
    assert timeline.advance() is None
    clock.set_frame(6)
    assert timeline.advance() == 6


def test_polling_faster_than_rate_never_repeats(clock: FakeClock) -> None:
    timeline = Timeline(60, clock=clock)
    yielded = []
    for step in range(1000):
        clock.now = step / 997
        frame = timeline.advance()
        if frame is not None:
            yielded.append(frame)

    assert len(yielded) == len(set(yielded))
    assert yielded == sorted(yielded)


def test_time_is_frame_over_rate(clock: FakeClock) -> None:
    timeline = Timeline(25, clock=clock)
    timeline.advance()
    clock.set_frame(10, fps=25)

    assert timeline.advance() == 10
    assert timeline.frame == 10
    assert timeline.time() == pytest.approx(0.4)


def test_bounded_range_wraps(clock: FakeClock) -> None:
    timeline = Timeline(10, frame_range=4, clock=clock)
    frames = [timeline.advance()]
    for frame in range(1, 6):
        clock.set_frame(frame, fps=10)
        frames.append(timeline.advance())

    assert frames == [0, 1, 2, 3, 0, 1]


def test_wrap_reanchors_origin(clock: FakeClock) -> None:
    timeline = Timeline(10, frame_range=4, clock=clock)
    timeline.advance()
    clock.now = 0.15
    assert timeline.advance() == 1

    clock.now = 0.41  # frame 4 -> wraps to 0
    assert timeline.advance() == 0

    # Counting restarts from the wrap time, not from the first start
    clock.now = 0.41 + 0.15
    assert timeline.advance() == 1
    clock.now = 0.41 + 0.35
    assert timeline.advance() == 3


def test_wrap_within_one_pass_is_non_decreasing(clock: FakeClock) -> None:
    timeline = Timeline(30, frame_range=7, clock=clock)
    passes = [[timeline.advance()]]
    for step in range(1, 400):
        clock.now = step * 0.013
        frame = timeline.advance()
        if frame is None:
            continue
        if frame == 0:
            passes.append([])
        passes[-1].append(frame)

    assert len(passes) > 2
    for frames in passes:
        assert frames == sorted(frames)
        assert all(0 <= frame < 7 for frame in frames)


@pytest.mark.parametrize("fps, frame_range", [(0, None), (-1, None), (60, 0), (60, -3)])
def test_invalid_configuration(fps: int, frame_range) -> None:
    with pytest.raises(ValueError):
        Timeline(fps, frame_range)


def test_properties() -> None:
    timeline = Timeline(24, frame_range=48)

    assert timeline.fps == 24
    assert timeline.range == 48
    assert "endless" in repr(Timeline())


def test_system_clock_is_monotonic() -> None:
    clock = SystemClock()
    first = clock.get_time()
    assert clock.get_time() >= first
