import asyncio
import pytest

from focusshield.services.timer import FocusTimer, TimerState


class Recorder:
    def __init__(self):
        self.completions = []
        self.ticks = []

    def on_complete(self, interrupted):
        self.completions.append(interrupted)

    def on_tick(self, remaining):
        self.ticks.append(remaining)


@pytest.fixture
def recorder():
    return Recorder()


def make_timer(recorder, interval=0.001) -> FocusTimer:
    return FocusTimer(on_complete=recorder.on_complete, on_tick=recorder.on_tick, interval=interval)


class TestTick:
    def test_manual_ticks_count_down_to_completion(self, recorder):
        timer = make_timer(recorder)
        timer.state = TimerState.RUNNING
        timer.duration = timer.remaining = 3

        for _ in range(3):
            timer.tick()

        assert recorder.ticks == [2, 1, 0]
        assert recorder.completions == [False]
        assert timer.state is TimerState.COMPLETED
        assert timer.progress == 100

    def test_tick_when_not_running_is_ignored(self, recorder):
        timer = make_timer(recorder)
        timer.remaining = 5

        timer.tick()

        assert timer.remaining == 5
        assert recorder.ticks == []

    def test_stop_when_idle_does_nothing(self, recorder):
        timer = make_timer(recorder)

        timer.stop()

        assert recorder.completions == []


class TestCountdown:
    def test_runs_to_completion(self, recorder):
        async def scenario():
            timer = make_timer(recorder)
            timer.start(5)
            await timer.wait()
            return timer

        timer = asyncio.run(scenario())

        assert timer.state is TimerState.COMPLETED
        assert recorder.ticks == [4, 3, 2, 1, 0]
        assert recorder.completions == [False]

    def test_stop_completes_as_interrupted(self, recorder):
        async def scenario():
            timer = make_timer(recorder, interval=0.01)
            timer.start(1000)
            await asyncio.sleep(0.05)
            timer.stop()
            await timer.wait()
            return timer

        timer = asyncio.run(scenario())

        assert timer.state is TimerState.IDLE
        assert recorder.completions == [True]

    def test_pause_stops_ticking(self, recorder):
        async def scenario():
            timer = make_timer(recorder, interval=0.01)
            timer.start(1000)
            await asyncio.sleep(0.05)
            timer.pause()
            paused_at = timer.remaining
            await asyncio.sleep(0.05)
            return timer, paused_at

        timer, paused_at = asyncio.run(scenario())

        assert timer.state is TimerState.PAUSED
        assert timer.remaining == paused_at
        assert recorder.completions == []

    def test_resume_continues_from_remaining(self, recorder):
        async def scenario():
            timer = make_timer(recorder)
            timer.start(6)
            timer.pause()
            timer.resume()
            await timer.wait()
            return timer

        timer = asyncio.run(scenario())

        assert recorder.ticks == [5, 4, 3, 2, 1, 0]
        assert recorder.completions == [False]

    def test_start_twice_raises(self, recorder):
        async def scenario():
            timer = make_timer(recorder)
            timer.start(10)
            try:
                timer.start(10)
            finally:
                timer.close()

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())

    def test_close_releases_task_without_completing(self, recorder):
        async def scenario():
            timer = make_timer(recorder, interval=0.01)
            timer.start(1000)
            await asyncio.sleep(0.03)
            timer.close()
            remaining = timer.remaining
            await asyncio.sleep(0.03)
            return timer, remaining

        timer, remaining = asyncio.run(scenario())

        assert timer.state is TimerState.PAUSED
        assert timer.remaining == remaining
        assert recorder.completions == []
