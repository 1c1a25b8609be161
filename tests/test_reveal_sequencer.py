"""Tests for the Reveal Sequencer."""

import asyncio

import pytest

from conftest import battle_row, capture_row, income_row, make_snapshot

from empire_client.config import ClientConfig
from empire_client.engine.reveal_builder import build_reveal_queue
from empire_client.engine.sequencer import RevealSequencer
from empire_client.models.reveal import RevealItem, RevealKind


class Recorder:
    """Collects sequencer callbacks."""

    def __init__(self):
        self.rendered: list[tuple[RevealItem, bool]] = []
        self.completions = 0

    def render(self, item, revealed):
        self.rendered.append((item, revealed))

    def complete(self):
        self.completions += 1


def make_sequencer(recorder, header_delay=0.0, item_delay=0.0):
    config = ClientConfig(header_delay=header_delay, item_delay=item_delay)
    return RevealSequencer(recorder.render, recorder.complete, config)


def sample_items(n=4):
    return [RevealItem(RevealKind.HEADER, "Income")] + [
        RevealItem(RevealKind.EVENT, f"event {i}", "income") for i in range(n - 1)
    ]


@pytest.mark.asyncio
async def test_plays_in_fifo_order():
    recorder = Recorder()
    sequencer = make_sequencer(recorder)
    items = sample_items()

    sequencer.start(items)
    await sequencer.wait()

    assert [item for item, _ in recorder.rendered] == items
    assert not any(revealed for _, revealed in recorder.rendered)
    assert recorder.completions == 1
    assert sequencer.queue_length == 0
    assert not sequencer.is_running


@pytest.mark.asyncio
async def test_skip_right_after_start_renders_each_item_once():
    """Test one battle (2 rounds, 1 destroyed), one income and one capture."""
    snapshot = make_snapshot(
        turn=4,
        combat_logs=[battle_row(turn=3, capture=False), income_row(turn=3), capture_row(turn=3)],
    )
    items = build_reveal_queue(snapshot.combat_logs, 3, snapshot.player_name)
    recorder = Recorder()
    sequencer = make_sequencer(recorder, header_delay=10, item_delay=10)

    sequencer.start(items)
    sequencer.skip()
    await sequencer.wait()

    rendered = [item for item, _ in recorder.rendered]
    assert rendered == items
    assert all(revealed for _, revealed in recorder.rendered)
    assert sequencer.queue_length == 0
    assert recorder.completions == 1
    contents = [i.content for i in rendered]
    assert len([c for c in contents if c.startswith("--- Round")]) == 2
    assert len([c for c in contents if c.endswith("destroyed!")]) == 1
    assert len([i for i in rendered if i.kind == RevealKind.EVENT and i.log_type == "battle"]) == 1
    assert len([i for i in rendered if i.log_type == "income"]) == 1
    assert len([i for i in rendered if i.log_type == "capture"]) == 1
    assert len([c for c in contents if "captured" in c]) == 1


@pytest.mark.asyncio
async def test_skip_mid_playback():
    """Test that skip during playback completes once with no duplicates."""
    recorder = Recorder()
    sequencer = make_sequencer(recorder, header_delay=0.01, item_delay=10)
    items = sample_items(5)

    sequencer.start(items)
    await asyncio.sleep(0.05)
    assert 0 < len(recorder.rendered) < len(items)
    sequencer.skip()
    sequencer.skip()
    await sequencer.wait()

    assert [item for item, _ in recorder.rendered] == items
    assert recorder.rendered[0][1] is False
    assert recorder.rendered[-1][1] is True
    assert recorder.completions == 1


@pytest.mark.asyncio
async def test_skip_when_idle_is_noop():
    recorder = Recorder()
    sequencer = make_sequencer(recorder)

    sequencer.skip()

    assert recorder.rendered == []
    assert recorder.completions == 0


@pytest.mark.asyncio
async def test_new_playback_skips_previous():
    """Test that starting a second playback finishes the first one first."""
    recorder = Recorder()
    sequencer = make_sequencer(recorder, header_delay=10, item_delay=10)
    first = sample_items(3)
    second = [RevealItem(RevealKind.EVENT, "second")]

    sequencer.start(first)
    sequencer.start(second)
    await sequencer.wait()

    assert [item for item, _ in recorder.rendered] == first + second
    assert recorder.completions == 2
    assert sequencer.playbacks == 2


@pytest.mark.asyncio
async def test_delay_depends_on_kind():
    sequencer = make_sequencer(Recorder(), header_delay=0.4, item_delay=1.2)

    assert sequencer.delay_for(RevealItem(RevealKind.HEADER, "h")) == 0.4
    assert sequencer.delay_for(RevealItem(RevealKind.SEPARATOR, "s")) == 0.4
    assert sequencer.delay_for(RevealItem(RevealKind.EVENT, "e")) == 1.2
    assert sequencer.delay_for(RevealItem(RevealKind.DETAIL, "d")) == 1.2


@pytest.mark.asyncio
async def test_stop_abandons_without_completion():
    recorder = Recorder()
    sequencer = make_sequencer(recorder, header_delay=10, item_delay=10)

    sequencer.start(sample_items())
    sequencer.stop()
    await sequencer.wait()

    assert recorder.rendered == []
    assert recorder.completions == 0
    assert not sequencer.is_running


class FailingRecorder(Recorder):
    """Recorder whose first render raises."""

    def render(self, item, revealed):
        super().render(item, revealed)
        if len(self.rendered) == 1:
            raise RuntimeError("event log unavailable")


@pytest.mark.asyncio
async def test_render_failure_does_not_stall_playback(caplog):
    """Test that a raising render callback is logged and playback still completes."""
    recorder = FailingRecorder()
    sequencer = make_sequencer(recorder)
    items = sample_items(3)

    sequencer.start(items)
    await sequencer.wait()

    assert [item for item, _ in recorder.rendered] == items
    assert recorder.completions == 1
    assert not sequencer.is_running
    assert "Rendering reveal item" in caplog.text


@pytest.mark.asyncio
async def test_render_failure_during_skip():
    recorder = FailingRecorder()
    sequencer = make_sequencer(recorder, header_delay=10, item_delay=10)
    items = sample_items(3)

    sequencer.start(items)
    sequencer.skip()
    await sequencer.wait()

    assert [item for item, _ in recorder.rendered] == items
    assert recorder.completions == 1
    assert not sequencer.is_running
