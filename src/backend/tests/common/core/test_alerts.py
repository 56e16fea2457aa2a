# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio

import pytest
from tests.test_utils import FakeSpeech, wait_until

from common.core.alerts import AlertDebouncer


@pytest.mark.asyncio
async def test_first_alert_is_spoken():
    speech = FakeSpeech()
    debouncer = AlertDebouncer(speech)

    assert debouncer.raise_alert("Warning! person too close!") is True
    assert debouncer.in_flight is True

    await debouncer.wait_idle()
    assert speech.spoken == ["Warning! person too close!"]
    assert debouncer.in_flight is False


@pytest.mark.asyncio
async def test_alerts_are_dropped_while_speaking():
    speech = FakeSpeech(block=True)
    debouncer = AlertDebouncer(speech)

    assert debouncer.raise_alert("Warning! person too close!") is True
    await wait_until(lambda: len(speech.spoken) == 1)

    for _ in range(5):
        assert debouncer.raise_alert("Warning! car too close!") is False

    speech.release.set()
    await debouncer.wait_idle()

    assert speech.spoken == ["Warning! person too close!"]


@pytest.mark.asyncio
async def test_alert_after_completion_is_spoken():
    speech = FakeSpeech(block=True)
    debouncer = AlertDebouncer(speech)

    debouncer.raise_alert("first")
    await wait_until(lambda: len(speech.spoken) == 1)
    speech.release.set()
    await debouncer.wait_idle()

    assert debouncer.raise_alert("second") is True
    await wait_until(lambda: len(speech.spoken) == 2)
    speech.release.set()
    await debouncer.wait_idle()

    assert speech.spoken == ["first", "second"]


@pytest.mark.asyncio
async def test_failed_utterance_clears_flag():
    speech = FakeSpeech(fail=True)
    debouncer = AlertDebouncer(speech)

    debouncer.raise_alert("first")
    await debouncer.wait_idle()

    assert debouncer.in_flight is False
    assert debouncer.raise_alert("second") is True
    await debouncer.wait_idle()
    assert speech.spoken == ["first", "second"]


@pytest.mark.asyncio
async def test_wait_idle_without_alerts_returns():
    debouncer = AlertDebouncer(FakeSpeech())

    await asyncio.wait_for(debouncer.wait_idle(), timeout=1.0)


@pytest.mark.asyncio
async def test_aclose_lets_utterance_finish_then_closes_speech():
    speech = FakeSpeech(block=True)
    debouncer = AlertDebouncer(speech)

    debouncer.raise_alert("Warning! person too close!")
    await wait_until(lambda: len(speech.spoken) == 1)
    closing = asyncio.create_task(debouncer.aclose())
    await asyncio.sleep(0.01)
    assert speech.closed == 0

    speech.release.set()
    await asyncio.wait_for(closing, timeout=2.0)

    assert speech.closed == 1
    assert debouncer.in_flight is False
