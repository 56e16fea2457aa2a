# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging

import pytest

import common.core.speech as speech_mod


class DummyEngine:
    def __init__(self):
        self.properties: dict = {}
        self.said: list[str] = []
        self.runs = 0

    def setProperty(self, name, value):
        self.properties[name] = value

    def say(self, text):
        self.said.append(text)

    def runAndWait(self):
        self.runs += 1


@pytest.fixture
def engines(monkeypatch):
    created: list[DummyEngine] = []

    def fake_init():
        engine = DummyEngine()
        created.append(engine)
        return engine

    monkeypatch.setattr(speech_mod.pyttsx3, "init", fake_init)
    return created


@pytest.mark.asyncio
async def test_pyttsx3_speech_configures_engine_once(engines):
    speech = speech_mod.Pyttsx3Speech(rate=150, volume=0.7)
    try:
        await speech.speak("Warning! person too close!")
        await speech.speak("Warning! car too close!")
    finally:
        speech.close()

    assert len(engines) == 1
    engine = engines[0]
    assert engine.properties == {"rate": 150, "volume": 0.7}
    assert engine.said == ["Warning! person too close!", "Warning! car too close!"]
    assert engine.runs == 2


@pytest.mark.asyncio
async def test_pyttsx3_speech_uses_config_defaults(engines, monkeypatch):
    monkeypatch.setattr(speech_mod.config, "TTS_RATE", 200)
    monkeypatch.setattr(speech_mod.config, "TTS_VOLUME", 0.5)
    speech = speech_mod.Pyttsx3Speech()
    try:
        await speech.speak("hello")
    finally:
        speech.close()

    assert engines[0].properties == {"rate": 200, "volume": 0.5}


@pytest.mark.asyncio
async def test_logging_speech_logs_utterance(caplog):
    speech = speech_mod.LoggingSpeech()

    with caplog.at_level(logging.WARNING, logger=speech_mod.logger.name):
        await speech.speak("Warning! bus too close!")

    assert any(
        getattr(record, "utterance", None) == "Warning! bus too close!"
        for record in caplog.records
    )


@pytest.mark.parametrize(
    "backend, expected",
    [
        ("log", speech_mod.LoggingSpeech),
        ("LOG", speech_mod.LoggingSpeech),
        ("pyttsx3", speech_mod.Pyttsx3Speech),
    ],
)
def test_build_speech_output(backend, expected):
    output = speech_mod.build_speech_output(backend)

    assert isinstance(output, expected)
    if isinstance(output, speech_mod.Pyttsx3Speech):
        output.close()


def test_build_speech_output_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported SPEECH_BACKEND"):
        speech_mod.build_speech_output("espeak")


@pytest.mark.asyncio
async def test_pyttsx3_speech_close_stops_worker(engines):
    speech = speech_mod.Pyttsx3Speech(rate=150, volume=0.7)
    await speech.speak("first")

    speech.close()

    with pytest.raises(RuntimeError):
        await speech.speak("after close")
    assert engines[0].said == ["first"]


def test_logging_speech_close_is_noop():
    speech_mod.LoggingSpeech().close()
