"""Integration tests running a real whisper.cpp model."""

import pytest

from openvoice.engine import TranscriptionEngine, WhisperCppBackend
from openvoice.exceptions import EngineUnavailableError
from openvoice.wav_framer import patch_header, write_header


@pytest.mark.integration
class TestWhisperIntegration:

    @pytest.fixture
    def engine(self, installed_model_path):
        try:
            backend = WhisperCppBackend()
        except EngineUnavailableError as e:
            pytest.skip(str(e))
        engine = TranscriptionEngine(backend=backend)
        engine.load_model(installed_model_path)
        yield engine
        engine.unload()

    def test_transcribe_silence(self, engine, tmp_path):
        wav_path = tmp_path / "silence.wav"
        samples = b"\x00\x00" * 16000
        with open(wav_path, "wb") as f:
            write_header(f, 0)
            f.write(samples)
        patch_header(wav_path, len(samples))

        result = engine.transcribe(wav_path)

        assert isinstance(result, str)
        assert result == result.strip()
