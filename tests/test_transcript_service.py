import concurrent.futures
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as gcp_exceptions

from ideavault.common.common_message import CommonMessage
from ideavault.common.exceptions import TranscriptionError
from ideavault.services.transcript_service import TranscriptService


def speech_response(*transcripts):
    return SimpleNamespace(
        results=[SimpleNamespace(alternatives=[SimpleNamespace(transcript=t)]) for t in transcripts]
    )


class FakeOperation:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.timeouts = []

    def result(self, timeout=None):
        self.timeouts.append(timeout)
        if self.error:
            raise self.error
        return self.response


class FakeSpeechClient:
    def __init__(self, response=None, error=None, operation=None):
        self.response = response
        self.error = error
        self.operation = operation
        self.recognize_calls = []
        self.long_running_calls = []

    def recognize(self, config, audio, timeout=None):
        self.recognize_calls.append(timeout)
        if self.error:
            raise self.error
        return self.response

    def long_running_recognize(self, config, audio, timeout=None):
        self.long_running_calls.append(timeout)
        return self.operation


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "memo.wav"
    path.write_bytes(b"RIFF....WAVEfmt ")
    return str(path)


def make_service(client):
    service = TranscriptService()
    service.client = client
    return service


class TestTranscribe:

    def test_joins_result_segments(self, wav_file):
        client = FakeSpeechClient(response=speech_response(" buy milk ", "and eggs"))
        service = make_service(client)

        assert service.transcribe(wav_file, duration=5) == "buy milk and eggs"
        assert client.recognize_calls == [service.timeout]

    def test_long_audio_uses_long_running_recognition(self, wav_file):
        operation = FakeOperation(response=speech_response("a long ramble"))
        client = FakeSpeechClient(operation=operation)
        service = make_service(client)

        assert service.transcribe(wav_file, duration=120) == "a long ramble"
        assert client.recognize_calls == []
        assert operation.timeouts == [service.timeout]

    def test_deadline_exceeded_is_a_timeout(self, wav_file):
        client = FakeSpeechClient(error=gcp_exceptions.DeadlineExceeded("too slow"))

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(client).transcribe(wav_file, duration=5)
        assert str(exc_info.value) == CommonMessage.TRANSCRIPTION_TIMEOUT

    def test_long_running_wait_timeout(self, wav_file):
        operation = FakeOperation(error=concurrent.futures.TimeoutError())
        client = FakeSpeechClient(operation=operation)

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(client).transcribe(wav_file, duration=300)
        assert str(exc_info.value) == CommonMessage.TRANSCRIPTION_TIMEOUT

    def test_provider_error_is_wrapped(self, wav_file):
        client = FakeSpeechClient(error=gcp_exceptions.ServiceUnavailable("backend down"))

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(client).transcribe(wav_file)
        assert str(exc_info.value).startswith("Speech-to-text failed:")

    @pytest.mark.parametrize("response", [speech_response(), speech_response("   ")])
    def test_empty_result_fails(self, wav_file, response):
        client = FakeSpeechClient(response=response)

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(client).transcribe(wav_file)
        assert str(exc_info.value) == CommonMessage.TRANSCRIPTION_EMPTY

    def test_missing_artifact(self, tmp_path):
        client = FakeSpeechClient(response=speech_response("unused"))

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(client).transcribe(str(tmp_path / "gone.wav"))
        assert str(exc_info.value) == CommonMessage.AUDIO_MISSING
        assert client.recognize_calls == []
