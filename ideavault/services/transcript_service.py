import concurrent.futures
import logging
import os
from pathlib import Path
from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import speech_v1 as speech
from pydub import AudioSegment

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import AudioConfig
from ideavault.common.exceptions import TranscriptionError
from ideavault.config import settings

logger = logging.getLogger(__name__)

# Inline content limit for the Speech API
MAX_INLINE_CONTENT_BYTES = 10 * 1024 * 1024
# Synchronous recognize only accepts about a minute of audio
MAX_SYNC_DURATION_SECONDS = 60


class TranscriptService:
    def __init__(self):
        self.client = None
        self.timeout = settings.TRANSCRIPTION_TIMEOUT_SECONDS
        self.language_code = settings.TRANSCRIPTION_LANGUAGE_CODE

    def _get_client(self):
        if self.client is None:
            self.client = speech.SpeechClient()
            logger.info("Google Cloud Speech client initialized")
        return self.client

    def convert_audio_for_transcription(self, input_file: str, output_file: str) -> bool:
        """Convert audio to 16kHz mono WAV, the format Speech handles best"""
        try:
            audio = AudioSegment.from_file(input_file)
            audio = audio.set_channels(AudioConfig.CONVERTED_CHANNELS)
            audio = audio.set_frame_rate(AudioConfig.CONVERTED_SAMPLE_RATE)
            audio.export(output_file, format="wav")
            logger.info("Audio converted successfully: %s", output_file)
            return True
        except Exception as e:
            logger.error("Failed to convert audio %s: %s", input_file, e)
            return False

    def get_audio_config(self, file_path: str, language_code: str, converted: bool) -> speech.RecognitionConfig:
        """Get recognition config based on the audio container"""
        config = speech.RecognitionConfig(
            language_code=language_code,
            enable_automatic_punctuation=True,
            max_alternatives=1,
        )
        if converted:
            config.encoding = speech.RecognitionConfig.AudioEncoding.LINEAR16
            config.sample_rate_hertz = AudioConfig.CONVERTED_SAMPLE_RATE
            return config

        file_extension = Path(file_path).suffix.lower()
        if file_extension == ".wav":
            config.encoding = speech.RecognitionConfig.AudioEncoding.LINEAR16
        elif file_extension == ".mp3":
            config.encoding = speech.RecognitionConfig.AudioEncoding.MP3
        elif file_extension == ".flac":
            config.encoding = speech.RecognitionConfig.AudioEncoding.FLAC
        elif file_extension == ".ogg":
            config.encoding = speech.RecognitionConfig.AudioEncoding.OGG_OPUS
        elif file_extension == ".webm":
            config.encoding = speech.RecognitionConfig.AudioEncoding.WEBM_OPUS
        return config

    def transcribe(
        self,
        file_path: str,
        duration: Optional[float] = None,
        language_code: Optional[str] = None,
    ) -> str:
        """
        Transcribe a stored audio artifact with Google Cloud Speech-to-Text.

        Every provider call is bounded by TRANSCRIPTION_TIMEOUT_SECONDS.

        Returns:
            The transcript text, never empty

        Raises:
            TranscriptionError: missing artifact, provider error, timeout or
                empty transcript
        """
        language_code = language_code or self.language_code
        if not file_path or not os.path.exists(file_path):
            raise TranscriptionError(CommonMessage.AUDIO_MISSING)

        converted_file = None
        try:
            transcribe_file = file_path
            if Path(file_path).suffix.lower().lstrip(".") in AudioConfig.CONVERT_FORMATS:
                converted_file = f"{file_path}_converted.wav"
                if self.convert_audio_for_transcription(file_path, converted_file):
                    transcribe_file = converted_file
                else:
                    converted_file = None

            with open(transcribe_file, "rb") as audio_content:
                content = audio_content.read()
            if len(content) > MAX_INLINE_CONTENT_BYTES:
                raise TranscriptionError(CommonMessage.AUDIO_FILE_TOO_LARGE)

            audio = speech.RecognitionAudio(content=content)
            config = self.get_audio_config(transcribe_file, language_code, converted_file is not None)
            client = self._get_client()

            use_long_running = bool(duration and duration > MAX_SYNC_DURATION_SECONDS)
            logger.info(
                "Starting transcription for %s, method: %s",
                file_path,
                "long_running" if use_long_running else "synchronous",
            )
            if use_long_running:
                operation = client.long_running_recognize(config=config, audio=audio, timeout=self.timeout)
                response = operation.result(timeout=self.timeout)
            else:
                response = client.recognize(config=config, audio=audio, timeout=self.timeout)

        except TranscriptionError:
            raise
        except (concurrent.futures.TimeoutError, gcp_exceptions.DeadlineExceeded) as e:
            logger.error("Transcription timed out for %s: %s", file_path, e)
            raise TranscriptionError(CommonMessage.TRANSCRIPTION_TIMEOUT) from e
        except Exception as e:
            logger.error("Transcription failed for %s: %s", file_path, e, exc_info=True)
            raise TranscriptionError(f"Speech-to-text failed: {e}") from e
        finally:
            if converted_file and os.path.exists(converted_file):
                os.remove(converted_file)

        parts = [
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ]
        transcript = " ".join(part for part in parts if part).strip()
        if not transcript:
            raise TranscriptionError(CommonMessage.TRANSCRIPTION_EMPTY)

        logger.info("Transcription completed for %s (%d words)", file_path, len(transcript.split()))
        return transcript


transcript_service = TranscriptService()
