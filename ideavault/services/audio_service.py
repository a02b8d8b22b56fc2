import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

from fastapi import status

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import AudioConfig
from ideavault.common.response_common import ResponseCommon
from ideavault.config import settings

logger = logging.getLogger(__name__)


class AudioService:
    def __init__(self):
        self.upload_dir = Path(settings.AUDIO_UPLOAD_DIR)
        self.allowed_formats = AudioConfig.ALLOWED_CONTENT_TYPES
        self.max_file_size = settings.AUDIO_MAX_UPLOAD_BYTES
        # URL path the app serves upload_dir under
        self.url_prefix = "/" + PurePosixPath(settings.AUDIO_UPLOAD_DIR).as_posix().strip("/")

    @staticmethod
    def normalize_content_type(content_type: Optional[str]) -> str:
        if not content_type:
            return AudioConfig.DEFAULT_CONTENT_TYPE
        # Browsers send e.g. "audio/webm;codecs=opus"
        return content_type.split(";")[0].strip().lower()

    def validate_audio(self, audio_bytes: bytes, content_type: Optional[str]) -> ResponseCommon:
        """Validate uploaded audio bytes"""
        if not audio_bytes:
            return ResponseCommon.error_response(
                message=CommonMessage.AUDIO_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )

        if len(audio_bytes) > self.max_file_size:
            return ResponseCommon.error_response(
                message=CommonMessage.AUDIO_FILE_TOO_LARGE,
                code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )

        if self.normalize_content_type(content_type) not in self.allowed_formats:
            return ResponseCommon.error_response(
                message=CommonMessage.AUDIO_FILE_INVALID_FORMAT,
                code=status.HTTP_400_BAD_REQUEST,
            )

        return ResponseCommon.success_response()

    def save_audio(self, user_id: str, audio_bytes: bytes, content_type: Optional[str]) -> ResponseCommon:
        """Write the artifact under the user's directory and return its location"""
        content_type = self.normalize_content_type(content_type)
        file_extension = self.allowed_formats.get(content_type, "bin")
        user_dir = self.upload_dir / str(user_id)
        file_path = user_dir / f"{uuid.uuid4().hex}.{file_extension}"

        try:
            user_dir.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as buffer:
                buffer.write(audio_bytes)
        except OSError as e:
            logger.error("Failed to store audio for user %s: %s", user_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.AUDIO_SAVE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        logger.info("Stored audio artifact %s (%d bytes)", file_path, len(audio_bytes))
        return ResponseCommon.success_response(
            code=status.HTTP_201_CREATED,
            data={
                "file_path": str(file_path),
                "file_format": file_extension,
                "content_type": content_type,
                "audio_url": f"{self.url_prefix}/{user_id}/{file_path.name}",
            },
        )

    def delete_audio(self, file_path: Optional[str]) -> None:
        if not file_path:
            return
        try:
            Path(file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove audio artifact %s: %s", file_path, e)


audio_service = AudioService()
