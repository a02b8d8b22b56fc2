class AIPrompts:
    """AI-related prompts for various operations."""

    CLUSTER_LABEL_SYSTEM_PROMPT = (
        "You are a helpful assistant that creates short, descriptive category labels for ideas. "
        "Return only the label, nothing else. "
        'Examples: "Business Ideas", "App Features", "Learning Notes", "To-do Items", "Product Ideas". '
        "Keep it under 3 words."
    )

    CLUSTER_LABEL_USER_PROMPT = 'Create a short category label for this idea: "{sample}"'

    RAG_SYSTEM_PROMPT = """You are a helpful assistant that answers questions about the user's notes and ideas.
Use only the provided context from their notes to answer questions accurately.
If the question asks about something not in the context, say so politely.
Be concise and helpful. Format dates naturally (e.g., "yesterday", "3 days ago")."""

    RAG_USER_PROMPT = """Context from user's notes:
{context}

User's question: {question}

Answer:"""

    RAG_EMPTY_CONTEXT = "No relevant notes found."


class TranscriptionStatus:
    """Pipeline states for audio notes."""

    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    CLUSTERED = "clustered"
    FAILED = "failed"

    PENDING_STATES = (UPLOADED, TRANSCRIBING)


class TaskTypes:
    TRANSCRIPTION = "transcription"


class JobStatus:
    """Lifecycle of a task_jobs row."""

    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ACTIVE_STATES = (PENDING, QUEUED, PROCESSING)


class AudioConfig:
    """Audio upload configuration constants."""

    # Content types accepted for upload, mapped to the stored extension
    ALLOWED_CONTENT_TYPES = {
        "audio/wav": "wav",
        "audio/x-wav": "wav",
        "audio/wave": "wav",
        "audio/mpeg": "mp3",
        "audio/mp3": "mp3",
        "audio/mp4": "m4a",
        "audio/m4a": "m4a",
        "audio/x-m4a": "m4a",
        "audio/aac": "aac",
        "audio/flac": "flac",
        "audio/ogg": "ogg",
        "audio/webm": "webm",
    }

    # Containers the speech API cannot decode directly
    CONVERT_FORMATS = ["m4a", "aac", "mp3"]
    CONVERTED_SAMPLE_RATE = 16000
    CONVERTED_CHANNELS = 1  # Mono

    DEFAULT_CONTENT_TYPE = "audio/m4a"
