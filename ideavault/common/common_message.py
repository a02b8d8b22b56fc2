class CommonMessage:
    # Notes
    NOTE_CREATED_SUCCESS = "Note created successfully"
    NOTE_UPDATED_SUCCESS = "Note updated successfully"
    NOTE_DELETED_SUCCESS = "Note deleted successfully"
    NOTE_RETRIEVED_SUCCESS = "Note retrieved successfully"
    NOTES_LIST_RETRIEVED_SUCCESS = "Notes retrieved successfully"
    NOTE_NOT_FOUND = "Note not found"
    NOTE_CREATE_FAILED = "Failed to create note"
    NOTE_UPDATE_FAILED = "Failed to update note"
    NOTE_DELETE_FAILED = "Failed to delete note"
    TRANSCRIPT_REQUIRED = "Transcript is required"
    FAVORITE_TOGGLED_SUCCESS = "Favorite status updated"

    # Audio / transcription
    AUDIO_REQUIRED = "Audio file is required"
    AUDIO_FILE_TOO_LARGE = "Audio file exceeds maximum allowed size"
    AUDIO_FILE_INVALID_FORMAT = "Only audio files are allowed"
    AUDIO_SAVE_FAILED = "Failed to store audio file"
    AUDIO_NOTE_CREATED_SUCCESS = "Note created, transcript pending"
    TRANSCRIPTION_QUEUE_FAILED = "Failed to queue transcription"
    TRANSCRIPTION_RETRY_QUEUED = "Transcription re-queued"
    TRANSCRIPTION_NOT_RETRYABLE = "Only failed audio notes can be retried"
    TRANSCRIPTION_EMPTY = "No transcript returned from speech-to-text provider"
    TRANSCRIPTION_TIMEOUT = "Transcription timed out"
    TRANSCRIPTION_STUCK = "Transcription did not finish in time, please record again"
    AUDIO_MISSING = "Audio artifact is missing"

    # Embeddings
    EMBEDDING_FAILED = "Failed to generate embedding"
    EMBEDDING_INVALID = "Embedding provider returned a vector with the wrong dimension"

    # Clusters
    CLUSTER_CREATED_SUCCESS = "Cluster created successfully"
    CLUSTER_UPDATED_SUCCESS = "Cluster updated successfully"
    CLUSTER_DELETED_SUCCESS = "Cluster deleted successfully"
    CLUSTER_NOT_FOUND = "Cluster not found"
    CLUSTER_LABEL_REQUIRED = "Label is required"
    CLUSTER_LABEL_EXISTS = "Cluster with this label already exists"
    CLUSTER_ASSIGNED_SUCCESS = "Note assigned to cluster successfully"
    CLUSTER_ASSIGN_FAILED = "No cluster assignment was possible"
    NOTE_NOT_EMBEDDED = "Note has no embedding yet"

    # Search / chat
    QUERY_REQUIRED = "Search query is required"
    QUESTION_REQUIRED = "Question is required"
    SEARCH_SUCCESS = "Search completed"
    CHAT_SUCCESS = "Answer generated"
    RAG_GENERATION_FAILED = "I'm having trouble processing your question. Please try again."
    RAG_NO_ANSWER = "I couldn't find relevant information in your notes."

    # Tasks
    JOB_NOT_FOUND = "Job not found"
    JOB_STATUS_RETRIEVED = "Job status retrieved successfully"
    JOB_QUEUED = "Task queued. Poll its status with the returned job_id"
    JOB_POOL_UNAVAILABLE = "Background queue is not available"
    JOB_CREATE_FAILED = "Failed to record background job"
