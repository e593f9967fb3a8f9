class InternalURIs:
    API = "/api"
    HEALTH = "/healthz"
    INFO = API + "/info"
    STATUS = API + "/status"
    SUMMARY = API + "/summary"
    SUMMARY_SSE = API + "/summary-sse"
    TRANSCRIPT = API + "/transcript"
    UPLOAD_SUMMARY = SUMMARY + "/upload"
    UPLOAD_SUMMARY_SSE = SUMMARY_SSE + "/upload"
    UPLOAD_TRANSCRIPT = TRANSCRIPT + "/upload"


class Progress:
    ACQUIRING = ("Acquiring media", 10)
    TRANSCRIBING = ("Generating transcript", 40)
    SUMMARIZING = ("Generating summary", 70)
    COMPLETE = 100


AUDIO_FILE_STEM = "audio"

# Blocking endpoints check for a gone client this often while a job runs
DISCONNECT_POLL_SECONDS = 1.0
