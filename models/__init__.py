from models.users import User
from models.refresh_tokens import RefreshToken
from models.meeting_transcripts import MeetingTranscript

__all__ = ["User", "RefreshToken", "MeetingTranscript"]
