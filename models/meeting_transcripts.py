import uuid
from core.database import Base
from sqlalchemy import Column, String, Text, ForeignKey
from models.mixins import CreatedAtMixin


def generate_transcript_id() -> str:
    return str(uuid.uuid4())


class MeetingTranscript(Base, CreatedAtMixin):
    """A transcript submitted for extraction, kept with the summary it produced."""
    __tablename__ = "meeting_transcripts"

    #pk
    id = Column(String(36), primary_key=True, default=generate_transcript_id)

    #fk
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    raw_text = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
