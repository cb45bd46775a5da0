from sqlalchemy.orm import Session
from models.meeting_transcripts import MeetingTranscript
from utils.logger import get_logger

logger = get_logger(__name__)


class MeetingService:

    @staticmethod
    def save_transcript(db: Session, user_id: str, raw_text: str, summary: str) -> MeetingTranscript:
        try:
            transcript = MeetingTranscript(user_id=user_id, raw_text=raw_text, summary=summary)
            db.add(transcript)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(transcript)
        logger.info(
            "Transcript saved",
            extra={"user_id": user_id, "transcript_id": transcript.id}
        )
        return transcript
