from datetime import datetime, timezone
from sqlalchemy.orm import Session
from models.refresh_tokens import RefreshToken
from utils.hashing import hash_token, verify_token


class SessionStore:
    """
    Persisted refresh-token records.

    None of these methods commit: the caller commits once per session
    transition, so revoke-then-create lands atomically.
    """

    @staticmethod
    def create_refresh_record(db: Session, user_id: str, raw_token: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            expires_at=expires_at
        )
        db.add(record)
        db.flush()
        return record

    @staticmethod
    def list_live(db: Session, user_id: str) -> list[RefreshToken]:
        return db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at > datetime.now(timezone.utc)
        ).all()

    @staticmethod
    def revoke_all(db: Session, user_id: str) -> int:
        """
        Deletes every refresh record of the user. Returns the number removed.
        """
        return db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).delete(synchronize_session=False)

    @staticmethod
    def find_matching_record(db: Session, user_id: str, raw_token: str) -> RefreshToken | None:
        """
        Returns the first live record whose hash matches the raw token.

        Hashes are salted, so each candidate has to be verified in turn;
        revoke_all on every rotation keeps the candidate list near one.
        """
        for record in SessionStore.list_live(db, user_id):
            if verify_token(raw_token, record.token_hash):
                return record
        return None
