"""
Record store used by the sync pipeline.

Every operation opens its own short-lived Session. Callers get plain model
instances back (expire_on_commit is off) and never see SQLAlchemy sessions.

Unique violations on CallLog.log_hash surface as DuplicateLogError; every
other database failure propagates as the original SQLAlchemyError.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from calllog.errors import DuplicateLogError
from calllog.models.call_log import CallLog
from calllog.models.sync import SyncRun, UserSyncStatus
from calllog.models.user import User

# Columns an upsert may overwrite on an existing log row
MUTABLE_LOG_FIELDS = ("user_said", "bot_response", "intent", "status", "duration", "agent")


class CallLogStore:
    """SQLModel-backed persistence for users, call logs and sync bookkeeping."""

    def __init__(self, engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    # ─── Users ────────────────────────────────────────────────────────────────

    def find_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as s:
            return s.exec(select(User).where(User.username == username)).first()

    def find_users_with_username(self) -> List[User]:
        with self._session() as s:
            return list(
                s.exec(
                    select(User).where(User.username.is_not(None)).order_by(User.id)
                ).all()
            )

    # ─── Call logs ────────────────────────────────────────────────────────────

    def find_log_hashes_by_username(self, username: str) -> Set[str]:
        """Return every log_hash already stored for the user."""
        with self._session() as s:
            rows = s.exec(
                select(CallLog.log_hash)
                .join(User, CallLog.user_id == User.id)
                .where(User.username == username)
            ).all()
        return set(rows)

    def create_log(self, fields: Dict[str, Any]) -> CallLog:
        """
        Insert a new CallLog row.

        Raises:
            DuplicateLogError: a row with the same log_hash already exists.
        """
        log = CallLog(**fields)
        with self._session() as s:
            s.add(log)
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                if "log_hash" in str(exc.orig):
                    raise DuplicateLogError(fields["log_hash"]) from exc
                raise
            s.refresh(log)
        return log

    def upsert_log_by_hash(self, fields: Dict[str, Any]) -> CallLog:
        """Update the mutable columns of the row with this log_hash, or create it."""
        with self._session() as s:
            existing = s.exec(
                select(CallLog).where(CallLog.log_hash == fields["log_hash"])
            ).first()

            if existing:
                for k in MUTABLE_LOG_FIELDS:
                    setattr(existing, k, fields[k])
                existing.updated_at = datetime.utcnow()
                log = existing
            else:
                log = CallLog(**fields)
            s.add(log)
            s.commit()
            s.refresh(log)
        return log

    def list_logs_for_user(self, user_id: int) -> List[CallLog]:
        with self._session() as s:
            return list(
                s.exec(
                    select(CallLog)
                    .where(CallLog.user_id == user_id)
                    .order_by(CallLog.timestamp, CallLog.id)
                ).all()
            )

    # ─── Sync status ──────────────────────────────────────────────────────────

    def find_sync_status(self, username: str) -> Optional[UserSyncStatus]:
        with self._session() as s:
            return s.exec(
                select(UserSyncStatus).where(UserSyncStatus.username == username)
            ).first()

    def upsert_sync_status(
        self, user_id: int, username: str, total_log_count: int
    ) -> UserSyncStatus:
        now = datetime.utcnow()
        with self._session() as s:
            status = s.exec(
                select(UserSyncStatus).where(UserSyncStatus.username == username)
            ).first()
            if status is None:
                status = UserSyncStatus(user_id=user_id, username=username)
            status.last_sync_at = now
            status.total_log_count = total_log_count
            status.updated_at = now
            s.add(status)
            s.commit()
            s.refresh(status)
        return status

    # ─── Sync runs ────────────────────────────────────────────────────────────

    def create_sync_run(self) -> SyncRun:
        run = SyncRun(started_at=datetime.utcnow(), status="running")
        with self._session() as s:
            s.add(run)
            s.commit()
            s.refresh(run)
        return run

    def finish_sync_run(
        self,
        run_id: int,
        *,
        status: str,
        users_total: int = 0,
        users_skipped: int = 0,
        logs_processed: int = 0,
        errors: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        with self._session() as s:
            run = s.get(SyncRun, run_id)
            run.status = status
            run.finished_at = datetime.utcnow()
            run.users_total = users_total
            run.users_skipped = users_skipped
            run.logs_processed = logs_processed
            run.errors = errors
            run.error_message = error_message
            s.add(run)
            s.commit()

    def latest_sync_run(self) -> Optional[SyncRun]:
        with self._session() as s:
            return s.exec(select(SyncRun).order_by(SyncRun.started_at.desc())).first()
