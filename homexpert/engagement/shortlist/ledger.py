"""
Shortlist ledger.

Tracks which households have shortlisted which househelp profiles and which
household, if any, holds the time-boxed exclusive lock on a profile.

Concurrency model:
- Every mutation for a profile runs inside the per-profile critical section
  and re-reads state there before writing.
- The lock itself is one ``ProfileLock`` record per profile. Taking it is
  insert-if-absent (or compare-and-set over an expired record), so two
  households racing for the same profile produce exactly one winner even
  across processes. The loser gets AlreadyLockedError.
- Expiry is lazy: ``check_status`` and every mutation compare the wall clock
  with ``expires_at``. ``sweep_expired`` only reclaims records.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from homexpert.engagement.config import EngagementConfig
from homexpert.engagement.errors import (
    AlreadyLockedError,
    NotFoundError,
    ProfileLockedError,
    ValidationError,
)
from homexpert.engagement.events import DomainEvent, EventSink, EventType
from homexpert.engagement.storage.base import (
    PROFILE_LOCKS_TABLE,
    SHORTLIST_TABLE,
    EngagementStorage,
    profile_lock_key,
    shortlist_key,
)
from homexpert.engagement.storage.locks import KeyedLocks
from homexpert.types import NowFn, VersionConflictError, utc_now

from .models import LockSource, ProfileLock, ShortlistEntry, UnlockStatus

logger = logging.getLogger(__name__)

MAX_CAS_ATTEMPTS = 3


class ShortlistLedger:
    """Shortlist entries and exclusive profile locks."""

    def __init__(
        self,
        storage: EngagementStorage,
        config: Optional[EngagementConfig] = None,
        locks: Optional[KeyedLocks] = None,
        events: Optional[EventSink] = None,
        now_fn: Optional[NowFn] = None,
    ):
        self.storage = storage
        self.config = config or EngagementConfig()
        self.locks = locks or KeyedLocks(timeout=self.config.lock_wait_timeout)
        self.events = events
        self._now = now_fn or utc_now

    # === Entries ===

    def add_entry(self, household_id: str, profile_id: str) -> ShortlistEntry:
        """Shortlist a profile. Returns the existing entry if already shortlisted.

        Raises:
            ValidationError: Empty IDs
            ProfileLockedError: Profile is locked by a different household
        """
        self._require_ids(household_id, profile_id)

        with self.locks.hold(profile_lock_key(profile_id)):
            now = self._now()
            lock = self._active_lock(profile_id)
            if lock and lock.household_id != household_id:
                raise ProfileLockedError(
                    "This profile was just locked by another household. "
                    "Try another profile or check back later."
                )

            existing = self.storage.get(SHORTLIST_TABLE, shortlist_key(household_id, profile_id))
            if existing:
                return ShortlistEntry.from_dict(existing.data).with_lock_evaluated(now)

            entry = ShortlistEntry(household_id=household_id, profile_id=profile_id, created_at=now)
            if lock:
                entry.is_locked = True
                entry.lock_expires_at = lock.expires_at
                entry.locked_by_household_id = household_id
            if not self.storage.insert_if_absent(
                SHORTLIST_TABLE, shortlist_key(household_id, profile_id), entry.to_dict()
            ):
                existing = self.storage.get(
                    SHORTLIST_TABLE, shortlist_key(household_id, profile_id)
                )
                return ShortlistEntry.from_dict(existing.data).with_lock_evaluated(now)

        logger.info(f"Shortlisted | household={household_id} | profile={profile_id}")
        return entry

    def remove_entry(self, household_id: str, profile_id: str) -> None:
        """Remove the caller's entry, releasing their lock on the profile.

        Raises:
            NotFoundError: The household has no entry for this profile
        """
        self._require_ids(household_id, profile_id)
        key = shortlist_key(household_id, profile_id)

        with self.locks.hold(profile_lock_key(profile_id)):
            for _ in range(MAX_CAS_ATTEMPTS):
                record = self.storage.get(SHORTLIST_TABLE, key)
                if record is None:
                    raise NotFoundError("Profile is not on your shortlist")
                if self.storage.delete_if_version_matches(SHORTLIST_TABLE, key, record.version):
                    break
            else:
                raise NotFoundError("Profile is not on your shortlist")
            released = self._release_locked(household_id, profile_id)

        logger.info(f"Removed from shortlist | household={household_id} | profile={profile_id}")
        self._emit_unlocked(released, household_id, reason="shortlist_removed")

    def get_entry(self, household_id: str, profile_id: str) -> Optional[ShortlistEntry]:
        record = self.storage.get(SHORTLIST_TABLE, shortlist_key(household_id, profile_id))
        if record is None:
            return None
        return ShortlistEntry.from_dict(record.data).with_lock_evaluated(self._now())

    def exists(self, household_id: str, profile_id: str) -> bool:
        return self.storage.get(SHORTLIST_TABLE, shortlist_key(household_id, profile_id)) is not None

    def list_entries(
        self, household_id: str, offset: int = 0, limit: int = 20
    ) -> List[ShortlistEntry]:
        """A household's shortlist, newest first."""
        if offset < 0 or limit < 1:
            raise ValidationError("offset must be >= 0 and limit >= 1")
        now = self._now()
        entries = [
            ShortlistEntry.from_dict(r.data).with_lock_evaluated(now)
            for r in self.storage.find(SHORTLIST_TABLE, household_id=household_id)
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[offset : offset + limit]

    # === Locks ===

    def lock(
        self,
        household_id: str,
        profile_id: str,
        duration: Optional[timedelta] = None,
        source: LockSource = LockSource.PURCHASE,
    ) -> ProfileLock:
        """Grant a household exclusive access to a profile for ``duration``.

        Called once billing has confirmed an unlock purchase, or when a hire
        request for the pair is accepted. Re-locking by the current holder
        extends the lock to the later of the two expiries. The holder's
        shortlist entry is created if missing.

        Raises:
            ValidationError: Empty IDs or non-positive duration
            AlreadyLockedError: Another household holds a valid lock
        """
        self._require_ids(household_id, profile_id)
        duration = duration if duration is not None else self.config.default_lock_duration
        if not isinstance(duration, timedelta) or duration <= timedelta(0):
            raise ValidationError("Lock duration must be positive")

        with self.locks.hold(profile_lock_key(profile_id)):
            acquired, extended, displaced = self._acquire(household_id, profile_id, duration, source)
            if displaced:
                self._mirror_entry(displaced, profile_id, None)
            self._mirror_entry(household_id, profile_id, acquired)

        logger.info(
            f"Profile locked | profile={profile_id} | household={household_id} "
            f"| until={acquired.expires_at.isoformat()} | extended={extended}"
        )
        self._emit(
            EventType.SHORTLIST_LOCKED,
            profile_id,
            household_id,
            {
                "household_id": household_id,
                "expires_at": acquired.expires_at.isoformat(),
                "source": acquired.source,
                "extended": extended,
            },
        )
        return acquired

    def _acquire(
        self,
        household_id: str,
        profile_id: str,
        duration: timedelta,
        source: LockSource,
    ) -> Tuple[ProfileLock, bool, Optional[str]]:
        """Compare-and-set loop. Returns (lock, extended, displaced_household)."""
        for _ in range(MAX_CAS_ATTEMPTS):
            now = self._now()
            record = self.storage.get(PROFILE_LOCKS_TABLE, profile_id)

            if record is None:
                fresh = ProfileLock(profile_id, household_id, now, now + duration, source)
                if self.storage.insert_if_absent(PROFILE_LOCKS_TABLE, profile_id, fresh.to_dict()):
                    return fresh, False, None
                continue

            current = ProfileLock.from_dict(record.data)
            if current.is_active(now) and current.household_id != household_id:
                raise AlreadyLockedError(
                    "This profile was just locked by another household. "
                    "Refresh to see its current status."
                )

            if current.is_active(now):
                updated = ProfileLock(
                    profile_id,
                    household_id,
                    current.locked_at,
                    max(current.expires_at, now + duration),
                    current.source,
                )
                extended, displaced = True, None
            else:
                updated = ProfileLock(profile_id, household_id, now, now + duration, source)
                extended = False
                displaced = current.household_id if current.household_id != household_id else None

            try:
                self.storage.put_if_version_matches(
                    PROFILE_LOCKS_TABLE, profile_id, updated.to_dict(), record.version
                )
                return updated, extended, displaced
            except VersionConflictError as e:
                logger.warning(f"Lost lock race on profile {profile_id}: {e}")

        raise AlreadyLockedError(
            "This profile was just locked by another household. Refresh to see its current status."
        )

    def release(self, household_id: str, profile_id: str, reason: str = "released") -> bool:
        """Clear the household's lock on the profile. No-op if they don't hold it."""
        with self.locks.hold(profile_lock_key(profile_id)):
            released = self._release_locked(household_id, profile_id)
        self._emit_unlocked(released, household_id, reason=reason)
        return released is not None

    def _release_locked(
        self, household_id: str, profile_id: str
    ) -> Optional[Tuple[ProfileLock, bool]]:
        """Delete the lock record if held by the household. Caller holds the profile mutex.

        Returns (lock, was_active) or None when nothing was released.
        """
        for _ in range(MAX_CAS_ATTEMPTS):
            record = self.storage.get(PROFILE_LOCKS_TABLE, profile_id)
            if record is None:
                return None
            current = ProfileLock.from_dict(record.data)
            if current.household_id != household_id:
                return None
            if self.storage.delete_if_version_matches(PROFILE_LOCKS_TABLE, profile_id, record.version):
                self._mirror_entry(household_id, profile_id, None)
                return current, current.is_active(self._now())
        return None

    def check_status(self, profile_id: str, requesting_household_id: str) -> UnlockStatus:
        """Whether the profile is unlocked, and whether by the requester.

        Recomputed from the wall clock on every call.
        """
        lock = self._active_lock(profile_id)
        if lock is None:
            return UnlockStatus(unlocked=False, unlocked_by_me=False)
        mine = lock.household_id == requesting_household_id
        return UnlockStatus(
            unlocked=True,
            unlocked_by_me=mine,
            expires_at=lock.expires_at if mine else None,
        )

    def get_lock(self, profile_id: str) -> Optional[ProfileLock]:
        """The profile's lock if one is currently in force."""
        return self._active_lock(profile_id)

    def is_locked_by_other(self, profile_id: str, household_id: str) -> bool:
        lock = self._active_lock(profile_id)
        return lock is not None and lock.household_id != household_id

    def sweep_expired(self) -> List[ProfileLock]:
        """Delete lapsed lock records. Not needed for correctness."""
        reclaimed: List[ProfileLock] = []
        for record in self.storage.find(PROFILE_LOCKS_TABLE):
            if ProfileLock.from_dict(record.data).is_active(self._now()):
                continue
            profile_id = record.key
            with self.locks.hold(profile_lock_key(profile_id)):
                current = self.storage.get(PROFILE_LOCKS_TABLE, profile_id)
                if current is None:
                    continue
                lock = ProfileLock.from_dict(current.data)
                if lock.is_active(self._now()):
                    continue
                if self.storage.delete_if_version_matches(
                    PROFILE_LOCKS_TABLE, profile_id, current.version
                ):
                    self._mirror_entry(lock.household_id, profile_id, None)
                    reclaimed.append(lock)

        for lock in reclaimed:
            self._emit(
                EventType.SHORTLIST_UNLOCKED,
                lock.profile_id,
                None,
                {"household_id": lock.household_id, "reason": "expired"},
            )
        if reclaimed:
            logger.debug(f"Swept {len(reclaimed)} expired profile lock(s)")
        return reclaimed

    # === Internals ===

    def _active_lock(self, profile_id: str) -> Optional[ProfileLock]:
        record = self.storage.get(PROFILE_LOCKS_TABLE, profile_id)
        if record is None:
            return None
        lock = ProfileLock.from_dict(record.data)
        return lock if lock.is_active(self._now()) else None

    def _mirror_entry(
        self, household_id: str, profile_id: str, lock: Optional[ProfileLock]
    ) -> None:
        """Copy lock fields onto the household's entry. Caller holds the profile mutex."""
        key = shortlist_key(household_id, profile_id)
        for _ in range(MAX_CAS_ATTEMPTS):
            record = self.storage.get(SHORTLIST_TABLE, key)
            if record is None:
                if lock is None:
                    return
                entry = ShortlistEntry(household_id, profile_id, created_at=lock.locked_at)
            else:
                entry = ShortlistEntry.from_dict(record.data)

            entry.is_locked = lock is not None
            entry.lock_expires_at = lock.expires_at if lock else None
            entry.locked_by_household_id = household_id if lock else None

            if record is None:
                if self.storage.insert_if_absent(SHORTLIST_TABLE, key, entry.to_dict()):
                    return
                continue
            try:
                self.storage.put_if_version_matches(
                    SHORTLIST_TABLE, key, entry.to_dict(), record.version
                )
                return
            except VersionConflictError as e:
                logger.warning(f"Retrying shortlist mirror update: {e}")

    @staticmethod
    def _require_ids(household_id: str, profile_id: str) -> None:
        if not household_id or not str(household_id).strip():
            raise ValidationError("Household ID is required")
        if not profile_id or not str(profile_id).strip():
            raise ValidationError("Profile ID is required")

    def _emit_unlocked(
        self,
        released: Optional[Tuple[ProfileLock, bool]],
        household_id: str,
        reason: str,
    ) -> None:
        if released is None:
            return
        lock, was_active = released
        logger.info(
            f"Profile unlocked | profile={lock.profile_id} | household={household_id} "
            f"| reason={reason}"
        )
        if was_active:
            self._emit(
                EventType.SHORTLIST_UNLOCKED,
                lock.profile_id,
                household_id,
                {"household_id": household_id, "reason": reason},
            )

    def _emit(self, event_type: EventType, subject_id: str, actor_id, payload) -> None:
        if self.events is None:
            return
        self.events.publish(
            DomainEvent(
                type=event_type,
                subject_id=subject_id,
                actor_id=actor_id,
                payload=payload,
                occurred_at=self._now(),
            )
        )
