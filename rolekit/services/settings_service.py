"""Settings service — app-wide typed key/value settings behind the cache."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from rolekit.core.config import settings
from rolekit.db.session import transaction
from rolekit.models import SystemSetting
from rolekit.services.cache_service import CacheService, cache_service

logger = logging.getLogger("rolekit.settings")

DEFAULT_GROUP = "general"


class SettingsService:
    """Reads go through ``CacheService.remember``; every write forgets the key."""

    def __init__(self, cache: Optional[CacheService] = None, ttl: Optional[int] = None):
        self.cache = cache or cache_service
        self.ttl = ttl or settings.CACHE_TTL_SECONDS

    @staticmethod
    def cache_key(group: str, key: str) -> str:
        return f"setting:app:{group}:{key}"

    def get(self, db: Session, key: str, default: Any = None, group: str = DEFAULT_GROUP) -> Any:
        """Get a setting value, or ``default`` when it does not exist."""
        def load():
            row = self._find(db, key, group)
            return {"found": True, "value": row.get_casted_value()} if row else {"found": False}

        entry = self.cache.remember(self.cache_key(group, key), load, self.ttl)
        return entry["value"] if entry.get("found") else default

    def set(
        self,
        db: Session,
        key: str,
        value: Any,
        group: str = DEFAULT_GROUP,
        is_public: Optional[bool] = None,
        description: Optional[str] = None,
    ) -> SystemSetting:
        """Create or update a setting, then forget its cache entry."""
        row = self._find(db, key, group)
        try:
            with transaction(db):
                if row is None:
                    row = SystemSetting(group=group, key=key, is_public=bool(is_public))
                    row.set_casted_value(value)
                    db.add(row)
                else:
                    row.set_casted_value(value)
                    if is_public is not None:
                        row.is_public = is_public
                if description is not None:
                    row.description = description
        finally:
            self.cache.forget(self.cache_key(group, key))
        db.refresh(row)
        return row

    def has(self, db: Session, key: str, group: str = DEFAULT_GROUP) -> bool:
        return self._find(db, key, group) is not None

    def remove(self, db: Session, key: str, group: str = DEFAULT_GROUP) -> bool:
        row = self._find(db, key, group)
        if row is None:
            return False
        with transaction(db):
            db.delete(row)
        self.cache.forget(self.cache_key(group, key))
        return True

    def get_group(self, db: Session, group: str) -> Dict[str, Any]:
        rows = db.query(SystemSetting).filter(SystemSetting.group == group).order_by(SystemSetting.key).all()
        return {row.key: row.get_casted_value() for row in rows}

    def all(self, db: Session, public_only: bool = False) -> Dict[str, Any]:
        """All settings keyed ``group.key``."""
        query = db.query(SystemSetting)
        if public_only:
            query = query.filter(SystemSetting.is_public.is_(True))
        rows = query.order_by(SystemSetting.group, SystemSetting.key).all()
        return {f"{row.group}.{row.key}": row.get_casted_value() for row in rows}

    def set_many(self, db: Session, values: Dict[str, Any], group: str = DEFAULT_GROUP) -> None:
        for key, value in values.items():
            self.set(db, key, value, group)

    def increment(self, db: Session, key: str, amount: int = 1, group: str = DEFAULT_GROUP):
        value = self.get(db, key, 0, group) + amount
        self.set(db, key, value, group)
        return value

    def decrement(self, db: Session, key: str, amount: int = 1, group: str = DEFAULT_GROUP):
        return self.increment(db, key, -amount, group)

    def toggle(self, db: Session, key: str, group: str = DEFAULT_GROUP) -> bool:
        value = not self.get(db, key, False, group)
        self.set(db, key, value, group)
        return value

    def clear(self, db: Session, group: Optional[str] = None) -> int:
        """Delete all settings, or only those of one group."""
        query = db.query(SystemSetting)
        if group:
            query = query.filter(SystemSetting.group == group)
        rows = query.all()
        keys = [self.cache_key(row.group, row.key) for row in rows]
        with transaction(db):
            for row in rows:
                db.delete(row)
        self.cache.forget_many(keys)
        logger.info("Cleared %d setting(s)", len(keys))
        return len(keys)

    @staticmethod
    def _find(db: Session, key: str, group: str) -> Optional[SystemSetting]:
        return (
            db.query(SystemSetting)
            .filter(SystemSetting.group == group, SystemSetting.key == key)
            .first()
        )


settings_service = SettingsService()
