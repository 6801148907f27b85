"""Key-value system settings model."""

import json

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, UniqueConstraint, func
from rolekit.db.base import Base


class SystemSetting(Base):
    """Typed key/value setting, unique per (group, key)."""
    __tablename__ = "system_settings"
    __table_args__ = (UniqueConstraint("group", "key", name="uq_system_settings_group_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    group = Column(String(100), nullable=False, default="general", index=True)
    key = Column(String(100), nullable=False, index=True)
    value = Column(Text, nullable=True)  # JSON-encoded
    type = Column(String(20), nullable=False, default="string")
    is_public = Column(Boolean, default=False, nullable=False)
    description = Column(String(500), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def get_casted_value(self):
        """Decode the stored value back to its original Python type."""
        if self.value is None:
            return None
        raw = json.loads(self.value)
        if self.type == "boolean":
            return bool(raw)
        if self.type == "integer":
            return int(raw)
        if self.type == "float":
            return float(raw)
        return raw

    def set_casted_value(self, value) -> None:
        encoded = json.dumps(value)
        self.type = self.determine_type(value)
        self.value = encoded

    @staticmethod
    def determine_type(value) -> str:
        # bool first: bool is a subclass of int
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, int):
            return "integer"
        if isinstance(value, float):
            return "float"
        if isinstance(value, (list, tuple)):
            return "array"
        if isinstance(value, dict):
            return "json"
        return "string"
