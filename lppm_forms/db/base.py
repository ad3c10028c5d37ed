from typing import Any

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    def as_dict(self) -> dict[str, Any]:
        """Column values keyed by attribute name (used for JSON responses)."""
        return {attr.key: getattr(self, attr.key) for attr in self.__mapper__.column_attrs}
