"""Key/value runtime settings mutated by admins and setup tooling."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pagecomments.db.session import Base


class SettingRow(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
