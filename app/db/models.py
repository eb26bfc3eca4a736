"""SQLAlchemy models for the Kana Study application."""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from app.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Learner(Base):
    """Anonymous learner tracked by UUID cookie."""
    __tablename__ = "learners"

    id = Column(Text, primary_key=True)  # e.g. "kana_<uuid4>" from the kana_uid cookie
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    last_active_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    stats_slots = relationship("StatsSlot", back_populates="learner", cascade="all, delete-orphan")


class KanaCharacterRecord(Base):
    """One kana glyph with its romanization, seeded from the dataset files."""
    __tablename__ = "kana_characters"

    id = Column(Text, primary_key=True)  # dataset id; ids shared by both scripts carry a "<script>:" prefix
    character = Column(Text, nullable=False)  # e.g. "か"
    romanization = Column(Text, nullable=False, default="")  # e.g. "ka"
    script = Column(
        String(16),
        CheckConstraint("script IN ('hiragana', 'katakana')"),
        nullable=False
    )
    row_hint = Column(String(16), nullable=True)  # fallback row for e.g. "chi", "fu"
    position = Column(Integer, nullable=False, default=0)  # order within the source file

    __table_args__ = (
        Index('idx_kana_script_position', 'script', 'position'),
    )

    def to_value(self):
        """Return the immutable domain value for this row."""
        from app.services.kana import KanaCharacter, Script

        return KanaCharacter(
            character=self.character,
            romanization=self.romanization or "",
            id=self.id,
            script=Script(self.script),
            row_hint=self.row_hint,
        )


class StatsSlot(Base):
    """Durable key-value slot holding one JSON document per learner and key."""
    __tablename__ = "stats_slots"

    owner_id = Column(Text, ForeignKey("learners.id"), primary_key=True)
    key = Column(String(64), primary_key=True)  # e.g. "kana-quiz-stats"
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    learner = relationship("Learner", back_populates="stats_slots")
