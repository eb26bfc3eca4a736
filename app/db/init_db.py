"""Database initialization and kana dataset seeding."""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.db.database import engine, SessionLocal, Base
from app.db.models import KanaCharacterRecord
from app.services.kana import KanaCharacter, Script

logger = logging.getLogger(__name__)

DATASET_FILES: Dict[Script, str] = {
    Script.HIRAGANA: "hiragana.json",
    Script.KATAKANA: "katakana.json",
}


class KanaEntry(BaseModel):
    """One record of a dataset file."""
    character: str = Field(..., min_length=1)
    romanization: str = ""
    id: str = Field(..., min_length=1)
    row: Optional[str] = None


def read_dataset_file(path: Path, script: Script) -> List[dict]:
    """
    Read one script's JSON file into seedable rows.

    Args:
        path: JSON file holding a list of {character, romanization, id} records
        script: Script every record in the file belongs to

    Returns:
        List of dicts ready for KanaCharacterRecord(**row)

    Raises:
        ValueError: If the file is not a list, a record is malformed or an
            id repeats
    """
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)

    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON list")

    rows = []
    seen_ids = set()
    for position, item in enumerate(raw):
        try:
            entry = KanaEntry.model_validate(item)
        except ValidationError as e:
            raise ValueError(f"Invalid record #{position} in {path}: {e}") from e

        if entry.id in seen_ids:
            raise ValueError(f"Duplicate id {entry.id!r} in {path}")
        seen_ids.add(entry.id)

        if not entry.romanization.strip():
            # Kept so the quiz pool does not silently shrink
            logger.warning(f"Record {entry.id!r} in {path.name} has no romanization")

        rows.append({
            "id": entry.id,
            "character": entry.character,
            "romanization": entry.romanization.strip(),
            "script": script.value,
            "row_hint": entry.row,
            "position": position,
        })

    return rows


def read_dataset(dataset_dir: Optional[str] = None) -> List[dict]:
    """
    Read both scripts, hiragana first.

    Ids only have to be unique within a script. An id used by both scripts
    is stored as ``"<script>:<id>"`` for each of them so that every record
    keeps its own key and its own statistics.
    """
    base = Path(dataset_dir or settings.DATASET_DIR)
    rows_by_script = {
        script: read_dataset_file(base / filename, script)
        for script, filename in DATASET_FILES.items()
    }

    id_sets = [{row["id"] for row in rows} for rows in rows_by_script.values()]
    shared = set.intersection(*id_sets) if id_sets else set()
    if shared:
        logger.warning(f"{len(shared)} ids are used by both scripts; qualifying them with the script name")

    rows = []
    for script, script_rows in rows_by_script.items():
        for row in script_rows:
            if row["id"] in shared:
                row["id"] = f"{script.value}:{row['id']}"
            rows.append(row)
    return rows


def seed_kana(db: Session, dataset_dir: Optional[str] = None) -> int:
    """Seed the kana_characters table. Returns the number of rows added."""
    existing_count = db.query(KanaCharacterRecord).count()
    if existing_count > 0:
        logger.info(f"kana_characters already contains {existing_count} entries. Skipping seed.")
        return 0

    rows = read_dataset(dataset_dir)
    for row in rows:
        db.add(KanaCharacterRecord(**row))

    db.commit()
    logger.info(f"Seeded {len(rows)} kana characters.")
    return len(rows)


def load_characters(db: Session) -> List[KanaCharacter]:
    """All seeded characters as immutable values, in dataset order."""
    records = db.query(KanaCharacterRecord).order_by(
        KanaCharacterRecord.script,
        KanaCharacterRecord.position
    ).all()
    return [record.to_value() for record in records]


def init_db() -> None:
    """
    Initialize database: create tables and seed the kana dataset.

    Safe to call multiple times - all operations are idempotent.
    """
    logger.info("Initializing database...")

    Base.metadata.create_all(bind=engine)
    logger.info("Tables created/verified successfully.")

    db = SessionLocal()
    try:
        seed_kana(db)
        logger.info("Database initialization complete.")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during database initialization: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_db()
