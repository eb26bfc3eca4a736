"""Study view and flashcard endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.db.init_db import load_characters
from app.services.kana import (
    Script,
    draw_flashcard,
    filter_by_script,
    get_vowel,
    group_by_row,
    row_display_name,
)

router = APIRouter(prefix="/api/kana", tags=["kana"])


def format_kana(kana) -> dict:
    return {
        "id": kana.id,
        "character": kana.character,
        "romanization": kana.romanization,
        "script": kana.script.value,
    }


@router.get("")
async def list_kana(script: Script = Script.HIRAGANA, db: Session = Depends(get_db)):
    """
    Characters of one script grouped by phonetic row.

    Rows come in traditional order (a, k, s, t, n, h, m, y, r, w, special)
    and characters inside a row follow the vowel sequence a, i, u, e, o.
    """
    characters = filter_by_script(load_characters(db), script)
    grouped = group_by_row(characters)

    return {
        "script": script.value,
        "count": len(characters),
        "rows": [
            {
                "row": row,
                "name": row_display_name(row),
                "characters": [
                    {**format_kana(kana), "vowel": get_vowel(kana.romanization)}
                    for kana in members
                ]
            }
            for row, members in grouped.items()
        ]
    }


@router.get("/flashcard")
async def flashcard(script: Script = Script.HIRAGANA, db: Session = Depends(get_db)):
    """One random character of the script; the reading is revealed client-side."""
    kana = draw_flashcard(load_characters(db), script)
    if kana is None:
        raise HTTPException(status_code=404, detail=f"No {script.value} characters available")
    return format_kana(kana)
