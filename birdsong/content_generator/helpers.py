"""
Shared helpers for Bird Song Explorer content generators.
"""

from __future__ import annotations

import os
import re
from datetime import datetime
from pathlib import Path

LOG_FILE = os.environ.get("BIRDSONG_LOG_FILE")

_YEAR_RE = re.compile(r"^(19|20)\d\d$")
_DATE_RE = re.compile(r"^[\d\-/.,]+$")
_SSML_BREAK_RE = re.compile(r"<break[^>]*/>|\[(long )?pause\]")


def log(msg: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)

    if LOG_FILE:
        path = Path(LOG_FILE).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(f"[{datetime.now():%Y-%m-%d %H:%M:%S}] {msg}\n")


def preprocess_for_tts(text: str) -> str:
    text = text.replace('"', "")
    text = text.replace("[long pause]", '<break time="1.0s" />')
    text = text.replace("[pause]", '<break time="0.5s" />')
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def strip_breaks(text: str) -> str:
    """Remove SSML break tags, for logs and plain-text previews."""
    return re.sub(r"\s+", " ", _SSML_BREAK_RE.sub(" ", text)).strip()


def clean_description_text(text: str) -> str:
    """Drop standalone years (1900-2099) and numeric dates like 2023-01-15."""
    cleaned = []
    for word in text.split():
        bare = word.strip(".,!?")
        if len(bare) == 4 and _YEAR_RE.match(bare):
            continue
        if ("-" in word or "/" in word) and _DATE_RE.match(word):
            continue
        cleaned.append(word)
    return " ".join(cleaned)


def first_sentences(text: str, count: int = 2) -> str:
    parts = [p.strip() for p in re.split(r"(?<=[.!?])\s+", text.strip()) if p.strip()]
    return " ".join(parts[:count])


def remove_parentheticals(text: str) -> str:
    text = re.sub(r"\s*\([^)]*\)", "", text)
    return re.sub(r"\s+", " ", text).strip()
