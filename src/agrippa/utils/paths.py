"""Path utilities for the workspace and its metadata files."""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path


DOTFILE = ".sorge"
DOTFILE_WF = ".sorge.wf"
DOTFILE_MFA = ".sorge.mfa"
CACHE_FILE = ".cache"


def find_workspace_root(start: Path | None = None) -> Path | None:
    """Walk up from start to find a directory holding the workspace config file."""
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / DOTFILE).is_file():
            return parent
    return None


def slugify(name: str, default: str | None = None) -> str:
    """Turn a human-readable name into a directory/file slug.

    Accents are folded to ASCII, then anything that is not a word character
    or a dash collapses into a single dash. Names that leave nothing behind
    (punctuation only, non-Latin scripts) get `default` when one is given.
    """
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = folded.strip().lower()
    slug = re.sub(r"[^\w\-]", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    if not slug:
        if default is not None:
            return default
        raise ValueError(f"Cannot build a slug from {name!r}")
    return slug


def strip_slug(slug: str | None) -> str | None:
    """Drop the trailing '/' that shell completion adds to directory names."""
    if slug and slug.endswith("/"):
        return slug.rstrip("/")
    return slug
