"""BibTeX export for a single citation row."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def sanitize_doi(doi: str | None) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    if not doi:
        return "unknown"
    return re.sub(r"[^a-zA-Z0-9]", "_", doi)


def citation_filename(doi: str | None) -> str:
    return f"citation_{sanitize_doi(doi)}.bib"


def build_bibtex(doi: str | None, title: str, year: Any) -> str:
    """Render an ``@article`` entry keyed by the sanitised DOI and year."""
    entry = f"@article{{{sanitize_doi(doi)}_{year},\n  title={{{title}}},\n  year={{{year}}}"
    if doi:
        entry += f",\n  doi={{{doi}}},\n  url={{https://doi.org/{doi}}}"
    return entry + "\n}"


def write_bibtex(doi: str | None, title: str, year: Any, out_dir: Path) -> Path:
    """Write the entry to *out_dir*/citation_<doi>.bib and return the path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    dest = out_dir / citation_filename(doi)
    dest.write_text(build_bibtex(doi, title, year))
    logger.info("Wrote BibTeX citation to %s", dest)
    return dest
