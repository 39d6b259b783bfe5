from __future__ import annotations

import bleach


def clean_text(value: str | None) -> str:
    """Trim and strip markup from free text submitted by clients."""
    return bleach.clean((value or '').strip(), tags=set(), strip=True)
