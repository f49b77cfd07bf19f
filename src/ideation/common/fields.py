"""Constrained string types shared by the request schemas.

Text fields are trimmed and stripped of ``<script>`` blocks before the length
limits are checked, so ``"   ab   "`` fails the three-character minimum.
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, StringConstraints

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)

URL_PATTERN = r"^https?://.+"


def sanitize(value: Any) -> Any:  # noqa: ANN401
    """Trim and drop script tags; non-strings pass through for pydantic to reject."""
    if not isinstance(value, str):
        return value
    return _SCRIPT_RE.sub("", value.strip()).strip()


def _strip(value: Any) -> Any:  # noqa: ANN401
    return value.strip() if isinstance(value, str) else value


Title = Annotated[str, BeforeValidator(sanitize), StringConstraints(min_length=3, max_length=200)]
Description = Annotated[str, BeforeValidator(sanitize), StringConstraints(min_length=10, max_length=2000)]
CommentContent = Annotated[str, BeforeValidator(sanitize), StringConstraints(min_length=1, max_length=2000)]
RejectionReason = Annotated[str, BeforeValidator(sanitize), StringConstraints(min_length=3, max_length=500)]
HttpUrl = Annotated[str, BeforeValidator(_strip), StringConstraints(max_length=2048, pattern=URL_PATTERN)]
