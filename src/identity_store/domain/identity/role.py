"""Role records assignable to users."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass
class IdentityRole:
    """Role record; the id is the document key when stored on its own."""

    name: str
    id: str = field(default_factory=lambda: str(uuid4()))
