"""Database utilities and models."""

from opsdesk.db.base import Base
from opsdesk.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
