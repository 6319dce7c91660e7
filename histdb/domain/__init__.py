"""Pure logic: no database access here."""
from __future__ import annotations
