"""
Casbin rule model.
"""

from typing import Optional, Sequence

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from casbin_store.models.database import Base


# Number of positional value columns (v0..v5)
MAX_FIELDS = 6

FIELD_NAMES = tuple(f"v{i}" for i in range(MAX_FIELDS))


class CasbinRule(Base):
    """One policy rule: a rule type plus up to six positional values."""

    __tablename__ = "casbin_rule"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ptype: Mapped[str] = mapped_column(String(255), nullable=False)
    v0: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    v1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    v2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    v3: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    v4: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    v5: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @classmethod
    def from_rule(cls, ptype: str, rule: Sequence[str]) -> "CasbinRule":
        """
        Build a row from a rule tuple.

        Values are assigned positionally to v0, v1, ...; unused trailing
        columns stay NULL.

        Raises:
            ValueError: If the rule has more values than there are columns.
        """
        if len(rule) > MAX_FIELDS:
            raise ValueError(
                f"Rule has {len(rule)} values, at most {MAX_FIELDS} are supported: {list(rule)}"
            )

        line = cls(ptype=ptype)
        for name, value in zip(FIELD_NAMES, rule):
            setattr(line, name, value)
        return line

    @property
    def values(self) -> list[str]:
        """The populated values in positional order."""
        return [
            value
            for value in (self.v0, self.v1, self.v2, self.v3, self.v4, self.v5)
            if value is not None
        ]

    def to_line(self) -> str:
        """Render as a policy line, e.g. ``p, alice, data1, read``."""
        return ", ".join([self.ptype, *self.values])

    def __repr__(self) -> str:
        return f"<CasbinRule(id={self.id}, ptype={self.ptype}, values={self.values})>"
