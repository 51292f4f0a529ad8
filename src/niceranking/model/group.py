"""Row buckets produced by grouping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from niceranking.model.interfaces import DataRow

GROUP_JOIN = " ∩ "


@dataclass(frozen=True)
class Group:
    """A named bucket. Groups compare by value, so equal names share a bucket.

    Attributes:
        name: Display name and identity of the bucket.
        color: Optional color used by group renderers.
        parent: Outer group for nested grouping, else None.
    """

    name: str
    color: Optional[str] = None
    parent: Optional["Group"] = None

    @property
    def key(self) -> tuple[str, ...]:
        """Path of names from the outermost group to this one."""
        if self.parent is None:
            return (self.name,)
        return self.parent.key + (self.name,)


@dataclass
class GroupData:
    """A group together with the rows currently in it."""

    group: Group
    rows: list[DataRow] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.group.name

    @property
    def color(self) -> Optional[str]:
        return self.group.color

    @property
    def order(self) -> list[int]:
        return [r.i for r in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


DEFAULT_GROUP = Group(name="Default", color="gray")
MISSING_GROUP = Group(name="Missing values", color="gray")


def join_groups(groups: Sequence[Group]) -> Group:
    """Combine one group per criterion into a single nested group."""
    if not groups:
        return DEFAULT_GROUP
    if len(groups) == 1:
        return groups[0]
    result: Optional[Group] = None
    names: list[str] = []
    for g in groups:
        names.append(g.name)
        result = Group(name=GROUP_JOIN.join(names), color=groups[0].color, parent=result)
    assert result is not None
    return result
