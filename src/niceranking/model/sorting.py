"""Grouping and sorting engine.

Pure functions over a :class:`Ranking` and a sequence of :class:`DataRow`.
The data provider calls :func:`order_rows` whenever a ranking fires
``dirtyOrder`` and hands the result back via ``Ranking.set_groups``.

Order of operations::

    filter -> partition into groups -> sort rows in each group -> sort groups
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import TYPE_CHECKING, Iterable, Sequence

from niceranking.model.column import compare_text
from niceranking.model.group import DEFAULT_GROUP, GROUP_JOIN, MISSING_GROUP, Group, GroupData, join_groups
from niceranking.model.interfaces import DataRow
from niceranking.model.missing import missing_last_compare

if TYPE_CHECKING:
    from niceranking.model.ranking import Ranking


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_rows(ranking: "Ranking", a: DataRow, b: DataRow, missing_last: bool = True) -> int:
    """Three-way comparison of two rows by the ranking's sort criteria.

    With ``missing_last`` a row whose criterion value is missing sorts after
    every row that has one, in both directions. Rows that tie on every
    criterion keep their original order.
    """
    for criteria in ranking.get_sort_criteria():
        col = criteria.col
        if missing_last:
            a_missing = col.is_missing(a)
            b_missing = col.is_missing(b)
            if a_missing or b_missing:
                r = missing_last_compare(a_missing, b_missing)
                if r != 0:
                    return r
                continue
        r = _sign(col.compare(a, b))
        if r != 0:
            return r if criteria.asc else -r
    return _sign(a.i - b.i)


def group_row(ranking: "Ranking", row: DataRow) -> Group:
    """The (possibly nested) group of ``row`` under the group criteria."""
    criteria = ranking.get_group_criteria()
    if not criteria:
        return DEFAULT_GROUP
    return join_groups([col.group(row) for col in criteria])


def _path(group: Group) -> list[Group]:
    """Nested group levels, outermost first."""
    path = [group]
    while path[-1].parent is not None:
        path.append(path[-1].parent)
    return path[::-1]


def _is_missing_level(path: Sequence[Group], level: int) -> bool:
    if level == 0:
        return path[0] == MISSING_GROUP
    # joined names carry the outer levels as a prefix
    part = path[level].name[len(path[level - 1].name) + len(GROUP_JOIN):]
    return part == MISSING_GROUP.name


def _outermost(data: GroupData) -> GroupData:
    if data.group.parent is None:
        return data
    return GroupData(group=_path(data.group)[0], rows=data.rows)


def _compare_missing_levels(a: Group, b: Group) -> int:
    """Missing-last at the first level where the two group paths differ."""
    path_a = _path(a)
    path_b = _path(b)
    for level, (ga, gb) in enumerate(zip(path_a, path_b)):
        if ga.name != gb.name:
            return missing_last_compare(_is_missing_level(path_a, level), _is_missing_level(path_b, level))
    return 0


def compare_groups(ranking: "Ranking", a: GroupData, b: GroupData, missing_last: bool = True) -> int:
    """Three-way comparison of two groups by the group-sort criteria."""
    if missing_last:
        r = missing_last_compare(_outermost(a).group == MISSING_GROUP, _outermost(b).group == MISSING_GROUP)
        if r != 0:
            return r
    for criteria in ranking.get_group_sort_criteria():
        r = _sign(criteria.col.group_compare(a, b))
        if r != 0:
            return r if criteria.asc else -r
    # groups of the outermost criterion keep that criterion's own order
    for col in ranking.get_group_criteria()[:1]:
        r = _sign(col.group_compare(_outermost(a), _outermost(b)))
        if r != 0:
            return r
    if missing_last:
        r = _compare_missing_levels(a.group, b.group)
        if r != 0:
            return r
    return compare_text(a.name, b.name)


def filter_rows(ranking: "Ranking", rows: Iterable[DataRow]) -> list[DataRow]:
    if not ranking.is_filtered():
        return list(rows)
    return [row for row in rows if ranking.filter(row)]


def sort_rows(ranking: "Ranking", rows: Sequence[DataRow], missing_last: bool = True) -> list[DataRow]:
    if not ranking.get_sort_criteria():
        return sorted(rows, key=lambda r: r.i)
    return sorted(rows, key=cmp_to_key(lambda a, b: compare_rows(ranking, a, b, missing_last)))


def partition_rows(ranking: "Ranking", rows: Iterable[DataRow]) -> list[GroupData]:
    """Split rows into groups, keeping groups in first-seen order."""
    groups: dict[Group, GroupData] = {}
    for row in rows:
        group = group_row(ranking, row)
        data = groups.get(group)
        if data is None:
            data = groups[group] = GroupData(group=group)
        data.rows.append(row)
    return list(groups.values())


def sort_groups(ranking: "Ranking", groups: Sequence[GroupData], missing_last: bool = True) -> list[GroupData]:
    if len(groups) <= 1:
        return list(groups)
    return sorted(groups, key=cmp_to_key(lambda a, b: compare_groups(ranking, a, b, missing_last)))


def order_rows(ranking: "Ranking", rows: Iterable[DataRow], missing_last: bool = True) -> list[GroupData]:
    """Filter, group and sort ``rows``; the result is ready for ``set_groups``."""
    visible = filter_rows(ranking, rows)
    groups = partition_rows(ranking, visible)
    for data in groups:
        data.rows = sort_rows(ranking, data.rows, missing_last)
    return sort_groups(ranking, groups, missing_last)
