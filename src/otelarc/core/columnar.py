"""Row-to-column transposition with dynamic column discovery.

Column sets are not known until every row has been seen, so building a batch
is two passes: collect the key vocabulary, then materialize one column per
key with None wherever a row lacks the key.
"""

from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Any, NamedTuple

from otelarc.core.models import AttributeSet, ColumnarBatch, Row


class FieldRow(NamedTuple):
    """Fixed fields plus the dynamic attribute set of one record."""

    fields: Row
    attributes: AttributeSet


def discover_keys(
    rows: Iterable[Mapping[str, Any]],
    excluded: Collection[str] = (),
) -> list[str]:
    """Return the union of row keys in order of first appearance.

    Args:
        rows: Attribute or field mappings, one per row.
        excluded: Keys that must not become dynamic columns.
    """
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            if key not in seen and key not in excluded:
                seen[key] = None
    return list(seen)


def _materialize(
    keys: Iterable[str], rows: Sequence[Mapping[str, Any]]
) -> dict[str, list[Any]]:
    return {key: [row.get(key) for row in rows] for key in keys}


def build_columnar_batch(
    measurement: str,
    fixed_columns: Mapping[str, Sequence[Any]],
    attribute_rows: Sequence[Mapping[str, Any]],
    excluded_keys: Collection[str] = (),
) -> ColumnarBatch:
    """Assemble a ColumnarBatch from fixed columns and per-row attributes.

    Fixed columns come first, in the order given. Dynamic columns follow in
    order of first appearance. An attribute key equal to a fixed column name
    is dropped so the fixed column is never overwritten.

    Args:
        measurement: Destination measurement name.
        fixed_columns: Signal-specific positional arrays (time, ids, ...).
        attribute_rows: One attribute mapping per row, in arrival order.
        excluded_keys: Attribute keys already promoted to fixed columns.

    Returns:
        ColumnarBatch whose columns all have ``len(attribute_rows)`` entries.

    Raises:
        ValueError: If a fixed column's length differs from the row count.
    """
    row_count = len(attribute_rows)
    columns: dict[str, list[Any]] = {}
    for name, values in fixed_columns.items():
        if len(values) != row_count:
            raise ValueError(
                f"Column '{name}' has {len(values)} values, expected {row_count}"
            )
        columns[name] = list(values)

    excluded = set(excluded_keys) | set(columns)
    dynamic_keys = discover_keys(attribute_rows, excluded)
    columns.update(_materialize(dynamic_keys, attribute_rows))
    return ColumnarBatch(measurement=measurement, columns=columns)


def field_rows_to_batch(
    measurement: str,
    column_names: Sequence[str],
    rows: Sequence[FieldRow],
    excluded_keys: Collection[str] = (),
) -> ColumnarBatch:
    """Transpose the field rows of one signal into a ColumnarBatch."""
    fixed = {name: [row.fields[name] for row in rows] for name in column_names}
    return build_columnar_batch(
        measurement,
        fixed,
        [row.attributes for row in rows],
        excluded_keys=excluded_keys,
    )


def rows_to_columnar(measurement: str, rows: Sequence[Row]) -> ColumnarBatch:
    """Transpose plain rows into a ColumnarBatch.

    Example:
        ``[{"a": 1}, {"b": 2}]`` becomes ``{"a": [1, None], "b": [None, 2]}``.
    """
    return ColumnarBatch(
        measurement=measurement,
        columns=_materialize(discover_keys(rows), rows),
    )
