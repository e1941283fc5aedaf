"""
Backend collaborator: record CRUD over logical tables.

Every operation returns a (data, error) pair. data is a list of row dicts
when the call succeeds and error is None; on failure data is None and error
is the backend's raw message.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Result = Tuple[Optional[List[Row]], Optional[str]]

TABLES = ("cars", "maintenance_types", "maintenance_records", "fuel_records")

# Foreign keys used for embedded selects: table -> {embedded table: column}
RELATIONS: Dict[str, Dict[str, str]] = {
    "maintenance_records": {"maintenance_types": "maintenance_type_id", "cars": "car_id"},
    "fuel_records": {"cars": "car_id"},
}

# ON DELETE CASCADE: parent table -> [(child table, foreign key column)]
CASCADES: Dict[str, List[Tuple[str, str]]] = {
    "cars": [("maintenance_records", "car_id"), ("fuel_records", "car_id")],
}


class Filter(NamedTuple):
    """Row filter. op is 'eq' or 'in'."""

    op: str
    column: str
    value: Any


class Order(NamedTuple):
    column: str
    ascending: bool = True


def eq(column: str, value: Any) -> Filter:
    return Filter("eq", column, value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter("in", column, list(values))


class Backend:
    """Interface of a hosted relational store."""

    def for_session(self, session) -> "Backend":
        """A backend whose requests act as the given signed-in session."""
        return self

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        embed: Sequence[str] = (),
    ) -> Result:
        raise NotImplementedError

    def insert(self, table: str, rows: List[Row]) -> Result:
        raise NotImplementedError

    def update(self, table: str, fields: Row, filters: Sequence[Filter]) -> Result:
        raise NotImplementedError

    def delete(self, table: str, filters: Sequence[Filter]) -> Result:
        raise NotImplementedError


def _matches(row: Row, filters: Sequence[Filter]) -> bool:
    for f in filters:
        if f.op == "eq":
            if row.get(f.column) != f.value:
                return False
        elif f.op == "in":
            if row.get(f.column) not in f.value:
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {f.op}")
    return True


def _sort_rows(rows: List[Row], order: Optional[Order]) -> List[Row]:
    """Sort like Postgres: nulls last ascending, nulls first descending."""
    if order is None:
        return rows
    return sorted(
        rows,
        key=lambda r: (r.get(order.column) is None, r.get(order.column)),
        reverse=not order.ascending,
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


DEFAULT_TYPES_FILE = Path(__file__).parent / "maintenance_types.yaml"


def load_default_maintenance_types() -> List[Row]:
    """Reference maintenance types shipped with the package."""
    with open(DEFAULT_TYPES_FILE) as fp:
        return yaml.safe_load(fp)


def init_data_file(
    filename: Union[str, Path], maintenance_types: Optional[List[Row]] = None
) -> None:
    """Create an empty data document seeded with maintenance types."""
    if maintenance_types is None:
        maintenance_types = load_default_maintenance_types()
    data: Dict[str, Any] = {"users": []}
    for table in TABLES:
        data[table] = []
    data["maintenance_types"] = list(maintenance_types)
    _write(filename, data)


def _write(filename: Union[str, Path], data: Dict[str, Any]) -> None:
    with open(filename, "w") as fp:
        yaml.dump(
            data,
            fp,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=120,
        )


class YamlBackend(Backend):
    """
    Backend stored in a single YAML document, one list of rows per table.

    Each call loads the document, applies the operation and (for
    mutations) writes the whole document back. Ids are UUID strings.
    Deleting a car cascades to its maintenance and fuel records.
    """

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)
        if not self.filename.exists():
            logger.info(f"Creating data file {self.filename}")
            init_data_file(self.filename)

    def _load(self) -> Dict[str, Any]:
        with open(self.filename, "r") as fp:
            return yaml.load(fp, Loader=yaml.SafeLoader) or {}

    def _rows(self, data: Dict[str, Any], table: str) -> List[Row]:
        if table not in data:
            raise KeyError(f'relation "{table}" does not exist')
        if data[table] is None:
            data[table] = []
        return data[table]

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        embed: Sequence[str] = (),
    ) -> Result:
        logger.debug(f"select {table} filters={list(filters)} order={order} embed={list(embed)}")
        try:
            data = self._load()
            rows = [dict(r) for r in self._rows(data, table) if _matches(r, filters)]
            for related in embed:
                column = RELATIONS.get(table, {}).get(related)
                if column is None:
                    raise KeyError(
                        f"Could not find a relationship between '{table}' and '{related}'"
                    )
                by_id = {r["id"]: r for r in self._rows(data, related)}
                for row in rows:
                    parent = by_id.get(row.get(column))
                    row[related] = dict(parent) if parent is not None else None
            return _sort_rows(rows, order), None
        except (OSError, yaml.YAMLError, KeyError, ValueError, TypeError) as e:
            logger.error(f"select {table} failed: {e}")
            return None, _message(e)

    def insert(self, table: str, rows: List[Row]) -> Result:
        logger.debug(f"insert {table} ({len(rows)} rows)")
        try:
            data = self._load()
            existing = self._rows(data, table)
            inserted = []
            for row in rows:
                new_row = {"id": str(uuid.uuid4()), **row, "created_at": _now()}
                existing.append(new_row)
                inserted.append(dict(new_row))
            _write(self.filename, data)
            return inserted, None
        except (OSError, yaml.YAMLError, KeyError) as e:
            logger.error(f"insert {table} failed: {e}")
            return None, _message(e)

    def update(self, table: str, fields: Row, filters: Sequence[Filter]) -> Result:
        logger.debug(f"update {table} filters={list(filters)}")
        try:
            data = self._load()
            updated = []
            for row in self._rows(data, table):
                if _matches(row, filters):
                    row.update(fields)
                    updated.append(dict(row))
            _write(self.filename, data)
            return updated, None
        except (OSError, yaml.YAMLError, KeyError, ValueError) as e:
            logger.error(f"update {table} failed: {e}")
            return None, _message(e)

    def delete(self, table: str, filters: Sequence[Filter]) -> Result:
        logger.debug(f"delete {table} filters={list(filters)}")
        try:
            data = self._load()
            rows = self._rows(data, table)
            deleted = [r for r in rows if _matches(r, filters)]
            data[table] = [r for r in rows if not _matches(r, filters)]
            deleted_ids = {r["id"] for r in deleted}
            for child, column in CASCADES.get(table, []):
                children = self._rows(data, child)
                data[child] = [r for r in children if r.get(column) not in deleted_ids]
            _write(self.filename, data)
            return deleted, None
        except (OSError, yaml.YAMLError, KeyError, ValueError) as e:
            logger.error(f"delete {table} failed: {e}")
            return None, _message(e)


def _message(e: Exception) -> str:
    # KeyError wraps its message in quotes
    if isinstance(e, KeyError) and e.args:
        return str(e.args[0])
    return str(e)
