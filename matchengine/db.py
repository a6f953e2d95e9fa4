"""Queries against the ``active_orders`` table over a DB-API connection."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

_COLUMNS = "id, side, order_qty, leaves_qty, price, instrument, type, exec_qty, order_status"

CREATE_ACTIVE_ORDER = (
    "INSERT INTO active_orders "
    "(id, side, order_qty, leaves_qty, price, instrument, exec_qty, type, order_status)\n"
    f"VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9) RETURNING {_COLUMNS}"
)

DELETE_ACTIVE_ORDER = (
    "DELETE\nFROM active_orders\n" f"WHERE id = $1 RETURNING {_COLUMNS}"
)

GET_ACTIVE_ORDER = f"SELECT {_COLUMNS}\nFROM active_orders\nWHERE id = $1"

LIST_ACTIVE_ORDERS = f"SELECT {_COLUMNS}\nFROM active_orders\nORDER BY id"

UPDATE_ACTIVE_ORDER = (
    "UPDATE active_orders\n"
    "SET type         = COALESCE($2, type),\n"
    "    leaves_qty   = COALESCE($3, leaves_qty),\n"
    "    exec_qty     = COALESCE($4, exec_qty),\n"
    "    order_status = COALESCE($5, order_status)\n"
    f"WHERE id = $1 RETURNING {_COLUMNS}"
)

PARAMSTYLES = ("qmark", "numeric", "named", "format", "pyformat")

_PLACEHOLDER = re.compile(r"\$(\d+)")

Numeric = Optional[Decimal]


class NoRowsError(LookupError):
    """A query that must return one row returned none."""


@dataclass
class ActiveOrder:
    """A row of the ``active_orders`` table; ``None`` numerics are SQL NULL."""

    id: str = ""
    side: str = ""
    order_qty: Numeric = None
    leaves_qty: Numeric = None
    price: Numeric = None
    instrument: str = ""
    type: str = ""
    exec_qty: Numeric = None
    order_status: str = ""


@dataclass
class CreateActiveOrderParams:
    id: str = ""
    side: str = ""
    order_qty: Numeric = None
    leaves_qty: Numeric = None
    price: Numeric = None
    instrument: str = ""
    exec_qty: Numeric = None
    type: str = ""
    order_status: str = ""


@dataclass
class UpdateActiveOrderParams:
    """Update arguments; ``None`` leaves the stored column unchanged."""

    id: str = ""
    type: Optional[str] = None
    leaves_qty: Numeric = None
    exec_qty: Numeric = None
    order_status: Optional[str] = None


def _to_decimal(value: Any) -> Numeric:
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def _row_to_active_order(row: Sequence[Any]) -> ActiveOrder:
    id_, side, order_qty, leaves_qty, price, instrument, type_, exec_qty, status = (
        row[i] for i in range(9)
    )
    return ActiveOrder(
        id=_to_str(id_),
        side=_to_str(side),
        order_qty=_to_decimal(order_qty),
        leaves_qty=_to_decimal(leaves_qty),
        price=_to_decimal(price),
        instrument=_to_str(instrument),
        type=_to_str(type_),
        exec_qty=_to_decimal(exec_qty),
        order_status=_to_str(status),
    )


def _render(
    sql: str, args: Sequence[Any], paramstyle: str
) -> Tuple[str, Union[Tuple[Any, ...], Dict[str, Any]]]:
    """Rewrite ``$n`` placeholders into the driver's parameter style."""
    if paramstyle == "numeric":
        return _PLACEHOLDER.sub(r":\1", sql), tuple(args)
    if paramstyle in ("named", "pyformat"):
        template = r":p\1" if paramstyle == "named" else r"%(p\1)s"
        params = {f"p{n}": value for n, value in enumerate(args, start=1)}
        return _PLACEHOLDER.sub(template, sql), params
    marker = "?" if paramstyle == "qmark" else "%s"
    order = [int(n) for n in _PLACEHOLDER.findall(sql)]
    return _PLACEHOLDER.sub(marker, sql), tuple(args[n - 1] for n in order)


class Queries:
    """Typed queries over a DB-API connection (or transaction) ``db``."""

    def __init__(self, db: Any, paramstyle: str = "format") -> None:
        if paramstyle not in PARAMSTYLES:
            raise ValueError(f"unsupported paramstyle: {paramstyle!r}")
        self._db = db
        self.paramstyle = paramstyle

    def with_tx(self, tx: Any) -> "Queries":
        return Queries(tx, self.paramstyle)

    def _execute(self, sql: str, args: Sequence[Any], many: bool) -> List[Any]:
        query, params = _render(sql, args, self.paramstyle)
        cursor = self._db.cursor()
        try:
            cursor.execute(query, params)
            if many:
                return list(cursor.fetchall())
            row = cursor.fetchone()
            return [] if row is None else [row]
        finally:
            cursor.close()

    def _one(self, sql: str, *args: Any) -> ActiveOrder:
        rows = self._execute(sql, args, many=False)
        if not rows:
            raise NoRowsError("no rows in result set")
        return _row_to_active_order(rows[0])

    def create_active_order(self, params: CreateActiveOrderParams) -> ActiveOrder:
        return self._one(
            CREATE_ACTIVE_ORDER,
            params.id,
            params.side,
            params.order_qty,
            params.leaves_qty,
            params.price,
            params.instrument,
            params.exec_qty,
            params.type,
            params.order_status,
        )

    def delete_active_order(self, order_id: str) -> ActiveOrder:
        return self._one(DELETE_ACTIVE_ORDER, order_id)

    def get_active_order(self, order_id: str) -> ActiveOrder:
        return self._one(GET_ACTIVE_ORDER, order_id)

    def list_active_orders(self) -> List[ActiveOrder]:
        return [_row_to_active_order(row) for row in self._execute(LIST_ACTIVE_ORDERS, (), many=True)]

    def update_active_order(self, params: UpdateActiveOrderParams) -> ActiveOrder:
        return self._one(
            UPDATE_ACTIVE_ORDER,
            params.id,
            params.type,
            params.leaves_qty,
            params.exec_qty,
            params.order_status,
        )