from __future__ import annotations

import math
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from dcm.config import DEFAULT_PAGE_SIZE
from dcm.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from dcm.domain.models import (
    CollectionEntry,
    Farmer,
    InventoryEntry,
    MilkType,
    ProductSale,
    Rates,
    Session,
    Transaction,
)
from dcm.domain.timestamps import now_ns

_COLLECTION_COLUMNS = "id, farmer_id, weight, fat, snf, rate, date, session, milk_type"
_TRANSACTION_COLUMNS = "id, farmer_id, description, amount, timestamp"
_SALE_COLUMNS = "id, farmer_id, product_name, quantity, price_per_unit, total_amount, timestamp"


def _sale_description(product_name: str, quantity: float) -> str:
    return f"Product sale: {product_name} x {quantity:g}"


class SqliteRepository:
    def __init__(
        self,
        db_path: Path | str,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], int] = now_ns,
    ):
        self.db_path = str(db_path)
        self.page_size = int(page_size)
        self.clock = clock

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_indexes),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS farmers (
            customer_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            milk_type TEXT NOT NULL CHECK(milk_type IN ('vlc','thekadari'))
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS collections (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            farmer_id INTEGER NOT NULL,
            weight REAL NOT NULL CHECK(weight > 0),
            fat REAL NOT NULL CHECK(fat > 0),
            snf REAL,
            rate REAL NOT NULL CHECK(rate >= 0),
            date INTEGER NOT NULL,
            session TEXT NOT NULL CHECK(session IN ('morning','evening')),
            milk_type TEXT NOT NULL CHECK(milk_type IN ('vlc','thekadari')),
            FOREIGN KEY(farmer_id) REFERENCES farmers(customer_id) ON UPDATE CASCADE
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            farmer_id INTEGER NOT NULL,
            description TEXT NOT NULL,
            amount REAL NOT NULL,
            timestamp INTEGER NOT NULL,
            FOREIGN KEY(farmer_id) REFERENCES farmers(customer_id) ON UPDATE CASCADE
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS inventory (
            product_name TEXT PRIMARY KEY,
            quantity_in_stock REAL NOT NULL DEFAULT 0 CHECK(quantity_in_stock >= 0)
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS product_sales (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            farmer_id INTEGER,
            product_name TEXT NOT NULL,
            quantity REAL NOT NULL CHECK(quantity > 0),
            price_per_unit REAL NOT NULL CHECK(price_per_unit > 0),
            total_amount REAL NOT NULL,
            timestamp INTEGER NOT NULL,
            transaction_id INTEGER,
            FOREIGN KEY(farmer_id) REFERENCES farmers(customer_id) ON UPDATE CASCADE,
            FOREIGN KEY(product_name) REFERENCES inventory(product_name),
            FOREIGN KEY(transaction_id) REFERENCES transactions(id)
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS rates (
            id INTEGER PRIMARY KEY CHECK(id = 1),
            vlc REAL NOT NULL CHECK(vlc >= 0),
            thekadari REAL NOT NULL CHECK(thekadari >= 0)
        )
        """
        )
        cur.execute("INSERT OR IGNORE INTO rates (id, vlc, thekadari) VALUES (1, 0, 0)")

    def _migration_v2_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_collections_session_date ON collections(session, date, id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_collections_farmer_date ON collections(farmer_id, date, id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_transactions_farmer ON transactions(farmer_id, timestamp, id)")

    def _offset(self, page: int) -> int:
        if int(page) < 0:
            raise ValidationError("Page must be >= 0.")
        return int(page) * self.page_size

    # ---------- Farmers ----------
    @staticmethod
    def _farmer(row) -> Farmer:
        return Farmer(customer_id=int(row[0]), name=str(row[1]), phone=str(row[2]), milk_type=MilkType(row[3]))

    def _farmer_exists(self, cur: sqlite3.Cursor, farmer_id: int) -> bool:
        cur.execute("SELECT 1 FROM farmers WHERE customer_id=?", (int(farmer_id),))
        return cur.fetchone() is not None

    def get_farmer(self, farmer_id: int) -> Farmer:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT customer_id, name, phone, milk_type FROM farmers WHERE customer_id=?", (int(farmer_id),))
        row = cur.fetchone()
        conn.close()
        if not row:
            raise NotFoundError(f"Farmer {farmer_id} not found.")
        return self._farmer(row)

    def get_all_farmers(self) -> list[Farmer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT customer_id, name, phone, milk_type FROM farmers ORDER BY customer_id")
        rows = cur.fetchall()
        conn.close()
        return [self._farmer(r) for r in rows]

    def add_farmer(self, name: str, phone: str, milk_type: MilkType) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(MAX(customer_id), 0) + 1 FROM farmers")
        farmer_id = int(cur.fetchone()[0])
        cur.execute(
            "INSERT INTO farmers (customer_id, name, phone, milk_type) VALUES (?, ?, ?, ?)",
            (farmer_id, name, phone, MilkType(milk_type).value),
        )
        conn.commit()
        conn.close()
        return farmer_id

    def update_farmer_details(self, farmer_id: int, name: str, phone: str, milk_type: MilkType, new_id: int) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            if not self._farmer_exists(cur, farmer_id):
                raise NotFoundError(f"Farmer {farmer_id} not found.")
            if int(new_id) != int(farmer_id) and self._farmer_exists(cur, new_id):
                raise ValidationError(f"Customer ID {new_id} is already in use.")
            cur.execute(
                "UPDATE farmers SET customer_id=?, name=?, phone=?, milk_type=? WHERE customer_id=?",
                (int(new_id), name, phone, MilkType(milk_type).value, int(farmer_id)),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ---------- Collections ----------
    @staticmethod
    def _collection(row) -> CollectionEntry:
        return CollectionEntry(
            id=int(row[0]),
            farmer_id=int(row[1]),
            weight=float(row[2]),
            fat=float(row[3]),
            snf=float(row[4]) if row[4] is not None else None,
            rate=float(row[5]),
            date=int(row[6]),
            session=Session(row[7]),
            milk_type=MilkType(row[8]),
        )

    def get_all_collections_for_session(self, session: Session, page: int) -> list[CollectionEntry]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_COLLECTION_COLUMNS}
            FROM collections
            WHERE session=?
            ORDER BY date, id
            LIMIT ? OFFSET ?
            """,
            (Session(session).value, self.page_size, self._offset(page)),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._collection(r) for r in rows]

    def get_paginated_collections(self, farmer_id: int, page: int) -> list[CollectionEntry]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_COLLECTION_COLUMNS}
            FROM collections
            WHERE farmer_id=?
            ORDER BY date, id
            LIMIT ? OFFSET ?
            """,
            (int(farmer_id), self.page_size, self._offset(page)),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._collection(r) for r in rows]

    def add_collection_entry(
        self, farmer_id: int, weight: float, fat: float, snf: Optional[float], rate: float, session: Session
    ) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("SELECT milk_type FROM farmers WHERE customer_id=?", (int(farmer_id),))
            row = cur.fetchone()
            if not row:
                raise NotFoundError(f"Farmer {farmer_id} not found.")
            cur.execute(
                """
                INSERT INTO collections (farmer_id, weight, fat, snf, rate, date, session, milk_type)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(farmer_id),
                    float(weight),
                    float(fat),
                    float(snf) if snf is not None else None,
                    float(rate),
                    int(self.clock()),
                    Session(session).value,
                    str(row[0]),
                ),
            )
            entry_id = int(cur.lastrowid)
            conn.commit()
            return entry_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_collection_entry(
        self,
        farmer_id: int,
        entry_id: int,
        weight: float,
        fat: float,
        snf: Optional[float],
        rate: float,
        session: Session,
        milk_type: MilkType,
    ) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE collections
            SET weight=?, fat=?, snf=?, rate=?, session=?, milk_type=?
            WHERE id=? AND farmer_id=?
            """,
            (
                float(weight),
                float(fat),
                float(snf) if snf is not None else None,
                float(rate),
                Session(session).value,
                MilkType(milk_type).value,
                int(entry_id),
                int(farmer_id),
            ),
        )
        updated = cur.rowcount
        conn.commit()
        conn.close()
        if not updated:
            raise NotFoundError(f"Collection entry {entry_id} not found for farmer {farmer_id}.")

    # ---------- Transactions ----------
    @staticmethod
    def _transaction(row) -> Transaction:
        return Transaction(
            id=int(row[0]),
            farmer_id=int(row[1]),
            description=str(row[2]),
            amount=float(row[3]),
            timestamp=int(row[4]),
        )

    def get_farmer_balance(self, farmer_id: int) -> float:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(SUM(amount), 0) FROM transactions WHERE farmer_id=?", (int(farmer_id),))
        balance = float(cur.fetchone()[0])
        conn.close()
        return balance

    def get_farmer_transactions(self, farmer_id: int, page: int) -> list[Transaction]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_TRANSACTION_COLUMNS}
            FROM transactions
            WHERE farmer_id=?
            ORDER BY timestamp, id
            LIMIT ? OFFSET ?
            """,
            (int(farmer_id), self.page_size, self._offset(page)),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._transaction(r) for r in rows]

    def _insert_transaction(self, cur: sqlite3.Cursor, farmer_id: int, description: str, amount: float) -> int:
        if not self._farmer_exists(cur, farmer_id):
            raise NotFoundError(f"Farmer {farmer_id} not found.")
        cur.execute(
            "INSERT INTO transactions (farmer_id, description, amount, timestamp) VALUES (?, ?, ?, ?)",
            (int(farmer_id), description, float(amount), int(self.clock())),
        )
        return int(cur.lastrowid)

    def add_transaction(self, farmer_id: int, description: str, amount: float) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            txn_id = self._insert_transaction(cur, farmer_id, description, amount)
            conn.commit()
            return txn_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_transaction(self, farmer_id: int, transaction_id: int, description: str, amount: float) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE transactions SET description=?, amount=? WHERE id=? AND farmer_id=?",
            (description, float(amount), int(transaction_id), int(farmer_id)),
        )
        updated = cur.rowcount
        conn.commit()
        conn.close()
        if not updated:
            raise NotFoundError(f"Transaction {transaction_id} not found for farmer {farmer_id}.")

    # ---------- Inventory ----------
    def get_all_inventory(self) -> list[InventoryEntry]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT product_name, quantity_in_stock FROM inventory ORDER BY product_name")
        rows = cur.fetchall()
        conn.close()
        return [InventoryEntry(product_name=str(r[0]), quantity_in_stock=float(r[1])) for r in rows]

    def add_inventory_entry(self, product_name: str, quantity: float) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                "INSERT INTO inventory (product_name, quantity_in_stock) VALUES (?, ?)",
                (product_name, float(quantity)),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            if "UNIQUE" in str(exc):
                raise ValidationError(f"Product '{product_name}' already exists.") from exc
            raise ValidationError(f"Invalid stock quantity for '{product_name}'.") from exc
        finally:
            conn.close()

    def _adjust_stock(self, cur: sqlite3.Cursor, product_name: str, delta: float) -> float:
        cur.execute("SELECT quantity_in_stock FROM inventory WHERE product_name=?", (product_name,))
        row = cur.fetchone()
        if not row:
            raise NotFoundError(f"Product '{product_name}' not found.")
        stock_after = float(row[0]) + float(delta)
        if math.isnan(stock_after):
            raise ValidationError("Quantity change must be a number.")
        if stock_after < 0:
            raise InsufficientStockError(f"Not enough stock for {product_name}. Available: {float(row[0]):g}")
        cur.execute(
            "UPDATE inventory SET quantity_in_stock=? WHERE product_name=?",
            (stock_after, product_name),
        )
        return stock_after

    def update_inventory(self, product_name: str, delta_quantity: float) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            self._adjust_stock(cur, product_name, delta_quantity)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ---------- Product sales ----------
    @staticmethod
    def _sale(row) -> ProductSale:
        return ProductSale(
            id=int(row[0]),
            farmer_id=int(row[1]) if row[1] is not None else None,
            product_name=str(row[2]),
            quantity=float(row[3]),
            price_per_unit=float(row[4]),
            total_amount=float(row[5]),
            timestamp=int(row[6]),
        )

    def get_all_product_sales(self) -> list[ProductSale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {_SALE_COLUMNS} FROM product_sales ORDER BY timestamp DESC, id DESC")
        rows = cur.fetchall()
        conn.close()
        return [self._sale(r) for r in rows]

    def add_product_sale(
        self, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> int:
        total = float(quantity) * float(price_per_unit)
        conn = self._conn()
        cur = conn.cursor()
        try:
            self._adjust_stock(cur, product_name, -float(quantity))

            txn_id = None
            if farmer_id is not None:
                txn_id = self._insert_transaction(cur, farmer_id, _sale_description(product_name, quantity), -total)

            cur.execute(
                """
                INSERT INTO product_sales (
                    farmer_id, product_name, quantity, price_per_unit, total_amount, timestamp, transaction_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(farmer_id) if farmer_id is not None else None,
                    product_name,
                    float(quantity),
                    float(price_per_unit),
                    total,
                    int(self.clock()),
                    txn_id,
                ),
            )
            sale_id = int(cur.lastrowid)
            conn.commit()
            return sale_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_product_sale(
        self, sale_id: int, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> None:
        total = float(quantity) * float(price_per_unit)
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                "SELECT product_name, quantity, transaction_id FROM product_sales WHERE id=?",
                (int(sale_id),),
            )
            row = cur.fetchone()
            if not row:
                raise NotFoundError(f"Sale {sale_id} not found.")
            old_product, old_qty, old_txn_id = str(row[0]), float(row[1]), row[2]

            self._adjust_stock(cur, old_product, old_qty)
            self._adjust_stock(cur, product_name, -float(quantity))

            # Detach before touching the linked transaction row.
            cur.execute("UPDATE product_sales SET transaction_id=NULL WHERE id=?", (int(sale_id),))
            txn_id = None
            if old_txn_id is not None and farmer_id is not None:
                if not self._farmer_exists(cur, farmer_id):
                    raise NotFoundError(f"Farmer {farmer_id} not found.")
                cur.execute(
                    "UPDATE transactions SET farmer_id=?, description=?, amount=? WHERE id=?",
                    (int(farmer_id), _sale_description(product_name, quantity), -total, int(old_txn_id)),
                )
                txn_id = int(old_txn_id)
            elif old_txn_id is not None:
                cur.execute("DELETE FROM transactions WHERE id=?", (int(old_txn_id),))
            elif farmer_id is not None:
                txn_id = self._insert_transaction(cur, farmer_id, _sale_description(product_name, quantity), -total)

            cur.execute(
                """
                UPDATE product_sales
                SET farmer_id=?, product_name=?, quantity=?, price_per_unit=?, total_amount=?, transaction_id=?
                WHERE id=?
                """,
                (
                    int(farmer_id) if farmer_id is not None else None,
                    product_name,
                    float(quantity),
                    float(price_per_unit),
                    total,
                    txn_id,
                    int(sale_id),
                ),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ---------- Rates ----------
    def get_rates(self) -> Rates:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT vlc, thekadari FROM rates WHERE id=1")
        row = cur.fetchone()
        conn.close()
        if not row:
            return Rates(vlc=0.0, thekadari=0.0)
        return Rates(vlc=float(row[0]), thekadari=float(row[1]))

    def update_rates(self, vlc_rate: float, thekadari_rate: float) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO rates (id, vlc, thekadari) VALUES (1, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET vlc=excluded.vlc, thekadari=excluded.thekadari",
            (float(vlc_rate), float(thekadari_rate)),
        )
        conn.commit()
        conn.close()
