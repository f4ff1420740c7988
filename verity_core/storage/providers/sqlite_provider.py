from __future__ import annotations
from typing import Optional, Dict, Any, List
import json, sqlite3, os
from verity_core.storage.provider import StorageProvider
from verity_core.storage.models import (
    CachedProduct, PendingResolutionEntry, PendingStatus, ProductStatus, RoutineRecord,
)
from verity_core.utils import to_iso, parse_iso

_PRODUCT_COLS = "token,product_id,name,category,description,batch_id,verified_at,cached_at,ttl,status"
_PENDING_COLS = "token,scanned_at,retry_count,last_retry_at,status"
_ROUTINE_COLS = "routine_id,token,product_id,schedule,notes,linked_at,is_active"


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/verity_state.db"):
        if path != ":memory:":
            # If no directory, default to current working directory
            dir_path = os.path.dirname(path) or "."
            os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        c.execute("""CREATE TABLE IF NOT EXISTS products(
            token TEXT PRIMARY KEY,
            product_id TEXT NOT NULL,
            name TEXT NOT NULL,
            category TEXT NOT NULL,
            description TEXT,
            batch_id TEXT,
            verified_at TEXT NOT NULL,
            cached_at TEXT NOT NULL,
            ttl REAL NOT NULL,
            status TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS pending_queue(
            token TEXT PRIMARY KEY,
            scanned_at TEXT NOT NULL,
            retry_count INTEGER NOT NULL DEFAULT 0,
            last_retry_at TEXT,
            status TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS routines(
            routine_id TEXT PRIMARY KEY,
            token TEXT NOT NULL,
            product_id TEXT NOT NULL,
            schedule TEXT,
            notes TEXT,
            linked_at TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")
        c.execute("CREATE INDEX IF NOT EXISTS idx_routines_token ON routines(token)")

        self.db.commit()

    # --- products ---

    def save_product(self, product: CachedProduct) -> None:
        self.db.execute(
            f"INSERT INTO products({_PRODUCT_COLS}) VALUES(?,?,?,?,?,?,?,?,?,?) "
            "ON CONFLICT(token) DO UPDATE SET product_id=excluded.product_id, name=excluded.name, "
            "category=excluded.category, description=excluded.description, batch_id=excluded.batch_id, "
            "verified_at=excluded.verified_at, cached_at=excluded.cached_at, ttl=excluded.ttl, "
            "status=excluded.status",
            (product.token, product.product_id, product.name, product.category, product.description,
             product.batch_id, to_iso(product.verified_at), to_iso(product.cached_at), product.ttl,
             product.status.value)
        )
        self.db.commit()

    def get_product(self, token: str) -> Optional[CachedProduct]:
        cur = self.db.execute(f"SELECT {_PRODUCT_COLS} FROM products WHERE token=?", (token,))
        row = cur.fetchone()
        if not row: return None
        return self._product_from_row(row)

    def list_products(self) -> List[CachedProduct]:
        cur = self.db.execute(f"SELECT {_PRODUCT_COLS} FROM products ORDER BY cached_at DESC")
        return [self._product_from_row(r) for r in cur.fetchall()]

    @staticmethod
    def _product_from_row(row) -> CachedProduct:
        token, product_id, name, category, description, batch_id, verified_at, cached_at, ttl, status = row
        return CachedProduct(
            token=token,
            product_id=product_id,
            name=name,
            category=category,
            description=description,
            batch_id=batch_id,
            verified_at=parse_iso(verified_at),
            cached_at=parse_iso(cached_at),
            ttl=float(ttl),
            status=ProductStatus(status),
        )

    # --- pending queue ---

    def save_pending(self, entry: PendingResolutionEntry) -> None:
        self.db.execute(
            f"INSERT INTO pending_queue({_PENDING_COLS}) VALUES(?,?,?,?,?) "
            "ON CONFLICT(token) DO UPDATE SET scanned_at=excluded.scanned_at, "
            "retry_count=excluded.retry_count, last_retry_at=excluded.last_retry_at, status=excluded.status",
            (entry.token, to_iso(entry.scanned_at), entry.retry_count, to_iso(entry.last_retry_at),
             entry.status.value)
        )
        self.db.commit()

    def get_pending(self, token: str) -> Optional[PendingResolutionEntry]:
        cur = self.db.execute(f"SELECT {_PENDING_COLS} FROM pending_queue WHERE token=?", (token,))
        row = cur.fetchone()
        return self._pending_from_row(row) if row else None

    def delete_pending(self, token: str) -> None:
        self.db.execute("DELETE FROM pending_queue WHERE token=?", (token,))
        self.db.commit()

    def list_pending(self, predicate=None) -> List[PendingResolutionEntry]:
        # ISO-8601 UTC strings sort chronologically
        cur = self.db.execute(f"SELECT {_PENDING_COLS} FROM pending_queue ORDER BY scanned_at ASC")
        entries = [self._pending_from_row(r) for r in cur.fetchall()]
        if predicate is not None:
            entries = [e for e in entries if predicate(e)]
        return entries

    def count_pending(self, predicate=None) -> int:
        if predicate is None:
            return self.db.execute("SELECT COUNT(*) FROM pending_queue").fetchone()[0]
        return len(self.list_pending(predicate))

    @staticmethod
    def _pending_from_row(row) -> PendingResolutionEntry:
        token, scanned_at, retry_count, last_retry_at, status = row
        return PendingResolutionEntry(
            token=token,
            scanned_at=parse_iso(scanned_at),
            retry_count=int(retry_count),
            last_retry_at=parse_iso(last_retry_at),
            status=PendingStatus(status),
        )

    # --- dependent records ---

    def save_routine(self, rec: RoutineRecord) -> None:
        self.db.execute(
            f"INSERT INTO routines({_ROUTINE_COLS}) VALUES(?,?,?,?,?,?,?) "
            "ON CONFLICT(routine_id) DO UPDATE SET token=excluded.token, product_id=excluded.product_id, "
            "schedule=excluded.schedule, notes=excluded.notes, linked_at=excluded.linked_at, "
            "is_active=excluded.is_active",
            (rec.routine_id, rec.token, rec.product_id, rec.schedule, rec.notes,
             to_iso(rec.linked_at), 1 if rec.is_active else 0)
        )
        self.db.commit()

    def list_routines(self, active_only: bool = False) -> List[RoutineRecord]:
        sql = f"SELECT {_ROUTINE_COLS} FROM routines"
        if active_only:
            sql += " WHERE is_active=1"
        cur = self.db.execute(sql + " ORDER BY linked_at DESC")
        recs = []
        for row in cur.fetchall():
            routine_id, token, product_id, schedule, notes, linked_at, is_active = row
            recs.append(RoutineRecord(
                routine_id=routine_id,
                token=token,
                product_id=product_id,
                schedule=schedule,
                notes=notes,
                linked_at=parse_iso(linked_at),
                is_active=bool(is_active),
            ))
        return recs

    def deactivate_routines(self, token: Optional[str] = None, product_id: Optional[str] = None) -> int:
        if not token and not product_id:
            return 0
        cur = self.db.execute(
            "UPDATE routines SET is_active=0 WHERE is_active=1 AND (token=? OR product_id=?)",
            (token or "", product_id or "")
        )
        self.db.commit()
        return cur.rowcount

    # --- audit ---

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        from verity_core.utils import now_ts, canonical_json

        self.db.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                        (now_ts(), event_type, canonical_json(payload)))
        self.db.commit()

    def list_events(self):
        cur = self.db.execute("SELECT ts, event_type, payload FROM audit ORDER BY rowid ASC")
        return [(ts, event_type, json.loads(payload)) for ts, event_type, payload in cur.fetchall()]

    def wipe_all(self) -> None:
        for table in ("products", "pending_queue", "routines", "audit"):
            self.db.execute(f"DELETE FROM {table}")
        self.db.commit()

    def flush(self):
        self.db.commit()

    def close(self):
        self.db.close()
