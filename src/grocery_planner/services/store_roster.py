"""
Store roster: the user's ordered list of preferred stores.
"""

import logging
import sqlite3
from typing import List, Optional

from ..core.db import get_db_connection, PathLike
from ..models.store import RosterEntry
from .product_directory import store_row_to_model

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


class StoreRoster:
    """
    Preference-ordered stores for one user.

    Write operations report success as a bool and never raise; the cached
    entries are reloaded after every successful write.
    """

    def __init__(self, user_id: str, db_path: Optional[PathLike] = None):
        self.user_id = user_id
        self.db_path = db_path
        self.entries: List[RosterEntry] = []
        self.refresh()

    def refresh(self) -> List[RosterEntry]:
        """Reload entries from the backing store, keeping the last list on failure."""
        try:
            conn = get_db_connection(self.db_path)
            try:
                rows = conn.execute("""
                    SELECT r.id AS roster_id, r.store_id, r.preference_order, s.*
                    FROM user_store_roster r
                    JOIN stores s ON s.id = r.store_id
                    WHERE r.user_id = ?
                    ORDER BY r.preference_order, r.id
                """, (self.user_id,)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[ROSTER] Error fetching store roster: {e}")
            return self.entries

        self.entries = [
            RosterEntry(
                id=str(row["roster_id"]),
                store_id=row["store_id"],
                preference_order=row["preference_order"],
                store=store_row_to_model(row),
            )
            for row in rows
        ]
        return self.entries

    def list(self) -> List[RosterEntry]:
        return list(self.entries)

    def contains(self, store_id: str) -> bool:
        return any(entry.store_id == store_id for entry in self.entries)

    def find(self, roster_entry_id: str) -> Optional[RosterEntry]:
        return next((e for e in self.entries if e.id == str(roster_entry_id)), None)

    def add(self, store_id: str) -> bool:
        """Append a store at the end of the preference order."""
        try:
            conn = get_db_connection(self.db_path)
            try:
                conn.execute("""
                    INSERT INTO user_store_roster (user_id, store_id, preference_order)
                    VALUES (?, ?, ?)
                """, (self.user_id, store_id, len(self.entries)))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[ROSTER] Error adding store {store_id} to roster: {e}")
            return False

        logger.info(f"[ROSTER] Added store {store_id} for user {self.user_id}")
        self.refresh()
        return True

    def remove(self, roster_entry_id: str) -> bool:
        """Delete an entry. Remaining entries keep their order values."""
        try:
            conn = get_db_connection(self.db_path)
            try:
                cursor = conn.execute(
                    "DELETE FROM user_store_roster WHERE id = ? AND user_id = ?",
                    (roster_entry_id, self.user_id)
                )
                conn.commit()
                deleted = cursor.rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[ROSTER] Error removing store from roster: {e}")
            return False

        if not deleted:
            logger.warning(f"[ROSTER] Roster entry {roster_entry_id} not found")
            return False

        logger.info(f"[ROSTER] Removed roster entry {roster_entry_id}")
        self.refresh()
        return True

    def reorder(self, roster_entry_id: str, new_index: int) -> bool:
        """
        Move an entry to `new_index` and renumber the roster contiguously.

        Only entries whose preference_order differs from their new position
        are written, all in one transaction.
        """
        ordered = list(self.entries)
        old_index = next((i for i, e in enumerate(ordered) if e.id == str(roster_entry_id)), None)
        if old_index is None:
            logger.warning(f"[ROSTER] Cannot reorder unknown entry {roster_entry_id}")
            return False

        new_index = max(0, min(new_index, len(ordered) - 1))
        moved = ordered.pop(old_index)
        ordered.insert(new_index, moved)

        changes = [
            (index, entry.id)
            for index, entry in enumerate(ordered)
            if entry.preference_order != index
        ]
        if not changes:
            return True

        try:
            conn = get_db_connection(self.db_path)
            try:
                with conn:
                    conn.executemany(
                        "UPDATE user_store_roster SET preference_order = ? WHERE id = ?",
                        changes
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[ROSTER] Error reordering roster: {e}")
            return False

        logger.info(f"[ROSTER] Moved entry {roster_entry_id} from {old_index} to {new_index} "
                    f"({len(changes)} entries renumbered)")
        self.refresh()
        return True
