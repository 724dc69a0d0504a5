"""
Search history utilities - record what a user looked up.
Writes are best-effort: failures are logged and reported as False.
"""

import logging
from typing import Optional, List, Dict

from ..core.db import get_db_connection, PathLike

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


def save_search(user_id: str, product_upc: str, search_type: str = "barcode",
                db_path: Optional[PathLike] = None) -> bool:
    """
    Save a search history entry.

    Args:
        user_id: User who searched
        product_upc: Identifier that was looked up
        search_type: How the lookup happened (barcode, text, ...)

    Returns:
        True if successful, False otherwise
    """
    try:
        conn = get_db_connection(db_path)
        try:
            conn.execute("""
                INSERT INTO user_search_history (user_id, product_upc, search_type)
                VALUES (?, ?, ?)
            """, (user_id, product_upc, search_type))
            conn.commit()
        finally:
            conn.close()

        logger.info(f"[HISTORY] Saved {search_type} search for user {user_id}")
        return True

    except Exception as e:
        logger.error(f"[HISTORY] Failed to save search: {e}", exc_info=True)
        return False


def load_search_history(user_id: str, search_type: Optional[str] = None, limit: int = 50,
                        db_path: Optional[PathLike] = None) -> List[Dict]:
    """
    Load a user's search history, newest first.

    Returns:
        List of {product_upc, search_type, created_at} entries
    """
    try:
        conn = get_db_connection(db_path)
        try:
            if search_type:
                rows = conn.execute("""
                    SELECT product_upc, search_type, created_at
                    FROM user_search_history
                    WHERE user_id = ? AND search_type = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                """, (user_id, search_type, limit)).fetchall()
            else:
                rows = conn.execute("""
                    SELECT product_upc, search_type, created_at
                    FROM user_search_history
                    WHERE user_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                """, (user_id, limit)).fetchall()
        finally:
            conn.close()

        logger.info(f"[HISTORY] Loaded {len(rows)} entries for user {user_id}")
        return [dict(row) for row in rows]

    except Exception as e:
        logger.error(f"[HISTORY] Failed to load history: {e}", exc_info=True)
        return []


def clear_search_history(user_id: str, db_path: Optional[PathLike] = None) -> bool:
    """Clear all search history for a user."""
    try:
        conn = get_db_connection(db_path)
        try:
            conn.execute("DELETE FROM user_search_history WHERE user_id = ?", (user_id,))
            conn.commit()
        finally:
            conn.close()

        logger.info(f"[HISTORY] Cleared search history for user {user_id}")
        return True

    except Exception as e:
        logger.error(f"[HISTORY] Failed to clear history: {e}", exc_info=True)
        return False
