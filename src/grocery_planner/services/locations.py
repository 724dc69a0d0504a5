"""
Saved user locations.
"""

import logging
import sqlite3
from typing import List, Optional

from ..core.db import get_db_connection, PathLike
from ..models.store import UserLocation

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


def _row_to_location(row: sqlite3.Row) -> UserLocation:
    return UserLocation(
        id=str(row["id"]),
        name=row["name"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        is_primary=bool(row["is_primary"]),
    )


class UserLocationBook:
    """Addresses a user has saved; the primary one comes first."""

    def __init__(self, user_id: str, db_path: Optional[PathLike] = None):
        self.user_id = user_id
        self.db_path = db_path

    def list(self) -> List[UserLocation]:
        try:
            conn = get_db_connection(self.db_path)
            try:
                rows = conn.execute("""
                    SELECT * FROM user_locations
                    WHERE user_id = ?
                    ORDER BY is_primary DESC, id
                """, (self.user_id,)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[LOCATIONS] Error fetching user locations: {e}")
            return []
        return [_row_to_location(row) for row in rows]

    def primary(self) -> Optional[UserLocation]:
        locations = self.list()
        return locations[0] if locations else None

    def save(self, location: UserLocation) -> Optional[UserLocation]:
        """Store a new location. Saving a primary location demotes the previous one."""
        try:
            conn = get_db_connection(self.db_path)
            try:
                with conn:
                    if location.is_primary:
                        conn.execute(
                            "UPDATE user_locations SET is_primary = 0 WHERE user_id = ?",
                            (self.user_id,)
                        )
                    cursor = conn.execute("""
                        INSERT INTO user_locations
                        (user_id, name, address, city, state, zip_code, latitude, longitude, is_primary)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """, (
                        self.user_id,
                        location.name,
                        location.address,
                        location.city,
                        location.state,
                        location.zip_code,
                        location.latitude,
                        location.longitude,
                        1 if location.is_primary else 0,
                    ))
                    new_id = cursor.lastrowid
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[LOCATIONS] Error saving location: {e}")
            return None

        logger.info(f"[LOCATIONS] Saved location {location.name} for user {self.user_id}")
        return location.model_copy(update={"id": str(new_id)})
