import sqlite3
import json
from datetime import datetime
from typing import List, Dict, Optional
from loguru import logger
from pathlib import Path

from phresearch.models.research import Product, ResearchResult


class ResearchStore:
    """
    SQLite store for research history, favorites and deep research annotations.
    Owned by the embedding application; the research pipeline never touches it.
    """

    def __init__(self, db_path: str = "data/database/research_history.db"):
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_db()

    def _ensure_db_dir(self):
        """Ensure the directory for the database exists"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self):
        """Get a database connection"""
        return sqlite3.connect(self.db_path)

    def _init_db(self):
        """Initialize the history, favorites and enrichment tables"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()

                # One row per topic, exact-string key
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS research_history (
                        topic TEXT PRIMARY KEY,
                        keywords TEXT NOT NULL,
                        products TEXT NOT NULL,
                        keyword_stats TEXT,
                        content TEXT DEFAULT '',
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)

                # Keyed by product enrichment key (website, else listing url)
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS favorites (
                        key TEXT PRIMARY KEY,
                        product TEXT NOT NULL,
                        added_at TEXT NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS enrichments (
                        key TEXT PRIMARY KEY,
                        output TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)

                conn.commit()
                logger.info("SQLite research store initialized")
        except Exception as e:
            logger.error(f"Failed to initialize SQLite DB: {e}")
            raise

    # --- History ---

    def save_history(self, topic: str, result: ResearchResult) -> Dict:
        """Insert or replace the stored result for a topic"""
        try:
            now = datetime.utcnow().isoformat()
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO research_history (topic, keywords, products, keyword_stats, content, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(topic) DO UPDATE SET
                        keywords = excluded.keywords,
                        products = excluded.products,
                        keyword_stats = excluded.keyword_stats,
                        content = excluded.content,
                        updated_at = excluded.updated_at
                """, (
                    topic,
                    json.dumps(result.keywords),
                    json.dumps([p.to_payload() for p in result.products]),
                    json.dumps([s.model_dump() for s in result.keyword_stats]),
                    result.content,
                    now,
                    now,
                ))
                conn.commit()

            logger.info(f"Saved research history for topic '{topic}' ({len(result.products)} products)")
            return {"topic": topic, "timestamp": now}
        except Exception as e:
            logger.error(f"Failed to save history for '{topic}': {e}")
            raise

    def get_history(self, topic: str) -> Optional[ResearchResult]:
        """Get the stored result for a topic, if any"""
        try:
            with self._get_connection() as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT keywords, products, keyword_stats, content
                    FROM research_history WHERE topic = ?
                """, (topic,))
                row = cursor.fetchone()

            if not row:
                return None

            return ResearchResult(
                keywords=json.loads(row["keywords"]),
                products=[Product.model_validate(p) for p in json.loads(row["products"])],
                keyword_stats=json.loads(row["keyword_stats"] or "[]"),
                content=row["content"] or "",
            )
        except Exception as e:
            logger.error(f"Failed to get history for '{topic}': {e}")
            raise

    def list_history(self) -> List[Dict]:
        """List stored topics, most recently updated first"""
        try:
            with self._get_connection() as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT topic, keywords, products, updated_at
                    FROM research_history
                    ORDER BY updated_at DESC
                """)
                rows = cursor.fetchall()

            return [
                {
                    "topic": row["topic"],
                    "timestamp": row["updated_at"],
                    "keywords": json.loads(row["keywords"]),
                    "productCount": len(json.loads(row["products"])),
                }
                for row in rows
            ]
        except Exception as e:
            logger.error(f"Failed to list history: {e}")
            raise

    def delete_history(self, topic: str) -> bool:
        """Delete one topic; returns whether it existed"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM research_history WHERE topic = ?", (topic,))
                conn.commit()
                deleted = cursor.rowcount > 0
            logger.info(f"Deleted history for topic '{topic}'" if deleted else f"No history for topic '{topic}'")
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete history for '{topic}': {e}")
            raise

    def clear_history(self):
        """Delete all stored topics"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM research_history")
                conn.commit()
            logger.info("Cleared research history")
        except Exception as e:
            logger.error(f"Failed to clear history: {e}")
            raise

    # --- Favorites ---

    def add_favorite(self, product: Product) -> Dict:
        """Store a product snapshot under its enrichment key"""
        key = product.enrichment_key
        if not key:
            raise ValueError("Product has neither website nor url")

        try:
            now = datetime.utcnow().isoformat()
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO favorites (key, product, added_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET product = excluded.product
                """, (key, json.dumps(product.to_payload()), now))
                conn.commit()
            logger.info(f"Added favorite: {key}")
            return {"key": key, "addedAt": now}
        except Exception as e:
            logger.error(f"Failed to add favorite {key}: {e}")
            raise

    def get_favorites(self) -> List[Dict]:
        """Get all favorites, newest first"""
        try:
            with self._get_connection() as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                cursor.execute("SELECT key, product, added_at FROM favorites ORDER BY added_at DESC")
                rows = cursor.fetchall()

            return [
                {"key": row["key"], "product": json.loads(row["product"]), "addedAt": row["added_at"]}
                for row in rows
            ]
        except Exception as e:
            logger.error(f"Failed to get favorites: {e}")
            raise

    def update_favorite_research(self, key: str, output: str) -> bool:
        """Copy a fresh deep research annotation onto a favorited product"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT product FROM favorites WHERE key = ?", (key,))
                row = cursor.fetchone()
                if not row:
                    return False
                product = json.loads(row[0])
                product["deepResearch"] = output
                cursor.execute("UPDATE favorites SET product = ? WHERE key = ?", (json.dumps(product), key))
                conn.commit()
            return True
        except Exception as e:
            logger.error(f"Failed to update favorite {key}: {e}")
            raise

    def remove_favorite(self, key: str) -> bool:
        """Remove a favorite; returns whether it existed"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM favorites WHERE key = ?", (key,))
                conn.commit()
                return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to remove favorite {key}: {e}")
            raise

    # --- Deep research annotations ---

    def save_enrichment(self, key: str, output: str):
        """Insert or replace the annotation for an enrichment key"""
        try:
            now = datetime.utcnow().isoformat()
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO enrichments (key, output, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET output = excluded.output, updated_at = excluded.updated_at
                """, (key, output, now))
                conn.commit()
        except Exception as e:
            logger.error(f"Failed to save enrichment for {key}: {e}")
            raise

    def get_enrichments(self) -> Dict[str, str]:
        """All known annotations as {enrichment key: text}"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT key, output FROM enrichments")
                return {key: output for key, output in cursor.fetchall()}
        except Exception as e:
            logger.error(f"Failed to load enrichments: {e}")
            raise
