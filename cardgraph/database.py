import logging
import time
from typing import Optional

from neo4j import GraphDatabase

from cardgraph.config import Settings
from cardgraph.db_result_helpers import records_to_dicts
from cardgraph.query_cache import QueryCache

logger = logging.getLogger(__name__)

USER_AGENT = "cardgraph/0.3"


class GraphConnection:
    """Owns the Neo4j driver and runs Cypher with optional result caching.

    The driver is created lazily by ``connect()`` unless one is passed in.
    Each ``execute_cypher`` call opens its own session and closes it before
    returning, on both the success and the error path.
    """

    def __init__(self, settings: Settings, cache: Optional[QueryCache] = None, driver=None):
        self.settings = settings
        self.database = settings.neo4j_database
        self.cache = cache if cache is not None else QueryCache()
        self.driver = driver

    def connect(self):
        if not self.driver:
            self.settings.validate_credentials()
            options = dict(
                max_connection_lifetime=3600,
                max_connection_pool_size=50,
                connection_acquisition_timeout=30,
                keep_alive=True,
                user_agent=USER_AGENT,
            )
            if self.settings.is_secure_uri:
                # Encryption and trust come from the +s scheme
                options["connection_timeout"] = 30
            self.driver = GraphDatabase.driver(
                self.settings.neo4j_uri,
                auth=(self.settings.neo4j_user, self.settings.neo4j_password),
                **options,
            )
        return self.driver

    def warmup(self) -> bool:
        """Verify connectivity and run a trivial query. Call on server start.

        Failures are logged, not raised: the API still comes up and reports
        database errors per request.
        """
        t = time.time()
        try:
            driver = self.connect()
            driver.verify_connectivity()
            self.verify_connection()
        except Exception:
            logger.exception("Neo4j connection verification failed")
            return False
        host = (self.settings.neo4j_uri or "").split("@")[-1]
        logger.info(
            "Connected to Neo4j database %s at %s in %.2fs",
            self.database, host, time.time() - t,
        )
        return True

    def close(self):
        if self.driver:
            self.driver.close()
            self.driver = None
            logger.info("Neo4j driver closed")

    def verify_connection(self) -> bool:
        """Run ``RETURN 1`` and check the answer."""
        rows = self.execute_cypher("RETURN 1 AS test")
        return bool(rows) and rows[0].get("test") == 1

    def execute_cypher(self, cypher: str, params: Optional[dict] = None,
                       cache_key: Optional[str] = None) -> list[dict]:
        """Run a parameterized query and return normalized rows.

        With ``cache_key`` set, a cached copy is returned without touching
        the database; on a miss the fresh rows are stored under that key.
        Driver errors are logged and re-raised unchanged.
        """
        params = params or {}

        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("CACHE HIT for: %s", cache_key)
                return cached

        logger.debug("Executing Cypher (len=%d): %s...", len(cypher), " ".join(cypher.split())[:100])
        driver = self.connect()
        try:
            with driver.session(database=self.database) as session:
                result = session.run(cypher, params)
                rows = records_to_dicts(result)
        except Exception:
            logger.error("Neo4j query failed:\n%s\nParams: %r", cypher.strip(), params, exc_info=True)
            raise

        if cache_key:
            logger.debug("CACHE SET for: %s", cache_key)
            self.cache.set(cache_key, rows)
        return rows
