import logging
from typing import Optional

from cardgraph.database import GraphConnection
from cardgraph.db_result_helpers import first_row, row_value, to_native_int
from cardgraph.errors import CardNotFoundError, InvalidCardIdError, InvalidStateError
from cardgraph.models import CardState
from cardgraph.query_cache import CARDS_KEY, CATEGORY_IDS_KEY, card_key

logger = logging.getLogger(__name__)


CATEGORY_IDS_QUERY = """
    MATCH (k:Kategori)
    WHERE k.kategori_id IS NOT NULL
    RETURN k.kategori_id AS id
    ORDER BY id
"""

CARD_IDS_QUERY = """
    MATCH (k:Kategori)
    WHERE k.kategori_id IS NOT NULL
    RETURN k.kategori_id AS id
    ORDER BY id
"""

UPDATE_STATE_QUERY = """
    MATCH (k:Kategori {kategori_id: $cardId})
    SET k.state = $state
    RETURN k.kategori_id AS id, k.state AS state
"""

POINTS_QUERY = """
    MATCH (k:Kategori)
    WHERE k.state = $state
    RETURN sum(coalesce(k.poeng, 0) + coalesce(k.bonus_poeng, 0)) AS points
"""


def build_card_query() -> str:
    """Cypher for one card with its full question tree.

    The nested tree uses pattern comprehensions only, so a card without
    questions, alternatives or measures yields empty lists instead of null
    placeholders. Framework names and measure ids are aggregated separately
    with collect(DISTINCT), which drops nulls.
    """
    measure = """{
                    id: t.`Lokal ID`,
                    tittel: t.Tiltak,
                    kapittel: t.Kapittel,
                    standard: t.Standard,
                    rammeverk: r.Rammeverk
                }"""
    alternative = f"""{{
                alternativ_tekst: a.alternativ_tekst,
                alternativ_beskrivelse: a.alternativ_beskrivelse,
                alternativ_hva: a.hva_skal_implementeres,
                alternativ_hvordan: a.hvordan_implementere,
                alternativ_tiltak_info: [(a)-[:Dekker]->(t:RammeverksTiltak)<-[:Inneholder]-(r:Rammeverk) | {measure}]
            }}"""
    question = f"""{{
            sporsmal_tekst: s.sporsmal,
            alternativer: [(s)-[:Inneholder]->(a:Alternativ) | {alternative}]
        }}"""
    return f"""
    MATCH (k:Kategori {{kategori_id: $cardId}})
    OPTIONAL MATCH (k)-[:Inneholder]->(:Spørsmål)-[:Inneholder]->(:Alternativ)-[:Dekker]->(t:RammeverksTiltak)
    OPTIONAL MATCH (t)<-[:Inneholder]-(r:Rammeverk)
    WITH k,
         collect(DISTINCT r.Rammeverk) AS direkte_rammeverk,
         collect(DISTINCT t.`Lokal ID`) AS dekkede_tiltak_lokal_id
    RETURN
        k.kategori_id AS id,
        k.kategori AS kategori_tekst,
        k.kategori_beskrivelse AS kategori_beskrivelse,
        k.kategori_kort AS kategori_kort,
        k.state AS state,
        [(k)-[:Inneholder]->(s:Spørsmål) | {question}] AS sporsmal_med_alternativer,
        direkte_rammeverk,
        dekkede_tiltak_lokal_id
    LIMIT 1
    """


CARD_QUERY = build_card_query()

# Largest integer the Bolt protocol can carry
MAX_CARD_ID = 2**63 - 1


def validate_card_id(card_id) -> int:
    """Return ``card_id`` as a positive int or raise InvalidCardIdError."""
    value = to_native_int(card_id)
    if not isinstance(value, int) or isinstance(value, bool) or value < 1 or value > MAX_CARD_ID:
        raise InvalidCardIdError(card_id)
    return value


def validate_state(state) -> str:
    if state not in CardState.values():
        raise InvalidStateError(state)
    return state


def flatten_card(row: dict) -> Optional[dict]:
    """Shape a raw card row into the API card dict.

    Returns None when the row has no usable id.
    """
    if row.get("id") in (None, ""):
        return None

    questions = []
    for sq in row.get("sporsmal_med_alternativer") or []:
        alternatives = []
        for alt in sq.get("alternativer") or []:
            alternatives.append({
                **alt,
                "alternativ_tiltak_info": alt.get("alternativ_tiltak_info") or [],
            })
        questions.append({
            "sporsmal_tekst": sq.get("sporsmal_tekst"),
            "alternativer": alternatives,
        })

    return {
        "id": row["id"],
        "kategori_tekst": row.get("kategori_tekst"),
        "kategori_beskrivelse": row.get("kategori_beskrivelse"),
        "kategori_kort": row.get("kategori_kort"),
        "state": row.get("state"),
        "sporsmal": questions,
        "rammeverk": row.get("direkte_rammeverk") or [],
        "lokal_ids": row.get("dekkede_tiltak_lokal_id") or [],
    }


class CardRepository:
    """Card and category reads, state updates and points.

    Reads go through the connection's cache; ``update_card_state`` drops
    the affected card entry before and after writing.
    """

    def __init__(self, db: GraphConnection):
        self.db = db

    @property
    def cache(self):
        return self.db.cache

    def get_all_category_ids(self) -> list[int]:
        rows = self.db.execute_cypher(CATEGORY_IDS_QUERY, {}, CATEGORY_IDS_KEY)
        ids = [row["id"] for row in rows]
        logger.info("Category IDs fetched/returned: %d", len(ids))
        return ids

    def get_all_cards(self) -> list[int]:
        rows = self.db.execute_cypher(CARD_IDS_QUERY, {}, CARDS_KEY)
        return [row["id"] for row in rows]

    def get_card_by_id(self, card_id) -> Optional[dict]:
        card_id = validate_card_id(card_id)
        rows = self.db.execute_cypher(CARD_QUERY, {"cardId": card_id}, card_key(card_id))

        row = first_row(rows)
        if row is None:
            logger.info("No card found for ID: %s", card_id)
            return None

        card = flatten_card(row)
        if card is None:
            logger.warning("Card %s returned a row without an id: %r", card_id, row)
        return card

    def update_card_state(self, card_id, state) -> dict:
        """Set a card's state and return ``{"id", "state"}``.

        Raises InvalidStateError / InvalidCardIdError before any database
        call, CardNotFoundError if no card matched.
        """
        state = validate_state(state)
        card_id = validate_card_id(card_id)

        key = card_key(card_id)
        if self.cache.invalidate(key):
            logger.debug("CACHE INVALIDATE for: %s", key)

        rows = self.db.execute_cypher(UPDATE_STATE_QUERY, {"cardId": card_id, "state": state})
        # A read that raced the write may have cached the old state
        self.cache.invalidate(key)
        row = first_row(rows)
        if row is None:
            raise CardNotFoundError(card_id)

        logger.info("State updated for card %s to %s", card_id, state)
        return {"id": row["id"], "state": row["state"]}

    def calculate_points(self) -> int:
        """Sum points over checked cards. Not cached."""
        rows = self.db.execute_cypher(POINTS_QUERY, {"state": CardState.CHECKED.value})
        return int(row_value(rows, "points", 0))

    def clear_cache(self, full: bool = False) -> None:
        """Clear the id-list caches, or every entry with ``full=True``."""
        if full:
            self.cache.clear_all()
        else:
            self.cache.clear()
