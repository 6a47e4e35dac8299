"""Load categories, questions, alternatives and framework measures into Neo4j.

The input is a YAML file (default: ``seed_data.yaml`` next to this module):

    frameworks:
      - name: NSM Grunnprinsipper
        measures:
          - {lokal_id: "1.1.1", tittel: ..., kapittel: ..., standard: ...}
    categories:
      - kategori_id: 1
        kategori: ...
        poeng: 10
        sporsmal:
          - tekst: ...
            alternativer:
              - tekst: ...
                dekker: ["1.1.1"]

Usage:
    python -m cardgraph.seed [--file data.yaml] [--reset]
"""

import argparse
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from cardgraph.config import load_settings
from cardgraph.database import GraphConnection
from cardgraph.models import CardState

DEFAULT_SEED_FILE = Path(__file__).parent / "seed_data.yaml"

SCHEMA_QUERIES = [
    "CREATE CONSTRAINT kategori_id IF NOT EXISTS FOR (k:Kategori) REQUIRE k.kategori_id IS UNIQUE",
    "CREATE INDEX tiltak_lokal_id IF NOT EXISTS FOR (t:RammeverksTiltak) ON (t.`Lokal ID`)",
    "CREATE INDEX rammeverk_navn IF NOT EXISTS FOR (r:Rammeverk) ON (r.Rammeverk)",
]


# =============================================================================
# SEED FILE MODELS
# =============================================================================

class SeedMeasure(BaseModel):
    lokal_id: str
    tittel: str = ""
    kapittel: Optional[str] = None
    standard: Optional[str] = None


class SeedFramework(BaseModel):
    name: str
    measures: list[SeedMeasure] = Field(default_factory=list)


class SeedAlternative(BaseModel):
    tekst: str
    beskrivelse: Optional[str] = None
    hva: Optional[str] = None
    hvordan: Optional[str] = None
    dekker: list[str] = Field(default_factory=list, description="Local IDs of covered measures")


class SeedQuestion(BaseModel):
    tekst: str
    alternativer: list[SeedAlternative] = Field(default_factory=list)


class SeedCategory(BaseModel):
    kategori_id: int = Field(..., gt=0)
    kategori: str
    kategori_beskrivelse: Optional[str] = None
    kategori_kort: Optional[str] = None
    state: CardState = CardState.UNCHECKED
    poeng: int = 0
    bonus_poeng: int = 0
    sporsmal: list[SeedQuestion] = Field(default_factory=list)


class SeedData(BaseModel):
    frameworks: list[SeedFramework] = Field(default_factory=list)
    categories: list[SeedCategory] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_references(self):
        known = {m.lokal_id for f in self.frameworks for m in f.measures}
        for cat in self.categories:
            for q in cat.sporsmal:
                for alt in q.alternativer:
                    unknown = [lid for lid in alt.dekker if lid not in known]
                    if unknown:
                        raise ValueError(
                            f"Category {cat.kategori_id}: alternative {alt.tekst!r} "
                            f"covers unknown measures {unknown}"
                        )
        ids = [c.kategori_id for c in self.categories]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate kategori_id in seed data")
        return self


def load_seed_file(path: Path) -> SeedData:
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return SeedData(**raw)


# =============================================================================
# WRITERS
# =============================================================================

def create_schema(db: GraphConnection) -> None:
    for query in SCHEMA_QUERIES:
        db.execute_cypher(query)
        print(f"   ✓ {query[:60]}...")


def write_frameworks(db: GraphConnection, frameworks: list[SeedFramework]) -> int:
    count = 0
    for fw in frameworks:
        db.execute_cypher(
            """
            MERGE (r:Rammeverk {Rammeverk: $name})
            WITH r
            UNWIND $measures AS m
            MERGE (t:RammeverksTiltak {`Lokal ID`: m.lokal_id})
            SET t.Tiltak = m.tittel, t.Kapittel = m.kapittel, t.Standard = m.standard
            MERGE (r)-[:Inneholder]->(t)
            """,
            {"name": fw.name, "measures": [m.model_dump() for m in fw.measures]},
        )
        count += len(fw.measures)
    return count


def write_category(db: GraphConnection, cat: SeedCategory) -> None:
    """Upsert the category and replace its question tree. Measures are kept."""
    db.execute_cypher(
        """
        MERGE (k:Kategori {kategori_id: $kategori_id})
        SET k.kategori = $kategori,
            k.kategori_beskrivelse = $kategori_beskrivelse,
            k.kategori_kort = $kategori_kort,
            k.state = $state,
            k.poeng = $poeng,
            k.bonus_poeng = $bonus_poeng
        WITH k
        OPTIONAL MATCH (k)-[:Inneholder]->(s:Spørsmål)
        OPTIONAL MATCH (s)-[:Inneholder]->(a:Alternativ)
        DETACH DELETE a, s
        """,
        {**cat.model_dump(exclude={"sporsmal"}), "state": cat.state.value},
    )
    for q in cat.sporsmal:
        db.execute_cypher(
            """
            MATCH (k:Kategori {kategori_id: $kategori_id})
            CREATE (k)-[:Inneholder]->(s:Spørsmål {sporsmal: $tekst})
            WITH s
            UNWIND $alternativer AS alt
            CREATE (s)-[:Inneholder]->(a:Alternativ {
                alternativ_tekst: alt.tekst,
                alternativ_beskrivelse: alt.beskrivelse,
                hva_skal_implementeres: alt.hva,
                hvordan_implementere: alt.hvordan
            })
            WITH a, alt
            UNWIND alt.dekker AS lokal_id
            MATCH (t:RammeverksTiltak {`Lokal ID`: lokal_id})
            MERGE (a)-[:Dekker]->(t)
            """,
            {
                "kategori_id": cat.kategori_id,
                "tekst": q.tekst,
                "alternativer": [a.model_dump() for a in q.alternativer],
            },
        )


def clear_content(db: GraphConnection) -> None:
    db.execute_cypher(
        "MATCH (n) WHERE n:Kategori OR n:Spørsmål OR n:Alternativ "
        "OR n:RammeverksTiltak OR n:Rammeverk DETACH DELETE n"
    )


def seed_database(db: GraphConnection, data: SeedData, reset: bool = False) -> dict:
    """Write ``data`` to the graph and return counts of what was written."""
    if reset:
        print("🧹 Removing existing card content...")
        clear_content(db)

    print("📋 Creating schema...")
    create_schema(db)

    print("\n📚 Writing frameworks and measures...")
    measures = write_frameworks(db, data.frameworks)

    print("\n🗂  Writing categories...")
    questions = 0
    for cat in data.categories:
        write_category(db, cat)
        questions += len(cat.sporsmal)
        print(f"   ✓ {cat.kategori_id}: {cat.kategori}")

    # Cached reads are stale after a bulk write
    db.cache.clear_all()
    return {
        "frameworks": len(data.frameworks),
        "measures": measures,
        "categories": len(data.categories),
        "questions": questions,
    }


def main():
    parser = argparse.ArgumentParser(description="Seed the card graph from a YAML file")
    parser.add_argument("--file", type=Path, default=DEFAULT_SEED_FILE,
                        help="Seed YAML file (default: bundled sample data)")
    parser.add_argument("--reset", action="store_true",
                        help="Delete existing categories, questions, alternatives and measures first")
    args = parser.parse_args()

    data = load_seed_file(args.file)
    settings = load_settings()
    settings.validate_credentials()

    print(f"🔗 Connecting to Neo4j at {settings.neo4j_uri}...")
    db = GraphConnection(settings)
    try:
        counts = seed_database(db, data, reset=args.reset)
    finally:
        db.close()
    print(f"\n✅ Seeding complete! {counts}")


if __name__ == "__main__":
    main()
