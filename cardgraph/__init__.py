"""cardgraph - REST API over a Neo4j graph of quiz cards."""

__version__ = "0.3.0"
