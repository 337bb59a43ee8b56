#!/usr/bin/env python3
"""Prepare the Neo4j database: create uniqueness constraints for users and contacts.

With --reset, first delete every User and Contact node (and their OWNS edges).
Run from repo root with .env (NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD).
Idempotent without --reset.
"""
import argparse
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv  # noqa: E402
from neo4j import GraphDatabase  # noqa: E402

from contactly.infrastructure import ensure_constraints  # noqa: E402

load_dotenv(REPO_ROOT / ".env")

_COUNT = """
OPTIONAL MATCH (u:User) WITH count(u) AS users
OPTIONAL MATCH (c:Contact) RETURN users, count(c) AS contacts
"""

_DELETE_ALL = """
MATCH (n) WHERE n:User OR n:Contact
DETACH DELETE n
"""


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--reset", action="store_true", help="delete all users and contacts first"
    )
    args = parser.parse_args(argv)

    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    driver = GraphDatabase.driver(uri, auth=(user, password))
    try:
        if args.reset:
            with driver.session() as session:
                session.run(_DELETE_ALL).consume()
            print("Deleted all User and Contact nodes.")
        ensure_constraints(driver)
        with driver.session() as session:
            record = session.run(_COUNT).single()
        print(
            f"Constraints in place. {record['users']} user(s), "
            f"{record['contacts']} contact(s)."
        )
        return 0
    finally:
        driver.close()


if __name__ == "__main__":
    sys.exit(main())
