"""Neo4j implementations of UserRepository and ContactRepository.
Graph: (u:User {id, email, name, password_hash, created_at})-[:OWNS]->(c:Contact {...}).
Every contact query starts from the owner node, so a contact is only reachable through its owner.
"""

from collections.abc import Mapping
from datetime import datetime

from neo4j.exceptions import ConstraintError

from contactly.domain import Contact, User

_CONSTRAINT_QUERIES = (
    "CREATE CONSTRAINT user_id_unique IF NOT EXISTS FOR (u:User) REQUIRE u.id IS UNIQUE",
    "CREATE CONSTRAINT user_email_unique IF NOT EXISTS FOR (u:User) REQUIRE u.email IS UNIQUE",
    "CREATE CONSTRAINT contact_id_unique IF NOT EXISTS FOR (c:Contact) REQUIRE c.id IS UNIQUE",
)


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def _iso_to_datetime(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def ensure_constraints(driver) -> None:
    """Create uniqueness constraints for users and contacts if missing."""
    with driver.session() as session:
        for query in _CONSTRAINT_QUERIES:
            session.run(query).consume()


class Neo4jUserRepository:
    """Stores users as :User nodes. Email uniqueness is enforced by a constraint."""

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def add(self, user: User) -> bool:
        with self._driver.session() as session:
            try:
                session.run(
                    """
                    CREATE (u:User {
                        id: $id,
                        email: $email,
                        name: $name,
                        password_hash: $password_hash,
                        created_at: $created_at
                    })
                    """,
                    id=user.id,
                    email=user.email,
                    name=user.name,
                    password_hash=user.password_hash,
                    created_at=_datetime_to_iso(user.created_at),
                ).consume()
            except ConstraintError:
                return False
        return True

    def get_by_id(self, user_id: str) -> User | None:
        with self._driver.session() as session:
            record = session.run(
                "MATCH (u:User {id: $id}) RETURN u", id=user_id
            ).single()
        return _record_to_user(record["u"]) if record else None

    def get_by_email(self, email: str) -> User | None:
        with self._driver.session() as session:
            record = session.run(
                "MATCH (u:User {email: $email}) RETURN u", email=email
            ).single()
        return _record_to_user(record["u"]) if record else None


class Neo4jContactRepository:
    """Stores contacts as :Contact nodes linked from their owner by :OWNS."""

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def add(self, contact: Contact) -> None:
        with self._driver.session() as session:
            record = session.run(
                """
                MATCH (u:User {id: $owner_id})
                CREATE (u)-[:OWNS]->(c:Contact {
                    id: $id,
                    owner_id: $owner_id,
                    name: $name,
                    email: $email,
                    phone: $phone,
                    address: $address,
                    notes: $notes,
                    created_at: $created_at,
                    updated_at: $updated_at
                })
                RETURN c.id AS id
                """,
                id=contact.id,
                owner_id=contact.owner_id,
                name=contact.name,
                email=contact.email,
                phone=contact.phone,
                address=contact.address,
                notes=contact.notes,
                created_at=_datetime_to_iso(contact.created_at),
                updated_at=_datetime_to_iso(contact.updated_at),
            ).single()
        if record is None:
            raise LookupError(f"Owner {contact.owner_id} does not exist.")

    def get(self, owner_id: str, contact_id: str) -> Contact | None:
        with self._driver.session() as session:
            record = session.run(
                """
                MATCH (:User {id: $owner_id})-[:OWNS]->(c:Contact {id: $contact_id})
                RETURN c
                """,
                owner_id=owner_id,
                contact_id=contact_id,
            ).single()
        return _record_to_contact(record["c"]) if record else None

    def list_for_owner(self, owner_id: str) -> list[Contact]:
        with self._driver.session() as session:
            result = session.run(
                """
                MATCH (:User {id: $owner_id})-[:OWNS]->(c:Contact)
                RETURN c
                ORDER BY toLower(c.name), c.created_at
                """,
                owner_id=owner_id,
            )
            return [_record_to_contact(rec["c"]) for rec in result]

    def update(
        self, owner_id: str, contact_id: str, changes: dict, updated_at: datetime
    ) -> Contact | None:
        # Setting a property to null removes it; _record_to_contact reads it back as None.
        with self._driver.session() as session:
            record = session.run(
                """
                MATCH (:User {id: $owner_id})-[:OWNS]->(c:Contact {id: $contact_id})
                SET c += $changes, c.updated_at = $updated_at
                RETURN c
                """,
                owner_id=owner_id,
                contact_id=contact_id,
                changes=changes,
                updated_at=_datetime_to_iso(updated_at),
            ).single()
        return _record_to_contact(record["c"]) if record else None

    def delete(self, owner_id: str, contact_id: str) -> Contact | None:
        with self._driver.session() as session:
            record = session.run(
                """
                MATCH (:User {id: $owner_id})-[:OWNS]->(c:Contact {id: $contact_id})
                WITH c, properties(c) AS snapshot
                DETACH DELETE c
                RETURN snapshot
                """,
                owner_id=owner_id,
                contact_id=contact_id,
            ).single()
        return _record_to_contact(record["snapshot"]) if record else None


def _record_to_user(node: Mapping) -> User:
    return User(
        id=node["id"],
        email=node["email"],
        name=node["name"],
        password_hash=node["password_hash"],
        created_at=_iso_to_datetime(node["created_at"]),
    )


def _record_to_contact(node: Mapping) -> Contact:
    return Contact(
        id=node["id"],
        owner_id=node["owner_id"],
        name=node["name"],
        email=node.get("email"),
        phone=node.get("phone"),
        address=node.get("address"),
        notes=node.get("notes"),
        created_at=_iso_to_datetime(node["created_at"]),
        updated_at=_iso_to_datetime(node["updated_at"]),
    )
