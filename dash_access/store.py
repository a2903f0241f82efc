"""
Profile and record stores on top of a SQLAlchemy engine.

Client and note payloads are stored as opaque JSON documents and handed back
exactly as they were written.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from dash_access.models import Profile


class ProfileExists(Exception):
    """Raised when a caller tries to create a profile a second time."""


class ProfileStore:
    def __init__(self, engine):
        self.engine = engine

    def get(self, user_id: str) -> Optional[Profile]:
        sql = text("""
            SELECT user_id, email, first_name, last_name, role, created_at
            FROM user_profiles
            WHERE user_id = :uid
        """)
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"uid": user_id}).mappings().first()
        if not row:
            return None
        return Profile(
            user_id=str(row["user_id"]),
            first_name=row["first_name"],
            last_name=row["last_name"],
            role=row["role"],
            email=row["email"],
            created_at=row["created_at"],
        )

    def create(self, user_id: str, email: str, first_name: str, last_name: str, role: str) -> Profile:
        """Insert a profile. The first write wins; later attempts raise ProfileExists."""
        created_at = datetime.utcnow().isoformat()
        sql = text("""
            INSERT INTO user_profiles (user_id, email, first_name, last_name, role, created_at)
            VALUES (:uid, :email, :first, :last, :role, :created)
        """)
        try:
            with self.engine.begin() as conn:
                conn.execute(sql, {
                    "uid": user_id, "email": email, "first": first_name,
                    "last": last_name, "role": role, "created": created_at,
                })
        except IntegrityError:
            raise ProfileExists(f"Profile for user {user_id} already exists.")
        return Profile(user_id, first_name, last_name, role, email, created_at)

    def update_role(self, user_id: str, role: str) -> bool:
        """Set a user's role. Returns False when there is no such profile."""
        sql = text("UPDATE user_profiles SET role = :role WHERE user_id = :uid")
        with self.engine.begin() as conn:
            result = conn.execute(sql, {"role": role, "uid": user_id})
        return result.rowcount > 0


class ClientStore:
    def __init__(self, engine):
        self.engine = engine

    def add(self, record: Dict[str, Any]) -> int:
        email = (record.get("data") or {}).get("email") or record.get("email")
        with self.engine.begin() as conn:
            if record.get("id") is not None:
                conn.execute(
                    text("INSERT INTO client_records (id, email, payload) VALUES (:id, :email, :payload)"),
                    {"id": int(record["id"]), "email": email, "payload": json.dumps(record)},
                )
                return int(record["id"])
            result = conn.execute(
                text("INSERT INTO client_records (email, payload) VALUES (:email, :payload)"),
                {"email": email, "payload": json.dumps(record)},
            )
            return int(result.lastrowid)

    def list(self) -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            rows = conn.execute(text("SELECT id, payload FROM client_records ORDER BY id")).mappings().all()
        return [self._load(r) for r in rows]

    def get(self, client_id: int) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT id, payload FROM client_records WHERE id = :id"), {"id": client_id}
            ).mappings().first()
        return self._load(row) if row else None

    def set_therapist(self, client_email: str, therapist: str) -> bool:
        def apply(record):
            record.setdefault("therapist", {})["name"] = therapist
        return self._update_by_email(client_email, apply)

    def set_status(self, client_email: str, active: bool) -> bool:
        def apply(record):
            record.setdefault("therapist", {})["status"] = "Active" if active else "Inactive"
            record["active"] = bool(active)
        return self._update_by_email(client_email, apply)

    def _update_by_email(self, client_email: str, apply) -> bool:
        with self.engine.begin() as conn:
            row = conn.execute(
                text("SELECT id, payload FROM client_records WHERE email = :email ORDER BY id"),
                {"email": client_email},
            ).mappings().first()
            if not row:
                return False
            record = json.loads(row["payload"])
            apply(record)
            conn.execute(
                text("UPDATE client_records SET payload = :payload WHERE id = :id"),
                {"payload": json.dumps(record), "id": row["id"]},
            )
        return True

    @staticmethod
    def _load(row) -> Dict[str, Any]:
        record = json.loads(row["payload"])
        record.setdefault("id", row["id"])
        return record


class NoteStore:
    def __init__(self, engine):
        self.engine = engine

    def add(self, client_id: int, note: Dict[str, Any]) -> str:
        note_id = note.get("id") or uuid.uuid4().hex
        payload = dict(note, id=note_id, clientId=client_id)
        with self.engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO therapy_notes (id, client_id, payload, created_at)
                    VALUES (:id, :cid, :payload, :created)
                """),
                {
                    "id": note_id, "cid": client_id, "payload": json.dumps(payload),
                    "created": datetime.utcnow().isoformat(),
                },
            )
        return note_id

    def for_client(self, client_id: int) -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("SELECT payload FROM therapy_notes WHERE client_id = :cid ORDER BY created_at, id"),
                {"cid": client_id},
            ).mappings().all()
        return [json.loads(r["payload"]) for r in rows]
