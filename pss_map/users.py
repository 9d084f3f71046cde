"""
User directory, persisted as one snapshot under the 'users_all' key.

Resources reference users by username, so a username is never changed once
created.
"""
import hashlib
import hmac
import json
import logging
import re
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from .errors import NotFoundError, StoreError, ValidationError
from .policy import Actor, Role

logger = logging.getLogger(__name__)

USERS_KEY = "users_all"

_LEGACY_SHA256 = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class User:
    username: str
    password_hash: str
    role: Role

    @property
    def actor(self):
        return Actor(self.username, self.role)

    def check_password(self, password):
        if _LEGACY_SHA256.match(self.password_hash):
            # Unsalted SHA-256 written by the SQL variant of the old client
            digest = hashlib.sha256(password.encode("utf-8")).hexdigest()
            return hmac.compare_digest(digest, self.password_hash)
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {"username": self.username, "password": self.password_hash, "role": self.role.value}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("user record is not an object")
        username, password = data.get("username"), data.get("password")
        if not isinstance(username, str) or not username:
            raise ValueError("missing username")
        if not isinstance(password, str):
            raise ValueError(f"missing password for '{username}'")
        role = Role.parse(data.get("role"))
        if role is None:
            raise ValueError(f"unknown role {data.get('role')!r} for '{username}'")
        return cls(username, password, role)


def _check_password(password):
    if password is not None and not isinstance(password, str):
        raise ValidationError("password must be text")
    if not password:
        raise ValidationError("password must not be empty")


class UserDirectory:
    def __init__(self, store):
        self.store = store
        self.users = []

    def load(self):
        self.users = []
        try:
            raw = self.store.get_string(USERS_KEY)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"cannot read '{USERS_KEY}': {e}") from e
        if not raw:
            return self
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored users are not valid JSON, starting empty: %s", e)
            return self
        for index, entry in enumerate(entries if isinstance(entries, list) else []):
            try:
                self.users.append(User.from_dict(entry))
            except ValueError as e:
                logger.warning("Skipping user entry %d: %s", index, e)
        return self

    def _write(self, users):
        try:
            self.store.set_string(USERS_KEY, json.dumps([u.to_dict() for u in users]))
        except StoreError:
            logger.exception("Writing users failed")
            raise
        except Exception as e:
            logger.exception("Writing users failed")
            raise StoreError(f"cannot write '{USERS_KEY}': {e}") from e
        self.users = list(users)

    def all(self):
        return list(self.users)

    def get(self, username):
        for user in self.users:
            if user.username == username:
                return user
        return None

    def require(self, username):
        user = self.get(username)
        if user is None:
            raise NotFoundError(f"no user '{username}'")
        return user

    def by_role(self, role):
        role = Role.parse(role)
        return [u for u in self.users if u.role is role]

    def add(self, username, password, role):
        if username is not None and not isinstance(username, str):
            raise ValidationError("username must be text")
        username = (username or "").strip()
        if not username:
            raise ValidationError("username must not be empty")
        _check_password(password)
        parsed = Role.parse(role)
        if parsed is None:
            raise ValidationError(f"unknown role '{role}'")
        if self.get(username) is not None:
            raise ValidationError(f"username '{username}' already exists")
        user = User(username, generate_password_hash(password), parsed)
        self._write(self.users + [user])
        logger.info("Created user '%s' as %s", username, parsed.value)
        return user

    def remove(self, username):
        self.require(username)
        self._write([u for u in self.users if u.username != username])
        logger.info("Deleted user '%s'", username)

    def set_password(self, username, password):
        _check_password(password)
        current = self.require(username)
        updated = User(current.username, generate_password_hash(password), current.role)
        self._write([updated if u.username == username else u for u in self.users])

    def authenticate(self, username, password):
        user = self.get(username)
        if user and isinstance(password, str) and password and user.check_password(password):
            return user
        return None
