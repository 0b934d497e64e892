"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. SessionManager and route code never touch SQL
directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness [I1]:
  username has a plain UNIQUE constraint (it is always stored lowercase).
  email keeps its registered casing, so uniqueness is enforced by a UNIQUE
  index on lower(email). Both back up the application-level existence check
  in SessionManager.register; a race that slips past that check surfaces
  here as sqlalchemy.exc.IntegrityError.

Refresh token [I2]:
  rotate_refresh_token() is a single UPDATE ... WHERE id = ? AND
  refresh_token = ? (compare-and-set). Two concurrent refreshes presenting
  the same token cannot both succeed: the second UPDATE matches zero rows.

DB path: accountservice.db at the project root unless DATABASE_URL is set.

Layer rule: no imports from api/, core/ or media/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine

from auth.models import Account

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False),
    Column("full_name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("avatar_url", Text, nullable=False, server_default=""),
    Column("cover_image_url", Text, nullable=False, server_default=""),
    Column("refresh_token", Text),  # NULL = logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

Index("ix_accounts_email_lower", func.lower(_accounts.c.email), unique=True)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///:memory:")
        account_id = store.create_account(Account(username="ana", email="ana@example.com", ...))
        account = store.find_by_email_or_username(email="ANA@example.com")
        store.close()
    """

    # Fields update_fields() may touch. Identity columns (username) and the
    # session column (refresh_token) have dedicated methods.
    _UPDATABLE_FIELDS: frozenset = frozenset(
        {"full_name", "email", "avatar_url", "cover_image_url", "password_hash"}
    )

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email_or_username(self, email: str | None = None, username: str | None = None) -> Account | None:
        """Return the account matching the email OR the username, if any.

        email is compared case-insensitively; username is lowercased before
        comparison because it is always stored lowercase. Blank arguments are
        ignored. Returns None if neither argument is usable.
        """
        conditions = []
        if email and email.strip():
            conditions.append(func.lower(_accounts.c.email) == email.strip().lower())
        if username and username.strip():
            conditions.append(_accounts.c.username == username.strip().lower())
        if not conditions:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(or_(*conditions)).order_by(_accounts.c.id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email is
        already taken. The caller maps that to a Conflict result.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    username=account.username,
                    email=account.email,
                    full_name=account.full_name,
                    password_hash=account.password_hash,
                    avatar_url=account.avatar_url,
                    cover_image_url=account.cover_image_url,
                    refresh_token=None,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_fields(self, account_id: int, **fields) -> bool:
        """Update whitelisted non-identity fields without touching anything else.

        Unknown field names raise ValueError rather than being ignored.
        Returns True if a row was updated, False if account_id was not found.
        Raises IntegrityError if a new email collides with another account.
        """
        unknown = set(fields) - self._UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(account_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def set_refresh_token(self, account_id: int, token: str | None) -> bool:
        """Overwrite the stored refresh token unconditionally (login sets, logout clears).

        Only this one column changes; no other field is re-validated or rewritten.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(refresh_token=token)
            )
            conn.commit()
        return result.rowcount > 0

    def rotate_refresh_token(self, account_id: int, expected: str, new: str) -> bool:
        """Replace the stored refresh token only if it still equals `expected`.

        Returns False when the stored value changed in the meantime (another
        refresh or a logout won the race) or the account does not exist.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update()
                .where((_accounts.c.id == account_id) & (_accounts.c.refresh_token == expected))
                .values(refresh_token=new)
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Cheap liveness probe for the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        full_name=row.full_name,
        password_hash=row.password_hash,
        avatar_url=row.avatar_url or "",
        cover_image_url=row.cover_image_url or "",
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
