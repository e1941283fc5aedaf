"""Backend and identity collaborators backed by a hosted Supabase project."""

import logging
from typing import Callable, List, Optional, Sequence

import httpx
from supabase import AuthError as SupabaseAuthError
from supabase import Client, ClientOptions, PostgrestAPIError, create_client

from .backend import Backend, Filter, Order, Result, Row
from .errors import AuthError
from .identity import Identity, Session, SignUp

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Client]


def _apply_filters(query, filters: Sequence[Filter]):
    for f in filters:
        if f.op == "eq":
            query = query.eq(f.column, f.value)
        elif f.op == "in":
            query = query.in_(f.column, f.value)
        else:
            raise ValueError(f"Unsupported filter operator: {f.op}")
    return query


def make_client_factory(url: str, key: str) -> ClientFactory:
    """Build clients that keep no auth state beyond the tokens given to them."""

    def new_client() -> Client:
        options = ClientOptions(auto_refresh_token=False, persist_session=False)
        return create_client(url, key, options=options)

    return new_client


def _select_columns(embed: Sequence[str]) -> str:
    """'*' plus one embedded-select expansion per related table."""
    return ", ".join(["*"] + [f"{related}(*)" for related in embed])


class SupabaseBackend(Backend):
    """Record CRUD through the PostgREST API of a Supabase project."""

    def __init__(self, client_factory: ClientFactory, session: Optional[Session] = None):
        self.client_factory = client_factory
        self.client = client_factory()
        if session is not None and session.access_token:
            self.client.postgrest.auth(session.access_token)

    @classmethod
    def connect(cls, url: str, key: str) -> "SupabaseBackend":
        return cls(make_client_factory(url, key))

    def for_session(self, session: Optional[Session]) -> "SupabaseBackend":
        """A backend on its own client, sending the session's access token."""
        return SupabaseBackend(self.client_factory, session)

    def _execute(self, operation: str, table: str, query) -> Result:
        try:
            response = query.execute()
        except PostgrestAPIError as e:
            logger.error(f"{operation} {table} failed: {e.message}")
            return None, e.message
        except httpx.HTTPError as e:
            logger.error(f"{operation} {table} failed: {e}")
            return None, str(e)
        return response.data or [], None

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        embed: Sequence[str] = (),
    ) -> Result:
        logger.debug(f"select {table} filters={list(filters)} order={order} embed={list(embed)}")
        query = _apply_filters(self.client.table(table).select(_select_columns(embed)), filters)
        if order is not None:
            query = query.order(order.column, desc=not order.ascending)
        return self._execute("select", table, query)

    def insert(self, table: str, rows: List[Row]) -> Result:
        logger.debug(f"insert {table} ({len(rows)} rows)")
        return self._execute("insert", table, self.client.table(table).insert(rows))

    def update(self, table: str, fields: Row, filters: Sequence[Filter]) -> Result:
        logger.debug(f"update {table} filters={list(filters)}")
        query = _apply_filters(self.client.table(table).update(fields), filters)
        return self._execute("update", table, query)

    def delete(self, table: str, filters: Sequence[Filter]) -> Result:
        logger.debug(f"delete {table} filters={list(filters)}")
        query = _apply_filters(self.client.table(table).delete(), filters)
        return self._execute("delete", table, query)


def _session_from_response(response) -> Session:
    user = response.user
    metadata = user.user_metadata or {}
    tokens = response.session
    return Session(
        user.id,
        user.email,
        metadata.get("full_name"),
        access_token=tokens.access_token if tokens else None,
        refresh_token=tokens.refresh_token if tokens else None,
        expires_at=tokens.expires_at if tokens else None,
    )


class SupabaseIdentity(Identity):
    """Email/password accounts managed by Supabase Auth."""

    def __init__(self, client_factory: ClientFactory):
        self.client_factory = client_factory

    def sign_in(self, email: str, password: str) -> Session:
        try:
            response = self.client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except SupabaseAuthError as e:
            logger.warning(f"Failed sign-in for {email}: {e.message}")
            raise AuthError(e.message)
        session = _session_from_response(response)
        logger.info(f"Signed in {session.email}")
        return session

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> SignUp:
        try:
            response = self.client_factory().auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"full_name": full_name}},
                }
            )
        except SupabaseAuthError as e:
            raise AuthError(e.message)
        if response.user is None:
            raise AuthError("Sign-up did not return a user")
        session = _session_from_response(response)
        # No tokens until the user follows the confirmation email
        pending = session.access_token is None
        if pending:
            logger.info(f"Account {email} created, awaiting email confirmation")
        return SignUp(session, confirmation_pending=pending)

    def sign_out(self, session: Session) -> None:
        if not session.access_token:
            return
        try:
            self.client_factory().auth.admin.sign_out(session.access_token)
        except SupabaseAuthError as e:
            raise AuthError(e.message)
        logger.info(f"Signed out {session.email}")

    def refresh(self, session: Session) -> Session:
        if not session.refresh_token:
            raise AuthError("Session expired, sign in again")
        try:
            response = self.client_factory().auth.refresh_session(session.refresh_token)
        except SupabaseAuthError as e:
            logger.warning(f"Refresh failed for {session.email}: {e.message}")
            raise AuthError(e.message)
        logger.debug(f"Refreshed session of {session.email}")
        return _session_from_response(response)
