from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.domain.errors import AccountExistsError, AuthError, NodeNotFoundError
from app.domain.models import Account, AccountRegister, AccountRole
from app.infra.auth import hash_password, verify_password
from app.infra.db import get_engine

logger = logging.getLogger(__name__)


class AccountService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _find_by_identifier(self, session: Session, identifier: str) -> Account | None:
        cleaned = identifier.strip()
        statement = select(Account).where(
            or_(Account.username == cleaned, Account.email == cleaned.lower())
        )
        return session.exec(statement).first()

    def register(self, payload: AccountRegister) -> Account:
        username = payload.username.strip()
        email = payload.email.strip().lower()
        with self._session() as session:
            existing = session.exec(
                select(Account.id).where(or_(Account.username == username, Account.email == email))
            ).first()
            if existing is not None:
                raise AccountExistsError("Username or email already exists")

            account = Account(
                username=username,
                email=email,
                password_hash=hash_password(payload.password),
                role=AccountRole.USER,
            )
            session.add(account)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise AccountExistsError("Username or email already exists") from exc
            session.refresh(account)
            return account

    def get_account(self, account_id: str) -> Account:
        with self._session() as session:
            account = session.get(Account, account_id)
            if account is None:
                raise NodeNotFoundError("Account not found")
            return account

    def login(self, identifier: str, password: str) -> Account:
        with self._session() as session:
            account = self._find_by_identifier(session, identifier)
        if account is None or not verify_password(password, account.password_hash):
            raise AuthError("Invalid credentials")
        if not account.is_active:
            raise AuthError("Account disabled")
        return account

    def upsert_admin(self, email: str, password: str, username: str | None = None) -> tuple[Account, bool]:
        """Create an ADMIN account or promote the existing one with that email.

        Returns the account and whether it was newly created.
        """
        email = email.strip().lower()
        username = (username or email.split("@")[0] or "admin").strip()
        with self._session() as session:
            account = session.exec(select(Account).where(Account.email == email)).first()
            created = account is None
            if account is None:
                account = Account(username=username, email=email, password_hash="")
            account.role = AccountRole.ADMIN
            account.password_hash = hash_password(password)
            account.is_active = True
            session.add(account)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise AccountExistsError("Username already exists") from exc
            session.refresh(account)
        logger.info("admin %s %s", account.email, "created" if created else "updated")
        return account, created
