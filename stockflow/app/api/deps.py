from __future__ import annotations

import os
from typing import Callable, Generator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from stockflow.app.db.session import SessionLocal
from stockflow.app.db.models.models_v1 import User


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ---------- AUTHORIZATION ----------
class Authorizer:
    """
    Capability check consumed by every endpoint.

    Roles and permission inheritance live outside this service; plug a real
    implementation in with ``app.dependency_overrides[get_authorizer]``.
    """

    def authorize(self, principal_id: int, module: str, feature: str, privilege: str) -> bool:
        raise NotImplementedError


class AllowAllAuthorizer(Authorizer):
    def authorize(self, principal_id: int, module: str, feature: str, privilege: str) -> bool:
        return True


class DenyAllAuthorizer(Authorizer):
    def authorize(self, principal_id: int, module: str, feature: str, privilege: str) -> bool:
        return False


AUTHORIZERS: dict[str, type[Authorizer]] = {
    "allow-all": AllowAllAuthorizer,
    "deny-all": DenyAllAuthorizer,
}


def get_authorizer() -> Authorizer:
    mode = os.getenv("STOCKFLOW_AUTHZ", "allow-all")
    try:
        return AUTHORIZERS[mode]()
    except KeyError:
        raise RuntimeError(f"Unknown STOCKFLOW_AUTHZ mode {mode!r}") from None


def get_current_user(
    db: Session = Depends(get_db),
    user_id: int | None = Header(default=None, alias="X-User-Id"),
) -> User:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    user = db.get(User, user_id)
    if not user or not user.active:
        raise HTTPException(status_code=401, detail="Unknown or inactive user")
    return user


def require_privilege(module: str, feature: str, privilege: str) -> Callable[..., User]:
    def dependency(
        user: User = Depends(get_current_user),
        authorizer: Authorizer = Depends(get_authorizer),
    ) -> User:
        if not authorizer.authorize(user.id, module, feature, privilege):
            raise HTTPException(status_code=403, detail=f"Not allowed: {module}/{feature}/{privilege}")
        return user

    return dependency
