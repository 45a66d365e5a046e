# Overview: The authenticated actor attached to a request.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .permissions import ManagementRole, PrincipalKind, StaffRole, parse_kind, parse_role


class AuthMethod(Enum):
    TOKEN = "token"
    API_KEY = "api_key"


@dataclass(frozen=True)
class Principal:
    """
    Identity reconstructed from a verified token or API key.

    - role is a ManagementRole for MANAGEMENT principals and a StaffRole for
      STAFF principals
    - branch_id is set only for STAFF principals
    - scopes is None for token auth (unrestricted within role); a tuple of
      scope codes for API key auth
    """
    id: int
    username: str
    kind: PrincipalKind
    role: ManagementRole | StaffRole
    branch_id: Optional[int] = None
    scopes: Optional[tuple[str, ...]] = None
    auth_method: AuthMethod = AuthMethod.TOKEN
    api_key_id: Optional[int] = None

    @property
    def is_staff(self) -> bool:
        return self.kind is PrincipalKind.STAFF

    @property
    def is_management(self) -> bool:
        return self.kind is PrincipalKind.MANAGEMENT

    def to_claims(self) -> dict:
        claims = {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "kind": self.kind.value,
        }
        if self.is_staff:
            claims["branch_id"] = self.branch_id
        return claims

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["Principal"]:
        """Rebuild a principal from token claims. Returns None when malformed."""
        kind = parse_kind(claims.get("kind"))
        if kind is None:
            return None
        role = parse_role(kind, claims.get("role"))
        if role is None:
            return None
        principal_id = claims.get("id")
        username = claims.get("username")
        if not isinstance(principal_id, int) or isinstance(principal_id, bool):
            return None
        if not isinstance(username, str) or not username:
            return None
        branch_id = None
        if kind is PrincipalKind.STAFF:
            # Staff always belong to exactly one branch
            branch_id = claims.get("branch_id")
            if not isinstance(branch_id, int) or isinstance(branch_id, bool):
                return None
        return cls(
            id=principal_id,
            username=username,
            kind=kind,
            role=role,
            branch_id=branch_id,
        )

    def summary(self) -> dict:
        data = {
            "id": self.id,
            "username": self.username,
            "kind": self.kind.value,
            "role": self.role.value,
            "branch_id": self.branch_id,
            "auth_method": self.auth_method.value,
        }
        if self.scopes is not None:
            data["scopes"] = list(self.scopes)
        return data
