"""Access control lists for contract accounts and contract methods."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

__all__ = ["PermissionModel", "ACL", "new_acl", "default_acl"]


def _json_number(value: float) -> int | float:
    """Render a float the way the chain's JSON encoder does (1.0 -> 1)."""
    number = float(value)
    if number.is_integer() and abs(number) < 1e21:
        return int(number)
    return number


@dataclass
class PermissionModel:
    """Rule and threshold of an ACL."""

    rule: int = 0
    accept_value: float = 0.0

    def to_dict(self) -> dict:
        return {"rule": int(self.rule), "acceptValue": _json_number(self.accept_value)}


@dataclass
class ACL:
    """Permission model plus the weight of every authorised address."""

    pm: PermissionModel = field(default_factory=PermissionModel)
    aks_weight: dict[str, float] | None = None

    def add_ak(self, ak: str, weight: float) -> None:
        """Add or replace the weight of an address."""
        if self.aks_weight is None:
            self.aks_weight = {}
        self.aks_weight[ak] = weight

    def to_dict(self) -> dict:
        weights = None
        if self.aks_weight is not None:
            weights = {ak: _json_number(w) for ak, w in sorted(self.aks_weight.items())}
        return {"pm": self.pm.to_dict(), "aksWeight": weights}

    def to_json(self) -> str:
        """Encode the ACL in the compact JSON form the chain expects."""
        text = json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        return (
            text.replace("<", "\\u003c")
            .replace(">", "\\u003e")
            .replace("&", "\\u0026")
        )


def new_acl(rule: int, accept_value: float) -> ACL:
    """Create an ACL with the given rule and threshold and no addresses."""
    return ACL(pm=PermissionModel(rule=rule, accept_value=accept_value), aks_weight={})


def default_acl(address: str) -> ACL:
    """ACL that gives a single address full control."""
    return ACL(pm=PermissionModel(rule=1, accept_value=1.0), aks_weight={address: 1.0})