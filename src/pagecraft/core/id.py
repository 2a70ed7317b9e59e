"""Identifiers for placed components and data-source endpoints.

Ids are prefixed ULIDs (``cmp_01H...``, ``ep_01H...``). A ULID sorts by
creation time, so ids minted by paste or add order naturally in logs.
Ids are never reused: a pasted subtree gets a fresh id at every level.
Ids read from saved documents are accepted as opaque strings.
"""

from datetime import datetime
from enum import Enum
from typing import NewType

from ulid import ULID

ComponentID = NewType("ComponentID", str)
EndpointID = NewType("EndpointID", str)


class IdKind(str, Enum):
    """Prefix for each kind of identifier."""

    COMPONENT = "cmp"
    ENDPOINT = "ep"


def _mint(kind: IdKind) -> str:
    return f"{kind.value}_{ULID()}"


def new_component_id() -> ComponentID:
    return ComponentID(_mint(IdKind.COMPONENT))


def new_endpoint_id() -> EndpointID:
    return EndpointID(_mint(IdKind.ENDPOINT))


def parse_id(id_str: str) -> tuple[IdKind, ULID] | None:
    """Split a minted id into its kind and ULID; None for anything else."""
    prefix, sep, body = id_str.partition("_")
    if not sep or len(body) != 26:
        return None
    try:
        return IdKind(prefix), ULID.from_str(body)
    except ValueError:
        return None


def created_at(id_str: str) -> datetime | None:
    """Creation time encoded in a minted id."""
    parsed = parse_id(id_str)
    return parsed[1].datetime if parsed else None


def is_component_id(id_str: str) -> bool:
    parsed = parse_id(id_str)
    return parsed is not None and parsed[0] is IdKind.COMPONENT


def is_endpoint_id(id_str: str) -> bool:
    parsed = parse_id(id_str)
    return parsed is not None and parsed[0] is IdKind.ENDPOINT
