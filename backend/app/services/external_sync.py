"""
External entity lookup helpers used by the ERP upsert services.

Every synced entity is matched by its ExternalId first and then by a
natural fallback key (code, SKU, name...). These helpers keep that
matching chain identical across entity types.

Author: TM3
Date: 2025-12-02
"""
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar
from uuid import UUID

T = TypeVar("T")


@dataclass
class ExternalEntityLookup(Generic[T]):
    entity: Optional[T]
    effective_external_id: Optional[str]

    @property
    def is_new(self) -> bool:
        return self.entity is None


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def resolve_external_id(external_id: Optional[str], entity_id: Optional[UUID]) -> Optional[str]:
    """External id if given, else the internal id as a string, else None"""
    if _present(external_id):
        return external_id.strip()
    if entity_id is not None:
        return str(entity_id)
    return None


def should_create_with_specific_id(provided_id: Optional[UUID], existing) -> bool:
    """A caller-supplied id that matches nothing means: create with that id"""
    return provided_id is not None and existing is None


def lookup_external_entity(
    external_id: Optional[str],
    fallback_key: Optional[str],
    get_by_external_id: Callable[[str], Optional[T]],
    get_by_fallback: Callable[[str], Optional[T]],
) -> ExternalEntityLookup[T]:
    """Try ExternalId first, then the fallback key"""
    entity = None
    if _present(external_id):
        external_id = external_id.strip()
        entity = get_by_external_id(external_id)
    else:
        external_id = None

    if entity is None and _present(fallback_key):
        entity = get_by_fallback(fallback_key.strip())

    return ExternalEntityLookup(entity=entity, effective_external_id=external_id)
