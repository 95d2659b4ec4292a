"""Pydantic models for contact categories and their contacts.

Field aliases accept the camelCase keys written by the legacy preference
store, so old payloads validate into the same models as current files.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from harborbook.utils.id_generator import new_category_id, new_contact_id
from harborbook.utils.time import ensure_utc, from_reference_seconds, utc_now

SYSTEM_CATEGORY_NAME = "Emergency"

DEFAULT_CATEGORY_NAMES = (
    SYSTEM_CATEGORY_NAME,
    "Coast Guard",
    "Tug Services",
    "Dispatch",
    "Terminal Operations",
    "Local Authorities",
    "Vessel Agent",
    "Pilot Boat Operators",
)


class Contact(BaseModel):
    """One addressable party: a person, station, or vessel contact point."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=new_contact_id, frozen=True, description="Stable contact identifier")
    name: str = Field(..., description="Display name")
    phone: str = Field(..., description="Primary phone number")
    role: Optional[str] = None
    organization: Optional[str] = None
    email: Optional[str] = None
    vhf_channel: Optional[str] = Field(default=None, validation_alias=AliasChoices("vhf_channel", "vhfChannel"))
    call_sign: Optional[str] = Field(default=None, validation_alias=AliasChoices("call_sign", "callSign"))
    notes: Optional[str] = None
    port: Optional[str] = Field(default=None, description="Location tag (home port, terminal, base)")
    last_used: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("last_used", "lastUsed"))
    is_favorite: bool = Field(default=False, validation_alias=AliasChoices("is_favorite", "isFavorite"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Legacy identifiers are upper-case UUID strings.
        return str(value) if value is not None else value

    @field_validator("last_used", mode="before")
    @classmethod
    def _coerce_last_used(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return from_reference_seconds(value)
        return value

    @field_validator("last_used")
    @classmethod
    def _normalize_last_used(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @classmethod
    def create(cls, name: str, phone: str, **fields: Any) -> "Contact":
        """
        Build a new contact with a fresh identity and last_used stamped now.

        Raises:
            ValueError: If name or phone is blank
        """
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name:
            raise ValueError("Contact name must not be empty")
        if not phone:
            raise ValueError("Contact phone must not be empty")
        fields.pop("id", None)
        fields.setdefault("last_used", utc_now())
        return cls(name=name, phone=phone, **fields)

    def is_complete(self) -> bool:
        return bool(self.name.strip()) and bool(self.phone.strip())


class Category(BaseModel):
    """An ordered, named grouping of contacts."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=new_category_id, frozen=True, description="Stable category identifier")
    name: str
    contacts: List[Contact] = Field(default_factory=list)
    is_system: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_system", "isSystemCategory", "system"),
        description="Protected category: cannot be deleted, renamed, or moved",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if value is not None else value


def default_categories() -> List[Category]:
    """Seed collection: the protected Emergency category plus the standard groups."""
    return [Category(name=name, is_system=name == SYSTEM_CATEGORY_NAME) for name in DEFAULT_CATEGORY_NAMES]


def parse_categories(payload: Any) -> List[Category]:
    """
    Validate a decoded record document into categories.

    Accepts either the current envelope ({"version": ..., "categories": [...]})
    or a bare list of categories as written by the legacy store.

    Raises:
        ValueError: If the payload shape is wrong
        pydantic.ValidationError: If a category or contact fails validation
    """
    if isinstance(payload, dict):
        if "categories" not in payload:
            raise ValueError("Record document must have 'categories' field")
        payload = payload["categories"]
    if not isinstance(payload, list):
        raise ValueError("Categories must be a list")
    return [Category.model_validate(item) for item in payload]


def dump_categories(categories: List[Category]) -> List[dict]:
    """JSON-ready representation with unset optional fields omitted."""
    return [category.model_dump(mode="json", exclude_none=True) for category in categories]


def count_contacts(categories: List[Category]) -> int:
    return sum(len(category.contacts) for category in categories)
