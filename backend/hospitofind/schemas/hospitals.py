"""Request models for hospital submission, editing, moderation and sharing."""
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_SHARE_HOSPITALS = 50


class HourEntry(BaseModel):
    day: str
    open: str


class AddressIn(BaseModel):
    street: str = ""
    city: str | None = None
    state: str | None = None


def _merge_flat_address(data: Any) -> Any:
    """Accept either {"address": {...}} or flat street/city/state keys."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    address = dict(data.get("address") or {})
    for key in ("street", "city", "state"):
        if key in data:
            value = data.pop(key)
            if value is not None:
                address[key] = value
    if address:
        data["address"] = address
    return data


def _split_services(v: Any) -> Any:
    if v is None:
        return v
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


class _HospitalFields(BaseModel):
    phone_number: str | None = None
    website: str | None = None
    email: str | None = None
    photo_url: str | None = None
    type: str | None = None
    services: list[str] | None = None
    comments: list[str] | None = None
    hours: list[HourEntry] | None = None
    is_featured: bool | None = None
    verified: bool | None = None
    longitude: float | None = Field(default=None, ge=-180, le=180)
    latitude: float | None = Field(default=None, ge=-90, le=90)

    @field_validator("services", mode="before")
    @classmethod
    def services_list(cls, v: Any) -> Any:
        return _split_services(v)

    @field_validator("comments")
    @classmethod
    def comments_non_empty(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [c.strip() for c in v if c and c.strip()]

    @field_validator("hours", mode="before")
    @classmethod
    def hours_complete(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        return [h for h in v if isinstance(h, dict) and h.get("day") and h.get("open")]

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str | None) -> str | None:
        v = (v or "").strip()
        if not v:
            return None
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email address.")
        return v

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.longitude is None) != (self.latitude is None):
            raise ValueError("longitude and latitude must be provided together.")
        return self


class HospitalCreate(_HospitalFields):
    name: str
    address: AddressIn

    @model_validator(mode="before")
    @classmethod
    def flat_address(cls, data: Any) -> Any:
        return _merge_flat_address(data)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Hospital name is required.")
        return v

    @field_validator("address")
    @classmethod
    def city_state_required(cls, v: AddressIn) -> AddressIn:
        if not (v.city or "").strip() or not (v.state or "").strip():
            raise ValueError("City and state are required.")
        return AddressIn(street=(v.street or "").strip(), city=v.city.strip(), state=v.state.strip())

    def to_columns(self) -> dict[str, Any]:
        """Flat keyword arguments for create_hospital (moderation flags excluded)."""
        cols = self.model_dump(exclude={"address", "verified", "is_featured", "hours"}, exclude_none=True)
        cols.update(street=self.address.street, city=self.address.city, state=self.address.state)
        if self.hours is not None:
            cols["hours"] = [h.model_dump() for h in self.hours]
        return cols


class HospitalUpdate(_HospitalFields):
    name: str | None = None
    address: AddressIn | None = None

    @model_validator(mode="before")
    @classmethod
    def flat_address(cls, data: Any) -> Any:
        return _merge_flat_address(data)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Hospital name must not be empty.")
        return v

    @field_validator("address")
    @classmethod
    def address_not_blank(cls, v: AddressIn | None) -> AddressIn | None:
        if v is None:
            return None
        for key in ("city", "state"):
            if key in v.model_fields_set and not (getattr(v, key) or "").strip():
                raise ValueError(f"{key.capitalize()} must not be empty.")
        return v

    def to_columns(self) -> dict[str, Any]:
        """Only the fields the client sent, flattened to column names."""
        sent = self.model_fields_set
        cols: dict[str, Any] = {}
        for name in (
            "name", "phone_number", "website", "email", "photo_url", "type", "services",
            "comments", "is_featured", "verified", "longitude", "latitude",
        ):
            value = getattr(self, name)
            if name in sent and not (value is None and name in ("name", "is_featured", "verified")):
                cols[name] = value
        if "hours" in sent:
            cols["hours"] = [h.model_dump() for h in self.hours or []]
        if "address" in sent and self.address is not None:
            for key in ("street", "city", "state"):
                if key in self.address.model_fields_set:
                    cols[key] = (getattr(self.address, key) or "").strip()
        return cols


class SearchParams(BaseModel):
    address: str | None = None
    city: str | None = None
    state: str | None = None


class ShareRequest(BaseModel):
    """Share either explicit hospital ids or the results of a filtered search."""
    hospital_ids: list[str] | None = None
    search_params: SearchParams | None = None

    @field_validator("hospital_ids")
    @classmethod
    def ids_unique(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        ids = list(dict.fromkeys(i.strip() for i in v if i and i.strip()))
        if len(ids) > MAX_SHARE_HOSPITALS:
            raise ValueError(f"At most {MAX_SHARE_HOSPITALS} hospitals can be shared at once.")
        return ids

    @model_validator(mode="after")
    def something_to_share(self):
        if not self.hospital_ids and self.search_params is None:
            raise ValueError("Select at least one hospital to share.")
        return self
