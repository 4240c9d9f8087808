"""Accessors for per-app state shared by the routers."""
from pathlib import Path

from fastapi import HTTPException, Request

from hospitofind.data.hospitals_repo import HospitalRecord, get_hospital
from hospitofind.geocoding.client import full_address
from settings import Settings


def db_path(request: Request) -> Path:
    return request.app.state.db_path


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def hospital_or_404(request: Request, hospital_id: str) -> HospitalRecord:
    h = get_hospital(db_path(request), hospital_id)
    if h is None:
        raise HTTPException(status_code=404, detail="Hospital not found")
    return h


def geocode_address(request: Request, street: str, city: str, state: str) -> tuple[float | None, float | None]:
    return request.app.state.geocoder.geocode(full_address(street, city, state))
