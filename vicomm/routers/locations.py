from typing import List

from fastapi import APIRouter, HTTPException
from starlette import status

from vicomm import locations
from vicomm.schemas.location import CityOption

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/provinces", response_model=List[str])
def get_provinces():
    return locations.provinces()


@router.get("/provinces/{province}/cities", response_model=List[CityOption])
def get_cities(province: str):
    try:
        cities = locations.cities_in(province)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Province {province} not found",
        )
    return [CityOption(id=c.id, name=c.name, slug=c.slug) for c in cities]
