from pydantic import BaseModel


class CityOption(BaseModel):
    id: str
    name: str
    slug: str
