from vicomm import locations
from vicomm.models.listing import ListingCity


def test_provinces(client):
    response = client.get("/locations/provinces")
    assert response.status_code == 200
    provinces = response.json()
    assert "Alberta" in provinces
    assert "Ontario" in provinces
    assert len(provinces) == 13


def test_cities_of_a_province(client):
    response = client.get("/locations/provinces/Alberta/cities")
    assert response.status_code == 200
    names = {city["name"] for city in response.json()}
    assert {"Calgary", "Edmonton"} <= names


def test_unknown_province(client):
    response = client.get("/locations/provinces/Atlantis/cities")
    assert response.status_code == 404


def test_city_ids_are_unique():
    cities = locations.all_cities()
    assert len({city.id for city in cities}) == len(cities)
    calgary = next(city for city in cities if city.name == "Calgary")
    assert calgary.province == "Alberta"


def test_seeded_cities_match_the_static_table(db_session):
    assert db_session.query(ListingCity).count() == len(locations.all_cities())
