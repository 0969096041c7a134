"""Metro/suburb table for the service area, with average job value per market."""

from dataclasses import dataclass, field


DEFAULT_AVG_TICKET = 6500


@dataclass
class Metro:
    primary: str
    suburbs: list[str] = field(default_factory=list)
    population: int = 0
    service_radius: int = 20
    avg_ticket: int = DEFAULT_AVG_TICKET
    # Suburbs whose typical job runs above the metro average
    suburb_tickets: dict[str, int] = field(default_factory=dict)


METROS: dict[str, Metro] = {
    "milwaukee": Metro(
        primary="Milwaukee",
        suburbs=["Wauwatosa", "West Allis", "Brookfield", "New Berlin", "Franklin", "Oak Creek"],
        population=590157,
        service_radius=25,
        avg_ticket=7500,
        suburb_tickets={"Brookfield": 8500, "Wauwatosa": 8000},
    ),
    "madison": Metro(
        primary="Madison",
        suburbs=["Middleton", "Fitchburg", "Verona", "Sun Prairie", "Waunakee", "McFarland"],
        population=269840,
        service_radius=20,
        avg_ticket=7000,
        suburb_tickets={"Middleton": 7800, "Verona": 7500},
    ),
    "greenbay": Metro(
        primary="Green Bay",
        suburbs=["De Pere", "Ashwaubenon", "Allouez", "Bellevue", "Howard", "Suamico"],
        population=107395,
        service_radius=30,
        avg_ticket=6000,
    ),
}


def _city_part(city: str) -> str:
    """'Milwaukee, WI' -> 'milwaukee'."""
    return (city or "").split(",")[0].strip().lower()


def _ticket_index() -> dict[str, int]:
    index: dict[str, int] = {}
    for metro in METROS.values():
        index[metro.primary.lower()] = metro.avg_ticket
        for suburb in metro.suburbs:
            index[suburb.lower()] = metro.suburb_tickets.get(suburb, metro.avg_ticket)
    return index


_TICKETS = _ticket_index()


def avg_ticket_for_city(city: str) -> int:
    """Average job value for a city; unknown cities get DEFAULT_AVG_TICKET."""
    return _TICKETS.get(_city_part(city), DEFAULT_AVG_TICKET)


def metro_for_city(city: str) -> Metro | None:
    name = _city_part(city)
    for metro in METROS.values():
        if name == metro.primary.lower() or name in (s.lower() for s in metro.suburbs):
            return metro
    return None


def all_cities() -> list[str]:
    """Every primary city and suburb, sorted."""
    cities: list[str] = []
    for metro in METROS.values():
        cities.append(metro.primary)
        cities.extend(metro.suburbs)
    return sorted(cities)
