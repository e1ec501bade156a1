"""Park registry - display labels for park ids used in catalog scoping."""
from typing import Optional

PARKS: dict[str, str] = {
    'MURCHISON': 'Murchison Falls National Park',
    'BWINDI': 'Bwindi Impenetrable National Park',
    'QUEEN_ELIZABETH': 'Queen Elizabeth National Park',
    'KIBALE': 'Kibale Forest National Park',
    'MGAHINGA': 'Mgahinga Gorilla National Park',
    'KIDEPO': 'Kidepo Valley National Park',
    'LAKE_MBURO': 'Lake Mburo National Park',
    'MT_ELGON': 'Mt Elgon National Park',
    'RWENZORI': 'Rwenzori Mountains National Park',
    'SEMULIKI': 'Semuliki National Park',
    'ZIWA': 'Ziwa Rhino Sanctuary',
    'BUSIKA': 'Busika',
    'ENTEBBE': 'Entebbe',
    'LAKE_BUNYONYI': 'Lake Bunyonyi',
    'JINJA': 'Jinja',
}

NO_PARK_LABEL = 'No Park'


def park_label(park_id: Optional[str]) -> str:
    """Display name for a park id; unknown ids are shown verbatim."""
    if not park_id:
        return NO_PARK_LABEL
    return PARKS.get(park_id, park_id)
