import math

EARTH_RADIUS_MI = 3959.0


def haversine_miles(lat1, lng1, lat2, lng2):
    """Great-circle distance in miles. NaN in, NaN out."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MI * c


def estimate_detour_minutes(
    origin: tuple[float, float],
    stop: tuple[float, float],
    work: tuple[float, float],
    minutes_per_mile: float,
) -> float:
    """
    Extra driving minutes for going origin -> stop -> work instead of origin -> work.
    Straight-line legs only; no road network or traffic.
    """
    direct = haversine_miles(origin[0], origin[1], work[0], work[1])
    via_stop = (
        haversine_miles(origin[0], origin[1], stop[0], stop[1])
        + haversine_miles(stop[0], stop[1], work[0], work[1])
    )
    detour_miles = max(0.0, via_stop - direct)
    return detour_miles * minutes_per_mile


# ---- Bounding boxes for candidate queries ----

def miles_to_deg_lat(miles: float) -> float:
    return miles / 69.0


def miles_to_deg_lng(miles: float, lat: float) -> float:
    # avoid division by zero near poles
    c = math.cos(math.radians(lat))
    if abs(c) < 0.01:
        c = 0.01
    return miles / (69.0 * c)


def bounding_box(lat: float, lng: float, radius_mi: float) -> tuple[float, float, float | None, float | None]:
    """
    Conservative (lat_min, lat_max, lng_min, lng_max) around a point.
    Longitude bounds are None when the box would wrap the antimeridian or a pole.
    """
    # pad so rounding in the degree conversion never drops a borderline candidate
    radius = radius_mi * 1.05
    d_lat = miles_to_deg_lat(radius)
    d_lng = miles_to_deg_lng(radius, lat)

    lat_min = lat - d_lat
    lat_max = lat + d_lat
    lng_min = lng - d_lng
    lng_max = lng + d_lng
    if lat_min <= -90 or lat_max >= 90 or lng_min < -180 or lng_max > 180:
        return lat_min, lat_max, None, None
    return lat_min, lat_max, lng_min, lng_max
