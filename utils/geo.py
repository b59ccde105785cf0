import math

EARTH_RADIUS_MILES = 3959


def distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Расстояние по большому кругу (формула гаверсинуса) в милях."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) * math.sin(d_lng / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def midpoint(lat1: float, lng1: float, lat2: float, lng2: float) -> tuple[float, float]:
    """
    Середина между двумя точками как среднее арифметическое координат.
    Это приближение для коротких расстояний внутри города: радиусы
    обслуживания площадок подобраны именно под него, геодезическую
    середину здесь не считаем.
    """
    return (lat1 + lat2) / 2, (lng1 + lng2) / 2
